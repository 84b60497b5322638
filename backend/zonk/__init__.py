from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'
    if '*' in allowed_origins:
        # engine.io only treats the bare string as a wildcard
        allowed_origins = '*'
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room registry and dispatcher live on the app so each app (and each test) gets its own
    from zonk.models import generate_room_code
    from zonk.services.games.dispatcher import ActionDispatcher
    from zonk.services.games.registry import RoomRegistry
    from zonk.services.games.session import GameRules
    from zonk.socketio_events import SocketIOChannel

    code_length = int(flask_app.config.get('ROOM_CODE_LENGTH', 6))
    rooms = RoomRegistry(
        grace_sec=float(flask_app.config.get('ROOM_GRACE_SEC', 30)),
        id_factory=lambda: generate_room_code(code_length),
        start_background_task=socketio.start_background_task,
        sleep=socketio.sleep,
        logger=flask_app.logger,
    )
    flask_app.extensions['zonk_rooms'] = rooms
    flask_app.extensions['zonk_dispatcher'] = ActionDispatcher(
        rooms,
        SocketIOChannel(),
        rules=GameRules.from_config(flask_app.config),
        logger=flask_app.logger,
    )

    # Import and register blueprints here
    from zonk.main import main
    flask_app.register_blueprint(main)

    from zonk.api.rooms import rooms_bp
    flask_app.register_blueprint(rooms_bp, url_prefix='/api/rooms')

    # Register Socket.IO event handlers
    from zonk.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('score-dice')
    @click.argument('values', nargs=-1, type=click.IntRange(1, 6), required=True)
    def score_dice_command(values):
        """Scores the given dice values as if all of them were held."""
        from zonk.services.games.scoring import is_zonk, score_values
        points = score_values(values)
        click.echo(f'{points} points')
        if is_zonk(values):
            click.echo('Zonk!')

    flask_app.cli.add_command(score_dice_command)

    return flask_app
