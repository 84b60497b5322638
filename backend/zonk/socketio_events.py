from flask import current_app, request
from flask_socketio import emit, join_room, leave_room
from zonk import socketio

NAMESPACE = '/ws'


def _room_key(room_id: str) -> str:
    return f"room:{room_id}"


class SocketIOChannel:
    """Outbound side of the dispatcher, backed by Flask-SocketIO rooms."""

    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace

    def send(self, sid, event, payload):
        socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def broadcast(self, room_id, event, payload):
        socketio.emit(event, payload, to=_room_key(room_id), namespace=self.namespace)

    def join(self, sid, room_id):
        join_room(_room_key(room_id), sid=sid, namespace=self.namespace)

    def leave(self, sid, room_id):
        leave_room(_room_key(room_id), sid=sid, namespace=self.namespace)


def _dispatcher():
    return current_app.extensions['zonk_dispatcher']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*args):
    _dispatcher().disconnect(_get_sid())


def _action_handler(action_name):
    def _handler(data=None):
        _dispatcher().dispatch(action_name, _get_sid(), data)
    _handler.__name__ = f"handle_{action_name}"
    return _handler


# Socket.IO event name -> dispatcher action
EVENT_ACTIONS = {
    'create_room': 'create_room',
    'join_room': 'join_room',
    'start_game': 'start_game',
    'roll_dice': 'roll_dice',
    'toggle_hold': 'toggle_hold',
    'bank_points': 'bank_points',
    'leave_room': 'leave_room',
    'chat_message': 'send_chat',
}


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    for event, action in EVENT_ACTIONS.items():
        socketio.on_event(event, _action_handler(action), namespace=NAMESPACE)
