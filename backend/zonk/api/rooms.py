from flask import Blueprint, current_app, jsonify
from zonk.services.games.errors import RoomNotFound

rooms_bp = Blueprint('rooms', __name__)


@rooms_bp.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    """Returns the current snapshot of a room."""
    registry = current_app.extensions['zonk_rooms']
    room_id = room_id.upper()
    try:
        state = registry.with_room(room_id, lambda session: session.to_dict())
        state['removal_pending'] = registry.is_removal_pending(room_id)
    except RoomNotFound as err:
        return jsonify({'error': err.message}), 404
    return jsonify(state)
