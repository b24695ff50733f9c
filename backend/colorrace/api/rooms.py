from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


def _manager():
    return current_app.extensions['colorrace']


@rooms.route('', methods=['GET'])
def list_rooms():
    """
    Returns the lobby: one summary per live room.
    """
    return jsonify(_manager().lobby()), 200


@rooms.route('/<string:room_id>', methods=['GET'])
def get_room_state(room_id):
    """
    Returns the full snapshot of a room.
    """
    manager = _manager()
    with manager.lock:
        room = manager.rooms.get(room_id.upper())
        if not room:
            return jsonify({'error': 'Room not found'}), 404
        return jsonify(room.to_dict()), 200
