from functools import wraps

from flask import current_app, request
from flask_socketio import emit

from colorrace import socketio
from colorrace.broadcast import NAMESPACE
from colorrace.errors import GameError, Unauthenticated
from colorrace.services.games.scheduler import play_events


def _manager():
    return current_app.extensions['colorrace']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _play(events) -> None:
    play_events(current_app._get_current_object(), events)


def reports_errors(error_event='error'):
    """Turn a raised GameError into a single message for the calling connection."""
    def decorator(handler):
        @wraps(handler)
        def wrapper(*args, **kwargs):
            try:
                return handler(*args, **kwargs)
            except GameError as exc:
                current_app.logger.info(f"[{error_event}] sid={_get_sid()} {type(exc).__name__}: {exc.message}")
                emit(error_event, {'message': exc.message})
        return wrapper
    return decorator


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={_get_sid()}")
    emit('updateRoomList', _manager().lobby())


def handle_disconnect(reason=None):
    sid = _get_sid()
    current_app.logger.info(f"[disconnect] sid={sid}")
    _play(_manager().disconnect(sid))


@reports_errors('authError')
def handle_authenticate(data):
    if not isinstance(data, dict):
        data = {}
    identity, events = _manager().authenticate(_get_sid(), data.get('userId'), data.get('name'))
    current_app.logger.info(f"[auth] sid={_get_sid()} user={identity.user_id}")
    emit('authenticated', identity.to_dict())
    _play(events)


def handle_request_room_list(data=None):
    emit('updateRoomList', _manager().lobby())


@reports_errors()
def handle_create_room(data=None):
    manager = _manager()
    _, events = manager.create_room(manager.user_for_connection(_get_sid()))
    _play(events)


@reports_errors()
def handle_join_room(data):
    manager = _manager()
    room_id = data.get('roomId') if isinstance(data, dict) else None
    _, events = manager.join_room(room_id, manager.user_for_connection(_get_sid()))
    _play(events)


@reports_errors()
def handle_player_action(data):
    manager = _manager()
    _play(manager.player_action(manager.user_for_connection(_get_sid()), data))


@reports_errors()
def handle_leave_room(data=None):
    manager = _manager()
    user_id = manager.user_for_connection(_get_sid())
    if user_id is None or manager.sessions.get(user_id) is None:
        raise Unauthenticated()
    _play(manager.leave_or_disconnect(user_id, reason='left'))


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on the '/ws' namespace."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('authenticate', handle_authenticate, namespace=NAMESPACE)
    socketio.on_event('requestRoomList', handle_request_room_list, namespace=NAMESPACE)
    socketio.on_event('createRoom', handle_create_room, namespace=NAMESPACE)
    socketio.on_event('joinRoom', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('playerAction', handle_player_action, namespace=NAMESPACE)
    socketio.on_event('leaveRoom', handle_leave_room, namespace=NAMESPACE)
