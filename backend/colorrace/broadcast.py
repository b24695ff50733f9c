"""Outbound half of the Socket.IO gateway.

Turns ``GameEvent`` targets into Socket.IO emits: a room event goes to every
open connection of every connected seat, a user event to every open
connection (tab) of those users, a broadcast event to everyone on the
namespace.
"""

from typing import Iterable

from colorrace import socketio

NAMESPACE = '/ws'


def _connections_for(manager, user_ids: Iterable[str]):
    sids = set()
    for user_id in user_ids:
        sids.update(manager.sessions.connections(user_id))
    return sorted(sids)


def dispatch(app, events) -> None:
    manager = app.extensions['colorrace']
    for event in events:
        if event.broadcast:
            socketio.emit(event.name, event.payload, namespace=NAMESPACE)
            continue
        if event.user_ids is not None:
            user_ids = event.user_ids
        else:
            user_ids = manager.audience(event.room_id)
        for sid in _connections_for(manager, user_ids):
            socketio.emit(event.name, event.payload, to=sid, namespace=NAMESPACE)
