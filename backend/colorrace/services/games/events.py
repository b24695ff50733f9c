from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass
class GameEvent:
    """An outbound message produced by a state transition.

    Exactly one target is expected: ``room_id`` (every connection of every
    seated identity), ``user_ids`` (every connection of those identities)
    or ``broadcast`` (every connected client). ``delay_ms`` is how long a
    narrating client dwells on this event before the next one is sent.
    ``ends_turn`` marks the last event of a resolved turn with that turn's
    number; only the batch carrying it may start the next turn.
    """
    name: str
    payload: Any = None
    room_id: Optional[str] = None
    user_ids: Optional[List[str]] = None
    broadcast: bool = False
    delay_ms: int = 0
    ends_turn: Optional[int] = None


def to_room(room_id, name, payload, delay_ms=0):
    return GameEvent(name, payload, room_id=room_id, delay_ms=delay_ms)


def to_users(user_ids, name, payload=None):
    return GameEvent(name, payload, user_ids=list(user_ids))


def to_everyone(name, payload):
    return GameEvent(name, payload, broadcast=True)
