"""Game domain services: priority voting, turn engine and narration playback.

This package contains pure(ish) domain logic that should be imported by
socket handlers and the CLI, keeping transport concerns separated from
core game mechanics. Engine operations mutate a ``Room`` and return the
ordered ``GameEvent`` list the caller is expected to broadcast.
"""

from .events import GameEvent
from .priority import count_colors, determine_priority_color
from .engine import TurnEngine

__all__ = ['GameEvent', 'TurnEngine', 'count_colors', 'determine_priority_color']
