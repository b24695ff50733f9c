from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import random
import string

# Colors the GM can draw and that count towards the priority vote
COLORS = ('R', 'G', 'Y')
# Cards a player may hold; W copies the first GM card
CARDS = ('R', 'G', 'Y', 'W')
WHITE = 'W'


class Phase:
    WAITING = 'WAITING'
    CHOOSING = 'CHOOSING'
    REVEAL = 'REVEAL'
    GAMEOVER = 'GAMEOVER'


@dataclass
class UserIdentity:
    user_id: str
    name: str

    def to_dict(self):
        return {'userId': self.user_id, 'name': self.name}


@dataclass
class Player:
    seat: int
    user_id: str
    name: str
    is_connected: bool = True
    position: int = 0
    prev_position: int = 0
    choice: Optional[str] = None
    can_use_remove_gm: bool = True
    last_played: Optional[str] = None
    is_finished: bool = False
    finish_turn: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.is_connected and not self.is_finished

    def to_dict(self):
        return {
            'seat': self.seat,
            'userId': self.user_id,
            'name': self.name,
            'isConnected': self.is_connected,
            'position': self.position,
            'prevPosition': self.prev_position,
            'choice': self.choice,
            'hasChosen': self.choice is not None,
            'canUseRemoveGm': self.can_use_remove_gm,
            'lastPlayed': self.last_played,
            'isFinished': self.is_finished,
            'finishTurn': self.finish_turn,
        }


@dataclass
class SpecialEffects:
    """Movement modifiers armed by an end-of-turn majority, consumed next turn."""
    leader_frozen: bool = False
    lowest_bonus: bool = False
    minus_one: bool = False

    def reset(self) -> None:
        self.leader_frozen = False
        self.lowest_bonus = False
        self.minus_one = False

    def to_dict(self):
        return {
            'leaderFrozen': self.leader_frozen,
            'lowestBonus': self.lowest_bonus,
            'minusOne': self.minus_one,
        }


@dataclass
class LogEntry:
    tag: str
    message: str
    kind: str = 'info'

    def to_dict(self):
        return {'tag': self.tag, 'message': self.message, 'kind': self.kind}


@dataclass
class Room:
    room_id: str
    max_players: int = 2
    turn: int = 1
    phase: str = Phase.WAITING
    players: List[Player] = field(default_factory=list)
    gm_choices: List[str] = field(default_factory=list)
    priority_color: Optional[str] = None
    remove_gm_used_this_turn: bool = False
    remove_gm_user_seat: Optional[int] = None
    effects: SpecialEffects = field(default_factory=SpecialEffects)
    color_counts: Dict[str, int] = field(default_factory=dict)
    log_history: List[LogEntry] = field(default_factory=list)
    movement_visuals: Optional[Dict[int, Dict[str, int]]] = None

    def player_for_user(self, user_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.user_id == user_id), None)

    def connected_players(self) -> List[Player]:
        return [p for p in self.players if p.is_connected]

    def active_players(self) -> List[Player]:
        return [p for p in self.players if p.is_active]

    def finished_players(self) -> List[Player]:
        return [p for p in self.players if p.is_finished]

    def add_player(self, user_id: str, name: str) -> Player:
        player = Player(seat=len(self.players), user_id=user_id, name=name)
        self.players.append(player)
        return player

    def remove_player(self, player: Player) -> None:
        """Drop a seat and compact the remaining seat indices to 0..n-1."""
        self.players = [p for p in self.players if p is not player]
        for index, p in enumerate(self.players):
            p.seat = index

    def all_active_chosen(self) -> bool:
        return all(p.choice is not None for p in self.active_players())

    @property
    def last_log(self) -> Optional[LogEntry]:
        return self.log_history[-1] if self.log_history else None

    def lobby_summary(self):
        return {
            'roomId': self.room_id,
            'playerCount': len(self.connected_players()),
            'maxPlayers': self.max_players,
            'phase': self.phase,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'roomId': self.room_id,
            'maxPlayers': self.max_players,
            'turn': self.turn,
            'phase': self.phase,
            'players': [p.to_dict() for p in self.players],
            'gmChoices': list(self.gm_choices),
            'priorityColor': self.priority_color,
            'removeGmUsedThisTurn': self.remove_gm_used_this_turn,
            'removeGmUserSeat': self.remove_gm_user_seat,
            'specialNextTurnEffects': self.effects.to_dict(),
            'colorCounts': dict(self.color_counts),
            'logHistory': [entry.to_dict() for entry in self.log_history],
            'lastLog': self.last_log.to_dict() if self.last_log else None,
            'movementVisuals': (
                {str(seat): dict(v) for seat, v in self.movement_visuals.items()}
                if self.movement_visuals is not None else None
            ),
        }


def generate_room_code(taken, length=5):
    """Generate a short room code not present in ``taken``."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code
