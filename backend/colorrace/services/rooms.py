import logging
import threading
from typing import Dict, List, Optional, Tuple

from colorrace.errors import GameAlreadyStarted, RoomFull, RoomNotFound, Unauthenticated
from colorrace.models import Phase, Room, UserIdentity, generate_room_code
from .games.engine import TurnEngine
from .games.events import GameEvent, to_everyone, to_users
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


class RoomRegistry:
    """All live rooms keyed by room id, in creation order."""

    def __init__(self, max_players: int = 2, code_length: int = 5):
        self.max_players = max_players
        self.code_length = code_length
        self._rooms: Dict[str, Room] = {}

    def create(self) -> Room:
        room_id = generate_room_code(self._rooms, length=self.code_length)
        room = Room(room_id=room_id, max_players=self.max_players)
        self._rooms[room_id] = room
        return room

    def get(self, room_id: Optional[str]) -> Optional[Room]:
        if not room_id:
            return None
        return self._rooms.get(room_id)

    def remove(self, room_id: str) -> None:
        self._rooms.pop(room_id, None)

    def rooms_for_user(self, user_id: str) -> List[Room]:
        return [room for room in self._rooms.values() if room.player_for_user(user_id)]

    def all(self) -> List[Room]:
        return list(self._rooms.values())

    def lobby(self) -> List[dict]:
        return [room.lobby_summary() for room in self._rooms.values()]

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)


class RoomSessionManager:
    """Seats identities in rooms and routes their actions to the turn engine.

    Every public operation returns the ordered events the caller must
    dispatch. Failures the user should hear about raise ``GameError``
    before anything is mutated.
    """

    def __init__(self, sessions: SessionRegistry, rooms: RoomRegistry, engine: TurnEngine):
        self.sessions = sessions
        self.rooms = rooms
        self.engine = engine
        self.lock = threading.RLock()

    def _require_identity(self, user_id: Optional[str]) -> UserIdentity:
        identity = self.sessions.get(user_id)
        if identity is None:
            raise Unauthenticated()
        return identity

    def _lobby_event(self) -> GameEvent:
        return to_everyone('updateRoomList', self.rooms.lobby())

    @staticmethod
    def _joined_event(room: Room, user_id: str) -> GameEvent:
        return to_users([user_id], 'roomJoined', {'roomId': room.room_id, 'roomSnapshot': room.to_dict()})

    def _seated_room(self, user_id: str, exclude: Optional[Room] = None) -> Optional[Room]:
        """The room where the user currently holds a connected seat."""
        for room in self.rooms.rooms_for_user(user_id):
            if room is exclude:
                continue
            if room.player_for_user(user_id).is_connected:
                return room
        return None

    def lobby(self) -> List[dict]:
        with self.lock:
            return self.rooms.lobby()

    def create_room(self, user_id: Optional[str]) -> Tuple[Room, List[GameEvent]]:
        with self.lock:
            identity = self._require_identity(user_id)
            events = self._leave_current(user_id)

            room = self.rooms.create()
            room.add_player(identity.user_id, identity.name)
            logger.info(f"[room-create] room={room.room_id} owner={identity.user_id}")
            self.engine.narrate(room, events, 'Waiting', f'Waiting for {room.max_players} players...')
            events.append(self._joined_event(room, identity.user_id))
            if len(room.connected_players()) == self.engine.required_players:
                events.extend(self.engine.start_turn(room))
            events.append(self._lobby_event())
            return room, events

    def join_room(self, room_id: Optional[str], user_id: Optional[str]) -> Tuple[Room, List[GameEvent]]:
        with self.lock:
            identity = self._require_identity(user_id)
            code = room_id.strip().upper() if isinstance(room_id, str) else ''
            room = self.rooms.get(code)
            if room is None:
                raise RoomNotFound(code)

            seat = room.player_for_user(identity.user_id)
            if seat is not None:
                return room, self._rejoin(room, seat)

            if room.phase != Phase.WAITING:
                raise GameAlreadyStarted(code)
            if len(room.players) >= room.max_players:
                raise RoomFull(code)

            events = self._leave_current(identity.user_id)
            room.add_player(identity.user_id, identity.name)
            logger.info(f"[room-join] room={room.room_id} user={identity.user_id} seats={len(room.players)}")
            events.append(self._joined_event(room, identity.user_id))
            self.engine.narrate(room, events, 'Joined', f'{identity.name} joined the room.')
            if len(room.connected_players()) == self.engine.required_players:
                events.extend(self.engine.start_turn(room))
            events.append(self._lobby_event())
            return room, events

    def resume(self, user_id: str) -> List[GameEvent]:
        """Re-attach a freshly authenticated connection to the user's seat, if any."""
        with self.lock:
            seated = self.rooms.rooms_for_user(user_id)
            room = self._seated_room(user_id)
            if room is None:
                live = [r for r in seated if r.phase != Phase.GAMEOVER]
                room = live[-1] if live else None
            if room is None:
                return []
            return self._rejoin(room, room.player_for_user(user_id))

    def _rejoin(self, room: Room, seat) -> List[GameEvent]:
        events = self._leave_current(seat.user_id, exclude=room)
        events.append(self._joined_event(room, seat.user_id))
        if seat.is_connected:
            return events
        seat.is_connected = True
        logger.info(f"[room-rejoin] room={room.room_id} user={seat.user_id} seat={seat.seat}")
        self.engine.narrate(room, events, 'Rejoined', f'{seat.name} reconnected.')
        events.append(self._lobby_event())
        return events

    def _leave_current(self, user_id: str, reason: str = 'left', exclude: Optional[Room] = None) -> List[GameEvent]:
        if self._seated_room(user_id, exclude) is None:
            return []
        return self.leave_or_disconnect(user_id, reason=reason, exclude=exclude)

    def leave_or_disconnect(self, user_id: Optional[str], reason: str = 'left',
                            exclude: Optional[Room] = None) -> List[GameEvent]:
        with self.lock:
            room = self._seated_room(user_id, exclude) if user_id else None
            if room is None:
                return []
            player = room.player_for_user(user_id)
            events: List[GameEvent] = []

            if room.phase == Phase.WAITING:
                room.remove_player(player)
            else:
                player.is_connected = False
            logger.info(f"[room-{reason}] room={room.room_id} user={user_id} phase={room.phase}")
            message = f'{player.name} left the room.' if reason == 'left' else f'{player.name} disconnected.'
            self.engine.narrate(room, events, 'Left', message, kind='penalty')

            if not room.connected_players():
                self.rooms.remove(room.room_id)
                logger.info(f"[room-destroy] room={room.room_id}")
            else:
                events.extend(self.engine.check_all_chosen(room))
            events.append(self._lobby_event())
            return events

    def player_action(self, user_id: Optional[str], data) -> List[GameEvent]:
        with self.lock:
            self._require_identity(user_id)
            room = self._seated_room(user_id)
            if room is None or not isinstance(data, dict):
                return []
            before = room.phase
            events = self.engine.submit_action(room, room.player_for_user(user_id), data.get('type'), data.get('card'))
            if room.phase == Phase.GAMEOVER and before != Phase.GAMEOVER:
                events.append(self._lobby_event())
            return events

    def advance_turn(self, room_id: str, expected_turn: int) -> List[GameEvent]:
        """Start the next turn of a resolved room; no-op if it moved on or was destroyed."""
        with self.lock:
            room = self.rooms.get(room_id)
            if room is None or room.phase != Phase.REVEAL or room.turn != expected_turn:
                return []
            return self.engine.next_turn(room)

    def audience(self, room_id: str) -> List[str]:
        """User ids whose connections receive room broadcasts: connected seats."""
        room = self.rooms.get(room_id)
        if room is None:
            return []
        return [p.user_id for p in room.connected_players()]

    def authenticate(self, connection: str, existing_user_id: Optional[str] = None,
                     proposed_name: Optional[str] = None) -> Tuple[UserIdentity, List[GameEvent]]:
        """Resolve the identity for a connection, bind it, and resume any seat it holds."""
        with self.lock:
            identity = self.sessions.authenticate(existing_user_id, proposed_name)
            events: List[GameEvent] = []
            previous = self.sessions.user_for_connection(connection)
            if previous and previous != identity.user_id:
                events.extend(self.disconnect(connection))
            self.sessions.bind_connection(identity.user_id, connection)
            events.extend(self.resume(identity.user_id))
            return identity, events

    def disconnect(self, connection: str) -> List[GameEvent]:
        with self.lock:
            user_id, was_last = self.sessions.unbind_connection(connection)
            if not was_last:
                return []
            return self.leave_or_disconnect(user_id, reason='disconnected')

    def user_for_connection(self, connection: str) -> Optional[str]:
        return self.sessions.user_for_connection(connection)
