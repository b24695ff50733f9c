import logging
import random
from typing import Dict, List, Optional

from colorrace.models import CARDS, COLORS, WHITE, LogEntry, Phase, Player, Room
from .events import GameEvent, to_room, to_users
from .priority import count_colors, determine_priority_color

logger = logging.getLogger(__name__)

CHOOSE_CARD = 'CHOOSE_CARD'
USE_POWER = 'USE_POWER'
RESELECT_CARD = 'RESELECT_CARD'

# The GM fills the table up to this many voters, drawing at least one card
GM_TABLE_SIZE = 5
BASE_MOVE = {'R': 0, 'Y': 1, 'G': 2}
# Scan order for the end-of-turn majority; the first color over threshold wins
EFFECT_BY_COLOR = (
    ('R', 'leader_frozen', 'The leader cannot move next turn.'),
    ('G', 'lowest_bonus', 'Last place gets +1 next turn.'),
    ('Y', 'minus_one', 'Base movement is reduced by 1 next turn.'),
)

# Narration dwell times (ms)
PAUSE_REVEAL = 3500
PAUSE_POWER = 1200
PAUSE_VOID = 800
PAUSE_WHITE = 1200
PAUSE_SHOW = 1000
PAUSE_COUNT = 1500
PAUSE_PRIORITY = 1500
PAUSE_STEP = 800
PAUSE_RESULT = 1500
PAUSE_BONUS = 1000
PAUSE_NEXT_TURN = 2000


def _names(players):
    return ', '.join(p.name for p in players)


class TurnEngine:
    """Per-room state machine: WAITING -> CHOOSING -> REVEAL -> ... -> GAMEOVER.

    Operations mutate the room in place and return the narrated events in
    order. Resolution runs to completion inside one call; a resolved turn
    that is not final leaves the room in REVEAL until ``next_turn``.
    """

    def __init__(self, required_players=2, finish_line=10, min_turns=10, max_turns=30, rng=None):
        self.required_players = required_players
        self.finish_line = finish_line
        self.min_turns = min_turns
        self.max_turns = max_turns
        self.rng = rng or random.Random()

    @classmethod
    def from_config(cls, config, rng=None):
        return cls(
            required_players=int(config.get('REQUIRED_PLAYERS', 2)),
            finish_line=int(config.get('FINISH_LINE', 10)),
            min_turns=int(config.get('MIN_TURNS', 10)),
            max_turns=int(config.get('MAX_TURNS', 30)),
            rng=rng,
        )

    # ---- narration helpers ----

    def narrate(self, room: Room, events: List[GameEvent], tag: str, message: str, kind: str = 'info') -> None:
        room.log_history.append(LogEntry(tag, message, kind))
        events.append(to_room(room.room_id, 'gameStateUpdate', room.to_dict()))

    @staticmethod
    def _pause(events: List[GameEvent], ms: int) -> None:
        if events:
            events[-1].delay_ms += ms

    def _is_late_game(self, room: Room) -> bool:
        return room.turn > self.min_turns or bool(room.finished_players())

    # ---- turn lifecycle ----

    def start_turn(self, room: Optional[Room]) -> List[GameEvent]:
        events: List[GameEvent] = []
        if room is None or room.phase == Phase.GAMEOVER:
            return events

        room.movement_visuals = None
        room.phase = Phase.CHOOSING
        for p in room.players:
            p.prev_position = p.position
            p.choice = None
        room.remove_gm_used_this_turn = False
        room.remove_gm_user_seat = None
        room.priority_color = None
        room.color_counts = {}

        draws = max(1, GM_TABLE_SIZE - len(room.connected_players()))
        room.gm_choices = [self.rng.choice(COLORS) for _ in range(draws)]
        logger.info(f"[turn-start] room={room.room_id} turn={room.turn} gm_cards={draws}")

        self.narrate(room, events, f'Turn {room.turn}', 'Everyone, choose your card.', kind='turn')
        return events

    def next_turn(self, room: Optional[Room]) -> List[GameEvent]:
        """Advance a resolved room (left in REVEAL) to the following turn."""
        if room is None or room.phase != Phase.REVEAL:
            return []
        room.turn += 1
        return self.start_turn(room)

    def submit_action(self, room: Optional[Room], player: Optional[Player], action_type: str, card: Optional[str] = None) -> List[GameEvent]:
        events: List[GameEvent] = []
        if room is None or player is None:
            return events
        if room.phase != Phase.CHOOSING or player.choice is not None or not player.is_active:
            logger.debug(f"[action-ignored] room={room.room_id} seat={player.seat} phase={room.phase} type={action_type}")
            return events

        if action_type in (CHOOSE_CARD, RESELECT_CARD):
            if card not in CARDS:
                logger.debug(f"[action-ignored] room={room.room_id} seat={player.seat} bad card={card!r}")
                return events
            player.choice = card
            self.narrate(room, events, 'Chosen', f'{player.name} has chosen.')
        elif action_type == USE_POWER:
            # First caller wins the turn; a later caller keeps their power
            if not player.can_use_remove_gm or room.remove_gm_used_this_turn:
                logger.debug(f"[action-ignored] room={room.room_id} seat={player.seat} power unavailable")
                return events
            room.remove_gm_used_this_turn = True
            room.remove_gm_user_seat = player.seat
            player.can_use_remove_gm = False
            self.narrate(room, events, 'Ready', f'{player.name} is plotting something.')
        else:
            logger.debug(f"[action-ignored] room={room.room_id} seat={player.seat} unknown type={action_type!r}")
            return events

        if room.all_active_chosen():
            events.extend(self.resolve_turn(room))
        return events

    def check_all_chosen(self, room: Optional[Room]) -> List[GameEvent]:
        """Resolve if a departed seat was the last one everyone was waiting on."""
        if room is None or room.phase != Phase.CHOOSING or not room.all_active_chosen():
            return []
        return self.resolve_turn(room)

    # ---- resolution ----

    def resolve_turn(self, room: Optional[Room]) -> List[GameEvent]:
        events: List[GameEvent] = []
        if room is None or room.phase != Phase.CHOOSING:
            return events
        room.phase = Phase.REVEAL

        self.narrate(room, events, 'Reveal', f"The GM cards are {', '.join(room.gm_choices)}.")
        events.append(to_room(room.room_id, 'showChoices', [p.to_dict() for p in room.players]))
        self._pause(events, PAUSE_REVEAL)

        if room.remove_gm_used_this_turn:
            remover = next((p for p in room.players if p.seat == room.remove_gm_user_seat), None)
            who = remover.name if remover else 'Someone'
            self.narrate(room, events, 'GM removed', f'{who} used the power to remove the GM cards!', kind='power')
            self._pause(events, PAUSE_POWER)

        white_users = [p for p in room.active_players() if p.choice == WHITE]
        if room.remove_gm_used_this_turn and white_users:
            for p in white_users:
                p.choice = None
            room.phase = Phase.CHOOSING
            self.narrate(room, events, 'Voided', 'White cards are void this turn, pick a color!', kind='penalty')
            self._pause(events, PAUSE_VOID)
            events.append(to_users([p.user_id for p in white_users], 'forceReselect', {'roomId': room.room_id}))
            logger.info(f"[reselect] room={room.room_id} turn={room.turn} seats={[p.seat for p in white_users]}")
            return events
        if white_users and room.gm_choices:
            copied = room.gm_choices[0]
            room.priority_color = copied
            for p in white_users:
                p.choice = copied
            self.narrate(room, events, 'White card', f'Copying the first GM card: {copied}!', kind='bonus')
            self._pause(events, PAUSE_WHITE)
            events.append(to_room(room.room_id, 'showChoices', [p.to_dict() for p in room.players]))
            self._pause(events, PAUSE_SHOW)

        active = room.active_players()
        room.color_counts = count_colors(
            [p.choice for p in active], room.gm_choices, room.remove_gm_used_this_turn
        )
        self.narrate(room, events, 'Counting', 'Counting the cards...')
        self._pause(events, PAUSE_COUNT)

        if room.priority_color is None:
            room.priority_color = determine_priority_color(
                room.color_counts, room.gm_choices, room.remove_gm_used_this_turn
            )
        logger.info(
            f"[resolve] room={room.room_id} turn={room.turn} counts={room.color_counts} priority={room.priority_color}"
        )

        if room.priority_color:
            self.narrate(room, events, 'Priority', f'The priority color is {room.priority_color}!', kind='priority')
            self._pause(events, PAUSE_PRIORITY)
            self._move(room, events)
        else:
            self.narrate(room, events, 'Draw', 'No priority color, nobody moves.')
            self._pause(events, PAUSE_PRIORITY)

        self._end_turn(room, events)
        return events

    def _move(self, room: Room, events: List[GameEvent]) -> None:
        priority = room.priority_color
        active = room.active_players()
        moves: Dict[int, int] = {p.seat: 0 for p in active}

        self.narrate(room, events, 'Moving', 'Calculating movement...')
        self._pause(events, PAUSE_STEP)

        if room.effects.lowest_bonus and active:
            lowest = min(p.position for p in active)
            rewarded = [p for p in active if p.position == lowest]
            for p in rewarded:
                moves[p.seat] += 1
            self.narrate(room, events, 'Effect', f'Last place bonus: {_names(rewarded)} (+1).', kind='bonus')
            self._pause(events, PAUSE_STEP)

        base = BASE_MOVE.get(priority, 0)
        if room.effects.minus_one and base > 0:
            base -= 1
            self.narrate(room, events, 'Effect', 'Base movement -1.', kind='penalty')
        if base > 0:
            for p in active:
                moves[p.seat] += base
            self.narrate(room, events, 'Base', f'Everyone advances (+{base}).')
            self._pause(events, PAUSE_STEP)

        matching = [p for p in active if p.choice == priority]
        if priority != 'R' and matching:
            for p in matching:
                moves[p.seat] += 1
            self.narrate(room, events, 'Bonus', f'Matched the priority color: {_names(matching)} (+1).', kind='bonus')
            self._pause(events, PAUSE_STEP)

        non_matching = [p for p in active if p.choice != priority]
        if non_matching:
            if priority != 'R':
                highest = max(p.position for p in non_matching)
                penalized = [p for p in non_matching if p.position == highest]
                for p in penalized:
                    moves[p.seat] -= 1
                self.narrate(room, events, 'Penalty', f'Highest off-color: {_names(penalized)} (-1).', kind='penalty')
            elif not self._is_late_game(room):
                for p in non_matching:
                    moves[p.seat] -= 1
                self.narrate(room, events, 'Penalty', f'Did not pick red: {_names(non_matching)} (-1).', kind='penalty')
                self._pause(events, PAUSE_STEP)

                highest = max(p.position for p in non_matching)
                leaders = [p for p in non_matching if p.position == highest]
                if len(leaders) == 1:
                    moves[leaders[0].seat] -= 1
                    self.narrate(room, events, 'Penalty', f'Extra for the leader: {leaders[0].name} (-1 more).', kind='penalty')
            else:
                self.narrate(room, events, 'Notice', 'Late game: the red penalty is skipped.')
            self._pause(events, PAUSE_STEP)

        if room.effects.leader_frozen and active:
            highest = max(p.position for p in active)
            blocked = [p for p in active if p.position == highest and moves[p.seat] > 0]
            if blocked:
                for p in blocked:
                    moves[p.seat] = 0
                self.narrate(room, events, 'Effect', f'Leader frozen: {_names(blocked)}!', kind='penalty')

        visuals = {}
        for p in active:
            delta = moves[p.seat]
            p.position = min(self.finish_line, max(0, p.position + delta))
            visuals[p.seat] = {'prevPosition': p.prev_position, 'newPosition': p.position, 'delta': delta}
        room.movement_visuals = visuals
        events.append(to_room(
            room.room_id, 'visualizeMovements', {str(seat): dict(v) for seat, v in visuals.items()}
        ))
        self.narrate(room, events, 'Result', 'Updating positions...')
        self._pause(events, PAUSE_RESULT)

        red_light = priority == 'R' and not room.finished_players() and room.turn <= self.min_turns
        if red_light:
            caught = [p for p in active if p.prev_position == 0 and p.choice != 'R']
            if caught:
                self.narrate(room, events, 'Red light', f'{_names(caught)} ran the red light.', kind='penalty')
                self._pause(events, PAUSE_STEP)
                red_pickers = [p for p in active if p.choice == 'R']
                if red_pickers:
                    for p in red_pickers:
                        p.position = min(self.finish_line, p.position + len(caught))
                    self.narrate(
                        room, events, 'Bonus',
                        f'Red pickers {_names(red_pickers)} (+{len(caught)}).', kind='bonus'
                    )
                    self._pause(events, PAUSE_BONUS)

    def _end_turn(self, room: Room, events: List[GameEvent]) -> None:
        room.effects.reset()
        active = room.active_players()
        voters = len(active) + (0 if room.remove_gm_used_this_turn else len(room.gm_choices))
        threshold = max(0, voters - 1)
        if threshold > 1:
            counts = count_colors([p.choice for p in active], room.gm_choices, room.remove_gm_used_this_turn)
            for color, effect, description in EFFECT_BY_COLOR:
                if counts[color] >= threshold:
                    setattr(room.effects, effect, True)
                    self.narrate(room, events, 'Effect (n-1)', f'{color} majority. {description}', kind='effect')
                    self._pause(events, PAUSE_STEP)
                    break

        for p in room.players:
            if p.position >= self.finish_line and not p.is_finished:
                p.is_finished = True
                p.finish_turn = room.turn
                self.narrate(room, events, 'Finish!', f'{p.name} crossed the finish line!', kind='finish')
            if not p.is_finished and p.choice is not None:
                p.last_played = p.choice

        connected = room.connected_players()
        all_finished = bool(connected) and all(p.is_finished for p in connected)
        finishers = len(room.finished_players())
        if ((finishers >= self.required_players - 1 and room.turn >= self.min_turns)
                or room.turn >= self.max_turns or all_finished):
            room.phase = Phase.GAMEOVER
            events.append(to_room(room.room_id, 'gameOver', room.to_dict()))
            self.narrate(room, events, 'Game over', 'The game has ended!', kind='finish')
            logger.info(f"[game-over] room={room.room_id} turn={room.turn} finishers={finishers}")
            return

        self._pause(events, PAUSE_NEXT_TURN)
        if events:
            events[-1].ends_turn = room.turn
