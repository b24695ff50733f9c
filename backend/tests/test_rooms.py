import pytest

from colorrace.errors import GameAlreadyStarted, RoomFull, RoomNotFound, Unauthenticated
from colorrace.models import Phase
from colorrace.services.games.engine import CHOOSE_CARD


def _user(manager, name, sid=None):
    identity, _ = manager.authenticate(sid or f'sid-{name}', proposed_name=name)
    return identity.user_id


def _names(events):
    return [e.name for e in events]


def test_create_room_seats_creator(manager):
    alice = _user(manager, 'Alice')
    room, events = manager.create_room(alice)
    assert room.phase == Phase.WAITING
    assert [(p.seat, p.name) for p in room.players] == [(0, 'Alice')]
    assert 'roomJoined' in _names(events)
    assert events[-1].name == 'updateRoomList'
    assert events[-1].payload == [{'roomId': room.room_id, 'playerCount': 1, 'maxPlayers': 2, 'phase': 'WAITING'}]


def test_unauthenticated_cannot_create_or_join(manager):
    with pytest.raises(Unauthenticated):
        manager.create_room('ghost')
    alice = _user(manager, 'Alice')
    room, _ = manager.create_room(alice)
    with pytest.raises(Unauthenticated):
        manager.join_room(room.room_id, None)


def test_join_unknown_room(manager):
    alice = _user(manager, 'Alice')
    with pytest.raises(RoomNotFound):
        manager.join_room('NOPE1', alice)


def test_second_join_starts_the_game(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    _, events = manager.join_room(room.room_id.lower(), bob)
    assert [p.seat for p in room.players] == [0, 1]
    assert room.phase == Phase.CHOOSING
    assert room.turn == 1
    assert len(room.gm_choices) == 3
    assert events[-1].payload[0]['phase'] == 'CHOOSING'


def test_full_and_started_rooms_reject_newcomers(manager):
    alice, bob, cara = _user(manager, 'Alice'), _user(manager, 'Bob'), _user(manager, 'Cara')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    with pytest.raises(GameAlreadyStarted):
        manager.join_room(room.room_id, cara)

    room.phase = Phase.WAITING
    with pytest.raises(RoomFull):
        manager.join_room(room.room_id, cara)
    assert len(room.players) == 2


def test_rejoin_never_duplicates_seat(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    _, events = manager.join_room(room.room_id, alice)
    assert len(room.players) == 2
    assert _names(events) == ['roomJoined']


def test_disconnect_in_waiting_removes_and_reindexes(manager, engine):
    engine.required_players = 3
    manager.rooms.max_players = 3
    alice, bob, cara = _user(manager, 'Alice'), _user(manager, 'Bob'), _user(manager, 'Cara')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    assert room.phase == Phase.WAITING
    manager.leave_or_disconnect(alice, reason='disconnected')
    manager.join_room(room.room_id, cara)
    assert [(p.seat, p.name) for p in room.players] == [(0, 'Bob'), (1, 'Cara')]
    assert room.phase == Phase.WAITING


def test_disconnect_mid_game_keeps_seat_and_position(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    room.players[0].position = 4

    manager.disconnect('sid-Alice')
    ann = room.players[0]
    assert (ann.seat, ann.position, ann.is_connected) == (0, 4, False)
    assert room.log_history[-1].tag == 'Left'
    assert manager.rooms.get(room.room_id) is room


def test_only_last_tab_closing_disconnects(manager):
    alice = _user(manager, 'Alice', sid='tab-1')
    manager.authenticate('tab-2', existing_user_id=alice)
    bob = _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)

    assert manager.disconnect('tab-1') == []
    assert room.players[0].is_connected
    manager.disconnect('tab-2')
    assert not room.players[0].is_connected


def test_reconnect_through_authenticate_resumes_seat(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    manager.disconnect('sid-Alice')

    identity, events = manager.authenticate('new-tab', existing_user_id=alice)
    assert identity.user_id == alice
    assert room.players[0].is_connected
    assert 'roomJoined' in _names(events)
    assert room.log_history[-1].tag == 'Rejoined'


def test_last_disconnect_destroys_room(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    manager.disconnect('sid-Alice')
    events = manager.disconnect('sid-Bob')
    assert room.room_id not in manager.rooms
    assert events[-1].payload == []


def test_departure_resolves_when_everyone_left_has_chosen(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    manager.player_action(alice, {'type': CHOOSE_CARD, 'card': 'G'})
    assert room.phase == Phase.CHOOSING

    manager.leave_or_disconnect(bob, reason='left')
    assert room.phase in (Phase.REVEAL, Phase.GAMEOVER)
    assert room.priority_color is not None


def test_player_action_routes_to_seat_and_ignores_junk(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    assert manager.player_action(alice, 'not-a-dict') == []
    assert manager.player_action(alice, {'type': CHOOSE_CARD, 'card': 'Z'}) == []
    manager.player_action(alice, {'type': CHOOSE_CARD, 'card': 'Y'})
    assert room.players[0].choice == 'Y'
    with pytest.raises(Unauthenticated):
        manager.player_action('ghost', {'type': CHOOSE_CARD, 'card': 'Y'})


def test_advance_turn_guards(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    room, _ = manager.create_room(alice)
    manager.join_room(room.room_id, bob)
    assert manager.advance_turn(room.room_id, 1) == []   # still CHOOSING
    manager.player_action(alice, {'type': CHOOSE_CARD, 'card': 'R'})
    manager.player_action(bob, {'type': CHOOSE_CARD, 'card': 'G'})
    assert room.phase == Phase.REVEAL
    assert manager.advance_turn(room.room_id, 5) == []
    assert manager.advance_turn('GONE1', 1) == []
    assert manager.advance_turn(room.room_id, 1)
    assert (room.turn, room.phase) == (2, Phase.CHOOSING)


def test_joining_another_room_leaves_the_current_one(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    first, _ = manager.create_room(alice)
    second, _ = manager.create_room(bob)
    manager.join_room(second.room_id, alice)
    assert first.room_id not in manager.rooms
    assert [p.name for p in second.players] == ['Bob', 'Alice']


def test_rejoining_an_old_room_leaves_the_newer_one(manager):
    alice, bob = _user(manager, 'Alice'), _user(manager, 'Bob')
    first, _ = manager.create_room(alice)
    manager.join_room(first.room_id, bob)
    manager.leave_or_disconnect(alice, reason='left')
    second, _ = manager.create_room(alice)

    _, events = manager.join_room(first.room_id, alice)
    connected = [r.room_id for r in manager.rooms.rooms_for_user(alice) if r.player_for_user(alice).is_connected]
    assert connected == [first.room_id]
    assert second.room_id not in manager.rooms
    assert 'roomJoined' in _names(events)

    manager.player_action(alice, {'type': CHOOSE_CARD, 'card': 'G'})
    assert first.players[0].choice == 'G'


def test_join_with_non_string_code_is_not_found(manager):
    alice = _user(manager, 'Alice')
    with pytest.raises(RoomNotFound):
        manager.join_room(42, alice)
