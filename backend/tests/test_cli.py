import pytest

from colorrace.cli import run_simulation
from colorrace.models import Phase


def test_simulate_command_prints_a_full_game(flask_app):
    result = flask_app.test_cli_runner().invoke(args=['simulate', '--seed', '3'])
    assert result.exit_code == 0, result.output
    assert '[Turn 1]' in result.output
    assert 'Game over after' in result.output


@pytest.mark.parametrize('seed', range(8))
def test_simulation_always_terminates(flask_app, seed):
    room = run_simulation(flask_app.config, seed=seed)
    assert room.phase == Phase.GAMEOVER
    assert 1 <= room.turn <= 30
    assert all(0 <= p.position <= 10 for p in room.players)


def test_simulation_with_more_players(flask_app):
    room = run_simulation(flask_app.config, seed=11, players=4)
    assert len(room.players) == 4
    assert room.phase == Phase.GAMEOVER


def test_same_seed_replays_the_same_game(flask_app):
    first = run_simulation(flask_app.config, seed=5)
    again = run_simulation(flask_app.config, seed=5)
    assert [e.message for e in first.log_history] == [e.message for e in again.log_history]
