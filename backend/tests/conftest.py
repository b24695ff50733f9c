import os
import random
import sys
import pytest

# Ensure the backend root (containing the `colorrace` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from colorrace import create_app, socketio
from colorrace.models import Room
from colorrace.services.games.engine import TurnEngine
from colorrace.services.rooms import RoomRegistry, RoomSessionManager
from colorrace.services.sessions import SessionRegistry


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['http://localhost:5173']
    REQUIRED_PLAYERS = 2
    FINISH_LINE = 10
    MIN_TURNS = 10
    MAX_TURNS = 30
    NAME_MAX_LENGTH = 15
    ROOM_CODE_LENGTH = 5
    NARRATION_SPEED = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    """Open Socket.IO test clients on /ws; all are disconnected on teardown."""
    opened = []

    def _open():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        opened.append(test_client)
        return test_client

    yield _open
    for test_client in opened:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def engine():
    return TurnEngine(required_players=2, finish_line=10, min_turns=10, max_turns=30, rng=random.Random(7))


@pytest.fixture()
def manager(engine):
    return RoomSessionManager(SessionRegistry(name_max_length=15), RoomRegistry(max_players=2), engine)


@pytest.fixture()
def make_room():
    """Build a room already seated with the given names, as if both joined."""
    def _make(*names, room_id='TEST1'):
        room = Room(room_id=room_id, max_players=max(2, len(names)))
        for i, name in enumerate(names):
            room.add_player(f'user-{i}', name)
        return room
    return _make
