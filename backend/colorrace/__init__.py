from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Process-lifetime game state: identities, rooms and the turn engine
    from colorrace.services.games.engine import TurnEngine
    from colorrace.services.rooms import RoomRegistry, RoomSessionManager
    from colorrace.services.sessions import SessionRegistry

    cfg = flask_app.config
    sessions = SessionRegistry(name_max_length=int(cfg.get('NAME_MAX_LENGTH', 15)))
    rooms = RoomRegistry(
        max_players=int(cfg.get('REQUIRED_PLAYERS', 2)),
        code_length=int(cfg.get('ROOM_CODE_LENGTH', 5)),
    )
    engine = TurnEngine.from_config(cfg)
    flask_app.extensions['colorrace'] = RoomSessionManager(sessions, rooms, engine)

    # Import and register blueprints here
    from colorrace.main import main
    flask_app.register_blueprint(main)

    from colorrace.api.rooms import rooms as rooms_blueprint
    flask_app.register_blueprint(rooms_blueprint, url_prefix='/api/rooms')

    # Register Socket.IO event handlers
    from colorrace.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from colorrace.cli import simulate_command
    flask_app.cli.add_command(simulate_command)

    return flask_app
