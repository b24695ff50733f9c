import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000',
        ).split(',') if o.strip()
    ]
    # Seats per room; the first turn starts once this many players are connected
    REQUIRED_PLAYERS = int(os.environ.get('REQUIRED_PLAYERS', '2'))
    FINISH_LINE = int(os.environ.get('FINISH_LINE', '10'))
    # Turns up to and including MIN_TURNS count as early game
    MIN_TURNS = int(os.environ.get('MIN_TURNS', '10'))
    MAX_TURNS = int(os.environ.get('MAX_TURNS', '30'))
    NAME_MAX_LENGTH = int(os.environ.get('NAME_MAX_LENGTH', '15'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '5'))
    # Multiplier on narration pauses between revealed steps. 0 disables pauses.
    NARRATION_SPEED = float(os.environ.get('NARRATION_SPEED', '1.0'))
