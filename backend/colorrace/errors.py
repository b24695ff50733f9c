class GameError(Exception):
    """User-facing failure reported back to the calling connection."""

    default_message = 'Something went wrong'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidName(GameError):
    def __init__(self, max_length: int = 15):
        self.max_length = max_length
        super().__init__(f'Name must be 1-{max_length} characters')


class Unauthenticated(GameError):
    default_message = 'Please choose a name first'


class RoomNotFound(GameError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room '{room_id}' does not exist")


class RoomFull(GameError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room '{room_id}' is full")


class GameAlreadyStarted(GameError):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"The game in room '{room_id}' has already started")
