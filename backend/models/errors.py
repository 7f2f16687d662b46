"""
Engine error kinds.

All of these are expected, local conditions: they are raised to the caller
and turned into a user-visible response by the transport layer. Each carries
a stable machine-readable `code` and the HTTP status the router maps it to.
"""
from typing import Any, Dict


class GameError(Exception):
    code: str = "GAME_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class RoomNotFound(GameError):
    code = "ROOM_NOT_FOUND"
    status_code = 404

    def __init__(self, room_code: str):
        super().__init__(f"Room {room_code} not found")
        self.room_code = room_code


class RoomFull(GameError):
    code = "ROOM_FULL"
    status_code = 409

    def __init__(self, max_players: int):
        super().__init__(f"Room is full (maximum {max_players} players)")
        self.max_players = max_players


class GameAlreadyStarted(GameError):
    code = "GAME_ALREADY_STARTED"
    status_code = 409

    def __init__(self, message: str = "Game already in progress or finished"):
        super().__init__(message)


class GameNotStarted(GameError):
    code = "GAME_NOT_STARTED"
    status_code = 409

    def __init__(self, message: str = "Game has not started"):
        super().__init__(message)


class GameAlreadyEnded(GameError):
    code = "GAME_ALREADY_ENDED"
    status_code = 409

    def __init__(self, message: str = "Game has already ended"):
        super().__init__(message)


class InsufficientPlayers(GameError):
    code = "INSUFFICIENT_PLAYERS"
    status_code = 400

    def __init__(self, min_players: int, current: int):
        super().__init__(f"Need at least {min_players} players to start; got {current}.")
        self.min_players = min_players
        self.current = current


class InvalidPlayerCount(GameError):
    code = "INVALID_PLAYER_COUNT"
    status_code = 400

    def __init__(self, count: int, low: int, high: int):
        super().__init__(
            f"Invalid player count: {count}. Must be between {low} and {high} players."
        )
        self.count = count


class InvalidRoleDistribution(GameError):
    code = "INVALID_ROLE_DISTRIBUTION"
    status_code = 500


class PlayerNotFound(GameError):
    code = "PLAYER_NOT_FOUND"
    status_code = 404

    def __init__(self, player_id: str, room_code: str):
        super().__init__(f"Player {player_id} is not in room {room_code}")
        self.player_id = player_id


class PlayerAlreadyEliminated(GameError):
    code = "PLAYER_ALREADY_ELIMINATED"
    status_code = 409

    def __init__(self, player_id: str):
        super().__init__(f"Player {player_id} has already been eliminated")
        self.player_id = player_id


class InvalidSession(GameError):
    code = "INVALID_SESSION"
    status_code = 403

    def __init__(self, message: str = "Session does not match this room"):
        super().__init__(message)


class TooManyRequests(GameError):
    code = "TOO_MANY_REQUESTS"
    status_code = 429

    def __init__(self, retry_after: int):
        super().__init__("Too many requests, please try again later.")
        self.retry_after = retry_after


class RoomCodeExhausted(GameError):
    code = "ROOM_CODE_EXHAUSTED"
    status_code = 503

    def __init__(self, attempts: int):
        super().__init__(f"Could not generate a free room code after {attempts} attempts")
