class GameException(Exception):
    """Base exception for game-related errors."""
    pass


class GameNotFound(GameException):
    """Raised when a game is not found."""
    pass


class PlayerNotFound(GameException):
    """Raised when a player is not part of a game."""
    pass


class TeamNotFound(GameException):
    """Raised when a team is not found or not linked to the game."""
    pass


class GameConflict(GameException):
    """Raised when a request breaks a lobby rule."""
    pass


class GameFull(GameConflict):
    """Raised when trying to join a full game."""
    pass


class GameNotAccepting(GameConflict):
    """Raised when trying to join a game that has left the lobby."""
    pass


class PlayerNameTaken(GameConflict):
    """Raised when the player name is already used in the game."""
    pass


class ResultsAlreadyRecorded(GameConflict):
    """Raised when results are submitted twice for the same game."""
    pass


class TeamMembershipConflict(GameConflict):
    """Raised when a player would sit on two teams of one game."""
    pass


class InvalidTransition(GameConflict):
    """Raised when a status change is not in the transition table."""
    pass


class InvalidInput(GameException):
    """Raised when a required field is missing or malformed."""
    pass


class Unauthorized(GameException):
    """Raised when a credential or provider token is missing or rejected."""
    pass


class UpstreamError(GameException):
    """Raised when a third-party provider call fails."""
    pass
