"""Error taxonomy shared by the engine, persistence, service and API layers."""


class GameError(Exception):
    """Base class for every error raised by the application."""


class InvalidTransitionError(GameError):
    """A phase operation was requested from a phase that does not allow it. The session is left untouched."""

    def __init__(self, operation: str, phase: str) -> None:
        self.operation = operation
        self.phase = phase
        super().__init__(f"Cannot {operation} while in phase '{phase}'.")


class GenerationFailureError(GameError):
    """The position generator could not place the pieces it needs."""


class InvalidConfigError(GameError):
    """Session configuration outside the allowed ranges."""


class InvalidPositionError(GameError):
    """A position (or its encoding) could not be interpreted."""


class InvalidRequestError(GameError, ValueError):
    """Request data that cannot be interpreted. Also a ValueError, so pydantic validators report it as a validation error."""


class PersistenceError(GameError):
    """A store call failed. Never fatal to results that were already computed in memory."""


class SessionNotFoundError(GameError):
    """No training session registered for the player."""
