"""
Custom exception hierarchy for the tycoon engine and server.

Provides typed errors that can be handled consistently across
the engine, the command surface, and the API layer.
"""


class TycoonError(Exception):
    """Base exception for all game-related errors."""


class GameNotFoundError(TycoonError):
    """Game does not exist."""


class InvalidActionError(TycoonError):
    """Command is not legal in the current state."""


class UnknownCommandError(InvalidActionError):
    """Command name is not part of the command surface."""


class ValidationError(TycoonError):
    """Input validation failed."""
