"""Service-layer exceptions for the encounter engine."""


class EncounterError(Exception):
    """Base exception for encounter operations."""

    def __init__(self, message: str, reason: object = None):
        super().__init__(message)
        self.reason = reason if reason is not None else message


class NotFound(EncounterError):
    """Raised when a fight, shot or character a single-entity call needs is missing."""


class CommitFailure(EncounterError):
    """Raised when a transaction could not be committed; nothing was applied."""


class ConstraintViolation(CommitFailure):
    """Raised when the store rejects a write, e.g. a duplicate active chase."""


class InvalidAction(EncounterError):
    """Raised when a request is well-formed but not allowed (bad position, etc)."""
