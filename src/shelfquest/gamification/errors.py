"""Exception hierarchy for the gamification engine."""


class GamificationError(Exception):
    """Base exception for gamification engine errors."""

    retryable = False


class ValidationError(GamificationError, ValueError):
    """Input rejected before any write took place."""

    pass


class NotFoundError(GamificationError, LookupError):
    """A referenced challenge or account does not exist."""

    pass


class ConflictError(GamificationError):
    """A concurrent update changed a row between read and write."""

    retryable = True


class TransientPersistenceError(GamificationError):
    """Timeout or connectivity failure. No state change is confirmed."""

    retryable = True
