class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class FormatError(DomainError):
    """Raised when a stored start/end time cannot be split into hour:minute."""


class PersistenceError(DomainError):
    """Raised when the store rejects a read or write (constraint, connection)."""


class InconsistentStateWarning(UserWarning):
    """Non-fatal data problem, e.g. a package with a negative hour budget."""
