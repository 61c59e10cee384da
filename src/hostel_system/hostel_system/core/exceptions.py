class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTokenError(ValidationError):
    """Raised when an attendance token cannot be parsed or lacks required fields."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced room, user or fee does not exist (or is inactive)."""


class ConflictError(DomainError):
    """Raised when an operation would break an invariant (room full, already paid, ...)."""


class StorageUnavailableError(Exception):
    """Raised when the database cannot be reached.

    Not a DomainError: callers may decide to retry, the core never does.
    """
