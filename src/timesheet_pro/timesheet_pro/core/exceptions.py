class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid or no caller is known."""


class AuthorizationError(DomainError):
    """Raised when a user lacks membership or the admin role for an action."""


class NotFoundError(DomainError):
    """Raised when the requested timesheet, organization or user does not exist."""


class StorageError(Exception):
    """Raised when the underlying store fails (I/O, constraint, aborted transaction)."""


class OperationCancelledError(StorageError):
    """Raised when a deadline expires or the caller cancels mid-operation.

    The surrounding transaction has been rolled back when this is raised.
    """


class ConversionError(StorageError):
    """Raised when a stored row does not have the shape the code expects."""
