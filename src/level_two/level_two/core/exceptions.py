class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid or nobody is signed in."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class WriteError(DomainError):
    """Raised when an upsert/insert/delete against the store fails."""


class LoadError(DomainError):
    """Raised when an initial fetch fails. Callers log it and render empty."""


class ConfirmationRequired(DomainError):
    """Raised when an operation replaces persisted data and the user has not confirmed yet."""


class DateMismatchError(DomainError):
    """Raised when an edit targets a date other than the one the workspace has loaded."""
