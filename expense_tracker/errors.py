"""
Exceptions for the Expense Tracker.

Domain errors derive from ExpenseTrackerError and are recoverable at the
boundary: the presentation layer maps each of them to a message for the
user. Contract violations and environment failures derive from
RuntimeError and are not meant to be caught there.
"""

from typing import Optional


class ExpenseTrackerError(Exception):
    """Base exception for all recoverable domain errors."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class InvalidDataError(ExpenseTrackerError, ValueError):
    """An entity field failed validation. Nothing was modified."""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.field = field
        self.reason = reason
        super().__init__(reason)


class UserAlreadyExistsError(ExpenseTrackerError):
    """The email address is already registered."""

    def __init__(self, message: str = "This email address is already registered"):
        super().__init__(message)


class AuthenticationFailedError(ExpenseTrackerError):
    """Credentials did not match any user."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class NotFoundError(ExpenseTrackerError):
    """A lookup that was expected to find rows found none."""
    pass


class StorageError(ExpenseTrackerError):
    """The storage engine rejected an operation."""
    pass


class SessionRequiredError(RuntimeError):
    """A user-scoped operation was called without an authenticated user."""

    def __init__(self, message: str = "No user is logged in"):
        super().__init__(message)


class HasherUnavailableError(RuntimeError):
    """The configured digest algorithm cannot be used."""
    pass
