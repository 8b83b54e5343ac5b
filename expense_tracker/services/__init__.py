"""Services package."""

from expense_tracker.services.storage import (
    DatabaseGateway,
    ExpenseStorageInterface,
    SqlExpenseStorage,
    SqlUserStorage,
    UserStorageInterface,
)

__all__ = [
    # Storage services
    "DatabaseGateway",
    "ExpenseStorageInterface",
    "SqlExpenseStorage",
    "SqlUserStorage",
    "UserStorageInterface",
]
