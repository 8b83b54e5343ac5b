"""
Data Models Package

Domain entities of the Expense Tracker. Every entity validates its fields
on construction and on each assignment.
"""

from expense_tracker.models.base import DomainModel
from expense_tracker.models.expense import (
    LEGACY_CATEGORY_NAMES,
    Expense,
    ExpenseCategory,
)
from expense_tracker.models.user import (
    EMAIL_PATTERN,
    MINIMUM_AGE,
    User,
    is_valid_email,
)

__all__ = [
    "DomainModel",
    # Expense models
    "Expense",
    "ExpenseCategory",
    "LEGACY_CATEGORY_NAMES",
    # User models
    "EMAIL_PATTERN",
    "MINIMUM_AGE",
    "User",
    "is_valid_email",
]
