"""
Abstract Storage Interface

DESIGN DECISION: The flows talk to storage only through these interfaces.
The SQL implementation in sql_storage.py is one backend; another engine
only has to honour the same contracts.

Contracts shared by every implementation:
- Lookups return None (single row) or an empty list (many rows) when
  nothing matches. Absence is not an error at this layer.
- Deletes are idempotent.
- Any engine failure is raised as StorageError, never printed and ignored.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Union

from expense_tracker.models.expense import Expense, ExpenseCategory
from expense_tracker.models.user import User


class UserStorageInterface(ABC):
    """Abstract interface for user storage operations."""

    @abstractmethod
    def register_user(self, user: User) -> User:
        """
        Insert a new user.

        Args:
            user: A transient user (id is None)

        Returns:
            The same user with its storage-assigned id

        Raises:
            UserAlreadyExistsError: If the email is already registered
            StorageError: On any other engine failure
        """
        pass

    @abstractmethod
    def get_user_by_credentials(self, email: str, password_hash: str) -> Optional[User]:
        """
        Find the user whose email AND digest both match exactly.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Retrieve a user by id.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    def update_user(self, user: User) -> bool:
        """
        Overwrite every column of the user's row.

        Returns:
            True if a row was updated, False if no row has that id

        Raises:
            UserAlreadyExistsError: If the new email belongs to another user
            StorageError: On any other engine failure
        """
        pass

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        """Delete a user by id. Deleting a missing id is not an error."""
        pass


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Queries are scoped to one owner; single-row operations take the
    expense id.
    """

    @abstractmethod
    def add_expense(self, expense: Expense) -> Expense:
        """
        Insert an expense bound to its owner (expense.user_id).

        Returns:
            The same expense with its storage-assigned id

        Raises:
            InvalidDataError: If the expense has no owner
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    def list_expenses_by_user(self, user_id: int) -> list[Expense]:
        """
        All expenses of a user, in insertion order.

        Returns:
            List of expenses (empty if the user has none)
        """
        pass

    @abstractmethod
    def update_expense(self, expense: Expense, user_id: Optional[int] = None) -> bool:
        """
        Overwrite name, category, description, amount and date by id.
        The owner is never changed.

        Args:
            expense: The expense with its id and new values
            user_id: If given, only an expense owned by this user is updated

        Returns:
            True if a row was updated, False if no (matching) row has that id
        """
        pass

    @abstractmethod
    def delete_expense(self, expense_id: int, user_id: Optional[int] = None) -> None:
        """
        Delete an expense by id. Deleting a missing id is not an error.

        If user_id is given, an expense owned by someone else is left alone.
        """
        pass

    @abstractmethod
    def search_by_category(
        self,
        user_id: int,
        category: ExpenseCategory,
    ) -> list[Expense]:
        """
        Expenses of a user in one category.

        Returns:
            List of matching expenses in insertion order
        """
        pass

    @abstractmethod
    def search_by_date(
        self,
        user_id: int,
        when: Union[datetime, str],
    ) -> list[Expense]:
        """
        Expenses of a user whose stored date equals `when` exactly.

        Args:
            user_id: Owner id
            when: A datetime (encoded the way dates are stored) or an
                  already-encoded ISO-8601 string

        Returns:
            List of matching expenses in insertion order
        """
        pass

    @abstractmethod
    def get_monthly_average(self, user_id: int, year: int, month: int) -> float:
        """
        Average amount of a user's expenses in one calendar month.

        Returns:
            The mean amount, or 0.0 if the month has no expenses

        Raises:
            InvalidDataError: If year or month is out of range
        """
        pass

    @abstractmethod
    def get_annual_total(self, user_id: int, year: int) -> float:
        """
        Total amount of a user's expenses in one calendar year.

        Returns:
            The sum, or 0.0 if the year has no expenses

        Raises:
            InvalidDataError: If year is out of range
        """
        pass
