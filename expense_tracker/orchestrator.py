"""
Main Orchestrator for the Expense Tracker

This module ties together all the components and defines the use cases
the presentation layer calls:
1. Account (register → login → update profile / delete → logout)
2. Expenses (add, update, delete, list, search, aggregate)

DESIGN DECISION: The flows enforce the boundaries:
- Plaintext passwords go to the hasher and nowhere else
- Entities are validated before anything reaches storage
- User-scoped operations require a logged-in session

Each method either returns a value or raises one of the errors in
expense_tracker.errors; turning those into messages is the caller's job.
"""

from datetime import datetime
from typing import Optional, Union

import structlog

from expense_tracker.config import get_settings
from expense_tracker.errors import AuthenticationFailedError, NotFoundError
from expense_tracker.logger import configure_logging
from expense_tracker.models.expense import Expense, ExpenseCategory
from expense_tracker.models.user import User
from expense_tracker.security import HashlibPasswordHasher, PasswordHasher
from expense_tracker.services.storage import (
    DatabaseGateway,
    ExpenseStorageInterface,
    SqlExpenseStorage,
    SqlUserStorage,
    UserStorageInterface,
)
from expense_tracker.session import UserSession


logger = structlog.get_logger(__name__)


class AccountFlow:
    """
    Orchestrates registration, authentication and profile management.

    Login deliberately reports a single AuthenticationFailedError whether
    the email is unknown or the password is wrong.
    """

    def __init__(
        self,
        user_storage: UserStorageInterface,
        session: UserSession,
        hasher: Optional[PasswordHasher] = None,
    ):
        self._user_storage = user_storage
        self._session = session
        self._hasher = hasher or HashlibPasswordHasher(get_settings().security.hash_algorithm)

    @property
    def session(self) -> UserSession:
        return self._session

    def register_user(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        age: int,
    ) -> User:
        """
        Register a new user.

        Returns:
            The stored user, with its id

        Raises:
            InvalidDataError: If any field is invalid
            UserAlreadyExistsError: If the email is taken
            StorageError: If storage fails
        """
        password_hash = self._hasher.hash(password)
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=password_hash,
            age=age,
        )
        return self._user_storage.register_user(user)

    def login(self, email: str, password: str) -> User:
        """
        Authenticate and start the session.

        Raises:
            AuthenticationFailedError: If no user matches the credentials
        """
        password_hash = self._hasher.hash(password)
        user = self._user_storage.get_user_by_credentials(email, password_hash)

        if user is None:
            logger.info("login_failed")
            raise AuthenticationFailedError("Invalid email or password")

        self._session.start(user)
        logger.info("login_succeeded", user_id=user.id)
        return user

    def logout(self) -> None:
        """End the session. Safe to call when nobody is logged in."""
        self._session.clear()

    def update_profile(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        age: int,
    ) -> User:
        """
        Replace every profile field of the logged-in user.

        The new values are applied to a copy of the session user; the
        session only sees them once storage has accepted the update.

        Raises:
            SessionRequiredError: If nobody is logged in
            InvalidDataError: If any field is invalid
            UserAlreadyExistsError: If the new email belongs to someone else
            NotFoundError: If the user's row no longer exists
        """
        current = self._session.require_user()
        password_hash = self._hasher.hash(password)

        updated = current.model_copy()
        updated.first_name = first_name
        updated.last_name = last_name
        updated.email = email
        updated.password_hash = password_hash
        updated.age = age

        if not self._user_storage.update_user(updated):
            raise NotFoundError(f"User with id {current.id} not found")

        self._session.replace(updated)
        return updated

    def find_current_user(self) -> User:
        """
        Re-read the logged-in user from storage.

        Raises:
            SessionRequiredError: If nobody is logged in
            NotFoundError: If the user's row no longer exists
        """
        user_id = self._session.user_id
        user = self._user_storage.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User with id {user_id} not found")
        return user

    def delete_current_user(self) -> None:
        """
        Delete the logged-in user's account and end the session.

        Raises:
            SessionRequiredError: If nobody is logged in
        """
        user_id = self._session.user_id
        self._user_storage.delete_user(user_id)
        self._session.clear()
        logger.info("account_deleted", user_id=user_id)


class ExpenseFlow:
    """
    Orchestrates the expense use cases of the logged-in user.

    Listing and searching raise NotFoundError on an empty result instead
    of returning an empty list.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        session: UserSession,
    ):
        self._expense_storage = expense_storage
        self._session = session

    def add_expense(
        self,
        name: str,
        category: Union[ExpenseCategory, str],
        description: str,
        amount: float,
        timestamp: datetime,
    ) -> Expense:
        """
        Record a new expense for the logged-in user.

        Raises:
            SessionRequiredError: If nobody is logged in
            InvalidDataError: If any field is invalid
        """
        user_id = self._session.user_id
        expense = Expense(
            name=name,
            category=category,
            description=description,
            amount=amount,
            timestamp=timestamp,
            user_id=user_id,
        )
        return self._expense_storage.add_expense(expense)

    def update_expense(
        self,
        expense_id: int,
        name: str,
        category: Union[ExpenseCategory, str],
        description: str,
        amount: float,
        timestamp: datetime,
    ) -> Expense:
        """
        Overwrite an existing expense.

        Raises:
            SessionRequiredError: If nobody is logged in
            InvalidDataError: If any field (or the id) is invalid
            NotFoundError: If the logged-in user has no expense with this id
        """
        user_id = self._session.user_id
        expense = Expense(
            id=expense_id,
            name=name,
            category=category,
            description=description,
            amount=amount,
            timestamp=timestamp,
            user_id=user_id,
        )
        if not self._expense_storage.update_expense(expense, user_id=user_id):
            raise NotFoundError(f"Expense with id {expense_id} not found")
        return expense

    def delete_expense(self, expense_id: int) -> None:
        """
        Delete one of the logged-in user's expenses.

        Deleting it twice, or naming another user's expense, is a no-op.
        """
        user_id = self._session.user_id
        self._expense_storage.delete_expense(expense_id, user_id=user_id)

    def list_expenses(self) -> list[Expense]:
        """
        All expenses of the logged-in user, in insertion order.

        Raises:
            NotFoundError: If the user has no expenses
        """
        user_id = self._session.user_id
        expenses = self._expense_storage.list_expenses_by_user(user_id)
        if not expenses:
            raise NotFoundError(f"No expenses recorded for user {user_id}")
        return expenses

    def search_expenses_by_category(
        self,
        category: Union[ExpenseCategory, str],
    ) -> list[Expense]:
        """
        Expenses of the logged-in user in one category.

        Raises:
            NotFoundError: If none match
        """
        user_id = self._session.user_id
        category = ExpenseCategory.parse(category)
        expenses = self._expense_storage.search_by_category(user_id, category)
        if not expenses:
            raise NotFoundError(f"No expenses in category {category.value}")
        return expenses

    def search_expenses_by_date(self, when: Union[datetime, str]) -> list[Expense]:
        """
        Expenses of the logged-in user recorded at exactly this date.

        Raises:
            NotFoundError: If none match
        """
        user_id = self._session.user_id
        expenses = self._expense_storage.search_by_date(user_id, when)
        if not expenses:
            raise NotFoundError(f"No expenses on {when}")
        return expenses

    def monthly_average(self, year: int, month: int) -> float:
        """Average expense of the logged-in user in a month (0.0 if none)."""
        return self._expense_storage.get_monthly_average(self._session.user_id, year, month)

    def annual_total(self, year: int) -> float:
        """Total spent by the logged-in user in a year (0.0 if none)."""
        return self._expense_storage.get_annual_total(self._session.user_id, year)


def create_app_components(
    database_url: Optional[str] = None,
    configure_logs: bool = True,
) -> tuple[AccountFlow, ExpenseFlow, DatabaseGateway]:
    """
    Factory function to create all application components.

    Builds one gateway, one session and one hasher and shares them between
    the two flows. The caller owns the gateway and should close it on exit.

    Args:
        database_url: Overrides the configured database URL.
        configure_logs: Configure structlog from the app settings.

    Returns:
        (account_flow, expense_flow, gateway)
    """
    settings = get_settings()

    if configure_logs:
        app_settings = settings.app
        configure_logging(app_settings.effective_log_level, app_settings.log_json)

    gateway = DatabaseGateway(database_url)
    gateway.initialize_schema()

    session = UserSession()
    hasher = HashlibPasswordHasher(settings.security.hash_algorithm)

    account_flow = AccountFlow(
        user_storage=SqlUserStorage(gateway),
        session=session,
        hasher=hasher,
    )
    expense_flow = ExpenseFlow(
        expense_storage=SqlExpenseStorage(gateway),
        session=session,
    )

    return account_flow, expense_flow, gateway
