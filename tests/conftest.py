"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path with the schema
already created, plus a fresh session and flows. Nothing touches the
network or the user's real database.
"""

from datetime import datetime

import pytest

from expense_tracker.models.expense import Expense, ExpenseCategory
from expense_tracker.models.user import User
from expense_tracker.orchestrator import AccountFlow, ExpenseFlow
from expense_tracker.security import HashlibPasswordHasher
from expense_tracker.services.storage import (
    DatabaseGateway,
    SqlExpenseStorage,
    SqlUserStorage,
)
from expense_tracker.session import UserSession


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'expenses.db'}"


@pytest.fixture
def gateway(database_url):
    gateway = DatabaseGateway(database_url, echo=False, connect_attempts=1)
    gateway.initialize_schema()
    yield gateway
    gateway.close()


@pytest.fixture
def hasher():
    return HashlibPasswordHasher("sha256")


@pytest.fixture
def user_storage(gateway):
    return SqlUserStorage(gateway)


@pytest.fixture
def expense_storage(gateway):
    return SqlExpenseStorage(gateway)


@pytest.fixture
def session():
    return UserSession()


@pytest.fixture
def account_flow(user_storage, session, hasher):
    return AccountFlow(user_storage=user_storage, session=session, hasher=hasher)


@pytest.fixture
def expense_flow(expense_storage, session):
    return ExpenseFlow(expense_storage=expense_storage, session=session)


def make_user(email: str = "mario.rossi@example.com", **overrides) -> User:
    fields = dict(
        first_name="Mario",
        last_name="Rossi",
        email=email,
        password_hash="a" * 64,
        age=25,
    )
    fields.update(overrides)
    return User(**fields)


def make_expense(user_id=None, **overrides) -> Expense:
    fields = dict(
        name="Car insurance",
        category=ExpenseCategory.AUTO,
        description="Yearly policy",
        amount=250.50,
        timestamp=datetime(2026, 1, 9, 10, 0),
        user_id=user_id,
    )
    fields.update(overrides)
    return Expense(**fields)


@pytest.fixture
def stored_user(user_storage):
    """A user already registered in storage."""
    return user_storage.register_user(make_user())


@pytest.fixture
def logged_in_user(account_flow):
    """Register and log in through the account flow."""
    account_flow.register_user("Mario", "Rossi", "mario.rossi@example.com", "s3cret!", 25)
    return account_flow.login("mario.rossi@example.com", "s3cret!")


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def expense_factory():
    return make_expense
