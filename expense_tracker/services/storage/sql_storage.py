"""
SQL Storage Implementation

Repositories backed by the DatabaseGateway, written with SQLAlchemy Core.
Every statement is parameterized and executed through gateway.cursor(),
so its result is released whatever happens.

Rows are mapped back into validated entities. A stored row that no longer
passes entity validation is a data-integrity fault and is raised as
StorageError: rows are only ever written from validated entities.

Dates are stored as ISO-8601 text; month and year aggregates are prefix
matches on that text (e.g. "2025-03%").
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Union

import structlog
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from expense_tracker.errors import InvalidDataError, StorageError, UserAlreadyExistsError
from expense_tracker.models.expense import Expense, ExpenseCategory
from expense_tracker.models.user import User
from expense_tracker.services.storage.gateway import DatabaseGateway
from expense_tracker.services.storage.interface import (
    ExpenseStorageInterface,
    UserStorageInterface,
)
from expense_tracker.services.storage.schema import expense_table, user_table


logger = structlog.get_logger(__name__)


def encode_timestamp(value: datetime) -> str:
    """
    Storage encoding of an expense date: sortable, prefix-matchable ISO-8601.

    Zero seconds are dropped ("2025-03-10T10:00") and fractions are written
    in groups of three digits, matching the rows already in existing
    databases so that date search finds them.
    """
    if value.second == 0 and value.microsecond == 0:
        return value.isoformat(timespec="minutes")
    if value.microsecond % 1000 == 0:
        return value.isoformat(timespec="milliseconds")
    return value.isoformat()


def decode_timestamp(value: str) -> datetime:
    """Parse a stored date. Accepts minute precision ("2025-03-10T10:00") too."""
    return datetime.fromisoformat(value)


def month_prefix(year: int, month: int) -> str:
    """Zero-padded "YYYY-MM" prefix of every date in that month."""
    _check_year(year)
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidDataError(f"Month must be between 1 and 12, got {month}", field="month")
    return f"{year:04d}-{month:02d}"


def year_prefix(year: int) -> str:
    """Four-digit "YYYY" prefix of every date in that year."""
    _check_year(year)
    return f"{year:04d}"


def _check_year(year: int) -> None:
    if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
        raise InvalidDataError(f"Year must be between 1 and 9999, got {year}", field="year")


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message or "duplicate" in message


def _storage_failure(operation: str, error: Exception, **context: Any) -> StorageError:
    """Log an engine failure and build the StorageError to raise."""
    logger.error("storage_failed", operation=operation, error=str(error), **context)
    return StorageError(f"Failed to {operation}: {error}")


class SqlUserStorage(UserStorageInterface):
    """
    SQL implementation of user storage.

    The engine enforces email uniqueness; violations come back as
    UserAlreadyExistsError.
    """

    def __init__(self, gateway: DatabaseGateway):
        self._gateway = gateway

    def _user_to_row(self, user: User) -> dict:
        """Convert a User to column values (without the id)."""
        return {
            "nome": user.first_name,
            "cognome": user.last_name,
            "email": user.email,
            "password_hash": user.password_hash,
            "eta": user.age,
        }

    def _row_to_user(self, row: Mapping[str, Any]) -> User:
        """Convert a row to a validated User."""
        try:
            return User(
                id=row["id"],
                first_name=row["nome"],
                last_name=row["cognome"],
                email=row["email"],
                password_hash=row["password_hash"],
                age=row["eta"],
            )
        except InvalidDataError as e:
            raise _storage_failure("read user", e, user_id=row["id"]) from e

    def _fetch_one(self, operation: str, statement, **context: Any) -> Optional[User]:
        try:
            with self._gateway.cursor(statement) as result:
                row = result.mappings().first()
        except SQLAlchemyError as e:
            raise _storage_failure(operation, e, **context) from e
        return self._row_to_user(row) if row is not None else None

    def register_user(self, user: User) -> User:
        """Insert a user and assign its id."""
        statement = insert(user_table).values(**self._user_to_row(user))
        try:
            with self._gateway.cursor(statement) as result:
                new_id = result.inserted_primary_key[0]
        except IntegrityError as e:
            if _is_unique_violation(e):
                logger.info("user_already_exists")
                raise UserAlreadyExistsError(
                    "This email address is already registered"
                ) from e
            raise _storage_failure("register user", e) from e
        except SQLAlchemyError as e:
            raise _storage_failure("register user", e) from e

        user.id = new_id
        logger.info("user_registered", user_id=new_id)
        return user

    def get_user_by_credentials(self, email: str, password_hash: str) -> Optional[User]:
        """Retrieve a user by email and digest."""
        statement = select(user_table).where(
            user_table.c.email == email,
            user_table.c.password_hash == password_hash,
        )
        return self._fetch_one("look up credentials", statement)

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by id."""
        statement = select(user_table).where(user_table.c.id == user_id)
        return self._fetch_one("get user", statement, user_id=user_id)

    def update_user(self, user: User) -> bool:
        """Update every column of an existing user."""
        if user.id is None:
            raise InvalidDataError("Cannot update a user that was never stored", field="id")

        statement = (
            update(user_table)
            .where(user_table.c.id == user.id)
            .values(**self._user_to_row(user))
        )
        try:
            with self._gateway.cursor(statement) as result:
                updated = result.rowcount > 0
        except IntegrityError as e:
            if _is_unique_violation(e):
                logger.info("user_email_taken", user_id=user.id)
                raise UserAlreadyExistsError(
                    "The new email address is already in use"
                ) from e
            raise _storage_failure("update user", e, user_id=user.id) from e
        except SQLAlchemyError as e:
            raise _storage_failure("update user", e, user_id=user.id) from e

        logger.info("user_updated", user_id=user.id, found=updated)
        return updated

    def delete_user(self, user_id: int) -> None:
        """Delete a user. Their expenses are removed by the cascade."""
        statement = delete(user_table).where(user_table.c.id == user_id)
        try:
            with self._gateway.cursor(statement) as result:
                deleted = result.rowcount
        except SQLAlchemyError as e:
            raise _storage_failure("delete user", e, user_id=user_id) from e
        logger.info("user_deleted", user_id=user_id, rows=deleted)


class SqlExpenseStorage(ExpenseStorageInterface):
    """
    SQL implementation of expense storage.

    Category is stored by member name, date as ISO-8601 text.
    Listings are ordered by id, i.e. insertion order.
    """

    def __init__(self, gateway: DatabaseGateway):
        self._gateway = gateway

    def _expense_to_row(self, expense: Expense) -> dict:
        """Convert an Expense to its editable column values."""
        return {
            "nome_spesa": expense.name,
            "categoria": expense.category.name,
            "descrizione": expense.description,
            "importo": expense.amount,
            "data": encode_timestamp(expense.timestamp),
        }

    def _row_to_expense(self, row: Mapping[str, Any]) -> Expense:
        """Convert a row to a validated Expense."""
        try:
            return Expense(
                id=row["id"],
                name=row["nome_spesa"],
                category=ExpenseCategory.parse(row["categoria"]),
                description=row["descrizione"],
                amount=row["importo"],
                timestamp=decode_timestamp(row["data"]),
                user_id=row["user_id"],
            )
        except (InvalidDataError, TypeError, ValueError) as e:
            raise _storage_failure("read expense", e, expense_id=row["id"]) from e

    def _fetch_all(self, operation: str, statement, **context: Any) -> list[Expense]:
        try:
            with self._gateway.cursor(statement.order_by(expense_table.c.id)) as result:
                rows = result.mappings().all()
        except SQLAlchemyError as e:
            raise _storage_failure(operation, e, **context) from e
        return [self._row_to_expense(row) for row in rows]

    def _fetch_scalar(self, operation: str, statement, **context: Any) -> float:
        try:
            with self._gateway.cursor(statement) as result:
                value = result.scalar()
        except SQLAlchemyError as e:
            raise _storage_failure(operation, e, **context) from e
        return float(value) if value is not None else 0.0

    def add_expense(self, expense: Expense) -> Expense:
        """Insert an expense for its owner and assign its id."""
        if expense.user_id is None:
            raise InvalidDataError("The expense is not bound to a user", field="user_id")

        statement = insert(expense_table).values(
            user_id=expense.user_id,
            **self._expense_to_row(expense),
        )
        try:
            with self._gateway.cursor(statement) as result:
                new_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            raise _storage_failure("add expense", e, user_id=expense.user_id) from e

        expense.id = new_id
        logger.info("expense_added", expense_id=new_id, user_id=expense.user_id)
        return expense

    def list_expenses_by_user(self, user_id: int) -> list[Expense]:
        """All expenses of a user."""
        statement = select(expense_table).where(expense_table.c.user_id == user_id)
        return self._fetch_all("list expenses", statement, user_id=user_id)

    def update_expense(self, expense: Expense, user_id: Optional[int] = None) -> bool:
        """Update an existing expense by id, optionally only if user_id owns it."""
        if expense.id is None:
            raise InvalidDataError("Cannot update an expense that was never stored", field="id")

        statement = (
            update(expense_table)
            .where(expense_table.c.id == expense.id)
            .values(**self._expense_to_row(expense))
        )
        if user_id is not None:
            statement = statement.where(expense_table.c.user_id == user_id)
        try:
            with self._gateway.cursor(statement) as result:
                updated = result.rowcount > 0
        except SQLAlchemyError as e:
            raise _storage_failure("update expense", e, expense_id=expense.id) from e

        logger.info("expense_updated", expense_id=expense.id, found=updated)
        return updated

    def delete_expense(self, expense_id: int, user_id: Optional[int] = None) -> None:
        """Delete an expense by id, optionally only if user_id owns it."""
        statement = delete(expense_table).where(expense_table.c.id == expense_id)
        if user_id is not None:
            statement = statement.where(expense_table.c.user_id == user_id)
        try:
            with self._gateway.cursor(statement) as result:
                deleted = result.rowcount
        except SQLAlchemyError as e:
            raise _storage_failure("delete expense", e, expense_id=expense_id) from e
        logger.info("expense_deleted", expense_id=expense_id, rows=deleted)

    def search_by_category(
        self,
        user_id: int,
        category: ExpenseCategory,
    ) -> list[Expense]:
        """Expenses of a user in one category."""
        category = ExpenseCategory.parse(category)
        statement = select(expense_table).where(
            expense_table.c.user_id == user_id,
            expense_table.c.categoria == category.name,
        )
        return self._fetch_all(
            "search expenses by category", statement,
            user_id=user_id, category=category.name,
        )

    def search_by_date(
        self,
        user_id: int,
        when: Union[datetime, str],
    ) -> list[Expense]:
        """Expenses of a user stored with exactly this date."""
        if isinstance(when, datetime):
            encoded = encode_timestamp(when)
        elif isinstance(when, str) and when.strip():
            encoded = when
        else:
            raise InvalidDataError("A date is required to search by date", field="date")

        statement = select(expense_table).where(
            expense_table.c.user_id == user_id,
            expense_table.c.data == encoded,
        )
        return self._fetch_all("search expenses by date", statement, user_id=user_id)

    def get_monthly_average(self, user_id: int, year: int, month: int) -> float:
        """AVG(importo) over the month's rows."""
        prefix = month_prefix(year, month)
        statement = select(func.avg(expense_table.c.importo)).where(
            expense_table.c.user_id == user_id,
            expense_table.c.data.like(f"{prefix}%"),
        )
        return self._fetch_scalar("compute monthly average", statement, user_id=user_id)

    def get_annual_total(self, user_id: int, year: int) -> float:
        """SUM(importo) over the year's rows."""
        prefix = year_prefix(year)
        statement = select(func.sum(expense_table.c.importo)).where(
            expense_table.c.user_id == user_id,
            expense_table.c.data.like(f"{prefix}%"),
        )
        return self._fetch_scalar("compute annual total", statement, user_id=user_id)
