"""
Persistence Gateway

The gateway is the sole owner of the live database connection. It opens
exactly one SQLAlchemy connection, lazily, on first use, and keeps it for
the life of the process (or until close() / use_database()).

DESIGN DECISION: The engine runs in AUTOCOMMIT isolation. Every statement
is its own unit of work; nothing in the tracker spans several statements.

Every statement goes through cursor(), which closes its result on every
exit path. Repositories never hold a result across calls.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.sql import Executable
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from expense_tracker.config import get_settings
from expense_tracker.errors import StorageError
from expense_tracker.services.storage.schema import metadata


logger = structlog.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ON DELETE CASCADE unless this pragma is set per connection."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


class DatabaseGateway:
    """
    Owner of the single database connection.

    Usage:
        gateway = DatabaseGateway("sqlite:///expense_tracker.db")
        gateway.initialize_schema()
        with gateway.cursor(select(user_table)) as result:
            rows = result.mappings().all()
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        echo: Optional[bool] = None,
        connect_attempts: Optional[int] = None,
    ):
        """
        Args:
            database_url: SQLAlchemy URL. Defaults to the configured one.
            echo: Log every SQL statement. Defaults to the configured value.
            connect_attempts: Tries for opening the connection.
        """
        settings = get_settings().database
        self._url = database_url or settings.url
        self._echo = settings.echo if echo is None else echo
        self._connect_attempts = connect_attempts or settings.connect_attempts
        self._engine: Optional[Engine] = None
        self._connection: Optional[Connection] = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    def _create_engine(self) -> Engine:
        connect_args = {}
        if self._url.startswith("sqlite"):
            # One connection, possibly created on another thread than it is used on
            connect_args["check_same_thread"] = False

        engine = create_engine(
            self._url,
            echo=self._echo,
            isolation_level="AUTOCOMMIT",
            connect_args=connect_args,
        )
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    def connect(self) -> Connection:
        """
        Open the connection.

        Opening is retried on OperationalError (e.g. a locked database
        file). Statements are never retried.

        Raises:
            StorageError: If the connection cannot be opened
        """
        if self.is_connected:
            return self._connection

        if self._engine is None:
            self._engine = self._create_engine()

        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._connect_attempts),
                wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
                retry=retry_if_exception_type(OperationalError),
                reraise=True,
            ):
                with attempt:
                    self._connection = self._engine.connect()
        except SQLAlchemyError as e:
            logger.error("database_connect_failed", url=self._safe_url(), error=str(e))
            raise StorageError(f"Failed to connect to database: {e}") from e

        logger.info("database_connected", url=self._safe_url())
        return self._connection

    def connection(self) -> Connection:
        """Return the live connection, opening it on first use."""
        return self.connect()

    def use_database(self, database_url: str) -> None:
        """
        Redirect the gateway to another database.

        Any open connection is closed and discarded; the next call opens
        a connection to the new location. Intended for tests.
        """
        self.close()
        self._url = database_url
        logger.info("database_redirected", url=self._safe_url())

    def initialize_schema(self) -> None:
        """
        Create the user and expense tables if they don't exist.

        Raises:
            StorageError: If the tables cannot be created
        """
        try:
            metadata.create_all(self.connection())
        except SQLAlchemyError as e:
            logger.error("schema_creation_failed", error=str(e))
            raise StorageError(f"Failed to create database schema: {e}") from e
        logger.info("schema_ready", tables=sorted(metadata.tables))

    @contextmanager
    def cursor(self, statement: Executable) -> Iterator[CursorResult]:
        """
        Execute a statement and yield its result.

        The result is closed when the block exits, whether normally or
        by an exception. Engine errors propagate unchanged; repositories
        translate them.
        """
        result = self.connection().execute(statement)
        try:
            yield result
        finally:
            result.close()

    def close(self) -> None:
        """Close the connection and dispose of the engine."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def _safe_url(self) -> str:
        """The URL with any password masked."""
        if self._engine is not None:
            return self._engine.url.render_as_string(hide_password=True)
        return self._url.split("@")[-1] if "@" in self._url else self._url

    def __enter__(self) -> "DatabaseGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
