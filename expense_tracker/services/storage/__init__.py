"""
Storage Services Package

Provides the abstract repository interfaces, the persistence gateway and
the SQL implementations of both repositories.
"""

from expense_tracker.services.storage.gateway import DatabaseGateway
from expense_tracker.services.storage.interface import (
    ExpenseStorageInterface,
    UserStorageInterface,
)
from expense_tracker.services.storage.schema import expense_table, metadata, user_table
from expense_tracker.services.storage.sql_storage import (
    SqlExpenseStorage,
    SqlUserStorage,
    decode_timestamp,
    encode_timestamp,
)

__all__ = [
    # Interfaces
    "ExpenseStorageInterface",
    "UserStorageInterface",
    # Gateway and schema
    "DatabaseGateway",
    "expense_table",
    "metadata",
    "user_table",
    # SQL implementation
    "SqlExpenseStorage",
    "SqlUserStorage",
    "decode_timestamp",
    "encode_timestamp",
]
