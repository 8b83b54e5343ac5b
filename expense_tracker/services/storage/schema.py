"""
Database schema.

Table and column names are fixed: databases created by earlier versions
of the tracker use them, and they must stay readable.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

from expense_tracker.models.user import MINIMUM_AGE


metadata = MetaData()


user_table = Table(
    "user",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("nome", Text, nullable=False),
    Column("cognome", Text, nullable=False),
    Column("email", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("eta", Integer),
    CheckConstraint(f"eta >= {MINIMUM_AGE}", name="ck_user_eta_minimum"),
    sqlite_autoincrement=True,
)


expense_table = Table(
    "expense",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("nome_spesa", Text, nullable=False),
    Column("categoria", Text, nullable=False),
    Column("descrizione", Text, nullable=False),
    Column("importo", Float, nullable=False),
    # ISO-8601 text so month/year filters are prefix matches
    Column("data", Text, nullable=False),
    Column(
        "user_id",
        Integer,
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Index("ix_expense_user_id", "user_id"),
    sqlite_autoincrement=True,
)
