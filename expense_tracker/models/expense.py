"""
Expense entity and the fixed set of expense categories.

DESIGN DECISION: Categories are an explicit enum rather than free text.
Storage keeps the member NAME; the value is the label shown to users.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, Union

from pydantic import Field, field_validator

from expense_tracker.errors import InvalidDataError
from expense_tracker.models.base import DomainModel, require_positive_id, require_text


class ExpenseCategory(str, Enum):
    """Supported expense categories."""
    TRAVEL = "Travel"
    RESTAURANTS = "Restaurants"
    HOBBY = "Hobby"
    SPORT = "Sport"
    OTHER = "Other"
    AUTO = "Auto"
    BILLS = "Bills"
    LEISURE = "Leisure"

    @classmethod
    def parse(cls, raw: Union["ExpenseCategory", str, None]) -> "ExpenseCategory":
        """
        Resolve a category from a member, its name or its label.

        Matching is case-insensitive. Names written by older databases
        (Italian, e.g. "BOLLETTE") resolve to their current member.

        Raises:
            InvalidDataError: If nothing matches
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidDataError("A category must be selected", field="category")

        key = raw.strip().upper()
        if key in cls.__members__:
            return cls[key]
        if key in LEGACY_CATEGORY_NAMES:
            return LEGACY_CATEGORY_NAMES[key]

        raise InvalidDataError(
            f"Unknown category: {raw}. Allowed: {', '.join(c.value for c in cls)}",
            field="category",
        )


# Member names used by databases created before the categories were renamed
LEGACY_CATEGORY_NAMES = {
    "VIAGGI": ExpenseCategory.TRAVEL,
    "RISTORANTI": ExpenseCategory.RESTAURANTS,
    "ALTRO": ExpenseCategory.OTHER,
    "BOLLETTE": ExpenseCategory.BILLS,
    "SVAGO": ExpenseCategory.LEISURE,
}


class Expense(DomainModel):
    """
    A single dated, categorized expense owned by one user.

    id and user_id are None while the expense is transient; once set they
    must stay positive.
    """

    _assigned_once: ClassVar[frozenset[str]] = frozenset({"id", "user_id"})

    id: Optional[int] = Field(
        default=None,
        description="Storage-assigned identifier"
    )
    name: str = Field(
        ...,
        description="Short name of the expense"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Expense category"
    )
    description: str = Field(
        ...,
        description="Free-text description"
    )
    amount: float = Field(
        ...,
        description="Amount spent (strictly positive)"
    )
    timestamp: datetime = Field(
        ...,
        description="When the expense happened"
    )
    user_id: Optional[int] = Field(
        default=None,
        description="Id of the owning user"
    )

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: Optional[int]) -> Optional[int]:
        return require_positive_id(v, "Expense id must be a positive integer")

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: Optional[int]) -> Optional[int]:
        return require_positive_id(v, "Owner id must be a positive integer")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> Any:
        return require_text(v, "Expense name cannot be blank")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> Any:
        return require_text(v, "Description cannot be blank")

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> ExpenseCategory:
        try:
            return ExpenseCategory.parse(v)
        except InvalidDataError as exc:
            raise ValueError(exc.reason) from None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount_present(cls, v: Any) -> Any:
        if v is None or isinstance(v, bool):
            raise ValueError("Amount must be a number")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError("Amount must be greater than zero")
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def validate_timestamp(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Date cannot be empty")
        return v

    @property
    def is_persisted(self) -> bool:
        return self.id is not None
