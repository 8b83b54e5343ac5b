"""
User entity.

A User is always valid: names are non-blank, the email matches a fixed
address pattern, the password is stored only as a digest, and the age is
at least MINIMUM_AGE. The id is assigned by storage on registration.
"""

import re
from typing import Any, ClassVar, Optional

from pydantic import Field, field_validator

from expense_tracker.models.base import DomainModel, require_positive_id, require_text


MINIMUM_AGE = 14

# local-part@label.label...tld, tld of 2 to 4 characters
EMAIL_PATTERN = re.compile(r"^[\w\-.]+@([\w-]+\.)+[\w-]{2,4}$")


def is_valid_email(value: Any) -> bool:
    """Check an address against EMAIL_PATTERN. No DNS or MX lookups."""
    return isinstance(value, str) and EMAIL_PATTERN.fullmatch(value) is not None


class User(DomainModel):
    """
    A registered user.

    CRITICAL: password_hash holds a digest produced by the password
    hasher, never the plaintext credential.
    """

    _assigned_once: ClassVar[frozenset[str]] = frozenset({"id"})

    id: Optional[int] = Field(
        default=None,
        description="Storage-assigned identifier"
    )
    first_name: str = Field(
        ...,
        description="First name (non-blank)"
    )
    last_name: str = Field(
        ...,
        description="Last name (non-blank)"
    )
    email: str = Field(
        ...,
        description="Email address, unique across users"
    )
    password_hash: str = Field(
        ...,
        repr=False,
        description="Hex digest of the password"
    )
    age: int = Field(
        ...,
        description=f"Age in years (at least {MINIMUM_AGE})"
    )

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: Optional[int]) -> Optional[int]:
        return require_positive_id(v, "User id must be a positive integer")

    @field_validator("first_name", mode="before")
    @classmethod
    def validate_first_name(cls, v: Any) -> Any:
        return require_text(v, "First name cannot be blank")

    @field_validator("last_name", mode="before")
    @classmethod
    def validate_last_name(cls, v: Any) -> Any:
        return require_text(v, "Last name cannot be blank")

    @field_validator("password_hash", mode="before")
    @classmethod
    def validate_password_hash(cls, v: Any) -> Any:
        return require_text(v, "Password digest is missing")

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> Any:
        """Only well-formed addresses (e.g. name@example.com)."""
        if not is_valid_email(v):
            raise ValueError("Invalid email format (e.g. name@example.com)")
        return v

    @field_validator("age", mode="before")
    @classmethod
    def validate_age_present(cls, v: Any) -> Any:
        if v is None or isinstance(v, bool):
            raise ValueError("Age must be a whole number")
        return v

    @field_validator("age")
    @classmethod
    def validate_age(cls, v: int) -> int:
        if v < MINIMUM_AGE:
            raise ValueError(f"Users must be at least {MINIMUM_AGE} years old")
        return v

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
