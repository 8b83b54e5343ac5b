"""
Base model for domain entities.

Entities are Pydantic v2 models validated on construction AND on every
attribute assignment. A failed assignment leaves the previous value in
place and raises InvalidDataError, so an invalid entity can never be
observed.
"""

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from expense_tracker.errors import InvalidDataError


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_text(value: Any, message: str) -> Any:
    """Reject None and whitespace-only strings."""
    if _blank(value):
        raise ValueError(message)
    return value


def require_positive_id(value: Optional[int], message: str) -> Optional[int]:
    """Ids are optional until storage assigns one, then strictly positive."""
    if value is not None and value <= 0:
        raise ValueError(message)
    return value


def to_invalid_data(exc: ValidationError) -> InvalidDataError:
    """Convert the first Pydantic error into an InvalidDataError."""
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or None

    # Our own validators raise ValueError; keep their message verbatim
    cause = error.get("ctx", {}).get("error")
    if isinstance(cause, Exception):
        reason = str(cause)
    elif field:
        reason = f"{field}: {error['msg']}"
    else:
        reason = error["msg"]
    return InvalidDataError(reason, field=field)


class DomainModel(BaseModel):
    """Pydantic model that reports validation failures as InvalidDataError."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
    )

    # Fields that may start out as None but can't go back to None once set
    _assigned_once: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise to_invalid_data(exc) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if (
            value is None
            and name in self._assigned_once
            and getattr(self, name, None) is not None
        ):
            raise InvalidDataError(f"{name} cannot be cleared once assigned", field=name)
        try:
            super().__setattr__(name, value)
        except ValidationError as exc:
            raise to_invalid_data(exc) from None
