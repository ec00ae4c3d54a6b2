"""Custom SQLAlchemy types used by the reminder models.

Types included:
- UTCDateTime: Timezone-aware UTC instants on every backend
- EmailType: Validated email addresses with normalization
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, String, TypeDecorator

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive values are taken to already be UTC instants.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class UTCDateTime(TypeDecorator[datetime]):
    """Absolute UTC instant storage.

    PostgreSQL keeps ``timestamptz`` natively, but SQLite drops tzinfo on
    the round trip. This type converts aware values to UTC before binding
    and re-attaches UTC on read, so comparisons in Python never mix naive
    and aware datetimes.

    Example:
        >>> class Reminder(Base):
        ...     scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime())
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        """Normalize to UTC before storing."""
        _ = dialect
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        """Attach UTC on read."""
        _ = dialect
        if value is None:
            return None
        return ensure_utc(value)


class EmailType(TypeDecorator[str]):
    """Validated email address storage with normalization.

    Uses email-validator (same as Pydantic EmailStr) for RFC-compliant
    validation. Automatically normalizes emails on storage.

    Note:
        - Raises ValueError if email format is invalid
        - Normalization lowercases the domain part
    """

    impl = String(254)
    cache_ok = True

    def __init__(self, validate: bool = True, **kwargs: Any) -> None:
        """Initialize EmailType.

        Args:
            validate: Validate and normalize email on bind (default: True)
            **kwargs: Additional TypeDecorator arguments
        """
        super().__init__(**kwargs)
        self._validate = validate

    def process_bind_param(self, value: str | None, dialect: Dialect) -> str | None:
        """Validate and normalize email before storing.

        Raises:
            ValueError: If email format is invalid
        """
        _ = dialect
        if value is None or not self._validate:
            return value

        from email_validator import EmailNotValidError, validate_email

        try:
            result = validate_email(value, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: {e}") from e
        return result.normalized

    def process_result_value(self, value: str | None, dialect: Dialect) -> str | None:
        """Pass-through on read."""
        _ = dialect
        return value


__all__ = ["EmailType", "UTCDateTime", "ensure_utc"]
