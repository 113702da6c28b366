"""Column codecs shared by the SQLite stores."""

from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation


def decimal_to_db(value: Decimal | None) -> str | None:
    """Decimals are stored as TEXT so no precision is lost to REAL."""
    return None if value is None else str(value)


def decimal_from_db(value: str | int | float | None) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def timestamp_to_db(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def timestamp_from_db(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def date_from_db(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except (ValueError, TypeError):
        return None
