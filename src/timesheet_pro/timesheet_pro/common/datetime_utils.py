from __future__ import annotations

from datetime import date, datetime

from ..core.constants import ISO_DATE_FORMAT
from ..core.exceptions import ValidationError


def parse_iso_date(value: str, field_name: str = "date") -> date:
    """Parse a YYYY-MM-DD string into a date.

    Raises ValidationError naming the field when the value is malformed.
    """
    v = (value or "").strip()
    try:
        return datetime.strptime(v, ISO_DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid {field_name} format (use YYYY-MM-DD): {value!r}")


def format_iso_date(value: date) -> str:
    return value.strftime(ISO_DATE_FORMAT)


def truncate_to_day(value: datetime) -> date:
    """Calendar day of a server-local timestamp.

    No organization timezone is applied: the day boundary is the server's
    wall-clock midnight.
    """
    return value.date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
