from __future__ import annotations

from datetime import date, datetime
from typing import Union

DateLike = Union[date, datetime, str]


def parse_iso_date(value: DateLike) -> date:
    """Coerce an ISO date/datetime string (or date object) to a calendar date.

    Raises ValueError for empty or unparseable input.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")
    text = value.strip()
    if not text:
        raise ValueError("Empty date value")
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def is_valid_iso_date(value: object) -> bool:
    try:
        parse_iso_date(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False
    return True
