from __future__ import annotations

import math
from datetime import date, datetime

from app.core.errors import AppError
from app.core.time_provider import to_utc_naive


def iso(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def number(value: float | int | None) -> float | int | None:
    if value is None:
        return None
    as_float = float(value)
    return int(as_float) if as_float.is_integer() else as_float


def full_name(first_name: str | None, last_name: str | None) -> str:
    return f"{first_name or ''} {last_name or ''}".strip()


def round_half_up(value: float, digits: int = 0) -> float | int:
    factor = 10 ** digits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if digits == 0 else rounded


def parse_datetime(value, field: str) -> datetime:
    """ISO-8601 timestamp as naive UTC; a trailing 'Z' is accepted."""
    if isinstance(value, datetime):
        return to_utc_naive(value)
    text = str(value or '').strip()
    if text.endswith('Z'):
        text = f'{text[:-1]}+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise AppError(f'{field} must be a valid ISO date', 400) from exc
    return to_utc_naive(parsed)


def positive_id(value) -> int | None:
    """Integer id from a JSON value, or None when it is not a positive integer."""
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None
