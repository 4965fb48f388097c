"""Pure coercion helpers shared by the provider row parsers.

Nothing in here raises on bad input: a single malformed report row must not
abort a whole sync, so unparsable numbers become 0 and unparsable dates
become None (the row is then dropped by the caller).
"""

import math
from datetime import date, datetime, timezone
from typing import Any, Optional

MICROS_PER_UNIT = 1_000_000


def coerce_number(value: Any) -> float:
    """Coerce ``value`` to a finite, non-negative float (0 when unusable).

    Example:
        >>> coerce_number("12.5"), coerce_number(None), coerce_number("n/a")
        (12.5, 0.0, 0.0)
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0

    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def normalize_cost(cost_micros: Any) -> float:
    """Convert a Google Ads micros amount into currency units.

    Example:
        >>> normalize_cost("1234560")
        1.23456
    """
    return coerce_number(cost_micros) / MICROS_PER_UNIT


def normalize_currency(value: Any) -> float:
    """Normalize a LinkedIn money value (``{"amount": ..}`` or a scalar)."""
    if isinstance(value, dict):
        return coerce_number(value.get("amount"))
    return coerce_number(value)


def positive_or_none(value: float) -> Optional[float]:
    return value if value > 0 else None


def optional_str(value: Any) -> Optional[str]:
    """Return ``value`` as a non-empty string, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    return None


def _date_from_parts(parts: dict) -> Optional[str]:
    try:
        return date(int(parts["year"]), int(parts["month"]), int(parts["day"])).isoformat()
    except (KeyError, TypeError, ValueError):
        return None


def normalize_date(value: Any) -> Optional[str]:
    """Return an ISO calendar day (``YYYY-MM-DD``) or None if unusable.

    Accepts ``date``/``datetime`` objects, ``YYYY-MM-DD`` strings with an
    optional time part (TikTok's ``stat_time_day``), LinkedIn
    ``{"year", "month", "day"}`` objects and epoch milliseconds.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return _date_from_parts(value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value) or value <= 0:
            return None
        try:
            stamp = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
        return stamp.date().isoformat()
    if isinstance(value, str):
        text = value.strip()[:10]
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError:
            return None
    return None
