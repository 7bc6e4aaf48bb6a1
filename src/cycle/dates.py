"""Calendar-day arithmetic shared by the phase calculator and calendar projector."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

# date.weekday() of the first grid column
WEEK_STARTS: dict[str, int] = {
    "monday": 0,
    "sunday": 6,
}


def positive_mod(x: int, n: int) -> int:
    """Remainder of x / n that is always in [0, n), also for negative x.

    Raises:
        ValueError: If n is not positive.
    """
    if n <= 0:
        raise ValueError(f"modulus must be positive, got {n}")
    return ((x % n) + n) % n


def days_between(start: date, end: date) -> int:
    """Signed number of calendar days from start to end."""
    return (end - start).days


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (``round()`` rounds to even)."""
    return int(value + 0.5)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_range(year: int, month: int) -> tuple[date, date]:
    """Return the first and last date of a month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def leading_blank_count(year: int, month: int, week_start: str = "sunday") -> int:
    """Number of empty cells before day 1 in a 7-column grid.

    Args:
        year:       Calendar year.
        month:      Calendar month (1-12).
        week_start: 'sunday' or 'monday'.

    Returns:
        Offset in [0, 6].
    """
    try:
        first_column = WEEK_STARTS[week_start]
    except KeyError as exc:
        raise ValueError(f"Unknown week_start {week_start!r}") from exc
    return positive_mod(date(year, month, 1).weekday() - first_column, 7)
