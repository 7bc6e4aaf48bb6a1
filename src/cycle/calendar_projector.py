"""Project the cycle onto a calendar month for display.

Each real day of the month is placed in the cycle by its signed date
difference from "today", so past and future months project correctly, not
just the current one::

    date_diff  = (day_date - today).days
    cycle_day  = positive_mod(today_cycle_day + date_diff - 1, cycle_length) + 1

The grid starts with placeholder cells (``day == 0``) so day 1 lands in the
right weekday column.  The cell for today always reproduces the CycleInfo it
was projected from.
"""

from __future__ import annotations

import logging
from datetime import date

from src.cycle.base import CalendarDayProjection, CycleInfo, CycleSettings
from src.cycle.config_loader import CycleConfig, get_cycle_config
from src.cycle.dates import days_between, days_in_month, leading_blank_count, positive_mod
from src.cycle.phase_calculator import phase_bounds, position_for_day

logger = logging.getLogger("aunouri.cycle.calendar")

# Fertile band in cycle days, relative to the ovulation day (inclusive)
FERTILE_BAND_START_OFFSET = -2
FERTILE_BAND_END_OFFSET = 0


def cycle_day_on(info: CycleInfo, cycle_length: int, today: date, target: date) -> int:
    """Cycle day of ``target`` given the cycle day of ``today``."""
    date_diff = days_between(today, target)
    return positive_mod(info.day_of_cycle + date_diff - 1, cycle_length) + 1


def is_fertile_day(cycle_day: int, ovulation_day: int) -> bool:
    return (
        ovulation_day + FERTILE_BAND_START_OFFSET
        <= cycle_day
        <= ovulation_day + FERTILE_BAND_END_OFFSET
    )


def project_month(
    settings: CycleSettings,
    cycle_info_today: CycleInfo,
    year: int,
    month: int,
    today: date,
    config: CycleConfig | None = None,
) -> list[CalendarDayProjection]:
    """Annotate every day of a month with its predicted cycle state.

    Args:
        settings:         The user's cycle settings.
        cycle_info_today: CycleInfo computed for ``today`` from the same settings.
        year:             Calendar year to project.
        month:            Calendar month to project (1-12).
        today:            Reference calendar day.
        config:           Cycle config override (week start).

    Returns:
        Placeholder cells followed by one cell per day of the month.

    Raises:
        ValueError: If month is outside 1-12.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")

    cfg = config or get_cycle_config()
    cycle_length = settings.average_cycle_length
    period_length = settings.average_period_length
    ovulation_day, _, _ = phase_bounds(cycle_length, period_length)

    cells: list[CalendarDayProjection] = [
        CalendarDayProjection(day=0)
        for _ in range(leading_blank_count(year, month, cfg.week_start))
    ]

    for day in range(1, days_in_month(year, month) + 1):
        current = date(year, month, day)
        cycle_day = cycle_day_on(cycle_info_today, cycle_length, today, current)
        position = position_for_day(cycle_day, cycle_length, period_length)
        cells.append(
            CalendarDayProjection(
                day=day,
                date=current,
                phase=position.phase,
                cycle_day=cycle_day,
                is_period=1 <= cycle_day <= period_length,
                is_fertile=is_fertile_day(cycle_day, ovulation_day),
                is_today=current == today,
            )
        )

    logger.debug(
        "Projected %04d-%02d for user %s (%d cells)",
        year, month, settings.user_id, len(cells),
    )
    return cells
