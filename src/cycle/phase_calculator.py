"""Cycle day and phase inference.

Turns a user's settings and a reference day into the current cycle day and
phase, then composes the prediction engine into a full CycleInfo.

Phase thresholds on the cycle day::

    day <= period_length       → menstrual
    day <= ovulation_day - 3   → follicular
    day <= ovulation_day + 2   → ovulatory
    otherwise                  → luteal

with ``ovulation_day = round(cycle_length / 2)``.  For short cycles or long
periods the follicular (and even ovulatory) band can be empty; the band ends
are clamped so they never precede the previous band and a warning is
attached to the result.

Everything here is pure and synchronous.
"""

from __future__ import annotations

import logging
from datetime import date

from src.cycle.base import CycleInfo, CyclePhase, CyclePosition, CycleSettings
from src.cycle.config_loader import CycleConfig, get_cycle_config
from src.cycle.dates import add_days, days_between, positive_mod, round_half_up
from src.cycle.prediction_engine import predict

logger = logging.getLogger("aunouri.cycle.phase_calculator")


def ovulation_day_for(cycle_length: int) -> int:
    """Cycle day of predicted ovulation (half the cycle, .5 rounded up)."""
    return round_half_up(cycle_length / 2)


def phase_bounds(cycle_length: int, period_length: int) -> tuple[int, int, int]:
    """Return (ovulation_day, follicular_end, ovulatory_end) for a cycle."""
    ovulation_day = ovulation_day_for(cycle_length)
    follicular_end = max(ovulation_day - 3, period_length)
    ovulatory_end = max(ovulation_day + 2, follicular_end)
    return ovulation_day, follicular_end, ovulatory_end


def classify_phase(
    cycle_day: int, period_length: int, follicular_end: int, ovulatory_end: int
) -> CyclePhase:
    if cycle_day <= period_length:
        return CyclePhase.menstrual
    if cycle_day <= follicular_end:
        return CyclePhase.follicular
    if cycle_day <= ovulatory_end:
        return CyclePhase.ovulatory
    return CyclePhase.luteal


def position_for_day(cycle_day: int, cycle_length: int, period_length: int) -> CyclePosition:
    """Build the CyclePosition for an already-known cycle day."""
    ovulation_day, follicular_end, ovulatory_end = phase_bounds(cycle_length, period_length)
    return CyclePosition(
        day_of_cycle=cycle_day,
        phase=classify_phase(cycle_day, period_length, follicular_end, ovulatory_end),
        cycle_length=cycle_length,
        period_length=period_length,
        ovulation_day=ovulation_day,
        follicular_end=follicular_end,
        ovulatory_end=ovulatory_end,
    )


def effective_period_start(
    settings: CycleSettings, today: date, config: CycleConfig | None = None
) -> date:
    """The stored last period start, or a neutral stand-in when none is known."""
    if settings.last_period_start is not None:
        return settings.last_period_start
    cfg = config or get_cycle_config()
    return add_days(today, -cfg.unknown_start_offset_days)


def locate(
    settings: CycleSettings, today: date, config: CycleConfig | None = None
) -> CyclePosition:
    """Return the cycle position of ``today``.

    Today may precede last_period_start (clock skew, backfilled logs); the
    cycle day still lands in [1, cycle_length].
    """
    cycle_length = settings.average_cycle_length
    start = effective_period_start(settings, today, config)
    diff_days = days_between(start, today)
    cycle_day = positive_mod(diff_days, cycle_length) + 1
    return position_for_day(cycle_day, cycle_length, settings.average_period_length)


def band_warnings(position: CyclePosition) -> list[str]:
    """Describe phase bands that collapsed because the period is too long."""
    warnings: list[str] = []
    if position.follicular_end <= position.period_length:
        warnings.append(
            f"Follicular phase is empty: period length {position.period_length} "
            f"reaches the ovulation window (ovulation day {position.ovulation_day})"
        )
    if position.ovulatory_end <= position.period_length:
        warnings.append(
            f"Ovulatory phase is empty: period length {position.period_length} "
            f"covers the ovulation window"
        )
    return warnings


def compute_cycle_info(
    settings: CycleSettings, today: date, config: CycleConfig | None = None
) -> CycleInfo:
    """Compute the current phase, cycle day and predictions for ``today``.

    Never fails for valid settings: a missing last_period_start is replaced
    with ``today - unknown_start_offset_days``.

    Args:
        settings: The user's cycle settings.
        today:    Reference calendar day.
        config:   Cycle config override (defaults to the global config).

    Returns:
        A freshly computed CycleInfo.
    """
    position = locate(settings, today, config)
    prediction = predict(position, today)

    warnings = band_warnings(position)
    if settings.last_period_start is None:
        warnings.append("No period start logged yet; phase is estimated")
    for w in warnings:
        logger.debug("user %s: %s", settings.user_id, w)

    return CycleInfo(
        current_phase=position.phase,
        day_of_cycle=position.day_of_cycle,
        next_period_date=prediction.next_period_date,
        fertile_window_start=prediction.fertile_window_start,
        fertile_window_end=prediction.fertile_window_end,
        ovulation_date=prediction.ovulation_date,
        days_until_next_period=prediction.days_until_next_period,
        days_until_ovulation=prediction.days_until_ovulation,
        days_until_fertile_window=prediction.days_until_fertile_window,
        cycle_length=position.cycle_length,
        period_length=position.period_length,
        ovulation_day=position.ovulation_day,
        warnings=warnings,
    )
