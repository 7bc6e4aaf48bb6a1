"""Next-period, ovulation and fertile-window predictions.

Fixed-formula model: the fertile window spans the five days before the
predicted ovulation through the day after it.  Predictions are anchored on
"today" so the same position and reference date always give the same dates.
"""

from __future__ import annotations

from datetime import date

from src.cycle.base import CyclePosition, CyclePrediction
from src.cycle.dates import add_days

FERTILE_DAYS_BEFORE_OVULATION = 5
FERTILE_DAYS_AFTER_OVULATION = 1


def predict(position: CyclePosition, today: date) -> CyclePrediction:
    """Predict upcoming cycle dates from the position of ``today``.

    The ovulation date may be in the past when today is already beyond the
    ovulation day of the current cycle; it is not rolled forward.

    Args:
        position: Cycle position computed for ``today``.
        today:    Reference calendar day.

    Returns:
        CyclePrediction with all dates populated.
    """
    days_until_next_period = position.cycle_length - position.day_of_cycle + 1
    days_until_ovulation = position.ovulation_day - position.day_of_cycle

    ovulation_date = add_days(today, days_until_ovulation)
    fertile_start = add_days(ovulation_date, -FERTILE_DAYS_BEFORE_OVULATION)

    return CyclePrediction(
        next_period_date=add_days(today, days_until_next_period),
        ovulation_date=ovulation_date,
        fertile_window_start=fertile_start,
        fertile_window_end=add_days(ovulation_date, FERTILE_DAYS_AFTER_OVULATION),
        days_until_next_period=days_until_next_period,
        days_until_ovulation=days_until_ovulation,
        days_until_fertile_window=days_until_ovulation - FERTILE_DAYS_BEFORE_OVULATION,
    )
