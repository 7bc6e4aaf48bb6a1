"""Reconcile logged facts with predictions.

Logged data always wins: a day with a DailyLog shows what the user recorded,
not what the projection guessed.  This module also holds the rules deciding
when a newly logged period may move ``last_period_start``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable

from src.cycle.base import CalendarDayProjection, DailyLog, FlowLevel
from src.cycle.config_loader import PeriodTrackingConfig
from src.cycle.dates import days_between

logger = logging.getLogger("aunouri.cycle.reconciler")

UNSET = object()


def merge_logs(
    projections: list[CalendarDayProjection], daily_logs: Iterable[DailyLog]
) -> list[CalendarDayProjection]:
    """Overlay daily logs on projected calendar cells.

    For every cell whose date has a log, the log is attached.  Any logged flow,
    spotting included, marks the day as a period day; a log without flow
    (symptoms or notes only) leaves the predicted ``is_period`` alone.  Cells
    without a log keep their prediction.  The input list and its cells are
    not modified.

    Args:
        projections: Output of ``project_month``.
        daily_logs:  Logs for the projected range; at most one per date.

    Returns:
        New list of cells in the same order.
    """
    by_date: dict[date, DailyLog] = {}
    for log in daily_logs:
        if log.date in by_date:
            logger.warning("Duplicate daily log for %s; keeping the last one", log.date)
        by_date[log.date] = log

    merged: list[CalendarDayProjection] = []
    for cell in projections:
        log = by_date.get(cell.date) if cell.date is not None else None
        if log is None:
            merged.append(replace(cell))
            continue
        merged.append(
            replace(cell, daily_log=log, is_period=cell.is_period or log.flow is not None)
        )
    return merged


def is_latest_period_start(candidate: date, known_starts: Iterable[date]) -> bool:
    """True if no known period start is later than ``candidate``."""
    return all(s <= candidate for s in known_starts)


def should_advance_last_start(
    candidate: date, known_starts: Iterable[date], current: date | None
) -> bool:
    """Decide whether logging a period at ``candidate`` moves last_period_start.

    Only the most recent start across all period logs may become the last
    start, so out-of-order backfills never move it backwards.
    """
    if not is_latest_period_start(candidate, known_starts):
        return False
    return current is None or candidate > current


def period_start_from_flow(
    log_date: date, current: date | None, tracking: PeriodTrackingConfig
) -> date | None:
    """Return the new last_period_start implied by a period flow on ``log_date``.

    - No known start → the logged day starts the period.
    - More than ``new_cycle_gap_days`` after the known start → a new cycle.
    - Within ``early_start_window_days`` before the known start → the same
      period started earlier.

    Returns:
        The new start date, or None if last_period_start should stay.
    """
    if current is None:
        return log_date
    diff = days_between(current, log_date)
    if diff > tracking.new_cycle_gap_days:
        return log_date
    if -tracking.early_start_window_days < diff < 0:
        return log_date
    return None


def apply_day_changes(
    existing: DailyLog | None,
    user_id: str,
    log_date: date,
    flow: FlowLevel | None | object = UNSET,
    symptoms: Iterable[str] | None | object = UNSET,
    notes: str | None | object = UNSET,
    mood: str | None | object = UNSET,
) -> DailyLog:
    """Merge supplied fields into an existing day log (or a fresh one).

    Fields left unset keep their stored value; passing None clears them.
    """
    base = existing or DailyLog(user_id=user_id, date=log_date)
    changes: dict = {}
    if flow is not UNSET:
        changes["flow"] = FlowLevel(flow) if flow is not None else None
    if symptoms is not UNSET:
        changes["symptoms"] = set(symptoms or ())
    if notes is not UNSET:
        changes["notes"] = notes
    if mood is not UNSET:
        changes["mood"] = mood
    return replace(base, **changes)
