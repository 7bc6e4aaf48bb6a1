"""Menstrual cycle phase inference and prediction for AuNouri.

Derives the user's current cycle day, phase and upcoming dates from their
settings and logged periods, and projects that onto any calendar month.

Modules:
    base               — Canonical models, errors and the CycleStore contract
    dates              — Calendar-day arithmetic (positive_mod, month grid)
    phase_calculator   — Cycle day + phase for a reference day
    prediction_engine  — Next period, ovulation and fertile window
    calendar_projector — Per-day projection of a month
    log_reconciler     — Logged data over predictions, period-start rules
    validation         — Settings/log validation and read-time sanitising
    service            — CycleService, the store-backed entry point
    config_loader      — Load/validate/hot-reload cycle_config.yaml
"""

from src.cycle.base import (
    CalendarDayProjection,
    CycleInfo,
    CyclePhase,
    CycleSettings,
    CycleStore,
    CycleValidationError,
    DailyLog,
    FlowLevel,
    PeriodLog,
    PersistenceError,
)
from src.cycle.calendar_projector import project_month
from src.cycle.config_loader import CycleConfig, get_cycle_config
from src.cycle.log_reconciler import merge_logs
from src.cycle.phase_calculator import compute_cycle_info
from src.cycle.service import CycleService

__all__ = [
    "CalendarDayProjection",
    "CycleConfig",
    "CycleInfo",
    "CyclePhase",
    "CycleService",
    "CycleSettings",
    "CycleStore",
    "CycleValidationError",
    "DailyLog",
    "FlowLevel",
    "PeriodLog",
    "PersistenceError",
    "compute_cycle_info",
    "get_cycle_config",
    "merge_logs",
    "project_month",
]
