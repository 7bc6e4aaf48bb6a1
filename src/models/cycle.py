"""Pydantic models for the cycle API: settings, period logs, daily logs,
cycle info and calendar projections."""

from __future__ import annotations

import datetime as dt

from pydantic import Field, model_validator

from src.cycle.base import CyclePhase, FlowLevel
from src.models.base import AunouriBase


# ---------- Settings ----------

class CycleSettingsRead(AunouriBase):
    user_id: str
    average_cycle_length: int
    average_period_length: int
    last_period_start: dt.date | None = None
    notifications_enabled: bool


class CycleSettingsUpdate(AunouriBase):
    # Domain bounds are enforced by the service against cycle_config.yaml
    average_cycle_length: int | None = None
    average_period_length: int | None = None
    notifications_enabled: bool | None = None


# ---------- Period Logs ----------

class PeriodLogCreate(AunouriBase):
    start_date: dt.date
    end_date: dt.date | None = None
    flow: FlowLevel = FlowLevel.medium
    notes: str | None = None

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "PeriodLogCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PeriodLogRead(AunouriBase):
    id: str | None = None
    user_id: str
    start_date: dt.date
    end_date: dt.date | None = None
    flow: FlowLevel
    notes: str | None = None


class PeriodLogCreated(AunouriBase):
    period_id: str


# ---------- Daily Logs ----------

class DailyLogUpsert(AunouriBase):
    """Only the fields present in the request body are changed."""

    flow: FlowLevel | None = None
    symptoms: list[str] | None = None
    mood: str | None = None
    notes: str | None = None


class DailyLogRead(AunouriBase):
    user_id: str
    date: dt.date
    flow: FlowLevel | None = None
    symptoms: list[str] = Field(default_factory=list)
    mood: str | None = None
    notes: str | None = None


# ---------- Cycle Info ----------

class PhaseGuidanceRead(AunouriBase):
    phase: CyclePhase
    label: str
    description: str
    title: str
    tips: list[str] = Field(default_factory=list)


class CycleInfoRead(AunouriBase):
    current_phase: CyclePhase
    day_of_cycle: int
    next_period_date: dt.date
    fertile_window_start: dt.date
    fertile_window_end: dt.date
    ovulation_date: dt.date
    days_until_next_period: int
    days_until_ovulation: int
    days_until_fertile_window: int
    cycle_length: int
    period_length: int
    ovulation_day: int
    warnings: list[str] = Field(default_factory=list)
    guidance: PhaseGuidanceRead | None = None


# ---------- Calendar ----------

class CalendarDayRead(AunouriBase):
    day: int
    date: dt.date | None = None
    phase: CyclePhase | None = None
    cycle_day: int | None = None
    is_period: bool = False
    is_fertile: bool = False
    is_today: bool = False
    is_logged: bool = False
    is_predicted: bool = False
    daily_log: DailyLogRead | None = None


class CalendarMonthRead(AunouriBase):
    year: int
    month: int
    days: list[CalendarDayRead]
