"""Canonical data models and the persistence contract for the cycle engine.

Every store implementation must subclass CycleStore and exchange the
dataclasses defined here.  These types are the single source of truth
consumed by the phase calculator, calendar projector, service layer and
API layer.

All dates are calendar days (``datetime.date``) in the user's local
timezone, never instants.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulatory = "ovulatory"
    luteal = "luteal"


class FlowLevel(str, Enum):
    spotting = "spotting"
    light = "light"
    medium = "medium"
    heavy = "heavy"


# Flows that count as an actual period day (spotting does not)
PERIOD_FLOWS: frozenset[FlowLevel] = frozenset(
    {FlowLevel.light, FlowLevel.medium, FlowLevel.heavy}
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class CycleValidationError(ValueError):
    """Raised when settings or logs are rejected at write time.

    Attributes:
        errors: Every problem found, not just the first one.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(
            f"{len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )


class PersistenceError(RuntimeError):
    """Raised by CycleStore implementations when a read or write fails."""


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


@dataclass
class CycleSettings:
    """Per-user cycle configuration.

    Attributes:
        user_id:               Owner of the settings.
        average_cycle_length:  Days from one period start to the next.
        average_period_length: Days of menstruation.
        last_period_start:     First day of the most recent known period.
        notifications_enabled: Whether reminders are wanted.
    """

    user_id: str
    average_cycle_length: int = 28
    average_period_length: int = 5
    last_period_start: date | None = None
    notifications_enabled: bool = True


@dataclass
class PeriodLog:
    """One logged period.  Append-only."""

    user_id: str
    start_date: date
    flow: FlowLevel = FlowLevel.medium
    end_date: date | None = None
    notes: str | None = None
    id: str | None = None


@dataclass
class DailyLog:
    """Flow, symptoms and notes for one calendar day.  Unique per user+date."""

    user_id: str
    date: date
    flow: FlowLevel | None = None
    symptoms: set[str] = field(default_factory=set)
    notes: str | None = None
    mood: str | None = None

    @property
    def has_period_flow(self) -> bool:
        return self.flow in PERIOD_FLOWS


# ---------------------------------------------------------------------------
# Derived values (never persisted)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CyclePosition:
    """Where a given day falls inside the user's cycle.

    Attributes:
        day_of_cycle:   1-indexed cycle day, in [1, cycle_length].
        phase:          Phase classified from day_of_cycle.
        cycle_length:   Cycle length used for the calculation.
        period_length:  Period length used for the calculation.
        ovulation_day:  Cycle day of predicted ovulation.
        follicular_end: Last cycle day classified as follicular.
        ovulatory_end:  Last cycle day classified as ovulatory.
    """

    day_of_cycle: int
    phase: CyclePhase
    cycle_length: int
    period_length: int
    ovulation_day: int
    follicular_end: int
    ovulatory_end: int


@dataclass(frozen=True)
class CyclePrediction:
    """Dates predicted from a CyclePosition and a reference day."""

    next_period_date: date
    ovulation_date: date
    fertile_window_start: date
    fertile_window_end: date
    days_until_next_period: int
    days_until_ovulation: int
    days_until_fertile_window: int


@dataclass
class CycleInfo:
    """Current point in the cycle plus predictions, for one "today".

    Always recomputed from CycleSettings and today; never cached.
    """

    current_phase: CyclePhase
    day_of_cycle: int
    next_period_date: date
    fertile_window_start: date
    fertile_window_end: date
    ovulation_date: date
    days_until_next_period: int
    days_until_ovulation: int
    days_until_fertile_window: int
    cycle_length: int
    period_length: int
    ovulation_day: int
    warnings: list[str] = field(default_factory=list)


@dataclass
class CalendarDayProjection:
    """One cell of a month grid.

    Placeholder cells (``day == 0``) only pad the first week and carry no
    date or phase.
    """

    day: int
    date: date | None = None
    phase: CyclePhase | None = None
    cycle_day: int | None = None
    is_period: bool = False
    is_fertile: bool = False
    is_today: bool = False
    daily_log: DailyLog | None = None

    @property
    def is_placeholder(self) -> bool:
        return self.day == 0

    @property
    def is_logged(self) -> bool:
        return self.daily_log is not None

    @property
    def is_predicted(self) -> bool:
        return not self.is_placeholder and self.daily_log is None


# ---------------------------------------------------------------------------
# Store contract
# ---------------------------------------------------------------------------


class CycleStore(ABC):
    """Abstract persistence collaborator.

    Implementations raise PersistenceError on failure.  They own no retry
    policy; CycleService decides whether a failure degrades or propagates.
    """

    @abstractmethod
    async def fetch_settings(self, user_id: str) -> CycleSettings | None:
        """Return stored settings, or None if the user has none yet."""

    @abstractmethod
    async def save_settings(self, settings: CycleSettings) -> None:
        """Create or replace the user's settings."""

    @abstractmethod
    async def fetch_recent_periods(self, user_id: str, count: int) -> list[PeriodLog]:
        """Return up to ``count`` period logs, most recent start_date first."""

    @abstractmethod
    async def add_period(self, log: PeriodLog) -> str:
        """Append a period log and return its id."""

    @abstractmethod
    async def fetch_daily_logs(
        self, user_id: str, range_start: date, range_end: date
    ) -> list[DailyLog]:
        """Return daily logs with range_start <= date <= range_end."""

    @abstractmethod
    async def upsert_daily_log(self, log: DailyLog) -> DailyLog:
        """Insert or replace the log for (user_id, date) and return it."""
