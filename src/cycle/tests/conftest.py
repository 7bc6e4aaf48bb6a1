"""Shared fixtures and an in-memory store for cycle engine tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from src.cycle.base import CycleSettings, CycleStore, DailyLog, PeriodLog
from src.cycle.config_loader import CycleConfig, load_cycle_config
from src.cycle.service import CycleService

# Canonical test user ID
TEST_USER_ID = "user_2aunouritest"
TEST_DATE = date(2024, 1, 15)
TEST_PERIOD_START = date(2024, 1, 1)


class InMemoryCycleStore(CycleStore):
    """Dict-backed CycleStore.  Returns copies so tests can't alias stored state."""

    def __init__(self) -> None:
        self.settings: dict[str, CycleSettings] = {}
        self.periods: list[PeriodLog] = []
        self.daily: dict[tuple[str, date], DailyLog] = {}
        self.saved_settings_count = 0
        self._next_id = 1

    async def fetch_settings(self, user_id: str) -> CycleSettings | None:
        stored = self.settings.get(user_id)
        return replace(stored) if stored else None

    async def save_settings(self, settings: CycleSettings) -> None:
        self.settings[settings.user_id] = replace(settings)
        self.saved_settings_count += 1

    async def fetch_recent_periods(self, user_id: str, count: int) -> list[PeriodLog]:
        mine = [replace(p) for p in self.periods if p.user_id == user_id]
        mine.sort(key=lambda p: p.start_date, reverse=True)
        return mine[:count]

    async def add_period(self, log: PeriodLog) -> str:
        period_id = f"period-{self._next_id}"
        self._next_id += 1
        self.periods.append(replace(log, id=period_id))
        return period_id

    async def fetch_daily_logs(
        self, user_id: str, range_start: date, range_end: date
    ) -> list[DailyLog]:
        return [
            replace(log, symptoms=set(log.symptoms))
            for (uid, d), log in sorted(self.daily.items())
            if uid == user_id and range_start <= d <= range_end
        ]

    async def upsert_daily_log(self, log: DailyLog) -> DailyLog:
        stored = replace(log, symptoms=set(log.symptoms))
        self.daily[(log.user_id, log.date)] = stored
        return replace(stored, symptoms=set(stored.symptoms))


def make_settings(
    cycle_length: int = 28,
    period_length: int = 5,
    last_period_start: date | None = TEST_PERIOD_START,
    user_id: str = TEST_USER_ID,
) -> CycleSettings:
    return CycleSettings(
        user_id=user_id,
        average_cycle_length=cycle_length,
        average_period_length=period_length,
        last_period_start=last_period_start,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the real bundled cycle config for tests."""
    return load_cycle_config()


@pytest.fixture
def store() -> InMemoryCycleStore:
    return InMemoryCycleStore()


@pytest.fixture
def seeded_store(store: InMemoryCycleStore) -> InMemoryCycleStore:
    """Store holding a 28/5 cycle that started on TEST_PERIOD_START."""
    store.settings[TEST_USER_ID] = make_settings()
    store.periods.append(
        PeriodLog(user_id=TEST_USER_ID, start_date=TEST_PERIOD_START, id="period-0")
    )
    return store


@pytest.fixture
def service(store: InMemoryCycleStore, cycle_config: CycleConfig) -> CycleService:
    return CycleService(store, cycle_config)


@pytest.fixture
def seeded_service(seeded_store: InMemoryCycleStore, cycle_config: CycleConfig) -> CycleService:
    return CycleService(seeded_store, cycle_config)
