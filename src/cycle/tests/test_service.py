"""Tests for CycleService: degradation on reads, propagation on writes, and
the period-start bookkeeping."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from unittest.mock import AsyncMock

import pytest

from src.cycle.base import (
    CyclePhase,
    CycleSettings,
    CycleValidationError,
    FlowLevel,
    PersistenceError,
)
from src.cycle.config_loader import CycleConfig
from src.cycle.service import CycleService
from src.cycle.tests.conftest import (
    TEST_DATE,
    TEST_PERIOD_START,
    TEST_USER_ID,
    InMemoryCycleStore,
)
from src.cycle.validation import validate_settings


class TestReads:
    @pytest.mark.asyncio
    async def test_first_access_creates_defaults(
        self, service: CycleService, store: InMemoryCycleStore
    ) -> None:
        settings = await service.get_settings(TEST_USER_ID)
        assert settings.average_cycle_length == 28
        assert settings.average_period_length == 5
        assert settings.last_period_start is None
        assert store.settings[TEST_USER_ID] == settings

    @pytest.mark.asyncio
    async def test_store_failure_degrades_to_defaults(
        self, service: CycleService, store: InMemoryCycleStore
    ) -> None:
        store.fetch_settings = AsyncMock(side_effect=PersistenceError("offline"))
        info = await service.get_cycle_info(TEST_USER_ID, today=TEST_DATE)
        assert info.cycle_length == 28
        assert 1 <= info.day_of_cycle <= 28

    @pytest.mark.asyncio
    async def test_default_creation_failure_still_returns_defaults(
        self, service: CycleService, store: InMemoryCycleStore
    ) -> None:
        store.save_settings = AsyncMock(side_effect=PersistenceError("read-only"))
        settings = await service.get_settings(TEST_USER_ID)
        assert settings.average_cycle_length == 28

    @pytest.mark.asyncio
    async def test_invalid_stored_settings_replaced(
        self, service: CycleService, store: InMemoryCycleStore
    ) -> None:
        store.settings[TEST_USER_ID] = CycleSettings(
            user_id=TEST_USER_ID,
            average_cycle_length=20,
            average_period_length=25,
            last_period_start=TEST_PERIOD_START,
        )
        settings = await service.get_settings(TEST_USER_ID)
        assert (settings.average_cycle_length, settings.average_period_length) == (28, 5)
        assert settings.last_period_start == TEST_PERIOD_START

    @pytest.mark.asyncio
    async def test_cycle_info_from_stored_settings(self, seeded_service: CycleService) -> None:
        info = await seeded_service.get_cycle_info(TEST_USER_ID, today=TEST_PERIOD_START)
        assert info.day_of_cycle == 1
        assert info.current_phase == CyclePhase.menstrual
        assert info.next_period_date == date(2024, 1, 29)

    @pytest.mark.asyncio
    async def test_recent_periods_explicit_zero_count(self, seeded_service: CycleService) -> None:
        assert await seeded_service.get_recent_periods(TEST_USER_ID, count=0) == []
        assert len(await seeded_service.get_recent_periods(TEST_USER_ID)) == 1

    @pytest.mark.asyncio
    async def test_recent_periods_failure_returns_empty(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        seeded_store.fetch_recent_periods = AsyncMock(side_effect=PersistenceError("offline"))
        assert await seeded_service.get_recent_periods(TEST_USER_ID) == []

    def test_phase_guidance(self, service: CycleService) -> None:
        guidance = service.get_phase_guidance("luteal")
        assert guidance.label == "Luteal"
        assert guidance.tips


class TestMonthCalendar:
    @pytest.mark.asyncio
    async def test_symptom_log_keeps_predicted_period(
        self, seeded_service: CycleService
    ) -> None:
        await seeded_service.log_cycle_day(
            TEST_USER_ID, date(2024, 1, 3), flow=None, symptoms=["headache"]
        )
        cells = await seeded_service.get_month_calendar(TEST_USER_ID, 2024, 1, today=TEST_DATE)
        jan_3 = next(c for c in cells if c.date == date(2024, 1, 3))
        jan_4 = next(c for c in cells if c.date == date(2024, 1, 4))
        assert jan_3.is_logged and jan_3.is_period
        assert jan_3.daily_log.symptoms == {"headache"}
        assert jan_4.is_predicted and jan_4.is_period

    @pytest.mark.asyncio
    async def test_daily_log_failure_shows_predictions(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        seeded_store.fetch_daily_logs = AsyncMock(side_effect=PersistenceError("offline"))
        cells = await seeded_service.get_month_calendar(TEST_USER_ID, 2024, 1, today=TEST_DATE)
        assert len([c for c in cells if not c.is_placeholder]) == 31
        assert not any(c.is_logged for c in cells)

    @pytest.mark.asyncio
    async def test_today_cell_matches_cycle_info(self, seeded_service: CycleService) -> None:
        today = date(2024, 2, 20)
        info = await seeded_service.get_cycle_info(TEST_USER_ID, today=today)
        cells = await seeded_service.get_month_calendar(TEST_USER_ID, 2024, 2, today=today)
        cell = next(c for c in cells if c.is_today)
        assert (cell.cycle_day, cell.phase) == (info.day_of_cycle, info.current_phase)


class TestLogPeriodStart:
    @pytest.mark.asyncio
    async def test_later_period_advances_last_start(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        new_start = date(2024, 1, 27)
        period_id = await seeded_service.log_period_start(
            TEST_USER_ID, new_start, FlowLevel.heavy
        )
        assert period_id
        assert seeded_store.settings[TEST_USER_ID].last_period_start == new_start

        info = await seeded_service.get_cycle_info(TEST_USER_ID, today=new_start)
        assert info.day_of_cycle == 1

    @pytest.mark.asyncio
    async def test_backfilled_period_keeps_last_start(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        await seeded_service.log_period_start(TEST_USER_ID, date(2023, 12, 4))
        assert seeded_store.settings[TEST_USER_ID].last_period_start == TEST_PERIOD_START

        periods = await seeded_service.get_recent_periods(TEST_USER_ID)
        assert [p.start_date for p in periods] == [TEST_PERIOD_START, date(2023, 12, 4)]

    @pytest.mark.asyncio
    async def test_backfill_within_a_week_does_not_move_start(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        await seeded_service.log_period_start(TEST_USER_ID, date(2023, 12, 28))
        assert seeded_store.settings[TEST_USER_ID].last_period_start == TEST_PERIOD_START

    @pytest.mark.asyncio
    async def test_first_period_for_new_user(
        self, service: CycleService, store: InMemoryCycleStore
    ) -> None:
        await service.log_period_start(TEST_USER_ID, date(2024, 2, 2), "light")
        assert store.settings[TEST_USER_ID].last_period_start == date(2024, 2, 2)

    @pytest.mark.asyncio
    async def test_also_writes_daily_log(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        await seeded_service.log_period_start(TEST_USER_ID, date(2024, 1, 28), FlowLevel.heavy)
        log = seeded_store.daily[(TEST_USER_ID, date(2024, 1, 28))]
        assert log.flow == FlowLevel.heavy

    @pytest.mark.asyncio
    async def test_write_failure_propagates(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        seeded_store.add_period = AsyncMock(side_effect=PersistenceError("offline"))
        with pytest.raises(PersistenceError):
            await seeded_service.log_period_start(TEST_USER_ID, date(2024, 1, 28))
        assert seeded_store.settings[TEST_USER_ID].last_period_start == TEST_PERIOD_START

    @pytest.mark.asyncio
    async def test_settings_read_failure_propagates_on_write(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        seeded_store.fetch_settings = AsyncMock(side_effect=PersistenceError("offline"))
        with pytest.raises(PersistenceError):
            await seeded_service.log_period_start(TEST_USER_ID, date(2024, 1, 28))

    @pytest.mark.asyncio
    async def test_invalid_flow_rejected(self, seeded_service: CycleService) -> None:
        with pytest.raises(CycleValidationError, match="flow"):
            await seeded_service.log_period_start(TEST_USER_ID, date(2024, 1, 28), "gushing")

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        with pytest.raises(CycleValidationError, match="end_date"):
            await seeded_service.log_period_start(
                TEST_USER_ID, date(2024, 1, 28), end_date=date(2024, 1, 20)
            )
        assert len(seeded_store.periods) == 1


class TestLogCycleDay:
    @pytest.mark.asyncio
    async def test_upsert_merges_fields(self, seeded_service: CycleService) -> None:
        day = date(2024, 1, 10)
        await seeded_service.log_cycle_day(TEST_USER_ID, day, symptoms=["cramps", "fatigue"])
        saved = await seeded_service.log_cycle_day(TEST_USER_ID, day, notes="slept badly")
        assert saved.symptoms == {"cramps", "fatigue"}
        assert saved.notes == "slept badly"
        assert saved.flow is None

    @pytest.mark.asyncio
    async def test_new_cycle_flow_moves_last_start(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        await seeded_service.log_cycle_day(TEST_USER_ID, date(2024, 1, 26), flow="medium")
        assert seeded_store.settings[TEST_USER_ID].last_period_start == date(2024, 1, 26)

    @pytest.mark.asyncio
    async def test_earlier_start_of_same_period(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        await seeded_service.log_cycle_day(TEST_USER_ID, date(2023, 12, 30), flow="light")
        assert seeded_store.settings[TEST_USER_ID].last_period_start == date(2023, 12, 30)

    @pytest.mark.asyncio
    async def test_spotting_does_not_move_last_start(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        saves_before = seeded_store.saved_settings_count
        await seeded_service.log_cycle_day(TEST_USER_ID, date(2024, 1, 26), flow="spotting")
        assert seeded_store.settings[TEST_USER_ID].last_period_start == TEST_PERIOD_START
        assert seeded_store.saved_settings_count == saves_before

    @pytest.mark.asyncio
    async def test_upsert_failure_propagates(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        seeded_store.upsert_daily_log = AsyncMock(side_effect=PersistenceError("offline"))
        with pytest.raises(PersistenceError):
            await seeded_service.log_cycle_day(TEST_USER_ID, date(2024, 1, 10), notes="x")

    @pytest.mark.asyncio
    async def test_unknown_flow_rejected(self, seeded_service: CycleService) -> None:
        with pytest.raises(CycleValidationError):
            await seeded_service.log_cycle_day(TEST_USER_ID, date(2024, 1, 10), flow="lots")


class TestUpdateSettings:
    @pytest.mark.asyncio
    async def test_valid_update_saved(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        updated = await seeded_service.update_settings(
            TEST_USER_ID, average_cycle_length=32, notifications_enabled=False
        )
        assert updated.average_cycle_length == 32
        assert updated.last_period_start == TEST_PERIOD_START
        assert seeded_store.settings[TEST_USER_ID] == updated

    def test_period_not_shorter_than_cycle_rejected(self, cycle_config: CycleConfig) -> None:
        # Default bounds never overlap, so widen the period range to reach the check
        config = replace(cycle_config, bounds=replace(cycle_config.bounds, period_length_max=30))
        settings = CycleSettings(
            user_id=TEST_USER_ID, average_cycle_length=20, average_period_length=20
        )
        with pytest.raises(CycleValidationError, match="shorter"):
            validate_settings(settings, config)

    @pytest.mark.asyncio
    async def test_out_of_domain_lengths_collect_all_errors(
        self, seeded_service: CycleService
    ) -> None:
        with pytest.raises(CycleValidationError) as exc_info:
            await seeded_service.update_settings(
                TEST_USER_ID, average_cycle_length=70, average_period_length=0
            )
        assert len(exc_info.value.errors) == 2

    @pytest.mark.asyncio
    async def test_save_failure_propagates(
        self, seeded_service: CycleService, seeded_store: InMemoryCycleStore
    ) -> None:
        seeded_store.save_settings = AsyncMock(side_effect=PersistenceError("offline"))
        with pytest.raises(PersistenceError):
            await seeded_service.update_settings(TEST_USER_ID, average_cycle_length=30)
