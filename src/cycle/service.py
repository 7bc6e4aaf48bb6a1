"""Cycle tracking service: reads, projections and logging actions.

CycleService is stateless apart from its injected store and config, so a
new instance can be created per request or per session.  Read paths never
fail: store errors degrade to defaults or empty results so the cycle view
always renders.  Write paths log and re-raise so the caller can tell the user
that nothing was saved.

Usage::

    service = CycleService(store)
    info = await service.get_cycle_info(user_id, today=date(2026, 3, 1))
    cells = await service.get_month_calendar(user_id, 2026, 3, today=date(2026, 3, 1))
    await service.log_period_start(user_id, date(2026, 3, 4), FlowLevel.heavy)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable

from src.cycle.base import (
    CalendarDayProjection,
    CycleInfo,
    CyclePhase,
    CycleSettings,
    CycleStore,
    DailyLog,
    FlowLevel,
    PeriodLog,
    PersistenceError,
)
from src.cycle.calendar_projector import project_month
from src.cycle.config_loader import CycleConfig, PhaseGuidance, get_cycle_config
from src.cycle.dates import month_range
from src.cycle.log_reconciler import (
    UNSET,
    apply_day_changes,
    merge_logs,
    period_start_from_flow,
    should_advance_last_start,
)
from src.cycle.phase_calculator import compute_cycle_info
from src.cycle.validation import (
    coerce_flow,
    default_settings,
    sanitize_settings,
    validate_period_log,
    validate_settings,
)

logger = logging.getLogger("aunouri.cycle.service")


class CycleService:
    """Cycle phase inference, calendar projection and logging for one store."""

    def __init__(self, store: CycleStore, config: CycleConfig | None = None) -> None:
        self._store = store
        self._config = config or get_cycle_config()

    # ------------------------------------------------------------------
    # Reads (degrade, never raise PersistenceError)
    # ------------------------------------------------------------------

    async def get_settings(self, user_id: str) -> CycleSettings:
        """Return the user's settings, creating defaults on first access."""
        try:
            stored = await self._store.fetch_settings(user_id)
        except PersistenceError as exc:
            logger.warning("Could not load cycle settings for %s, using defaults: %s", user_id, exc)
            return default_settings(user_id, self._config)

        if stored is None:
            settings = default_settings(user_id, self._config)
            try:
                await self._store.save_settings(settings)
            except PersistenceError as exc:
                logger.warning("Could not create default cycle settings for %s: %s", user_id, exc)
            return settings

        return sanitize_settings(stored, self._config)

    async def get_cycle_info(self, user_id: str, today: date | None = None) -> CycleInfo:
        today = today or date.today()
        settings = await self.get_settings(user_id)
        return compute_cycle_info(settings, today, self._config)

    async def get_month_calendar(
        self,
        user_id: str,
        year: int,
        month: int,
        today: date | None = None,
    ) -> list[CalendarDayProjection]:
        """Project a month and overlay the user's daily logs on it.

        Raises:
            ValueError: If month is outside 1-12.
        """
        today = today or date.today()
        settings = await self.get_settings(user_id)
        info = compute_cycle_info(settings, today, self._config)
        cells = project_month(settings, info, year, month, today, self._config)

        first, last = month_range(year, month)
        try:
            logs = await self._store.fetch_daily_logs(user_id, first, last)
        except PersistenceError as exc:
            logger.warning(
                "Could not load daily logs for %s (%s..%s), showing predictions only: %s",
                user_id, first, last, exc,
            )
            logs = []
        return merge_logs(cells, logs)

    async def get_recent_periods(self, user_id: str, count: int | None = None) -> list[PeriodLog]:
        """Most recent period logs first, for history display."""
        if count is None:
            count = self._config.recent_periods_count
        try:
            return await self._store.fetch_recent_periods(user_id, count)
        except PersistenceError as exc:
            logger.warning("Could not load period history for %s: %s", user_id, exc)
            return []

    def get_phase_guidance(self, phase: CyclePhase | str) -> PhaseGuidance:
        return self._config.guidance(phase)

    # ------------------------------------------------------------------
    # Writes (propagate failures)
    # ------------------------------------------------------------------

    async def update_settings(
        self,
        user_id: str,
        *,
        average_cycle_length: int | None = None,
        average_period_length: int | None = None,
        notifications_enabled: bool | None = None,
    ) -> CycleSettings:
        """Change the user's settings.

        Raises:
            CycleValidationError: If the resulting settings are out of domain.
            PersistenceError:     If the store could not read or write.
        """
        current = await self._load_for_write(user_id)
        changes: dict = {}
        if average_cycle_length is not None:
            changes["average_cycle_length"] = average_cycle_length
        if average_period_length is not None:
            changes["average_period_length"] = average_period_length
        if notifications_enabled is not None:
            changes["notifications_enabled"] = notifications_enabled
        updated = replace(current, **changes)
        validate_settings(updated, self._config)

        try:
            await self._store.save_settings(updated)
        except PersistenceError:
            logger.error("Failed to save cycle settings for %s", user_id)
            raise
        logger.info("Updated cycle settings for %s: %s", user_id, sorted(changes))
        return updated

    async def log_period_start(
        self,
        user_id: str,
        start_date: date,
        flow: FlowLevel | str = FlowLevel.medium,
        *,
        end_date: date | None = None,
        notes: str | None = None,
    ) -> str:
        """Record a period start and return the new period log id.

        last_period_start only advances when ``start_date`` is the latest
        start across all period logs, so backfilling an old period keeps the
        current cycle intact.  The day's flow is also written to the daily
        log.

        Raises:
            CycleValidationError: If the flow or dates are invalid.
            PersistenceError:     If any write did not persist.
        """
        log = PeriodLog(
            user_id=user_id,
            start_date=start_date,
            flow=coerce_flow(flow),
            end_date=end_date,
            notes=notes,
        )
        validate_period_log(log)

        try:
            period_id = await self._store.add_period(log)
            settings = await self._load_for_write(user_id)
            latest = await self._store.fetch_recent_periods(user_id, 1)
            known_starts = [p.start_date for p in latest]
            if should_advance_last_start(start_date, known_starts, settings.last_period_start):
                await self._store.save_settings(replace(settings, last_period_start=start_date))
                logger.info("Advanced last period start for %s to %s", user_id, start_date)
            else:
                logger.info(
                    "Backfilled period %s for %s; last period start stays %s",
                    start_date, user_id, settings.last_period_start,
                )
            await self._write_day(user_id, start_date, flow=log.flow)
        except PersistenceError:
            logger.error("Failed to log period start %s for %s", start_date, user_id)
            raise
        return period_id

    async def log_cycle_day(
        self,
        user_id: str,
        log_date: date,
        *,
        flow: FlowLevel | str | None | object = UNSET,
        symptoms: Iterable[str] | None | object = UNSET,
        notes: str | None | object = UNSET,
        mood: str | None | object = UNSET,
    ) -> DailyLog:
        """Upsert the log for one day; unset fields keep their stored value.

        Logging a period flow (not spotting) may move last_period_start: it is
        set when unknown, moved forward when the day is far enough after it
        to be a new cycle, and moved back when the period started a few days
        earlier than recorded.

        Raises:
            CycleValidationError: If the flow is unknown.
            PersistenceError:     If the log or settings did not persist.
        """
        if flow is not UNSET:
            flow = coerce_flow(flow)  # type: ignore[arg-type]

        try:
            saved = await self._write_day(
                user_id, log_date, flow=flow, symptoms=symptoms, notes=notes, mood=mood
            )
            if saved.has_period_flow:
                settings = await self._load_for_write(user_id)
                new_start = period_start_from_flow(
                    log_date, settings.last_period_start, self._config.period_tracking
                )
                if new_start is not None and new_start != settings.last_period_start:
                    await self._store.save_settings(replace(settings, last_period_start=new_start))
                    logger.info(
                        "Moved last period start for %s from %s to %s",
                        user_id, settings.last_period_start, new_start,
                    )
        except PersistenceError:
            logger.error("Failed to log cycle day %s for %s", log_date, user_id)
            raise
        return saved

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_for_write(self, user_id: str) -> CycleSettings:
        stored = await self._store.fetch_settings(user_id)
        if stored is None:
            return default_settings(user_id, self._config)
        return sanitize_settings(stored, self._config)

    async def _write_day(self, user_id: str, log_date: date, **fields) -> DailyLog:
        existing = await self._store.fetch_daily_logs(user_id, log_date, log_date)
        merged = apply_day_changes(
            existing[0] if existing else None, user_id, log_date, **fields
        )
        return await self._store.upsert_daily_log(merged)
