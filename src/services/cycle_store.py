"""Postgres-backed CycleStore.

Tables (all keyed by the authenticated user id, text)::

    cycle_settings    (user_id PK, average_cycle_length, average_period_length,
                       last_period_start, notifications_enabled, updated_at)
    period_logs       (period_id uuid PK, user_id, start_date, end_date, flow,
                       notes, created_at)
    cycle_daily_logs  (user_id, log_date, flow, symptoms text[], mood, notes,
                       updated_at, UNIQUE (user_id, log_date))

Driver errors are wrapped in PersistenceError so the service can decide
whether to degrade or propagate.
"""

from __future__ import annotations

import functools
import logging
from datetime import date
from typing import Any, Awaitable, Callable, TypeVar

import asyncpg

from src.cycle.base import (
    CycleSettings,
    CycleStore,
    DailyLog,
    FlowLevel,
    PeriodLog,
    PersistenceError,
)
from src.services.database import execute, fetch, fetchrow, fetchval

logger = logging.getLogger("aunouri.db.cycle")

T = TypeVar("T")


def _wrap_errors(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await func(*args, **kwargs)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, RuntimeError) as exc:
            logger.warning("%s failed: %s", func.__name__, exc)
            raise PersistenceError(f"{func.__name__} failed: {exc}") from exc

    return wrapper


def _settings_from_row(row: asyncpg.Record) -> CycleSettings:
    return CycleSettings(
        user_id=row["user_id"],
        average_cycle_length=row["average_cycle_length"],
        average_period_length=row["average_period_length"],
        last_period_start=row["last_period_start"],
        notifications_enabled=row["notifications_enabled"],
    )


def _period_from_row(row: asyncpg.Record) -> PeriodLog:
    return PeriodLog(
        id=str(row["period_id"]),
        user_id=row["user_id"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        flow=FlowLevel(row["flow"] or FlowLevel.medium.value),
        notes=row["notes"],
    )


def _daily_from_row(row: asyncpg.Record) -> DailyLog:
    return DailyLog(
        user_id=row["user_id"],
        date=row["log_date"],
        flow=FlowLevel(row["flow"]) if row["flow"] else None,
        symptoms=set(row["symptoms"] or []),
        notes=row["notes"],
        mood=row["mood"],
    )


class PostgresCycleStore(CycleStore):
    """CycleStore on the shared asyncpg pool (see ``src.services.database``)."""

    @_wrap_errors
    async def fetch_settings(self, user_id: str) -> CycleSettings | None:
        row = await fetchrow(
            "SELECT * FROM cycle_settings WHERE user_id = $1",
            user_id,
            user_id=user_id,
        )
        return _settings_from_row(row) if row else None

    @_wrap_errors
    async def save_settings(self, settings: CycleSettings) -> None:
        await execute(
            """
            INSERT INTO cycle_settings (
                user_id, average_cycle_length, average_period_length,
                last_period_start, notifications_enabled
            ) VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (user_id) DO UPDATE SET
                average_cycle_length = EXCLUDED.average_cycle_length,
                average_period_length = EXCLUDED.average_period_length,
                last_period_start = EXCLUDED.last_period_start,
                notifications_enabled = EXCLUDED.notifications_enabled,
                updated_at = NOW()
            """,
            settings.user_id,
            settings.average_cycle_length,
            settings.average_period_length,
            settings.last_period_start,
            settings.notifications_enabled,
            user_id=settings.user_id,
        )

    @_wrap_errors
    async def fetch_recent_periods(self, user_id: str, count: int) -> list[PeriodLog]:
        rows = await fetch(
            """
            SELECT * FROM period_logs WHERE user_id = $1
            ORDER BY start_date DESC, created_at DESC LIMIT $2
            """,
            user_id, count,
            user_id=user_id,
        )
        return [_period_from_row(r) for r in rows]

    @_wrap_errors
    async def add_period(self, log: PeriodLog) -> str:
        period_id = await fetchval(
            """
            INSERT INTO period_logs (period_id, user_id, start_date, end_date, flow, notes)
            VALUES (gen_random_uuid(), $1, $2, $3, $4, $5)
            RETURNING period_id
            """,
            log.user_id, log.start_date, log.end_date, FlowLevel(log.flow).value, log.notes,
            user_id=log.user_id,
        )
        return str(period_id)

    @_wrap_errors
    async def fetch_daily_logs(
        self, user_id: str, range_start: date, range_end: date
    ) -> list[DailyLog]:
        rows = await fetch(
            """
            SELECT * FROM cycle_daily_logs
            WHERE user_id = $1 AND log_date >= $2 AND log_date <= $3
            ORDER BY log_date
            """,
            user_id, range_start, range_end,
            user_id=user_id,
        )
        return [_daily_from_row(r) for r in rows]

    @_wrap_errors
    async def upsert_daily_log(self, log: DailyLog) -> DailyLog:
        row = await fetchrow(
            """
            INSERT INTO cycle_daily_logs (user_id, log_date, flow, symptoms, mood, notes)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (user_id, log_date) DO UPDATE SET
                flow = EXCLUDED.flow,
                symptoms = EXCLUDED.symptoms,
                mood = EXCLUDED.mood,
                notes = EXCLUDED.notes,
                updated_at = NOW()
            RETURNING *
            """,
            log.user_id,
            log.date,
            log.flow.value if log.flow else None,
            sorted(log.symptoms),
            log.mood,
            log.notes,
            user_id=log.user_id,
        )
        return _daily_from_row(row)
