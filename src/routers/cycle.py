"""Endpoints for cycle tracking: settings, today's phase, month calendar,
period history and daily logs."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Path, Query

from src.cycle.base import (
    CalendarDayProjection,
    CycleValidationError,
    DailyLog,
    PersistenceError,
)
from src.dependencies import CurrentUser, CycleServiceDep
from src.models.base import ErrorDetail
from src.models.cycle import (
    CalendarDayRead,
    CalendarMonthRead,
    CycleInfoRead,
    CycleSettingsRead,
    CycleSettingsUpdate,
    DailyLogRead,
    DailyLogUpsert,
    PeriodLogCreate,
    PeriodLogCreated,
    PeriodLogRead,
    PhaseGuidanceRead,
)

router = APIRouter(prefix="/cycle", tags=["cycle"])
logger = logging.getLogger("aunouri.routers.cycle")

_WRITE_ERRORS = {
    422: {"model": ErrorDetail, "description": "Rejected by validation"},
    503: {"model": ErrorDetail, "description": "Store unavailable"},
}


def _daily_read(log: DailyLog) -> DailyLogRead:
    return DailyLogRead(
        user_id=log.user_id,
        date=log.date,
        flow=log.flow,
        symptoms=sorted(log.symptoms),
        mood=log.mood,
        notes=log.notes,
    )


def _day_read(cell: CalendarDayProjection) -> CalendarDayRead:
    return CalendarDayRead(
        day=cell.day,
        date=cell.date,
        phase=cell.phase,
        cycle_day=cell.cycle_day,
        is_period=cell.is_period,
        is_fertile=cell.is_fertile,
        is_today=cell.is_today,
        is_logged=cell.is_logged,
        is_predicted=cell.is_predicted,
        daily_log=_daily_read(cell.daily_log) if cell.daily_log else None,
    )


def _write_failed(exc: PersistenceError) -> HTTPException:
    logger.warning("Cycle write failed: %s", exc)
    return HTTPException(status_code=503, detail="Could not save, please try again")


# ---------- Settings ----------

@router.get("/settings", response_model=CycleSettingsRead)
async def get_settings(user: CurrentUser, service: CycleServiceDep) -> Any:
    return await service.get_settings(user.user_id)


@router.patch("/settings", response_model=CycleSettingsRead, responses=_WRITE_ERRORS)
async def update_settings(
    user: CurrentUser, service: CycleServiceDep, body: CycleSettingsUpdate
) -> Any:
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        return await service.update_settings(user.user_id, **updates)
    except CycleValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    except PersistenceError as exc:
        raise _write_failed(exc) from exc


# ---------- Today ----------

@router.get("/today", response_model=CycleInfoRead)
async def get_today(
    user: CurrentUser,
    service: CycleServiceDep,
    today: date | None = Query(default=None, description="Client's local date"),
) -> Any:
    info = await service.get_cycle_info(user.user_id, today=today)
    guidance = service.get_phase_guidance(info.current_phase)
    return CycleInfoRead(
        **{k: getattr(info, k) for k in CycleInfoRead.model_fields if k != "guidance"},
        guidance=PhaseGuidanceRead.model_validate(guidance),
    )


# ---------- Calendar ----------

@router.get("/calendar/{year}/{month}", response_model=CalendarMonthRead)
async def get_calendar(
    user: CurrentUser,
    service: CycleServiceDep,
    year: int = Path(ge=1, le=9999),
    month: int = Path(ge=1, le=12),
    today: date | None = Query(default=None, description="Client's local date"),
) -> Any:
    cells = await service.get_month_calendar(user.user_id, year, month, today=today)
    return CalendarMonthRead(year=year, month=month, days=[_day_read(c) for c in cells])


# ---------- Periods ----------

@router.get("/periods", response_model=list[PeriodLogRead])
async def list_periods(
    user: CurrentUser,
    service: CycleServiceDep,
    limit: int | None = Query(default=None, ge=1, le=100),
) -> Any:
    return await service.get_recent_periods(user.user_id, count=limit)


@router.post(
    "/periods", response_model=PeriodLogCreated, status_code=201, responses=_WRITE_ERRORS
)
async def log_period(user: CurrentUser, service: CycleServiceDep, body: PeriodLogCreate) -> Any:
    try:
        period_id = await service.log_period_start(
            user.user_id,
            body.start_date,
            body.flow,
            end_date=body.end_date,
            notes=body.notes,
        )
    except CycleValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    except PersistenceError as exc:
        raise _write_failed(exc) from exc
    return PeriodLogCreated(period_id=period_id)


# ---------- Daily logs ----------

@router.put("/days/{log_date}", response_model=DailyLogRead, responses=_WRITE_ERRORS)
async def log_day(
    log_date: date, user: CurrentUser, service: CycleServiceDep, body: DailyLogUpsert
) -> Any:
    fields = body.model_dump(exclude_unset=True)
    try:
        saved = await service.log_cycle_day(user.user_id, log_date, **fields)
    except CycleValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    except PersistenceError as exc:
        raise _write_failed(exc) from exc
    return _daily_read(saved)
