"""Liveness probe — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import asyncpg
from fastapi import APIRouter

from src.cycle.config_loader import get_cycle_config
from src.dependencies import AppSettings
from src.services.database import fetchval

router = APIRouter(tags=["system"])
logger = logging.getLogger("aunouri.health")


@router.get("/health")
async def health_check(settings: AppSettings) -> dict:
    """Return 200 while the process is up, reporting database reachability.

    The cycle view keeps working on defaults when the database is down, so an
    unreachable database reports ``degraded`` rather than failing the probe.
    """
    try:
        db_ok = await fetchval("SELECT 1") == 1
    except (asyncpg.PostgresError, OSError, RuntimeError) as exc:
        logger.warning("Health check DB probe failed: %s", exc)
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "cycle_config": get_cycle_config().version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
