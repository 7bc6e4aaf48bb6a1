"""AuNouri cycle API — FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8000
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import get_settings
from src.cycle.config_loader import get_cycle_config
from src.routers import cycle, health
from src.services.database import close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("aunouri")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings = get_settings()
    logging.getLogger("aunouri").setLevel(settings.log_level.upper())
    logger.info(
        "Starting AuNouri API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    # Validate cycle_config.yaml before serving
    get_cycle_config()
    await init_pool(settings)
    yield
    await close_pool()
    logger.info("AuNouri API shut down")


# ---------- App factory ----------

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="AuNouri API",
        description="Cycle phase inference, predictions and calendar projection.",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check lives outside the v1 prefix
    app.include_router(health.router)
    app.include_router(cycle.router, prefix="/api/v1")

    return app


app = create_app()
