"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.cycle.base import CycleStore
from src.cycle.service import CycleService
from src.services.cycle_store import PostgresCycleStore


@dataclass(frozen=True)
class AuthContext:
    """Authenticated user context provided by the identity layer."""

    user_id: str
    email: str | None = None
    session_id: str | None = None


async def get_current_user(request: Request) -> AuthContext:
    """Return the authenticated user from the request state.

    The identity layer in front of the API sets ``request.state.auth``
    before routes run.
    """
    auth: AuthContext | None = getattr(request.state, "auth", None)
    if auth is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth


def get_cycle_store() -> CycleStore:
    return PostgresCycleStore()


def get_cycle_service(
    store: Annotated[CycleStore, Depends(get_cycle_store)],
) -> CycleService:
    """A fresh, stateless service per request."""
    return CycleService(store)


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
AppSettings = Annotated[Settings, Depends(get_settings)]
CycleServiceDep = Annotated[CycleService, Depends(get_cycle_service)]
