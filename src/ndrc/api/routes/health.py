"""Liveness endpoint for the NDRC case service."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ndrc import NDRC_VERSION
from ndrc.services.correlation import Clock, SystemClock

router = APIRouter(tags=["Health"])


class HealthStatus(BaseModel):
    status: str
    service: str
    version: str
    time: datetime


@router.get("/health", response_model=HealthStatus)
def get_health(request: Request) -> HealthStatus:
    """Report that the process is serving, without calling EIS or file transfer.

    The service name is the configured audit source, so a health check shows
    which deployment answered. The time comes from the app's clock.
    """
    state = request.app.state
    clock: Clock = getattr(state, "clock", None) or SystemClock()
    config = getattr(state, "config", None)
    return HealthStatus(
        status="ok",
        service=config.app_name if config is not None else "unknown",
        version=NDRC_VERSION,
        time=clock.now(),
    )
