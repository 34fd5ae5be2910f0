"""Health check endpoint for application monitoring."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal, cast

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):
    """Stable response model for the unauthenticated health endpoint."""

    status: Literal["ok"]
    bot_connected: bool
    timestamp: datetime


@router.get("/health", tags=["monitoring"], response_model=HealthResponse)
async def get_health(request: Request) -> HealthResponse:
    """Return application health, bot connectivity and current timestamp."""
    dependencies = getattr(cast("object", request.app.state), "dependencies", None)
    telegram = getattr(dependencies, "telegram", None)
    bot_connected = getattr(telegram, "is_connected", False)
    return HealthResponse(
        status="ok",
        bot_connected=bot_connected is True,
        timestamp=datetime.now(tz=UTC),
    )
