"""Login alert status lookup for the website's polling login page."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from authrelay.api.services import resolve_services

router = APIRouter()


class LoginAlertStatusResponse(BaseModel):
    """Current state of one login alert."""

    alert_id: str = Field(serialization_alias="alertId")
    status: str
    resolution: str | None
    created_at: int = Field(serialization_alias="createdAt")
    expires_at: int = Field(serialization_alias="expiresAt")
    resolved_at: int | None = Field(serialization_alias="resolvedAt")


@router.get(
    "/api/login-alerts/{alert_id}",
    tags=["relay"],
    response_model=LoginAlertStatusResponse,
)
async def get_login_alert_status(
    alert_id: str,
    request: Request,
) -> LoginAlertStatusResponse:
    """Return the alert status, timing it out first if its TTL has passed."""
    services = resolve_services(request)
    record = await services.login_alerts.get_login_alert(alert_id=alert_id)
    return LoginAlertStatusResponse(
        alert_id=record.alert_id,
        status=record.status,
        resolution=record.resolution,
        created_at=record.created_at,
        expires_at=record.expires_at,
        resolved_at=record.resolved_at,
    )
