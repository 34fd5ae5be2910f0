"""Website-facing endpoint that relays OTP and login alert actions."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from authrelay.api.services import resolve_services
from authrelay.routing import WebsiteActionRequest

router = APIRouter()


class BotActionRequest(BaseModel):
    """Payload posted by the website backend."""

    model_config = ConfigDict(populate_by_name=True)

    action: str = Field(min_length=1)
    recipient_identity: str | int = Field(
        validation_alias=AliasChoices("recipientIdentity", "telegramId"),
    )
    caller_identity: str | int | None = Field(
        default=None,
        validation_alias=AliasChoices("callerIdentity", "adminId"),
    )
    payload: dict[str, object] = Field(default_factory=dict)


class BotActionResponse(BaseModel):
    """Uniform `{status, message}` envelope, plus alert fields when relevant."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["success", "error"]
    message: str
    alert_id: str | None = Field(default=None, serialization_alias="alertId")
    alert_status: str | None = Field(default=None, serialization_alias="alertStatus")
    resolution: str | None = None


@router.post(
    "/api/bot-action",
    tags=["relay"],
    response_model=BotActionResponse,
    response_model_exclude_none=True,
)
async def post_bot_action(
    payload: BotActionRequest,
    request: Request,
) -> BotActionResponse:
    """Run one website action; relay errors are rendered by the app handlers."""
    services = resolve_services(request)
    result = await services.website_actions.dispatch(
        WebsiteActionRequest(
            action=payload.action,
            recipient_identity=payload.recipient_identity,
            caller_identity=payload.caller_identity,
            payload=payload.payload,
        ),
    )
    return BotActionResponse(
        status="success",
        message=result.message,
        alert_id=result.alert_id,
        alert_status=result.alert_status,
        resolution=result.resolution,
    )
