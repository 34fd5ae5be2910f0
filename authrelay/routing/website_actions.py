"""Dispatch of website-originated actions to the OTP issuer and login alerts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from authrelay.auth.identity import normalize_identity
from authrelay.errors import BadRequestError, UnauthorizedError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from authrelay.auth.login_alerts import LoginAlertCoordinator
    from authrelay.auth.otp_issuer import OtpIssuer

ACTION_REQUEST_OTP: Final = "request_otp"
ACTION_LOGIN_ALERT: Final = "login_alert"
ACTION_ADMIN_REQUEST_OTP: Final = "admin_request_otp"
ACTION_VERIFY_OTP: Final = "verify_otp"
ACTION_RESOLVE_LOGIN_ALERT: Final = "resolve_login_alert"

# Website payload key -> stored login context key.
LOGIN_CONTEXT_FIELDS: tuple[tuple[str, str], ...] = (
    ("ipAddress", "ip"),
    ("device", "device"),
    ("browser", "browser"),
    ("os", "os"),
    ("location", "location"),
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WebsiteActionRequest:
    """One decoded `/api/bot-action` call."""

    action: str
    recipient_identity: object
    caller_identity: object | None = None
    payload: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class WebsiteActionResult:
    message: str
    alert_id: str | None = None
    alert_status: str | None = None
    resolution: str | None = None


if TYPE_CHECKING:
    _ActionHandler = Callable[[WebsiteActionRequest], Awaitable[WebsiteActionResult]]


class WebsiteActionRouter:
    """Route website actions by tag; unknown tags are rejected."""

    _otp_issuer: OtpIssuer
    _login_alerts: LoginAlertCoordinator
    _admin_identity: str | None
    _handlers: dict[str, _ActionHandler]

    def __init__(
        self,
        *,
        otp_issuer: OtpIssuer,
        login_alerts: LoginAlertCoordinator,
        admin_identity: str | None,
    ) -> None:
        self._otp_issuer = otp_issuer
        self._login_alerts = login_alerts
        self._admin_identity = admin_identity
        self._handlers = {
            ACTION_REQUEST_OTP: self._request_otp,
            ACTION_LOGIN_ALERT: self._login_alert,
            ACTION_ADMIN_REQUEST_OTP: self._admin_request_otp,
            ACTION_VERIFY_OTP: self._verify_otp,
            ACTION_RESOLVE_LOGIN_ALERT: self._resolve_login_alert,
        }

    async def dispatch(self, request: WebsiteActionRequest) -> WebsiteActionResult:
        """Run the handler registered for `request.action`."""
        handler = self._handlers.get(request.action)
        if handler is None:
            raise BadRequestError.for_unknown_action(request.action)
        logger.info("Website action %s", request.action)
        return await handler(request)

    async def _request_otp(self, request: WebsiteActionRequest) -> WebsiteActionResult:
        website_data = request.payload.get("websiteData")
        context_data = (
            {str(key): str(value) for key, value in website_data.items()}
            if isinstance(website_data, dict)
            else None
        )
        _ = await self._otp_issuer.issue_otp(
            recipient_identity=request.recipient_identity,
            purpose=_optional_str(request.payload, "purpose"),
            context_data=context_data,
        )
        return WebsiteActionResult(message="OTP sent")

    async def _login_alert(self, request: WebsiteActionRequest) -> WebsiteActionResult:
        context = {
            context_key: value
            for payload_key, context_key in LOGIN_CONTEXT_FIELDS
            if (value := _optional_str(request.payload, payload_key)) is not None
        }
        record = await self._login_alerts.create_login_alert(
            owner_identity=request.recipient_identity,
            context=context,
        )
        return WebsiteActionResult(
            message="Login alert sent",
            alert_id=record.alert_id,
            alert_status=record.status,
        )

    async def _admin_request_otp(
        self,
        request: WebsiteActionRequest,
    ) -> WebsiteActionResult:
        self._require_admin(request.caller_identity)
        _ = await self._otp_issuer.issue_admin_otp(
            recipient_identity=request.recipient_identity,
            purpose=_optional_str(request.payload, "purpose"),
        )
        return WebsiteActionResult(message="Admin requested OTP sent")

    async def _verify_otp(self, request: WebsiteActionRequest) -> WebsiteActionResult:
        code = _required_str(request.payload, "code")
        _ = await self._otp_issuer.verify_otp(
            recipient_identity=request.recipient_identity,
            code=code,
            purpose=_optional_str(request.payload, "purpose"),
        )
        return WebsiteActionResult(message="OTP verified")

    async def _resolve_login_alert(
        self,
        request: WebsiteActionRequest,
    ) -> WebsiteActionResult:
        outcome = await self._login_alerts.resolve_login_alert(
            alert_id=_required_str(request.payload, "alertId"),
            action=_required_str(request.payload, "decision"),
            responding_identity=request.recipient_identity,
        )
        message = (
            f"Login alert {outcome.status}"
            if outcome.changed
            else f"Login alert already {outcome.status}"
        )
        return WebsiteActionResult(
            message=message,
            alert_id=outcome.alert_id,
            alert_status=outcome.status,
            resolution=outcome.resolution,
        )

    def _require_admin(self, caller_identity: object | None) -> None:
        if self._admin_identity is None or caller_identity is None:
            raise UnauthorizedError.for_admin_action()
        try:
            caller = normalize_identity(caller_identity)
        except ValidationError as exc:
            raise UnauthorizedError.for_admin_action() from exc
        if caller != self._admin_identity:
            raise UnauthorizedError.for_admin_action()


def _optional_str(payload: Mapping[str, object], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, str | int):
        raise ValidationError.for_missing_field(key)
    cleaned = str(value).strip()
    return cleaned or None


def _required_str(payload: Mapping[str, object], key: str) -> str:
    value = _optional_str(payload, key)
    if value is None:
        raise ValidationError.for_missing_field(key)
    return value
