"""Routing of website actions and bot interactions to the auth services."""

from .interactions import (
    STEP_ADMIN_OTP_PURPOSE,
    STEP_ADMIN_OTP_TARGET,
    InteractionRouter,
)
from .website_actions import (
    ACTION_ADMIN_REQUEST_OTP,
    ACTION_LOGIN_ALERT,
    ACTION_REQUEST_OTP,
    ACTION_RESOLVE_LOGIN_ALERT,
    ACTION_VERIFY_OTP,
    WebsiteActionRequest,
    WebsiteActionResult,
    WebsiteActionRouter,
)

__all__ = [
    "ACTION_ADMIN_REQUEST_OTP",
    "ACTION_LOGIN_ALERT",
    "ACTION_REQUEST_OTP",
    "ACTION_RESOLVE_LOGIN_ALERT",
    "ACTION_VERIFY_OTP",
    "STEP_ADMIN_OTP_PURPOSE",
    "STEP_ADMIN_OTP_TARGET",
    "InteractionRouter",
    "WebsiteActionRequest",
    "WebsiteActionResult",
    "WebsiteActionRouter",
]
