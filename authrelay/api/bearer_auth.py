"""Bearer authentication dependency for website-facing API routes."""

from __future__ import annotations

import hashlib
import secrets
from typing import Annotated, cast

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from authrelay.config.settings import AppSettings

_bearer_scheme = HTTPBearer(auto_error=False)


async def require_bearer_auth(
    request: Request,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(_bearer_scheme),
    ],
) -> None:
    """Require the configured website API token on protected routes."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized_error()

    expected_token = _resolve_settings(request=request).website_api_token
    if expected_token is None:
        raise _unauthorized_error()

    presented_digest = compute_token_sha256_digest(token=credentials.credentials)
    expected_digest = compute_token_sha256_digest(token=expected_token)
    if not secrets.compare_digest(expected_digest, presented_digest):
        raise _unauthorized_error()


def compute_token_sha256_digest(*, token: str) -> str:
    """Hash a bearer token so comparison time does not depend on its length."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _resolve_settings(*, request: Request) -> AppSettings:
    """Load app settings from FastAPI state with explicit failure mode."""
    request_obj = cast("object", request)
    app_obj = cast("object", getattr(request_obj, "app", None))
    state_obj = cast("object", getattr(app_obj, "state", None))
    settings_obj = getattr(state_obj, "settings", None)
    if not isinstance(settings_obj, AppSettings):
        message = "Missing app settings: app.state.settings."
        raise TypeError(message)
    return settings_obj


def _unauthorized_error() -> HTTPException:
    """Build deterministic unauthorized error for bearer auth failures."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized.",
        headers={"WWW-Authenticate": "Bearer"},
    )
