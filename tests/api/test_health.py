"""Tests for the /health endpoint."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, cast

from authrelay.api.app import REQUEST_ID_HEADER

if TYPE_CHECKING:
    from fastapi.testclient import TestClient


def test_get_health_returns_ok_without_auth(client: TestClient) -> None:
    """Ensure GET /health is public and reports the idle bot as disconnected."""
    response = client.get("/health")

    if response.status_code != HTTPStatus.OK:
        raise AssertionError
    data = cast("dict[str, object]", response.json())
    if data["status"] != "ok" or data["bot_connected"] is not False:
        raise AssertionError
    if "timestamp" not in data:
        raise AssertionError


def test_request_id_is_echoed_or_generated(client: TestClient) -> None:
    """Ensure every response carries a correlation id header."""
    echoed = client.get("/health", headers={REQUEST_ID_HEADER: "req-42"})
    generated = client.get("/health")

    if echoed.headers.get(REQUEST_ID_HEADER) != "req-42":
        raise AssertionError
    if not generated.headers.get(REQUEST_ID_HEADER):
        raise AssertionError
