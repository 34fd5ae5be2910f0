"""Tests for login session compare-and-set transitions."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from authrelay.storage import (
    LOGIN_SESSION_TTL_SECONDS,
    RESOLUTION_TIMEOUT,
    RESOLUTION_USER,
    STATUS_APPROVED,
    STATUS_DENIED,
    STATUS_PENDING,
    LoginSessionsRepositoryError,
)

if TYPE_CHECKING:
    from authrelay.storage import LoginSessionsRepository
    from tests.mocks.fake_clock import FakeClock

OWNER = "5550001"
CONTEXT = {"ip": "203.0.113.9", "device": "Pixel 8"}


@pytest.mark.asyncio
async def test_create_session_persists_pending_row_with_ttl(
    sessions_repository: LoginSessionsRepository,
    clock: FakeClock,
) -> None:
    """Ensure new sessions start pending and expire after the login TTL."""
    record = await sessions_repository.create_session(
        alert_id="alert-1",
        owner_identity=OWNER,
        context=CONTEXT,
    )

    if record.status != STATUS_PENDING or record.resolution is not None:
        raise AssertionError
    if record.expires_at != clock.value + LOGIN_SESSION_TTL_SECONDS:
        raise AssertionError
    fetched = await sessions_repository.get_session(alert_id="alert-1")
    if fetched is None or fetched.context != CONTEXT:
        raise AssertionError


@pytest.mark.asyncio
async def test_transition_status_applies_only_once_under_racing_callers(
    sessions_repository: LoginSessionsRepository,
) -> None:
    """Ensure exactly one of several concurrent transitions wins the CAS."""
    _ = await sessions_repository.create_session(
        alert_id="alert-race",
        owner_identity=OWNER,
        context=CONTEXT,
    )

    results = await asyncio.gather(
        *(
            sessions_repository.transition_status(
                alert_id="alert-race",
                status=STATUS_APPROVED if index % 2 == 0 else STATUS_DENIED,
                resolution=RESOLUTION_USER,
            )
            for index in range(6)
        ),
    )

    winners = [result for result in results if result is not None]
    if len(winners) != 1:
        raise AssertionError
    stored = await sessions_repository.get_session(alert_id="alert-race")
    if stored is None or stored.status != winners[0].status:
        raise AssertionError


@pytest.mark.asyncio
async def test_live_transition_is_refused_after_expiry(
    sessions_repository: LoginSessionsRepository,
    clock: FakeClock,
) -> None:
    """Ensure `live` transitions never apply once the TTL has elapsed."""
    _ = await sessions_repository.create_session(
        alert_id="alert-late",
        owner_identity=OWNER,
        context=CONTEXT,
    )
    clock.advance(LOGIN_SESSION_TTL_SECONDS)

    approved = await sessions_repository.transition_status(
        alert_id="alert-late",
        status=STATUS_APPROVED,
        resolution=RESOLUTION_USER,
        expiry="live",
    )
    timed_out = await sessions_repository.transition_status(
        alert_id="alert-late",
        status=STATUS_DENIED,
        resolution=RESOLUTION_TIMEOUT,
        expiry="expired",
    )

    if approved is not None:
        raise AssertionError
    if timed_out is None or timed_out.resolution != RESOLUTION_TIMEOUT:
        raise AssertionError


@pytest.mark.asyncio
async def test_transition_rejects_non_terminal_target(
    sessions_repository: LoginSessionsRepository,
) -> None:
    """Ensure callers cannot move a session back to pending."""
    with pytest.raises(LoginSessionsRepositoryError):
        _ = await sessions_repository.transition_status(
            alert_id="alert-1",
            status=STATUS_PENDING,
            resolution=RESOLUTION_USER,
        )


@pytest.mark.asyncio
async def test_attach_message_records_message_id(
    sessions_repository: LoginSessionsRepository,
) -> None:
    """Ensure the controls message id is stored on the session."""
    _ = await sessions_repository.create_session(
        alert_id="alert-msg",
        owner_identity=OWNER,
        context=CONTEXT,
    )

    updated = await sessions_repository.attach_message(
        alert_id="alert-msg",
        message_id=42,
    )
    missing = await sessions_repository.attach_message(
        alert_id="alert-unknown",
        message_id=42,
    )

    if updated is None or updated.message_id != 42:  # noqa: PLR2004
        raise AssertionError
    if missing is not None:
        raise AssertionError
