"""Tests for per-identity conversation steps with TTL."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from authrelay.storage import CONVERSATION_STEP_TTL_SECONDS

if TYPE_CHECKING:
    from authrelay.storage import ConversationStateRepository
    from tests.mocks.fake_clock import FakeClock

IDENTITY = "3330001"


@pytest.mark.asyncio
async def test_set_step_overwrites_and_clear_removes(
    conversations_repository: ConversationStateRepository,
) -> None:
    """Ensure each identity holds one step that can be replaced and cleared."""
    _ = await conversations_repository.set_step(identity=IDENTITY, step="first")
    _ = await conversations_repository.set_step(
        identity=IDENTITY,
        step="second",
        data={"target": "42"},
    )

    state = await conversations_repository.get_step(identity=IDENTITY)
    if state is None or state.step != "second" or state.data != {"target": "42"}:
        raise AssertionError
    if not await conversations_repository.clear(identity=IDENTITY):
        raise AssertionError
    if await conversations_repository.clear(identity=IDENTITY):
        raise AssertionError


@pytest.mark.asyncio
async def test_expired_step_reports_expiry(
    conversations_repository: ConversationStateRepository,
    clock: FakeClock,
) -> None:
    """Ensure a step past its TTL is reported as expired."""
    record = await conversations_repository.set_step(identity=IDENTITY, step="first")
    if record.is_expired_at(conversations_repository.now()):
        raise AssertionError
    clock.advance(CONVERSATION_STEP_TTL_SECONDS)

    state = await conversations_repository.get_step(identity=IDENTITY)
    if state is None or not state.is_expired_at(conversations_repository.now()):
        raise AssertionError
