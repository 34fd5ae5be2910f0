"""Tests for outbound Telethon notifications and delivery error mapping."""

from __future__ import annotations

import pytest

from authrelay.errors import DeliveryError
from authrelay.telegram import InlineControl, TelethonNotificationDispatcher
from tests.mocks.fake_bot_client import FakeBotClient


def _dispatcher(client: FakeBotClient | None) -> TelethonNotificationDispatcher:
    return TelethonNotificationDispatcher(client_provider=lambda: client)


@pytest.mark.asyncio
async def test_send_text_uses_markdown_and_numeric_peer() -> None:
    client = FakeBotClient(connected=True)

    message_id = await _dispatcher(client).send_text("1000001", "**hi**")

    if message_id != 1:
        raise AssertionError
    sent = client.sent[0]
    if sent["entity"] != 1000001 or sent["parse_mode"] != "md":
        raise AssertionError


@pytest.mark.asyncio
async def test_send_interactive_puts_one_button_per_row() -> None:
    """Ensure each inline control becomes its own keyboard row."""
    client = FakeBotClient(connected=True)
    controls = [
        InlineControl(label="Yes", payload="login_confirm_a"),
        InlineControl(label="No", payload="login_deny_a"),
    ]

    _ = await _dispatcher(client).send_interactive("1000001", "Login?", controls)

    buttons = client.sent[0]["buttons"]
    if not isinstance(buttons, list) or len(buttons) != len(controls):
        raise AssertionError
    if any(len(row) != 1 for row in buttons):
        raise AssertionError


@pytest.mark.asyncio
async def test_retract_controls_clears_buttons() -> None:
    client = FakeBotClient(connected=True)

    await _dispatcher(client).retract_controls("1000001", 7, "done")

    if client.edited != [
        {"entity": 1000001, "message": 7, "text": "done", "buttons": None},
    ]:
        raise AssertionError


@pytest.mark.asyncio
@pytest.mark.parametrize("client", [None, FakeBotClient(connected=False)])
async def test_missing_or_disconnected_client_raises(
    client: FakeBotClient | None,
) -> None:
    """Ensure sends fail with DeliveryError when no live bot is available."""
    with pytest.raises(DeliveryError):
        _ = await _dispatcher(client).send_text("1000001", "hello")


@pytest.mark.asyncio
async def test_unknown_peer_maps_to_delivery_error() -> None:
    """Ensure Telethon's unknown-entity failure surfaces as DeliveryError."""
    client = FakeBotClient(
        connected=True,
        fail_with=ValueError("Could not find the input entity"),
    )
    dispatcher = _dispatcher(client)

    with pytest.raises(DeliveryError):
        _ = await dispatcher.send_link("1000001", "Connect", "Open", "https://x.test")
    with pytest.raises(DeliveryError):
        await dispatcher.retract_controls("1000001", 3, "gone")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        ConnectionError("Connection to Telegram failed 5 time(s)"),
        TimeoutError(),
        OSError("Network is unreachable"),
    ],
)
async def test_network_failures_map_to_delivery_error(failure: Exception) -> None:
    """Ensure a dropped connection surfaces as DeliveryError, not a crash."""
    client = FakeBotClient(connected=True, fail_with=failure)
    dispatcher = _dispatcher(client)

    with pytest.raises(DeliveryError):
        _ = await dispatcher.send_text("1000001", "hello")
    with pytest.raises(DeliveryError):
        await dispatcher.retract_controls("1000001", 3, "gone")
