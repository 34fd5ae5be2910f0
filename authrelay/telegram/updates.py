"""Transport-neutral views of inbound Telegram updates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    """A private text message sent to the bot."""

    identity: str
    text: str
    display_name: str
    username: str | None = None


@dataclass(frozen=True, slots=True)
class IncomingCallback:
    """An inline button press; `data` is the raw callback payload."""

    identity: str
    data: bytes


class UpdateHandlerProtocol(Protocol):
    """Consumer of decoded bot updates."""

    async def handle_message(self, message: IncomingMessage) -> None:
        """Process one inbound text message."""
        ...

    async def handle_callback(self, callback: IncomingCallback) -> str:
        """Process one button press and return the toast text to show."""
        ...
