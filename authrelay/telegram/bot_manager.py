"""Telethon bot client lifecycle and inbound update wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from telethon import TelegramClient, events

from authrelay.config.logging import bind_correlation_id, reset_correlation_id
from authrelay.telegram.updates import IncomingCallback, IncomingMessage

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from authrelay.config.settings import AppSettings
    from authrelay.telegram.updates import UpdateHandlerProtocol

logger = logging.getLogger(__name__)


class BotClientManagerError(RuntimeError):
    """Base exception for bot client lifecycle operations."""

    @classmethod
    def missing_handler(cls) -> BotClientManagerError:
        """Build deterministic error for a bot started without an update handler."""
        return cls("Bot update handler must be attached before startup.")


@dataclass(frozen=True, slots=True)
class BotCredentials:
    """Everything needed to log the bot client in."""

    api_id: int
    api_hash: str
    bot_token: str
    session_path: Path

    @classmethod
    def from_settings(cls, settings: AppSettings) -> BotCredentials | None:
        """Return credentials, or None when the bot is not configured."""
        if (
            not settings.bot_enabled
            or settings.api_id is None
            or settings.api_hash is None
            or settings.bot_token is None
        ):
            return None
        return cls(
            api_id=settings.api_id,
            api_hash=settings.api_hash,
            bot_token=settings.bot_token,
            session_path=settings.bot_session_path,
        )


class BotClientProtocol(Protocol):
    """Telethon client surface used by the manager."""

    def add_event_handler(
        self,
        callback: Callable[..., object],
        event: object = None,
    ) -> None:
        """Register an update callback."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from Telegram."""
        ...

    def is_connected(self) -> bool:
        """Return True when the client is currently connected."""
        ...


class ClientFactoryProtocol(Protocol):
    """Factory for constructing the bot client from credentials."""

    def __call__(self, credentials: BotCredentials) -> BotClientProtocol:
        """Create a client for the supplied credentials."""
        ...


class StarterProtocol(Protocol):
    """Log a constructed client in as a bot."""

    async def __call__(self, client: BotClientProtocol, bot_token: str) -> None:
        """Connect and authorize `client`."""
        ...


def _telethon_client_factory(credentials: BotCredentials) -> BotClientProtocol:
    credentials.session_path.parent.mkdir(parents=True, exist_ok=True)
    return TelegramClient(
        str(credentials.session_path),
        credentials.api_id,
        credentials.api_hash,
    )


async def _telethon_starter(client: BotClientProtocol, bot_token: str) -> None:
    if not isinstance(client, TelegramClient):
        message = "Default bot starter requires a Telethon TelegramClient."
        raise BotClientManagerError(message)
    _ = await client.start(bot_token=bot_token)


@dataclass(slots=True)
class BotClientManager:
    """Own the single bot client and route its updates to a handler.

    With no credentials the manager stays idle; outbound sends then fail with
    `DeliveryError` and inbound updates never arrive.
    """

    credentials: BotCredentials | None = None
    client_factory: ClientFactoryProtocol = field(default=_telethon_client_factory)
    starter: StarterProtocol = field(default=_telethon_starter)
    handler: UpdateHandlerProtocol | None = None
    client: BotClientProtocol | None = None

    def attach_handler(self, handler: UpdateHandlerProtocol) -> None:
        """Set the consumer for inbound messages and button presses."""
        self.handler = handler

    async def startup(self) -> None:
        """Create, wire and log in the bot client."""
        if self.credentials is None:
            logger.info("Telegram bot disabled: credentials not configured")
            return
        if self.handler is None:
            raise BotClientManagerError.missing_handler()
        if self.client is None:
            self.client = self.client_factory(self.credentials)
            self.client.add_event_handler(
                self._on_message,
                events.NewMessage(incoming=True, func=_is_private),
            )
            self.client.add_event_handler(self._on_callback, events.CallbackQuery())
        await self.starter(self.client, self.credentials.bot_token)
        logger.info("Telegram bot connected")

    async def shutdown(self) -> None:
        """Disconnect the bot client if it was started."""
        if self.client is not None and self.client.is_connected():
            await self.client.disconnect()
            logger.info("Telegram bot disconnected")

    def get_client(self) -> BotClientProtocol | None:
        """Return the live client, if any."""
        return self.client

    @property
    def is_connected(self) -> bool:
        return self.client is not None and self.client.is_connected()

    async def _on_message(self, event: events.NewMessage.Event) -> None:
        handler = self.handler
        if handler is None:
            return
        sender = await event.get_sender()
        message = IncomingMessage(
            identity=str(event.sender_id),
            text=event.raw_text or "",
            display_name=_display_name(sender),
            username=getattr(sender, "username", None),
        )
        token = bind_correlation_id()
        try:
            await handler.handle_message(message)
        finally:
            reset_correlation_id(token)

    async def _on_callback(self, event: events.CallbackQuery.Event) -> None:
        handler = self.handler
        if handler is None:
            return
        callback = IncomingCallback(
            identity=str(event.sender_id),
            data=bytes(event.data or b""),
        )
        token = bind_correlation_id()
        try:
            toast = await handler.handle_callback(callback)
            await event.answer(toast)
        finally:
            reset_correlation_id(token)


def _is_private(event: object) -> bool:
    return bool(getattr(event, "is_private", False))


def _display_name(sender: object) -> str:
    first_name = getattr(sender, "first_name", None)
    if isinstance(first_name, str) and first_name.strip():
        return first_name.strip()
    username = getattr(sender, "username", None)
    if isinstance(username, str) and username:
        return username
    return "there"
