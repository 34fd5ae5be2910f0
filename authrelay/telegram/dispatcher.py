"""Outbound Telegram notifications sent through the Telethon bot client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from telethon import Button
from telethon.errors import (
    InputUserDeactivatedError,
    MessageNotModifiedError,
    PeerIdInvalidError,
    RPCError,
    UserIsBlockedError,
)

from authrelay.errors import DeliveryError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InlineControl:
    """One inline keyboard button carrying a callback payload."""

    label: str
    payload: str


class NotificationDispatcher(Protocol):
    """Send and edit user-facing messages; failures raise `DeliveryError`."""

    async def send_text(self, identity: str, text: str) -> int:
        """Send a text-only message and return its message id."""
        ...

    async def send_interactive(
        self,
        identity: str,
        text: str,
        controls: Sequence[InlineControl],
    ) -> int:
        """Send a message with one inline button per row."""
        ...

    async def retract_controls(self, identity: str, message_id: int, text: str) -> None:
        """Replace a message's text and remove its inline buttons."""
        ...

    async def send_menu(
        self,
        identity: str,
        text: str,
        layout: Sequence[Sequence[str]],
    ) -> int:
        """Send a message with a persistent reply keyboard."""
        ...

    async def send_link(self, identity: str, text: str, label: str, url: str) -> int:
        """Send a message with a single URL button."""
        ...


class BotClientProtocol(Protocol):
    """Telethon client surface used for outbound messages."""

    async def send_message(
        self,
        entity: object,
        message: str = "",
        *,
        parse_mode: str | None = ...,
        buttons: object = None,
    ) -> object:
        """Send a message to an entity."""
        ...

    async def edit_message(
        self,
        entity: object,
        message: object = None,
        text: str | None = None,
        *,
        parse_mode: str | None = ...,
        buttons: object = None,
    ) -> object:
        """Edit an existing message."""
        ...

    def is_connected(self) -> bool:
        """Return True when the client is currently connected."""
        ...


_UNREACHABLE_ERRORS: tuple[type[Exception], ...] = (
    UserIsBlockedError,
    PeerIdInvalidError,
    InputUserDeactivatedError,
)

# Raised by the MTProto connection itself when the network drops mid-request.
_TRANSPORT_ERRORS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    OSError,
)


class TelethonNotificationDispatcher:
    """Deliver notifications through whichever bot client is currently live."""

    _client_provider: Callable[[], BotClientProtocol | None]

    def __init__(self, client_provider: Callable[[], BotClientProtocol | None]) -> None:
        self._client_provider = client_provider

    async def send_text(self, identity: str, text: str) -> int:
        return await self._send(identity, text, buttons=None)

    async def send_interactive(
        self,
        identity: str,
        text: str,
        controls: Sequence[InlineControl],
    ) -> int:
        buttons = [
            [Button.inline(control.label, data=control.payload.encode("utf-8"))]
            for control in controls
        ]
        return await self._send(identity, text, buttons=buttons)

    async def retract_controls(self, identity: str, message_id: int, text: str) -> None:
        client = self._require_client()
        try:
            _ = await client.edit_message(
                int(identity),
                message_id,
                text,
                parse_mode="md",
                buttons=None,
            )
        except MessageNotModifiedError:
            logger.debug("Alert message %s already retracted", message_id)
        except (*_UNREACHABLE_ERRORS, ValueError) as exc:
            raise DeliveryError.for_recipient(identity, details=str(exc)) from exc
        except RPCError as exc:
            raise DeliveryError.for_recipient(identity, details=exc.message) from exc
        except _TRANSPORT_ERRORS as exc:
            raise DeliveryError.for_recipient(
                identity,
                details=str(exc) or type(exc).__name__,
            ) from exc

    async def send_menu(
        self,
        identity: str,
        text: str,
        layout: Sequence[Sequence[str]],
    ) -> int:
        buttons = [[Button.text(label, resize=True) for label in row] for row in layout]
        return await self._send(identity, text, buttons=buttons)

    async def send_link(self, identity: str, text: str, label: str, url: str) -> int:
        return await self._send(identity, text, buttons=[[Button.url(label, url)]])

    async def _send(self, identity: str, text: str, *, buttons: object) -> int:
        client = self._require_client()
        try:
            message = await client.send_message(
                int(identity),
                text,
                parse_mode="md",
                buttons=buttons,
            )
        except (*_UNREACHABLE_ERRORS, ValueError) as exc:
            # ValueError: Telethon has never seen this user, so it has no
            # access hash for them.
            raise DeliveryError.for_recipient(identity, details=str(exc)) from exc
        except RPCError as exc:
            raise DeliveryError.for_recipient(identity, details=exc.message) from exc
        except _TRANSPORT_ERRORS as exc:
            raise DeliveryError.for_recipient(
                identity,
                details=str(exc) or type(exc).__name__,
            ) from exc
        message_id = getattr(message, "id", None)
        if not isinstance(message_id, int):
            raise DeliveryError.for_recipient(
                identity,
                details="no message id returned",
            )
        return message_id

    def _require_client(self) -> BotClientProtocol:
        client = self._client_provider()
        if client is None or not client.is_connected():
            raise DeliveryError.bot_unavailable()
        return client
