"""Telegram bot client, outbound dispatch and message templates."""

from .bot_manager import (
    BotClientManager,
    BotClientManagerError,
    BotCredentials,
    ClientFactoryProtocol,
)
from .dispatcher import (
    BotClientProtocol,
    InlineControl,
    NotificationDispatcher,
    TelethonNotificationDispatcher,
)
from .updates import IncomingCallback, IncomingMessage, UpdateHandlerProtocol

__all__ = [
    "BotClientManager",
    "BotClientManagerError",
    "BotClientProtocol",
    "BotCredentials",
    "ClientFactoryProtocol",
    "IncomingCallback",
    "IncomingMessage",
    "InlineControl",
    "NotificationDispatcher",
    "TelethonNotificationDispatcher",
    "UpdateHandlerProtocol",
]
