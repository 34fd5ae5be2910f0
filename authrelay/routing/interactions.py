"""Handling of user messages and inline-button presses received by the bot."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from authrelay.auth.callback_data import (
    ConfirmLogin,
    DenyLogin,
    UnknownCallback,
    decode_callback,
)
from authrelay.auth.identity import normalize_identity
from authrelay.auth.login_alerts import ACTION_CONFIRM, ACTION_DENY
from authrelay.errors import (
    DeliveryError,
    ExpiredError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from authrelay.telegram import messages
from authrelay.telegram.updates import IncomingCallback, IncomingMessage

if TYPE_CHECKING:
    from authrelay.auth.login_alerts import LoginAlertCoordinator
    from authrelay.auth.otp_issuer import OtpIssuer
    from authrelay.storage.conversation_state_repo import (
        ConversationStateRecord,
        ConversationStateRepository,
    )
    from authrelay.storage.user_links_repo import UserLinksRepository
    from authrelay.storage.writer_queue import WriterQueueProtocol
    from authrelay.telegram.dispatcher import NotificationDispatcher

STEP_ADMIN_OTP_TARGET: Final = "admin_otp_target"
STEP_ADMIN_OTP_PURPOSE: Final = "admin_otp_purpose"

logger = logging.getLogger(__name__)


class InteractionRouter:
    """Turn bot updates into link, menu, admin OTP and login decision actions.

    Every failure is answered with a plain-language reply or toast; nothing
    raised here reaches Telethon except unexpected programming errors.
    """

    def __init__(
        self,
        *,
        links: UserLinksRepository,
        conversations: ConversationStateRepository,
        otp_issuer: OtpIssuer,
        login_alerts: LoginAlertCoordinator,
        dispatcher: NotificationDispatcher,
        writer_queue: WriterQueueProtocol,
        admin_identity: str | None,
        website_url: str | None,
        support_handle: str,
    ) -> None:
        self._links = links
        self._conversations = conversations
        self._otp_issuer = otp_issuer
        self._login_alerts = login_alerts
        self._dispatcher = dispatcher
        self._writer_queue = writer_queue
        self._admin_identity = admin_identity
        self._website_url = website_url
        self._support_handle = support_handle

    async def handle_message(self, message: IncomingMessage) -> None:
        text = message.text.strip()
        try:
            if text.startswith("/"):
                await self._handle_command(message, text)
                return
            state = await self._open_step(message.identity)
            if state is not None:
                await self._continue_admin_otp(message, state, text)
                return
            await self._handle_menu(message, text)
        except DeliveryError as exc:
            logger.warning("Reply to incoming message not delivered: %s", exc)

    async def handle_callback(self, callback: IncomingCallback) -> str:
        action = decode_callback(callback.data)
        match action:
            case ConfirmLogin(alert_id=alert_id):
                verb = ACTION_CONFIRM
            case DenyLogin(alert_id=alert_id):
                verb = ACTION_DENY
            case UnknownCallback(raw=raw):
                logger.info("Ignoring unknown callback payload of %d chars", len(raw))
                return messages.TOAST_UNKNOWN

        try:
            outcome = await self._login_alerts.resolve_login_alert(
                alert_id=alert_id,
                action=verb,
                responding_identity=callback.identity,
            )
        except NotFoundError:
            return messages.TOAST_NOT_FOUND
        except UnauthorizedError:
            return messages.TOAST_NOT_OWNER
        except ExpiredError:
            return messages.TOAST_EXPIRED
        except ValidationError:
            return messages.TOAST_UNKNOWN
        if not outcome.changed:
            return messages.TOAST_ALREADY_RESOLVED
        if verb == ACTION_CONFIRM:
            return messages.TOAST_CONFIRMED
        return messages.TOAST_DENIED

    async def _handle_command(self, message: IncomingMessage, text: str) -> None:
        head, _, rest = text.partition(" ")
        command = head.split("@", 1)[0].lower()
        argument = rest.strip()
        if command == "/start":
            if argument:
                await self._link_account(message)
            else:
                await self._start(message)
        elif command == "/admin_otp":
            await self._admin_otp(message, argument)
        elif command == "/cancel":
            await self._cancel(message)
        else:
            await self._fallback(message.identity)

    async def _link_account(self, message: IncomingMessage) -> None:
        # The start payload comes from the website's connect link; only its
        # presence matters, the bot trusts Telegram's sender id.
        existing = await self._links.get_link(identity=message.identity)
        if existing is not None and existing.is_blocked:
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.BLOCKED_TEXT,
            )
            return
        record = await self._writer_queue.submit(
            lambda: self._links.upsert_link(
                identity=message.identity,
                display_name=message.display_name,
                username=message.username,
            ),
        )
        if record.is_blocked:
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.BLOCKED_TEXT,
            )
            return
        logger.info("Telegram identity linked")
        _ = await self._dispatcher.send_text(
            message.identity,
            messages.LINK_SUCCESS_TEXT,
        )
        _ = await self._dispatcher.send_text(
            message.identity,
            messages.welcome_message(
                identity=message.identity,
                display_name=message.display_name,
            ),
        )
        await self._show_main_menu(message.identity)

    async def _start(self, message: IncomingMessage) -> None:
        record = await self._links.get_link(identity=message.identity)
        if record is not None and record.is_blocked:
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.BLOCKED_TEXT,
            )
            return
        if record is not None and record.is_linked:
            await self._show_main_menu(message.identity)
            return
        _ = await self._writer_queue.submit(
            lambda: self._links.record_contact(
                identity=message.identity,
                display_name=message.display_name,
                username=message.username,
            ),
        )
        if self._website_url is None:
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.CONNECT_PROMPT_TEXT,
            )
            return
        _ = await self._dispatcher.send_link(
            message.identity,
            messages.CONNECT_PROMPT_TEXT,
            messages.CONNECT_BUTTON_LABEL,
            f"{self._website_url}/login.php",
        )

    async def _handle_menu(self, message: IncomingMessage, text: str) -> None:
        if text == messages.MENU_MY_WALLET:
            record = await self._links.get_link(identity=message.identity)
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.wallet_summary_message(
                    identity=message.identity,
                    linked=record is not None and record.is_linked,
                    registered_at=None if record is None else record.registered_at,
                    website_url=self._website_url,
                ),
            )
        elif text in messages.COMING_SOON_TEXT:
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.COMING_SOON_TEXT[text],
            )
        elif text == messages.MENU_SUPPORT:
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.support_message(support_handle=self._support_handle),
            )
        else:
            await self._fallback(message.identity)

    async def _admin_otp(self, message: IncomingMessage, argument: str) -> None:
        if not self._is_admin(message.identity):
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.ACCESS_DENIED_TEXT,
            )
            return
        if not argument:
            _ = await self._writer_queue.submit(
                lambda: self._conversations.set_step(
                    identity=message.identity,
                    step=STEP_ADMIN_OTP_TARGET,
                ),
            )
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.ADMIN_OTP_TARGET_PROMPT,
            )
            return

        target, _, purpose = argument.partition(" ")
        if purpose.strip():
            await self._send_admin_otp(message.identity, target, purpose.strip())
            return
        await self._accept_target(message.identity, target)

    async def _continue_admin_otp(
        self,
        message: IncomingMessage,
        state: ConversationStateRecord,
        text: str,
    ) -> None:
        if not self._is_admin(message.identity):
            _ = await self._writer_queue.submit(
                lambda: self._conversations.clear(identity=message.identity),
            )
            await self._handle_menu(message, text)
            return
        if state.step == STEP_ADMIN_OTP_TARGET:
            await self._accept_target(message.identity, text)
        elif state.step == STEP_ADMIN_OTP_PURPOSE and text:
            target = state.data.get("target", "")
            _ = await self._writer_queue.submit(
                lambda: self._conversations.clear(identity=message.identity),
            )
            await self._send_admin_otp(message.identity, target, text)
        else:
            _ = await self._dispatcher.send_text(
                message.identity,
                messages.ADMIN_OTP_PURPOSE_PROMPT,
            )

    async def _accept_target(self, admin_identity: str, raw_target: str) -> None:
        try:
            target = normalize_identity(raw_target)
        except ValidationError:
            _ = await self._dispatcher.send_text(
                admin_identity,
                messages.INVALID_IDENTITY_TEXT,
            )
            return
        _ = await self._writer_queue.submit(
            lambda: self._conversations.set_step(
                identity=admin_identity,
                step=STEP_ADMIN_OTP_PURPOSE,
                data={"target": target},
            ),
        )
        _ = await self._dispatcher.send_text(
            admin_identity,
            messages.ADMIN_OTP_PURPOSE_PROMPT,
        )

    async def _send_admin_otp(
        self,
        admin_identity: str,
        raw_target: str,
        purpose: str,
    ) -> None:
        try:
            issued = await self._otp_issuer.issue_admin_otp(
                recipient_identity=raw_target,
                purpose=purpose,
            )
        except ValidationError:
            _ = await self._dispatcher.send_text(
                admin_identity,
                messages.INVALID_IDENTITY_TEXT,
            )
            return
        except DeliveryError:
            _ = await self._dispatcher.send_text(
                admin_identity,
                messages.DELIVERY_FAILED_TEXT,
            )
            return
        _ = await self._dispatcher.send_text(
            admin_identity,
            messages.admin_otp_sent_message(
                identity=issued.identity,
                purpose=issued.purpose,
            ),
        )

    async def _cancel(self, message: IncomingMessage) -> None:
        if await self._open_step(message.identity) is None:
            await self._show_main_menu(message.identity)
            return
        _ = await self._writer_queue.submit(
            lambda: self._conversations.clear(identity=message.identity),
        )
        _ = await self._dispatcher.send_text(
            message.identity,
            messages.ADMIN_OTP_CANCELLED_TEXT,
        )

    async def _open_step(self, identity: str) -> ConversationStateRecord | None:
        """Return the live step, dropping one whose TTL has passed."""
        state = await self._conversations.get_step(identity=identity)
        if state is None:
            return None
        if state.is_expired_at(self._conversations.now()):
            _ = await self._writer_queue.submit(
                lambda: self._conversations.clear(identity=identity),
            )
            return None
        return state

    async def _fallback(self, identity: str) -> None:
        _ = await self._dispatcher.send_text(identity, messages.FALLBACK_TEXT)
        await self._show_main_menu(identity)

    async def _show_main_menu(self, identity: str) -> None:
        _ = await self._dispatcher.send_menu(
            identity,
            messages.MAIN_MENU_TEXT,
            messages.MAIN_MENU_LAYOUT,
        )

    def _is_admin(self, identity: str) -> bool:
        return self._admin_identity is not None and identity == self._admin_identity
