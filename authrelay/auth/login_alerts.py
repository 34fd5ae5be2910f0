"""Login alert lifecycle: create, deliver, resolve and time out.

Every status change is a compare-and-set on the stored session, so the
single caller that wins a race is the only one that edits the Telegram
message or sends a follow-up. Late and repeated resolutions are answered
with the stored outcome.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from authrelay.auth.callback_data import ConfirmLogin, DenyLogin, encode_callback
from authrelay.auth.identity import normalize_identity
from authrelay.errors import (
    AlreadyResolvedError,
    BadRequestError,
    DeliveryError,
    ExpiredError,
    NotFoundError,
    UnauthorizedError,
)
from authrelay.storage.login_sessions_repo import (
    RESOLUTION_TIMEOUT,
    RESOLUTION_UNDELIVERED,
    RESOLUTION_USER,
    STATUS_APPROVED,
    STATUS_DENIED,
    ExpiryCondition,
    LoginSessionRecord,
    LoginSessionsRepository,
)
from authrelay.telegram.dispatcher import InlineControl
from authrelay.telegram.messages import (
    CONFIRM_BUTTON_LABEL,
    DENY_BUTTON_LABEL,
    LOGIN_CONFIRMED_TEXT,
    LOGIN_DENIED_TEXT,
    LOGIN_EXPIRED_TEXT,
    login_alert_message,
    resolved_alert_message,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from authrelay.storage.writer_queue import WriterQueueProtocol
    from authrelay.telegram.dispatcher import NotificationDispatcher

ACTION_CONFIRM: Final = "confirm"
ACTION_DENY: Final = "deny"

_TARGET_STATUS: dict[str, str] = {
    ACTION_CONFIRM: STATUS_APPROVED,
    ACTION_DENY: STATUS_DENIED,
}
_FOLLOW_UP_TEXT: dict[str, str] = {
    STATUS_APPROVED: LOGIN_CONFIRMED_TEXT,
    STATUS_DENIED: LOGIN_DENIED_TEXT,
}

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LoginAlertOutcome:
    """Result of a resolution attempt.

    `changed` is True only for the call that actually moved the alert out of
    pending; repeats report the stored status with `changed=False`.
    """

    alert_id: str
    status: str
    resolution: str | None
    changed: bool


def generate_alert_id() -> str:
    """Return an unguessable, URL-safe alert id."""
    return secrets.token_urlsafe(24)


class LoginAlertCoordinator:
    """Own the pending-login state machine and the alert message it drives."""

    _repository: LoginSessionsRepository
    _dispatcher: NotificationDispatcher
    _writer_queue: WriterQueueProtocol
    _support_handle: str
    _id_factory: Callable[[], str]

    def __init__(
        self,
        *,
        repository: LoginSessionsRepository,
        dispatcher: NotificationDispatcher,
        writer_queue: WriterQueueProtocol,
        support_handle: str,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._repository = repository
        self._dispatcher = dispatcher
        self._writer_queue = writer_queue
        self._support_handle = support_handle
        self._id_factory = id_factory or generate_alert_id

    async def create_login_alert(
        self,
        *,
        owner_identity: object,
        context: Mapping[str, str],
    ) -> LoginSessionRecord:
        """Store a pending session and send the confirm/deny message.

        When the owner cannot be reached the session is denied with
        resolution `undelivered` and `DeliveryError` propagates.
        """
        identity = normalize_identity(owner_identity)
        alert_id = self._id_factory()
        record = await self._writer_queue.submit(
            lambda: self._repository.create_session(
                alert_id=alert_id,
                owner_identity=identity,
                context=dict(context),
            ),
        )
        text = login_alert_message(
            context=record.context,
            created_at=record.created_at,
            support_handle=self._support_handle,
        )
        confirm = encode_callback(ConfirmLogin(alert_id))
        deny = encode_callback(DenyLogin(alert_id))
        controls = (
            InlineControl(CONFIRM_BUTTON_LABEL, confirm),
            InlineControl(DENY_BUTTON_LABEL, deny),
        )
        try:
            message_id = await self._dispatcher.send_interactive(
                identity,
                text,
                controls,
            )
        except DeliveryError:
            _ = await self._transition(
                alert_id,
                status=STATUS_DENIED,
                resolution=RESOLUTION_UNDELIVERED,
                expiry="any",
            )
            logger.warning("Login alert %s could not be delivered", alert_id)
            raise

        attached = await self._writer_queue.submit(
            lambda: self._repository.attach_message(
                alert_id=alert_id,
                message_id=message_id,
            ),
        )
        logger.info("Login alert %s created", alert_id)
        return attached or record

    async def resolve_login_alert(
        self,
        *,
        alert_id: str,
        action: str,
        responding_identity: object,
    ) -> LoginAlertOutcome:
        """Apply the owner's decision to a pending alert.

        Raises `NotFoundError`, `UnauthorizedError`, `BadRequestError` or, for
        the first call that observes an elapsed TTL, `ExpiredError`.
        """
        responder = normalize_identity(responding_identity)
        record = await self._repository.get_session(alert_id=alert_id)
        if record is None:
            raise NotFoundError.for_alert(alert_id)
        if record.owner_identity != responder:
            raise UnauthorizedError.for_alert_owner(alert_id)
        target_status = _TARGET_STATUS.get(action)
        if target_status is None:
            raise BadRequestError.for_unknown_decision(action)

        try:
            return await self._resolve(record, target_status)
        except AlreadyResolvedError:
            current = await self._repository.get_session(alert_id=alert_id)
            if current is None:
                raise NotFoundError.for_alert(alert_id) from None
            logger.info("Login alert %s already %s", alert_id, current.status)
            return _outcome(current, changed=False)

    async def get_login_alert(self, *, alert_id: str) -> LoginSessionRecord:
        """Return the alert, applying the timeout if its TTL has elapsed."""
        record = await self._repository.get_session(alert_id=alert_id)
        if record is None:
            raise NotFoundError.for_alert(alert_id)
        if record.is_pending and record.is_expired_at(self._repository.now()):
            expired = await self._expire(record)
            if expired is not None:
                return expired
            current = await self._repository.get_session(alert_id=alert_id)
            if current is None:
                raise NotFoundError.for_alert(alert_id)
            return current
        return record

    async def _resolve(
        self,
        record: LoginSessionRecord,
        target_status: str,
    ) -> LoginAlertOutcome:
        if not record.is_pending:
            raise AlreadyResolvedError.for_alert(record.alert_id, record.status)
        if record.is_expired_at(self._repository.now()):
            _ = await self._expire(record)
            raise ExpiredError.for_alert(record.alert_id)

        resolved = await self._transition(
            record.alert_id,
            status=target_status,
            resolution=RESOLUTION_USER,
            expiry="live",
        )
        if resolved is None:
            current = await self._repository.get_session(alert_id=record.alert_id)
            if current is None:
                raise NotFoundError.for_alert(record.alert_id)
            # Lost the race either to another resolution or to the TTL.
            return await self._resolve(current, target_status)

        logger.info("Login alert %s %s by owner", resolved.alert_id, resolved.status)
        await self._announce(resolved, outcome=resolved.status)
        return _outcome(resolved, changed=True)

    async def _expire(self, record: LoginSessionRecord) -> LoginSessionRecord | None:
        expired = await self._transition(
            record.alert_id,
            status=STATUS_DENIED,
            resolution=RESOLUTION_TIMEOUT,
            expiry="expired",
        )
        if expired is not None:
            logger.info("Login alert %s timed out", expired.alert_id)
            await self._announce(expired, outcome=RESOLUTION_TIMEOUT)
        return expired

    async def _transition(
        self,
        alert_id: str,
        *,
        status: str,
        resolution: str,
        expiry: ExpiryCondition,
    ) -> LoginSessionRecord | None:
        return await self._writer_queue.submit(
            lambda: self._repository.transition_status(
                alert_id=alert_id,
                status=status,
                resolution=resolution,
                expiry=expiry,
            ),
        )

    async def _announce(self, record: LoginSessionRecord, *, outcome: str) -> None:
        """Remove the alert buttons and send the follow-up message.

        The status change is already committed, so delivery failures are
        logged and not raised.
        """
        if outcome == RESOLUTION_TIMEOUT:
            follow_up = LOGIN_EXPIRED_TEXT
        else:
            follow_up = _FOLLOW_UP_TEXT[record.status]
        try:
            if record.message_id is not None:
                await self._dispatcher.retract_controls(
                    record.owner_identity,
                    record.message_id,
                    resolved_alert_message(
                        context=record.context,
                        created_at=record.created_at,
                        support_handle=self._support_handle,
                        outcome=outcome,
                    ),
                )
            _ = await self._dispatcher.send_text(record.owner_identity, follow_up)
        except DeliveryError as exc:
            logger.warning(
                "Login alert %s follow-up not delivered: %s",
                record.alert_id,
                exc,
            )


def _outcome(record: LoginSessionRecord, *, changed: bool) -> LoginAlertOutcome:
    return LoginAlertOutcome(
        alert_id=record.alert_id,
        status=record.status,
        resolution=record.resolution,
        changed=changed,
    )
