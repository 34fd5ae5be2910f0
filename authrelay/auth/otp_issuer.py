"""One-time code issuance and verification for website and admin requests."""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING

from authrelay.errors import (
    DeliveryError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from authrelay.auth.identity import normalize_identity
from authrelay.storage.otp_challenges_repo import (
    OTP_CHALLENGE_TTL_SECONDS,
    OTP_MAX_ATTEMPTS,
    OtpChallengeRecord,
    OtpChallengesRepository,
)
from authrelay.telegram.messages import admin_otp_message, otp_message

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from authrelay.storage.writer_queue import WriterQueueProtocol
    from authrelay.telegram.dispatcher import NotificationDispatcher

OTP_CODE_LENGTH = 6
DEFAULT_WEBSITE_PURPOSE = "Verification"
DEFAULT_ADMIN_PURPOSE = "Admin Requested"

_CODE_PATTERN = re.compile(rf"^[0-9]{{{OTP_CODE_LENGTH}}}$")

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IssuedOtp:
    """A freshly issued challenge, including the plain code."""

    identity: str
    code: str
    purpose: str
    issued_at: int
    expires_at: int


def generate_otp_code() -> str:
    """Return a uniformly distributed, zero-padded six digit code."""
    return f"{secrets.randbelow(10**OTP_CODE_LENGTH):0{OTP_CODE_LENGTH}d}"


def compute_code_digest(code: str) -> str:
    """Hash a code for storage; plain codes are never persisted."""
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


class OtpIssuer:
    """Issue, deliver and verify one-time codes, one live code per identity."""

    _repository: OtpChallengesRepository
    _dispatcher: NotificationDispatcher
    _writer_queue: WriterQueueProtocol
    _website_url: str | None
    _code_factory: Callable[[], str]
    _max_attempts: int

    def __init__(
        self,
        *,
        repository: OtpChallengesRepository,
        dispatcher: NotificationDispatcher,
        writer_queue: WriterQueueProtocol,
        website_url: str | None = None,
        code_factory: Callable[[], str] | None = None,
        max_attempts: int = OTP_MAX_ATTEMPTS,
    ) -> None:
        self._repository = repository
        self._dispatcher = dispatcher
        self._writer_queue = writer_queue
        self._website_url = website_url
        self._code_factory = code_factory or generate_otp_code
        self._max_attempts = max_attempts

    async def issue_otp(
        self,
        *,
        recipient_identity: object,
        purpose: str | None,
        context_data: Mapping[str, str] | None = None,
    ) -> IssuedOtp:
        """Issue a website OTP, replacing any earlier code for the recipient.

        The challenge is stored before dispatch. If the recipient cannot be
        reached the challenge stays stored until its TTL passes and
        `DeliveryError` propagates.
        """
        issued = await self._store(
            recipient_identity=recipient_identity,
            purpose=_purpose_or_default(purpose, DEFAULT_WEBSITE_PURPOSE),
            context_data=context_data,
        )
        text = otp_message(
            code=issued.code,
            purpose=issued.purpose,
            ttl_minutes=OTP_CHALLENGE_TTL_SECONDS // 60,
            website_url=self._website_url,
        )
        await self._deliver(issued, text)
        return issued

    async def issue_admin_otp(
        self,
        *,
        recipient_identity: object,
        purpose: str | None,
    ) -> IssuedOtp:
        """Issue an OTP on behalf of the administrator."""
        issued = await self._store(
            recipient_identity=recipient_identity,
            purpose=_purpose_or_default(purpose, DEFAULT_ADMIN_PURPOSE),
            context_data={"requested_by": "admin"},
        )
        text = admin_otp_message(
            code=issued.code,
            ttl_minutes=OTP_CHALLENGE_TTL_SECONDS // 60,
        )
        await self._deliver(issued, text)
        return issued

    async def verify_otp(
        self,
        *,
        recipient_identity: object,
        code: str,
        purpose: str | None = None,
    ) -> OtpChallengeRecord:
        """Consume the live challenge when `code` (and `purpose`, if given) match.

        Each mismatch counts against the challenge; the last allowed mismatch
        discards it and raises `ExpiredError`.
        """
        identity = normalize_identity(recipient_identity)
        candidate = code.strip()
        if not _CODE_PATTERN.fullmatch(candidate):
            raise ValidationError.for_invalid_code()

        challenge = await self._repository.get_challenge(identity=identity)
        if challenge is None:
            raise NotFoundError.for_challenge(identity)
        if challenge.is_expired_at(self._repository.now()):
            _ = await self._writer_queue.submit(
                lambda: self._repository.delete_challenge(identity=identity),
            )
            raise ExpiredError.for_challenge(identity)

        expected_purpose = challenge.purpose if purpose is None else purpose
        code_digest = compute_code_digest(candidate)

        # One queued job, so no other write lands between the match and the count.
        async def _consume_or_count() -> tuple[OtpChallengeRecord | None, int | None]:
            consumed = await self._repository.consume_challenge(
                identity=identity,
                code_digest=code_digest,
                purpose=expected_purpose,
            )
            if consumed is not None:
                return consumed, None
            remaining = await self._repository.record_failed_attempt(
                identity=identity,
                max_attempts=self._max_attempts,
            )
            return None, remaining

        consumed, remaining = await self._writer_queue.submit(_consume_or_count)
        if consumed is None:
            if remaining is None:
                raise NotFoundError.for_challenge(identity)
            if remaining == 0:
                logger.warning("OTP challenge discarded after too many wrong codes")
                raise ExpiredError.for_exhausted_challenge(identity)
            raise ValidationError.for_invalid_code()
        logger.info("OTP verified (purpose=%s)", consumed.purpose)
        return consumed

    async def _store(
        self,
        *,
        recipient_identity: object,
        purpose: str,
        context_data: Mapping[str, str] | None,
    ) -> IssuedOtp:
        identity = normalize_identity(recipient_identity)
        code = self._code_factory()
        record = await self._writer_queue.submit(
            lambda: self._repository.replace_challenge(
                identity=identity,
                code_digest=compute_code_digest(code),
                purpose=purpose,
                context=context_data,
            ),
        )
        return IssuedOtp(
            identity=record.identity,
            code=code,
            purpose=record.purpose,
            issued_at=record.issued_at,
            expires_at=record.expires_at,
        )

    async def _deliver(self, issued: IssuedOtp, text: str) -> None:
        try:
            _ = await self._dispatcher.send_text(issued.identity, text)
        except DeliveryError:
            logger.warning(
                "OTP stored but not delivered (purpose=%s)",
                issued.purpose,
            )
            raise
        logger.info("OTP issued (purpose=%s)", issued.purpose)


def _purpose_or_default(purpose: str | None, default: str) -> str:
    if purpose is None:
        return default
    cleaned = purpose.strip()
    return cleaned or default
