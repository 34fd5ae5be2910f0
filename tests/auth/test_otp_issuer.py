"""Tests for OTP issuance, supersession and verification."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from authrelay.auth import (
    DEFAULT_ADMIN_PURPOSE,
    DEFAULT_WEBSITE_PURPOSE,
    OTP_CODE_LENGTH,
    OtpIssuer,
    compute_code_digest,
    generate_otp_code,
)
from authrelay.errors import DeliveryError, ExpiredError, NotFoundError, ValidationError
from authrelay.storage import OTP_CHALLENGE_TTL_SECONDS, OTP_MAX_ATTEMPTS

if TYPE_CHECKING:
    from authrelay.storage import OtpChallengesRepository, WriterQueue
    from tests.mocks.fake_clock import FakeClock
    from tests.mocks.recording_dispatcher import RecordingDispatcher

RECIPIENT = "1234567"
SECOND_USER = "2000002"


def test_generate_otp_code_is_six_zero_padded_digits() -> None:
    """Ensure generated codes always have exactly six digits."""
    for _ in range(200):
        code = generate_otp_code()
        if len(code) != OTP_CODE_LENGTH or not code.isdigit():
            raise AssertionError


@pytest.mark.asyncio
async def test_issue_otp_stores_digest_and_sends_code(
    otp_issuer: OtpIssuer,
    otp_repository: OtpChallengesRepository,
    dispatcher: RecordingDispatcher,
) -> None:
    """Ensure issuance persists only a digest and messages the plain code."""
    issued = await otp_issuer.issue_otp(
        recipient_identity=int(RECIPIENT),
        purpose="Login",
        context_data={"session": "abc"},
    )

    if issued.identity != RECIPIENT or len(issued.code) != OTP_CODE_LENGTH:
        raise AssertionError
    if issued.expires_at - issued.issued_at != OTP_CHALLENGE_TTL_SECONDS:
        raise AssertionError
    stored = await otp_repository.get_challenge(identity=RECIPIENT)
    if stored is None or stored.code_digest != compute_code_digest(issued.code):
        raise AssertionError
    texts = dispatcher.texts_for(RECIPIENT)
    if len(texts) != 1 or issued.code not in texts[0] or "Login" not in texts[0]:
        raise AssertionError
    if dispatcher.sent[0].controls:
        raise AssertionError


@pytest.mark.asyncio
async def test_second_request_supersedes_first_challenge(
    otp_repository: OtpChallengesRepository,
    dispatcher: RecordingDispatcher,
    writer_queue: WriterQueue,
) -> None:
    """Ensure a second request replaces the first code for the same recipient."""
    codes = iter(["111111", "222222"])
    issuer = OtpIssuer(
        repository=otp_repository,
        dispatcher=dispatcher,
        writer_queue=writer_queue,
        code_factory=lambda: next(codes),
    )

    _ = await issuer.issue_otp(recipient_identity=SECOND_USER, purpose="password_reset")
    _ = await issuer.issue_otp(recipient_identity=SECOND_USER, purpose="login")

    active = await otp_repository.get_challenge(identity=SECOND_USER)
    if active is None or active.purpose != "login":
        raise AssertionError
    if active.code_digest != compute_code_digest("222222"):
        raise AssertionError
    with pytest.raises(ValidationError):
        _ = await issuer.verify_otp(recipient_identity=SECOND_USER, code="111111")
    consumed = await issuer.verify_otp(recipient_identity=SECOND_USER, code="222222")
    if consumed.purpose != "login":
        raise AssertionError


@pytest.mark.asyncio
async def test_issue_otp_uses_default_purpose_when_blank(
    otp_issuer: OtpIssuer,
) -> None:
    """Ensure blank purposes fall back to the action's default label."""
    website = await otp_issuer.issue_otp(recipient_identity=RECIPIENT, purpose="  ")
    admin = await otp_issuer.issue_admin_otp(recipient_identity=RECIPIENT, purpose=None)

    if website.purpose != DEFAULT_WEBSITE_PURPOSE:
        raise AssertionError
    if admin.purpose != DEFAULT_ADMIN_PURPOSE:
        raise AssertionError


@pytest.mark.asyncio
async def test_issue_otp_rejects_malformed_identity(
    otp_issuer: OtpIssuer,
    dispatcher: RecordingDispatcher,
) -> None:
    """Ensure non-numeric identities fail before anything is stored or sent."""
    for identity in ("abc", "", "-5", "0", True, 3.5):
        with pytest.raises(ValidationError):
            _ = await otp_issuer.issue_otp(recipient_identity=identity, purpose="x")
    if dispatcher.sent:
        raise AssertionError


@pytest.mark.asyncio
async def test_issue_otp_unreachable_recipient_raises_delivery_error(
    otp_issuer: OtpIssuer,
    otp_repository: OtpChallengesRepository,
    dispatcher: RecordingDispatcher,
) -> None:
    """Ensure delivery failures are distinct and leave the TTL-bound challenge."""
    dispatcher.unreachable.add(RECIPIENT)

    with pytest.raises(DeliveryError):
        _ = await otp_issuer.issue_otp(recipient_identity=RECIPIENT, purpose="Login")
    if await otp_repository.get_challenge(identity=RECIPIENT) is None:
        raise AssertionError


@pytest.mark.asyncio
async def test_verify_otp_consumes_code_once(
    otp_issuer: OtpIssuer,
) -> None:
    """Ensure a verified code cannot be replayed."""
    issued = await otp_issuer.issue_otp(recipient_identity=RECIPIENT, purpose="Login")

    _ = await otp_issuer.verify_otp(
        recipient_identity=RECIPIENT,
        code=issued.code,
        purpose="Login",
    )
    with pytest.raises(NotFoundError):
        _ = await otp_issuer.verify_otp(recipient_identity=RECIPIENT, code=issued.code)


@pytest.mark.asyncio
async def test_verify_otp_rejects_wrong_purpose_and_bad_format(
    otp_issuer: OtpIssuer,
) -> None:
    """Ensure purpose mismatches and malformed codes do not consume the code."""
    issued = await otp_issuer.issue_otp(recipient_identity=RECIPIENT, purpose="Login")

    with pytest.raises(ValidationError):
        _ = await otp_issuer.verify_otp(
            recipient_identity=RECIPIENT,
            code=issued.code,
            purpose="Payment",
        )
    with pytest.raises(ValidationError):
        _ = await otp_issuer.verify_otp(recipient_identity=RECIPIENT, code="12ab")
    _ = await otp_issuer.verify_otp(recipient_identity=RECIPIENT, code=issued.code)


@pytest.mark.asyncio
async def test_verify_otp_after_ttl_raises_expired(
    otp_issuer: OtpIssuer,
    clock: FakeClock,
) -> None:
    """Ensure codes stop verifying once the OTP TTL has elapsed."""
    issued = await otp_issuer.issue_otp(recipient_identity=RECIPIENT, purpose="Login")
    clock.advance(OTP_CHALLENGE_TTL_SECONDS)

    with pytest.raises(ExpiredError):
        _ = await otp_issuer.verify_otp(recipient_identity=RECIPIENT, code=issued.code)


@pytest.mark.asyncio
async def test_expired_challenge_is_removed_on_verify(
    otp_issuer: OtpIssuer,
    otp_repository: OtpChallengesRepository,
    clock: FakeClock,
) -> None:
    """Ensure the expired row is deleted and later attempts find nothing."""
    issued = await otp_issuer.issue_otp(recipient_identity=RECIPIENT, purpose="Login")
    clock.advance(OTP_CHALLENGE_TTL_SECONDS)

    with pytest.raises(ExpiredError):
        _ = await otp_issuer.verify_otp(recipient_identity=RECIPIENT, code=issued.code)
    if await otp_repository.get_challenge(identity=RECIPIENT) is not None:
        raise AssertionError
    with pytest.raises(NotFoundError):
        _ = await otp_issuer.verify_otp(recipient_identity=RECIPIENT, code=issued.code)


@pytest.mark.asyncio
async def test_wrong_guesses_are_capped_per_challenge(
    otp_repository: OtpChallengesRepository,
    dispatcher: RecordingDispatcher,
    writer_queue: WriterQueue,
) -> None:
    """Ensure the correct code stops working once the guess limit is spent."""
    issuer = OtpIssuer(
        repository=otp_repository,
        dispatcher=dispatcher,
        writer_queue=writer_queue,
        code_factory=lambda: "424242",
    )
    _ = await issuer.issue_otp(recipient_identity=RECIPIENT, purpose="Login")

    for _ in range(OTP_MAX_ATTEMPTS - 1):
        with pytest.raises(ValidationError):
            _ = await issuer.verify_otp(recipient_identity=RECIPIENT, code="000000")
    with pytest.raises(ExpiredError):
        _ = await issuer.verify_otp(recipient_identity=RECIPIENT, code="000000")
    with pytest.raises(NotFoundError):
        _ = await issuer.verify_otp(recipient_identity=RECIPIENT, code="424242")
