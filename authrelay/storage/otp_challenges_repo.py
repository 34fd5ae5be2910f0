"""Repository for `otp_challenges`, one active challenge per identity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import text

from authrelay.storage.row_decoding import (
    as_mapping,
    coerce_int,
    coerce_str,
    decode_context,
    encode_context,
    now_epoch,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from authrelay.storage.db import SessionFactory

OTP_CHALLENGE_TTL_SECONDS = 600
OTP_MAX_ATTEMPTS = 5

_TABLE = "otp_challenges"
_COLUMNS = (
    "identity, code_digest, purpose, context_json, issued_at, expires_at, attempts"
)


@dataclass(frozen=True, slots=True)
class OtpChallengeRecord:
    """Stored challenge; the plain code is never persisted."""

    identity: str
    code_digest: str
    purpose: str
    context: dict[str, str]
    issued_at: int
    expires_at: int
    attempts: int

    def is_expired_at(self, now: int) -> bool:
        return self.expires_at <= now


class OtpChallengesRepository:
    """Persist, replace and consume OTP challenges."""

    _read_session_factory: SessionFactory
    _write_session_factory: SessionFactory
    _now_provider: Callable[[], int]

    def __init__(
        self,
        *,
        read_session_factory: SessionFactory,
        write_session_factory: SessionFactory,
        now_provider: Callable[[], int] | None = None,
    ) -> None:
        """Initialize repository with explicit session dependencies."""
        self._read_session_factory = read_session_factory
        self._write_session_factory = write_session_factory
        self._now_provider = now_provider or now_epoch

    async def replace_challenge(
        self,
        *,
        identity: str,
        code_digest: str,
        purpose: str,
        context: Mapping[str, str] | None = None,
        ttl_seconds: int = OTP_CHALLENGE_TTL_SECONDS,
    ) -> OtpChallengeRecord:
        """Store a challenge, superseding any earlier one for the identity."""
        issued_at = self._now_provider()
        statement = text(
            f"""
            INSERT INTO otp_challenges (
                identity, code_digest, purpose, context_json, issued_at, expires_at
            )
            VALUES (
                :identity, :code_digest, :purpose, :context_json,
                :issued_at, :expires_at
            )
            ON CONFLICT (identity) DO UPDATE SET
                code_digest = excluded.code_digest,
                purpose = excluded.purpose,
                context_json = excluded.context_json,
                issued_at = excluded.issued_at,
                expires_at = excluded.expires_at,
                attempts = 0
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "identity": identity,
                    "code_digest": code_digest,
                    "purpose": purpose,
                    "context_json": encode_context(context),
                    "issued_at": issued_at,
                    "expires_at": issued_at + ttl_seconds,
                },
            )
            row = result.mappings().one()
            await session.commit()
        return _decode_row(row)

    def now(self) -> int:
        """Return the epoch second used for expiry checks."""
        return self._now_provider()

    async def get_challenge(self, *, identity: str) -> OtpChallengeRecord | None:
        """Return the stored challenge; callers decide what an expired one means."""
        statement = text(
            f"SELECT {_COLUMNS} FROM otp_challenges WHERE identity = :identity",  # noqa: S608
        )
        async with self._read_session_factory() as session:
            result = await session.execute(statement, {"identity": identity})
            row = result.mappings().one_or_none()
        return None if row is None else _decode_row(row)

    async def consume_challenge(
        self,
        *,
        identity: str,
        code_digest: str,
        purpose: str,
    ) -> OtpChallengeRecord | None:
        """Atomically delete and return a matching live challenge.

        Returns None when no live challenge matches the digest and purpose, so
        a code can be consumed at most once.
        """
        statement = text(
            f"""
            DELETE FROM otp_challenges
            WHERE identity = :identity
              AND code_digest = :code_digest
              AND purpose = :purpose
              AND expires_at > :now
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "identity": identity,
                    "code_digest": code_digest,
                    "purpose": purpose,
                    "now": self._now_provider(),
                },
            )
            row = result.mappings().one_or_none()
            await session.commit()
        return None if row is None else _decode_row(row)

    async def record_failed_attempt(
        self,
        *,
        identity: str,
        max_attempts: int = OTP_MAX_ATTEMPTS,
    ) -> int | None:
        """Count one wrong guess and return how many guesses are left.

        The challenge is deleted when the count reaches `max_attempts`, so
        a return value of 0 means the code can no longer be used. Returns
        None when there is no challenge for the identity.
        """
        bump = text(
            """
            UPDATE otp_challenges
            SET attempts = attempts + 1
            WHERE identity = :identity
            RETURNING attempts
            """,
        )
        discard = text(
            """
            DELETE FROM otp_challenges
            WHERE identity = :identity AND attempts >= :max_attempts
            """,
        )
        async with self._write_session_factory() as session:
            result = await session.execute(bump, {"identity": identity})
            attempts = result.scalar_one_or_none()
            if attempts is not None and int(attempts) >= max_attempts:
                _ = await session.execute(
                    discard,
                    {"identity": identity, "max_attempts": max_attempts},
                )
            await session.commit()
        if attempts is None:
            return None
        return max(max_attempts - int(attempts), 0)

    async def delete_challenge(self, *, identity: str) -> bool:
        """Delete the challenge for an identity and return True if removed."""
        statement = text(
            """
            DELETE FROM otp_challenges
            WHERE identity = :identity
            RETURNING identity
            """,
        )
        async with self._write_session_factory() as session:
            result = await session.execute(statement, {"identity": identity})
            row = result.mappings().one_or_none()
            await session.commit()
        return row is not None


def _decode_row(row: object) -> OtpChallengeRecord:
    row_map = as_mapping(row)
    return OtpChallengeRecord(
        identity=coerce_str(row_map, "identity", table=_TABLE),
        code_digest=coerce_str(row_map, "code_digest", table=_TABLE),
        purpose=coerce_str(row_map, "purpose", table=_TABLE),
        context=decode_context(row_map, "context_json", table=_TABLE),
        issued_at=coerce_int(row_map, "issued_at", table=_TABLE),
        expires_at=coerce_int(row_map, "expires_at", table=_TABLE),
        attempts=coerce_int(row_map, "attempts", table=_TABLE),
    )
