"""Repository for `login_sessions`, the pending login-confirmation records.

Status changes are compare-and-set updates conditioned on `status = 'pending'`
so that two racing resolutions of the same alert can never both commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Literal

from sqlalchemy import text

from authrelay.storage.row_decoding import (
    as_mapping,
    coerce_int,
    coerce_optional_int,
    coerce_optional_str,
    coerce_str,
    decode_context,
    encode_context,
    now_epoch,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from authrelay.storage.db import SessionFactory

LOGIN_SESSION_TTL_SECONDS = 900

STATUS_PENDING: Final = "pending"
STATUS_APPROVED: Final = "approved"
STATUS_DENIED: Final = "denied"
TERMINAL_STATUSES: frozenset[str] = frozenset({STATUS_APPROVED, STATUS_DENIED})

RESOLUTION_USER: Final = "user"
RESOLUTION_TIMEOUT: Final = "timeout"
RESOLUTION_UNDELIVERED: Final = "undelivered"

ExpiryCondition = Literal["live", "expired", "any"]

_TABLE = "login_sessions"
_COLUMNS = (
    "alert_id, owner_identity, context_json, status, resolution, "
    "created_at, expires_at, resolved_at, message_id"
)
_EXPIRY_CLAUSES: dict[ExpiryCondition, str] = {
    "live": "AND expires_at > :now",
    "expired": "AND expires_at <= :now",
    "any": "",
}


@dataclass(frozen=True, slots=True)
class LoginSessionRecord:
    """Persisted login alert awaiting or holding its resolution."""

    alert_id: str
    owner_identity: str
    context: dict[str, str]
    status: str
    resolution: str | None
    created_at: int
    expires_at: int
    resolved_at: int | None
    message_id: int | None

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    def is_expired_at(self, now: int) -> bool:
        """Return True when the session TTL has elapsed at `now`."""
        return self.expires_at <= now


class LoginSessionsRepositoryError(RuntimeError):
    """Base error for login session storage operations."""

    @classmethod
    def invalid_terminal_status(cls, status: str) -> LoginSessionsRepositoryError:
        """Build deterministic error for non-terminal transition targets."""
        return cls(f"Login session cannot transition to status {status!r}.")


class LoginSessionsRepository:
    """Create, look up and conditionally resolve login sessions."""

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

    def now(self) -> int:
        """Return the repository clock reading used for expiry checks."""
        return self._now_provider()

    async def create_session(
        self,
        *,
        alert_id: str,
        owner_identity: str,
        context: Mapping[str, str],
        ttl_seconds: int = LOGIN_SESSION_TTL_SECONDS,
    ) -> LoginSessionRecord:
        """Persist a new pending login session."""
        created_at = self._now_provider()
        statement = text(
            f"""
            INSERT INTO login_sessions (
                alert_id, owner_identity, context_json, status,
                created_at, expires_at
            )
            VALUES (
                :alert_id, :owner_identity, :context_json, :status,
                :created_at, :expires_at
            )
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "alert_id": alert_id,
                    "owner_identity": owner_identity,
                    "context_json": encode_context(context),
                    "status": STATUS_PENDING,
                    "created_at": created_at,
                    "expires_at": created_at + ttl_seconds,
                },
            )
            row = result.mappings().one()
            await session.commit()
        return _decode_row(row)

    async def get_session(self, *, alert_id: str) -> LoginSessionRecord | None:
        """Fetch a session by alert id without applying expiry rules."""
        statement = text(
            f"SELECT {_COLUMNS} FROM login_sessions WHERE alert_id = :alert_id",  # noqa: S608
        )
        async with self._read_session_factory() as session:
            result = await session.execute(statement, {"alert_id": alert_id})
            row = result.mappings().one_or_none()
        return None if row is None else _decode_row(row)

    async def attach_message(
        self,
        *,
        alert_id: str,
        message_id: int,
    ) -> LoginSessionRecord | None:
        """Record the Telegram message that carries the alert controls."""
        statement = text(
            f"""
            UPDATE login_sessions
            SET message_id = :message_id
            WHERE alert_id = :alert_id
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {"alert_id": alert_id, "message_id": message_id},
            )
            row = result.mappings().one_or_none()
            await session.commit()
        return None if row is None else _decode_row(row)

    async def transition_status(
        self,
        *,
        alert_id: str,
        status: str,
        resolution: str,
        expiry: ExpiryCondition = "live",
    ) -> LoginSessionRecord | None:
        """Move a pending session to a terminal status.

        The update only applies while the row is still pending and matches the
        `expiry` condition. Returns the updated row for the single caller whose
        update committed, and None for everyone else.
        """
        if status not in TERMINAL_STATUSES:
            raise LoginSessionsRepositoryError.invalid_terminal_status(status)
        statement = text(
            f"""
            UPDATE login_sessions
            SET status = :status,
                resolution = :resolution,
                resolved_at = :now
            WHERE alert_id = :alert_id
              AND status = :pending
              {_EXPIRY_CLAUSES[expiry]}
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "alert_id": alert_id,
                    "status": status,
                    "resolution": resolution,
                    "pending": STATUS_PENDING,
                    "now": self._now_provider(),
                },
            )
            row = result.mappings().one_or_none()
            await session.commit()
        return None if row is None else _decode_row(row)


def _decode_row(row: object) -> LoginSessionRecord:
    row_map = as_mapping(row)
    return LoginSessionRecord(
        alert_id=coerce_str(row_map, "alert_id", table=_TABLE),
        owner_identity=coerce_str(row_map, "owner_identity", table=_TABLE),
        context=decode_context(row_map, "context_json", table=_TABLE),
        status=coerce_str(row_map, "status", table=_TABLE),
        resolution=coerce_optional_str(row_map, "resolution", table=_TABLE),
        created_at=coerce_int(row_map, "created_at", table=_TABLE),
        expires_at=coerce_int(row_map, "expires_at", table=_TABLE),
        resolved_at=coerce_optional_int(row_map, "resolved_at", table=_TABLE),
        message_id=coerce_optional_int(row_map, "message_id", table=_TABLE),
    )
