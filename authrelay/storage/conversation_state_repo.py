"""Per-identity conversation step markers with their own TTL."""

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

CONVERSATION_STEP_TTL_SECONDS = 600

_TABLE = "conversation_state"
_COLUMNS = "identity, step, data_json, expires_at"


@dataclass(frozen=True, slots=True)
class ConversationStateRecord:
    """An open multi-step input flow for one identity."""

    identity: str
    step: str
    data: dict[str, str]
    expires_at: int

    def is_expired_at(self, now: int) -> bool:
        return self.expires_at <= now


class ConversationStateRepository:
    """Store, read and clear conversation steps."""

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

    async def set_step(
        self,
        *,
        identity: str,
        step: str,
        data: Mapping[str, str] | None = None,
        ttl_seconds: int = CONVERSATION_STEP_TTL_SECONDS,
    ) -> ConversationStateRecord:
        """Open or advance a step; each write restarts the TTL."""
        statement = text(
            f"""
            INSERT INTO conversation_state (identity, step, data_json, expires_at)
            VALUES (:identity, :step, :data_json, :expires_at)
            ON CONFLICT (identity) DO UPDATE SET
                step = excluded.step,
                data_json = excluded.data_json,
                expires_at = excluded.expires_at
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "identity": identity,
                    "step": step,
                    "data_json": encode_context(data),
                    "expires_at": self._now_provider() + ttl_seconds,
                },
            )
            row = result.mappings().one()
            await session.commit()
        return _decode_row(row)

    def now(self) -> int:
        """Return the epoch second used for expiry checks."""
        return self._now_provider()

    async def get_step(self, *, identity: str) -> ConversationStateRecord | None:
        """Return the stored step, expired or not."""
        statement = text(
            f"SELECT {_COLUMNS} FROM conversation_state WHERE identity = :identity",  # noqa: S608
        )
        async with self._read_session_factory() as session:
            result = await session.execute(statement, {"identity": identity})
            row = result.mappings().one_or_none()
        return None if row is None else _decode_row(row)

    async def clear(self, *, identity: str) -> bool:
        """Drop any step for the identity and return True if one existed."""
        statement = text(
            """
            DELETE FROM conversation_state
            WHERE identity = :identity
            RETURNING identity
            """,
        )
        async with self._write_session_factory() as session:
            result = await session.execute(statement, {"identity": identity})
            row = result.mappings().one_or_none()
            await session.commit()
        return row is not None


def _decode_row(row: object) -> ConversationStateRecord:
    row_map = as_mapping(row)
    return ConversationStateRecord(
        identity=coerce_str(row_map, "identity", table=_TABLE),
        step=coerce_str(row_map, "step", table=_TABLE),
        data=decode_context(row_map, "data_json", table=_TABLE),
        expires_at=coerce_int(row_map, "expires_at", table=_TABLE),
    )
