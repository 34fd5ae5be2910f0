"""Repository for `user_links`: Telegram identities linked to website accounts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from sqlalchemy import text

from authrelay.storage.row_decoding import (
    as_mapping,
    coerce_int,
    coerce_optional_str,
    coerce_str,
    now_epoch,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from authrelay.storage.db import SessionFactory

LINK_STATUS_UNLINKED: Final = "unlinked"
LINK_STATUS_LINKED: Final = "linked"
LINK_STATUS_BLOCKED: Final = "blocked"
VALID_LINK_STATUSES: frozenset[str] = frozenset(
    {LINK_STATUS_UNLINKED, LINK_STATUS_LINKED, LINK_STATUS_BLOCKED},
)

_TABLE = "user_links"
_COLUMNS = "identity, display_name, username, link_status, registered_at, updated_at"


@dataclass(frozen=True, slots=True)
class UserLinkRecord:
    """One linked Telegram identity."""

    identity: str
    display_name: str
    username: str | None
    link_status: str
    registered_at: int
    updated_at: int

    @property
    def is_blocked(self) -> bool:
        return self.link_status == LINK_STATUS_BLOCKED

    @property
    def is_linked(self) -> bool:
        return self.link_status == LINK_STATUS_LINKED


class UserLinksRepositoryError(RuntimeError):
    """Base error for user link storage operations."""

    @classmethod
    def invalid_status(cls, status: str) -> UserLinksRepositoryError:
        """Build deterministic error for unsupported link statuses."""
        allowed = ", ".join(sorted(VALID_LINK_STATUSES))
        return cls(f"Invalid link status {status!r}. Allowed values: {allowed}.")


class UserLinksRepository:
    """Record contacts, link, re-link and look up user link rows."""

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

    async def upsert_link(
        self,
        *,
        identity: str,
        display_name: str,
        username: str | None,
    ) -> UserLinkRecord:
        """Link an identity, overwriting profile fields on re-link.

        Blocked identities keep their `blocked` status; every other status
        becomes `linked`. `registered_at` is only set on first contact.
        """
        statement = text(
            f"""
            INSERT INTO user_links (
                identity, display_name, username, link_status,
                registered_at, updated_at
            )
            VALUES (:identity, :display_name, :username, :linked, :now, :now)
            ON CONFLICT (identity) DO UPDATE SET
                display_name = excluded.display_name,
                username = excluded.username,
                link_status = CASE
                    WHEN user_links.link_status = :blocked THEN user_links.link_status
                    ELSE :linked
                END,
                updated_at = excluded.updated_at
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "identity": identity,
                    "display_name": display_name,
                    "username": username,
                    "linked": LINK_STATUS_LINKED,
                    "blocked": LINK_STATUS_BLOCKED,
                    "now": self._now_provider(),
                },
            )
            row = result.mappings().one()
            await session.commit()
        return _decode_row(row)

    async def record_contact(
        self,
        *,
        identity: str,
        display_name: str,
        username: str | None,
    ) -> UserLinkRecord:
        """Insert an `unlinked` row on first contact.

        Existing rows only get their profile fields refreshed; the link status
        is never touched, so `linked` and `blocked` rows stay as they are.
        """
        statement = text(
            f"""
            INSERT INTO user_links (
                identity, display_name, username, link_status,
                registered_at, updated_at
            )
            VALUES (:identity, :display_name, :username, :unlinked, :now, :now)
            ON CONFLICT (identity) DO UPDATE SET
                display_name = excluded.display_name,
                username = excluded.username,
                updated_at = excluded.updated_at
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {
                    "identity": identity,
                    "display_name": display_name,
                    "username": username,
                    "unlinked": LINK_STATUS_UNLINKED,
                    "now": self._now_provider(),
                },
            )
            row = result.mappings().one()
            await session.commit()
        return _decode_row(row)

    async def get_link(self, *, identity: str) -> UserLinkRecord | None:
        """Return the link row for an identity, or None on first contact."""
        statement = text(
            f"SELECT {_COLUMNS} FROM user_links WHERE identity = :identity",  # noqa: S608
        )
        async with self._read_session_factory() as session:
            result = await session.execute(statement, {"identity": identity})
            row = result.mappings().one_or_none()
        return None if row is None else _decode_row(row)

    async def set_status(self, *, identity: str, status: str) -> UserLinkRecord | None:
        """Change the soft link status; returns None when the identity is unknown."""
        if status not in VALID_LINK_STATUSES:
            raise UserLinksRepositoryError.invalid_status(status)
        statement = text(
            f"""
            UPDATE user_links
            SET link_status = :status, updated_at = :now
            WHERE identity = :identity
            RETURNING {_COLUMNS}
            """,  # noqa: S608
        )
        async with self._write_session_factory() as session:
            result = await session.execute(
                statement,
                {"identity": identity, "status": status, "now": self._now_provider()},
            )
            row = result.mappings().one_or_none()
            await session.commit()
        return None if row is None else _decode_row(row)


def _decode_row(row: object) -> UserLinkRecord:
    row_map = as_mapping(row)
    return UserLinkRecord(
        identity=coerce_str(row_map, "identity", table=_TABLE),
        display_name=coerce_str(row_map, "display_name", table=_TABLE),
        username=coerce_optional_str(row_map, "username", table=_TABLE),
        link_status=coerce_str(row_map, "link_status", table=_TABLE),
        registered_at=coerce_int(row_map, "registered_at", table=_TABLE),
        updated_at=coerce_int(row_map, "updated_at", table=_TABLE),
    )
