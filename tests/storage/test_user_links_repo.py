"""Tests for user link upsert and soft status changes."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from authrelay.storage import (
    LINK_STATUS_BLOCKED,
    LINK_STATUS_LINKED,
    LINK_STATUS_UNLINKED,
    UserLinksRepositoryError,
)

if TYPE_CHECKING:
    from authrelay.storage import UserLinksRepository
    from tests.mocks.fake_clock import FakeClock

IDENTITY = "4440001"


@pytest.mark.asyncio
async def test_upsert_link_overwrites_profile_on_relink(
    links_repository: UserLinksRepository,
    clock: FakeClock,
) -> None:
    """Ensure re-linking updates fields and keeps the first registration time."""
    first = await links_repository.upsert_link(
        identity=IDENTITY,
        display_name="Asha",
        username=None,
    )
    clock.advance(60)
    second = await links_repository.upsert_link(
        identity=IDENTITY,
        display_name="Asha K",
        username="asha_k",
    )

    if second.link_status != LINK_STATUS_LINKED:
        raise AssertionError
    if second.display_name != "Asha K" or second.username != "asha_k":
        raise AssertionError
    if second.registered_at != first.registered_at:
        raise AssertionError
    if second.updated_at != first.updated_at + 60:  # noqa: PLR2004
        raise AssertionError


@pytest.mark.asyncio
async def test_blocked_identity_stays_blocked_on_relink(
    links_repository: UserLinksRepository,
) -> None:
    """Ensure a blocked user cannot unblock themselves by linking again."""
    _ = await links_repository.upsert_link(
        identity=IDENTITY,
        display_name="Asha",
        username=None,
    )
    _ = await links_repository.set_status(identity=IDENTITY, status=LINK_STATUS_BLOCKED)

    relinked = await links_repository.upsert_link(
        identity=IDENTITY,
        display_name="Asha",
        username=None,
    )

    if not relinked.is_blocked:
        raise AssertionError


@pytest.mark.asyncio
async def test_set_status_validates_and_ignores_unknown_identities(
    links_repository: UserLinksRepository,
) -> None:
    """Ensure unknown statuses raise and unknown identities return None."""
    with pytest.raises(UserLinksRepositoryError):
        _ = await links_repository.set_status(identity=IDENTITY, status="deleted")

    missing = await links_repository.set_status(
        identity="999",
        status=LINK_STATUS_BLOCKED,
    )
    if missing is not None:
        raise AssertionError


@pytest.mark.asyncio
async def test_record_contact_never_changes_an_existing_status(
    links_repository: UserLinksRepository,
) -> None:
    """Ensure first contact stores `unlinked` and later contacts keep the status."""
    first = await links_repository.record_contact(
        identity=IDENTITY,
        display_name="Asha",
        username=None,
    )
    if first.link_status != LINK_STATUS_UNLINKED:
        raise AssertionError

    _ = await links_repository.upsert_link(
        identity=IDENTITY,
        display_name="Asha",
        username=None,
    )
    linked = await links_repository.record_contact(
        identity=IDENTITY,
        display_name="Asha K",
        username="asha_k",
    )
    if linked.link_status != LINK_STATUS_LINKED or linked.username != "asha_k":
        raise AssertionError

    _ = await links_repository.set_status(identity=IDENTITY, status=LINK_STATUS_BLOCKED)
    blocked = await links_repository.record_contact(
        identity=IDENTITY,
        display_name="Asha",
        username=None,
    )
    if not blocked.is_blocked:
        raise AssertionError
