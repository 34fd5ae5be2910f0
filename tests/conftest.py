"""Shared pytest fixtures for storage, auth service and API tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from authrelay.auth import LoginAlertCoordinator, OtpIssuer
from authrelay.config.settings import load_settings
from authrelay.storage import (
    ConversationStateRepository,
    LoginSessionsRepository,
    OtpChallengesRepository,
    StorageRuntime,
    UserLinksRepository,
    WriterQueue,
    create_storage_runtime,
    dispose_storage_runtime,
    upgrade_database,
)
from tests.mocks.fake_clock import FakeClock
from tests.mocks.recording_dispatcher import RecordingDispatcher

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

SUPPORT_HANDLE = "@RelaySupport"
WEBSITE_URL = "https://wallet.example"


@pytest.fixture
def sqlite_db_path(tmp_path: Path) -> Path:
    """Provide a per-test SQLite file migrated to the Alembic head."""
    db_path = tmp_path / "authrelay.sqlite3"
    upgrade_database(db_path)
    return db_path


@pytest.fixture
async def storage_runtime(sqlite_db_path: Path) -> AsyncIterator[StorageRuntime]:
    """Async engines bound to the migrated per-test database."""
    runtime = create_storage_runtime(
        load_settings({"AUTHRELAY_DB_PATH": sqlite_db_path.as_posix()}),
    )
    try:
        yield runtime
    finally:
        await dispose_storage_runtime(runtime)


@pytest.fixture
async def writer_queue() -> AsyncIterator[WriterQueue]:
    """Single-writer queue closed after each test."""
    queue = WriterQueue()
    try:
        yield queue
    finally:
        await queue.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def otp_repository(
    storage_runtime: StorageRuntime,
    clock: FakeClock,
) -> OtpChallengesRepository:
    return OtpChallengesRepository(
        read_session_factory=storage_runtime.read_session_factory,
        write_session_factory=storage_runtime.write_session_factory,
        now_provider=clock,
    )


@pytest.fixture
def sessions_repository(
    storage_runtime: StorageRuntime,
    clock: FakeClock,
) -> LoginSessionsRepository:
    return LoginSessionsRepository(
        read_session_factory=storage_runtime.read_session_factory,
        write_session_factory=storage_runtime.write_session_factory,
        now_provider=clock,
    )


@pytest.fixture
def links_repository(
    storage_runtime: StorageRuntime,
    clock: FakeClock,
) -> UserLinksRepository:
    return UserLinksRepository(
        read_session_factory=storage_runtime.read_session_factory,
        write_session_factory=storage_runtime.write_session_factory,
        now_provider=clock,
    )


@pytest.fixture
def conversations_repository(
    storage_runtime: StorageRuntime,
    clock: FakeClock,
) -> ConversationStateRepository:
    return ConversationStateRepository(
        read_session_factory=storage_runtime.read_session_factory,
        write_session_factory=storage_runtime.write_session_factory,
        now_provider=clock,
    )


@pytest.fixture
def otp_issuer(
    otp_repository: OtpChallengesRepository,
    dispatcher: RecordingDispatcher,
    writer_queue: WriterQueue,
) -> OtpIssuer:
    return OtpIssuer(
        repository=otp_repository,
        dispatcher=dispatcher,
        writer_queue=writer_queue,
        website_url=WEBSITE_URL,
    )


@pytest.fixture
def login_alerts(
    sessions_repository: LoginSessionsRepository,
    dispatcher: RecordingDispatcher,
    writer_queue: WriterQueue,
) -> LoginAlertCoordinator:
    return LoginAlertCoordinator(
        repository=sessions_repository,
        dispatcher=dispatcher,
        writer_queue=writer_queue,
        support_handle=SUPPORT_HANDLE,
    )
