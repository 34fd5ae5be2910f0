"""Fixtures that run the real app against a temp database and fake dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from authrelay.api.app import create_app
from authrelay.config.settings import (
    ENV_ADMIN_IDENTITY,
    ENV_API_HASH,
    ENV_API_ID,
    ENV_BOT_TOKEN,
    ENV_DB_PATH,
    ENV_WEBSITE_API_TOKEN,
    ENV_WEBSITE_URL,
)
from tests.mocks.recording_dispatcher import RecordingDispatcher

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

WEBSITE_API_TOKEN = "website-api-token"  # noqa: S105
ADMIN_IDENTITY = "7000001"
AUTH_HEADERS = {"Authorization": f"Bearer {WEBSITE_API_TOKEN}"}


@pytest.fixture
def relay_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point settings at a per-test database with the bot left unconfigured."""
    db_path = tmp_path / "relay-api.sqlite3"
    monkeypatch.setenv(ENV_DB_PATH, db_path.as_posix())
    monkeypatch.setenv(ENV_WEBSITE_API_TOKEN, WEBSITE_API_TOKEN)
    monkeypatch.setenv(ENV_ADMIN_IDENTITY, ADMIN_IDENTITY)
    monkeypatch.setenv(ENV_WEBSITE_URL, "https://wallet.example/")
    for name in (ENV_BOT_TOKEN, ENV_API_ID, ENV_API_HASH):
        monkeypatch.delenv(name, raising=False)
    return db_path


@pytest.fixture
def api_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def client(
    relay_env: Path,
    api_dispatcher: RecordingDispatcher,
) -> Iterator[TestClient]:
    """Started app whose outbound messages land in `api_dispatcher`."""
    _ = relay_env
    app = create_app()
    app.state.dispatcher_factory = lambda _telegram: api_dispatcher
    with TestClient(app) as test_client:
        yield test_client
