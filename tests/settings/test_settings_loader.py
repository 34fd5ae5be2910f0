"""Tests for static environment settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from authrelay.config.settings import (
    DEFAULT_BIND,
    DEFAULT_DB_PATH,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SUPPORT_HANDLE,
    SettingsValidationError,
    load_settings,
)
from authrelay.telegram import BotCredentials


def test_defaults_leave_bot_disabled() -> None:
    """Ensure an empty environment yields defaults and no bot credentials."""
    settings = load_settings({})

    if settings.db_path != DEFAULT_DB_PATH or settings.bind != DEFAULT_BIND:
        raise AssertionError
    if settings.log_level != DEFAULT_LOG_LEVEL:
        raise AssertionError
    if settings.support_handle != DEFAULT_SUPPORT_HANDLE:
        raise AssertionError
    if settings.bot_enabled or BotCredentials.from_settings(settings) is not None:
        raise AssertionError
    if settings.website_api_token is not None or settings.admin_identity is not None:
        raise AssertionError


def test_full_environment_is_parsed() -> None:
    """Ensure every variable is trimmed and typed."""
    settings = load_settings(
        {
            "AUTHRELAY_DB_PATH": " /tmp/relay.db ",
            "AUTHRELAY_LOG_LEVEL": "debug",
            "AUTHRELAY_BOT_TOKEN": "123:abc",
            "AUTHRELAY_API_ID": "4242",
            "AUTHRELAY_API_HASH": "hash",
            "AUTHRELAY_ADMIN_IDENTITY": "5550001",
            "AUTHRELAY_WEBSITE_URL": "https://wallet.example/",
            "AUTHRELAY_WEBSITE_API_TOKEN": "secret",
            "AUTHRELAY_SUPPORT_HANDLE": "@Helpdesk",
        },
    )

    if settings.db_path != Path("/tmp/relay.db"):  # noqa: S108
        raise AssertionError
    if settings.log_level != "DEBUG" or settings.api_id != 4242:  # noqa: PLR2004
        raise AssertionError
    if settings.website_url != "https://wallet.example":
        raise AssertionError
    if settings.admin_identity != "5550001" or settings.support_handle != "@Helpdesk":
        raise AssertionError
    credentials = BotCredentials.from_settings(settings)
    if credentials is None or credentials.bot_token != "123:abc":  # noqa: S105
        raise AssertionError


def test_blank_optional_values_are_treated_as_unset() -> None:
    settings = load_settings({"AUTHRELAY_WEBSITE_API_TOKEN": "   "})

    if settings.website_api_token is not None:
        raise AssertionError


@pytest.mark.parametrize(
    ("environ", "fragment"),
    [
        ({"AUTHRELAY_DB_PATH": "  "}, "AUTHRELAY_DB_PATH"),
        ({"AUTHRELAY_LOG_LEVEL": "chatty"}, "Allowed values"),
        ({"AUTHRELAY_API_ID": "abc"}, "positive integer"),
        ({"AUTHRELAY_ADMIN_IDENTITY": "0"}, "positive integer"),
    ],
)
def test_invalid_values_raise(environ: dict[str, str], fragment: str) -> None:
    """Ensure malformed values fail fast with the offending variable named."""
    with pytest.raises(SettingsValidationError, match=fragment):
        _ = load_settings(environ)
