"""Typed application settings loaded from static environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

LogLevel = str

ENV_DB_PATH = "AUTHRELAY_DB_PATH"
ENV_BIND = "AUTHRELAY_BIND"
ENV_LOG_LEVEL = "AUTHRELAY_LOG_LEVEL"
ENV_BOT_TOKEN = "AUTHRELAY_BOT_TOKEN"  # noqa: S105
ENV_API_ID = "AUTHRELAY_API_ID"
ENV_API_HASH = "AUTHRELAY_API_HASH"
ENV_BOT_SESSION_PATH = "AUTHRELAY_BOT_SESSION_PATH"
ENV_ADMIN_IDENTITY = "AUTHRELAY_ADMIN_IDENTITY"
ENV_WEBSITE_URL = "AUTHRELAY_WEBSITE_URL"
ENV_WEBSITE_API_TOKEN = "AUTHRELAY_WEBSITE_API_TOKEN"  # noqa: S105
ENV_SUPPORT_HANDLE = "AUTHRELAY_SUPPORT_HANDLE"

DEFAULT_DB_PATH = Path("/data/authrelay.db")
DEFAULT_BIND = "127.0.0.1"
DEFAULT_LOG_LEVEL: LogLevel = "INFO"
DEFAULT_BOT_SESSION_PATH = Path("/data/authrelay-bot.session")
DEFAULT_SUPPORT_HANDLE = "@ClickWalletSupportBot"

VALID_LOG_LEVELS: frozenset[LogLevel] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
)


class SettingsValidationError(ValueError):
    """Raised when static settings env vars contain invalid values."""

    @classmethod
    def for_empty_value(cls, env_var: str) -> SettingsValidationError:
        """Build error for empty non-optional env var values."""
        message = f"Invalid {env_var}: value cannot be empty."
        return cls(message)

    @classmethod
    def for_invalid_choice(
        cls,
        env_var: str,
        value: str,
        allowed_values: str,
    ) -> SettingsValidationError:
        """Build error for enum-like env vars with fixed allowlists."""
        message = f"Invalid {env_var}: {value!r}. Allowed values: {allowed_values}."
        return cls(message)

    @classmethod
    def for_non_numeric(cls, env_var: str, value: str) -> SettingsValidationError:
        """Build error for env vars that must hold a positive integer."""
        message = f"Invalid {env_var}: {value!r}. Expected a positive integer."
        return cls(message)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Resolved static configuration values for process startup."""

    db_path: Path
    bind: str
    log_level: LogLevel
    bot_token: str | None
    api_id: int | None
    api_hash: str | None
    bot_session_path: Path
    admin_identity: str | None
    website_url: str | None
    website_api_token: str | None
    support_handle: str

    @property
    def bot_enabled(self) -> bool:
        """Return True when Telegram credentials are complete."""
        return (
            self.bot_token is not None
            and self.api_id is not None
            and self.api_hash is not None
        )


def load_settings(environ: Mapping[str, str] | None = None) -> AppSettings:
    """Load and validate static settings from process environment."""
    env = os.environ if environ is None else environ

    return AppSettings(
        db_path=_read_path(env, ENV_DB_PATH, DEFAULT_DB_PATH),
        bind=_read_bind(env),
        log_level=_read_log_level(env),
        bot_token=_read_optional(env, ENV_BOT_TOKEN),
        api_id=_read_optional_positive_int(env, ENV_API_ID),
        api_hash=_read_optional(env, ENV_API_HASH),
        bot_session_path=_read_path(
            env,
            ENV_BOT_SESSION_PATH,
            DEFAULT_BOT_SESSION_PATH,
        ),
        admin_identity=_read_optional_identity(env, ENV_ADMIN_IDENTITY),
        website_url=_read_website_url(env),
        website_api_token=_read_optional(env, ENV_WEBSITE_API_TOKEN),
        support_handle=_read_optional(env, ENV_SUPPORT_HANDLE)
        or DEFAULT_SUPPORT_HANDLE,
    )


def _read_path(environ: Mapping[str, str], env_var: str, default: Path) -> Path:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    return Path(value).expanduser()


def _read_bind(environ: Mapping[str, str]) -> str:
    raw = environ.get(ENV_BIND)
    if raw is None:
        return DEFAULT_BIND
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(ENV_BIND)
    return value


def _read_log_level(environ: Mapping[str, str]) -> LogLevel:
    raw = environ.get(ENV_LOG_LEVEL)
    if raw is None:
        return DEFAULT_LOG_LEVEL
    value = raw.strip().upper()
    if value in VALID_LOG_LEVELS:
        return value
    allowed = ", ".join(sorted(VALID_LOG_LEVELS))
    raise SettingsValidationError.for_invalid_choice(ENV_LOG_LEVEL, raw, allowed)


def _read_optional(environ: Mapping[str, str], env_var: str) -> str | None:
    raw = environ.get(env_var)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _read_optional_positive_int(
    environ: Mapping[str, str],
    env_var: str,
) -> int | None:
    value = _read_optional(environ, env_var)
    if value is None:
        return None
    if not value.isdigit() or int(value) <= 0:
        raise SettingsValidationError.for_non_numeric(env_var, value)
    return int(value)


def _read_optional_identity(environ: Mapping[str, str], env_var: str) -> str | None:
    value = _read_optional_positive_int(environ, env_var)
    return None if value is None else str(value)


def _read_website_url(environ: Mapping[str, str]) -> str | None:
    value = _read_optional(environ, ENV_WEBSITE_URL)
    if value is None:
        return None
    return value.rstrip("/")
