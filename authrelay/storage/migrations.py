"""Alembic migration runner used by application startup lifecycle hooks."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.exc import SQLAlchemyError

from authrelay.config.settings import load_settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_CONFIG_PATH = PROJECT_ROOT / "alembic.ini"
ALEMBIC_SCRIPT_LOCATION = PROJECT_ROOT / "alembic"


class MigrationStartupError(RuntimeError):
    """Raised when startup migrations fail before API availability."""

    @classmethod
    def for_db_path_prepare_failure(
        cls,
        db_path: Path,
        *,
        details: str,
    ) -> MigrationStartupError:
        """Build error for DB path preparation failures before migration run."""
        message = (
            "Failed to prepare database path for startup migrations "
            f"(db={db_path.as_posix()}): {details}"
        )
        return cls(message)

    @classmethod
    def for_upgrade_failure(
        cls,
        db_path: Path,
        *,
        details: str,
    ) -> MigrationStartupError:
        """Build error for a failed upgrade to the Alembic head revision."""
        message = (
            "Failed to apply startup migrations to Alembic head "
            f"(db={db_path.as_posix()}): {details}"
        )
        return cls(message)


def build_alembic_config(db_path: Path) -> Config:
    """Build an Alembic config pointing at the bundled scripts and `db_path`."""
    config = Config(
        ALEMBIC_CONFIG_PATH.as_posix() if ALEMBIC_CONFIG_PATH.exists() else None,
    )
    config.set_main_option("script_location", ALEMBIC_SCRIPT_LOCATION.as_posix())
    config.set_main_option(
        "sqlalchemy.url",
        f"sqlite:///{db_path.expanduser().as_posix()}",
    )
    return config


def upgrade_database(db_path: Path) -> None:
    """Upgrade one SQLite database file to the Alembic head revision."""
    db_path = db_path.expanduser()
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MigrationStartupError.for_db_path_prepare_failure(
            db_path,
            details=str(exc),
        ) from exc

    logger.info("Applying migrations to Alembic head (db=%s)", db_path)
    try:
        command.upgrade(build_alembic_config(db_path), "head")
    except SQLAlchemyError as exc:
        raise MigrationStartupError.for_upgrade_failure(
            db_path,
            details=str(exc),
        ) from exc
    logger.info("Migrations complete (db=%s)", db_path)


def run_startup_migrations() -> None:
    """Upgrade the configured database to the Alembic head revision."""
    upgrade_database(load_settings().db_path)


class MigrationRunnerDependency:
    """Lifecycle dependency that gates app startup on migration completion."""

    async def startup(self) -> None:
        """Run migrations in a worker thread before the app accepts requests."""
        await asyncio.to_thread(run_startup_migrations)

    async def shutdown(self) -> None:
        """No-op shutdown hook for lifecycle protocol compatibility."""
        return
