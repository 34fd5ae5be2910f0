"""Alembic environment for the AuthRelay SQLite store."""

from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy import engine_from_config, pool

from alembic import context

config = context.config


def _resolve_url() -> str:
    """Prefer an explicit URL, falling back to AUTHRELAY_DB_PATH."""
    configured = config.get_main_option("sqlalchemy.url")
    if configured:
        return configured
    db_path = Path(os.environ.get("AUTHRELAY_DB_PATH", "/data/authrelay.db"))
    return f"sqlite:///{db_path.expanduser().as_posix()}"


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    context.configure(
        url=_resolve_url(),
        target_metadata=None,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a synchronous SQLite connection."""
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = _resolve_url()
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=None,
            render_as_batch=True,
        )
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
