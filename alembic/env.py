"""Alembic async env for the bazaar portal schema (vendors, events, applications, audit)."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context

from app.core.config import settings
from app.db.base import Base, build_engine

# Register every ORM model on Base.metadata
import app.domain  # noqa: F401

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# An explicit -x dburl=... wins over DATABASE_URL
database_url = context.get_x_argument(as_dictionary=True).get("dburl", settings.database_url)


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=database_url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(sync_conn) -> None:
    _configure(connection=sync_conn)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = build_engine(database_url)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
            await connection.commit()
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
