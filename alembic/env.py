"""
Alembic Migration Environment
===============================

What:  Configures Alembic to work with the async SQLAlchemy setup of the feed.
Why:   The `posts` table is created and changed through versioned migrations,
       never through Base.metadata.create_all() in a running service.
How:   Reads the database URL from feed_api.config and runs migrations
       through an async engine via connection.run_sync(). SQLite URLs get
       batch mode, because SQLite cannot ALTER most column properties.
Who:   The `alembic` CLI (upgrade, downgrade, revision --autogenerate).
When:  Before the API is started against a new or older database.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from feed_api.config import settings
from feed_api.database import Base

# Models must be imported to register with Base.metadata for --autogenerate
from feed_api.models.post import Post  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Single source of truth for the URL: application settings, not alembic.ini
config.set_main_option("sqlalchemy.url", settings.database_url)


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting to the database."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        render_as_batch=settings.is_sqlite,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=settings.is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
