"""
Alembic environment for the drafts database (SQLite or PostgreSQL).

- Uses the same DB_URL as the application (app.core.config)
- Runs migrations through an async engine
- Batch mode on SQLite, which cannot ALTER most things in place
"""

import asyncio
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import event, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

# Load .env before the application settings are read
load_dotenv()

from app.core.config import config as settings  # noqa: E402
from app.core.db.base import Base  # noqa: E402
from app.core.db.engine import _configure_sqlite_connection  # noqa: E402
from app.modules.drafts.models import InvoiceDraft  # noqa: E402,F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

is_sqlite = settings.is_sqlite
if is_sqlite and ":memory:" not in settings.database_url:
    Path(settings.database_url.split("///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting to the database."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(
        config.get_main_option("sqlalchemy.url"),
        poolclass=pool.NullPool,
    )

    if is_sqlite:
        @event.listens_for(connectable.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            _configure_sqlite_connection(dbapi_connection, connection_record)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
