# alembic/env.py
from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import MetaData, pool
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

# Loads .env (or DOTENV_PATH) the same way the app does
from app.core.config import settings

# ───── build an asyncpg URL for Alembic ──────────────────────────────
url_obj = make_url(settings.DATABASE_URL)

# libpq-only query keys that asyncpg's SQLAlchemy dialect rejects
LIBPQ_ONLY_KEYS = {"sslmode", "sslrootcert", "sslcert", "sslkey"}
clean_qs = {k: v for k, v in url_obj.query.items() if k not in LIBPQ_ONLY_KEYS}

DATABASE_URL = (
    url_obj.set(query=clean_qs)
           .set(drivername="postgresql+asyncpg")
           .render_as_string(hide_password=False)
)

# Migrations are hand-written; no ORM models to autogenerate from
target_metadata = MetaData()

MIGRATION_KW = dict(
    target_metadata=target_metadata,
    compare_type=True,
    compare_server_default=True,
)


def run_migrations_offline() -> None:
    context.configure(url=DATABASE_URL,
                      literal_binds=True,
                      dialect_opts={"paramstyle": "named"},
                      **MIGRATION_KW)
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(sync_conn) -> None:
    context.configure(connection=sync_conn, **MIGRATION_KW)
    with context.begin_transaction():
        context.run_migrations()


async def do_run_migrations() -> None:
    engine: AsyncEngine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    async with engine.connect() as conn:
        await conn.run_sync(_run_sync_migrations)
        await conn.commit()
    await engine.dispose()


def run_migrations_online() -> None:
    asyncio.run(do_run_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
