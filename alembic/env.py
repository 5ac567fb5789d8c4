"""Alembic environment for the order_batches / orders / illiquid_markets schema.

Migrations are raw SQL (``op.execute``), so there is no metadata to
autogenerate from. The target database follows ``DB_PROFILE`` exactly as
the app does; ``-x db_profile=<name>`` overrides it for a single run.
"""
import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from config.settings import Settings, get_settings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _resolve_url() -> str:
    profile = context.get_x_argument(as_dictionary=True).get("db_profile")
    settings = get_settings()
    if profile:
        settings = Settings(DB_PROFILE=profile)
    return settings.database_url


def _configure(**kwargs) -> None:  # type: ignore[no-untyped-def]
    context.configure(target_metadata=None, transaction_per_migration=True, **kwargs)


def _migrate(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online(url: str) -> None:
    engine = create_async_engine(url)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


url = _resolve_url()
if context.is_offline_mode():
    # Emits SQL to stdout for review instead of touching the database
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()
else:
    asyncio.run(_migrate_online(url))
