# alembic/env.py
"""Alembic runs synchronously; the app's async URL is mapped to its sync driver."""
from logging.config import fileConfig
import re

from alembic import context
from sqlalchemy import engine_from_config, pool

from pageturn.database import Base
from pageturn import models  # noqa: F401  registers every table on Base.metadata
from pageturn.settings.config import settings

SYNC_DRIVERS = (
    (r"^postgresql\+asyncpg", "postgresql+psycopg2"),
    (r"^sqlite\+aiosqlite", "sqlite"),
)


def sync_url(url: str) -> str:
    for pattern, replacement in SYNC_DRIVERS:
        url = re.sub(pattern, replacement, url)
    return url


config = context.config
DB_URL = sync_url(settings.DATABASE_URL)
config.set_main_option("sqlalchemy.url", DB_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
COMPARE = {"compare_type": True, "compare_server_default": True}


def run_migrations_offline() -> None:
    context.configure(
        url=DB_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            transaction_per_migration=True,
            **COMPARE,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
