from logging.config import fileConfig
import os

from alembic import context
from sqlalchemy import engine_from_config, pool

from feedwatch.config import get_settings
from feedwatch.database import Base

# Ensure ORM models are imported so metadata is populated.
import feedwatch.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    env_url = (os.environ.get("DATABASE_URL") or "").strip()
    if env_url:
        return env_url
    explicit = (config.get_main_option("sqlalchemy.url") or "").strip()
    if explicit:
        return explicit
    return get_settings().database_url


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    cfg = config.get_section(config.config_ini_section) or {}
    cfg["sqlalchemy.url"] = _database_url()

    connectable = engine_from_config(cfg, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
