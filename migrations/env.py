from __future__ import annotations

import logging
import os
import time
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.exc import OperationalError

from carmarket.app.config import settings
from carmarket.app.errors import ConfigurationError
from carmarket.app.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")
target_metadata = Base.metadata

CONNECT_ATTEMPTS = int(os.getenv("MIGRATE_CONNECT_ATTEMPTS", "15"))
CONNECT_DELAY_SECONDS = float(os.getenv("MIGRATE_CONNECT_DELAY", "2"))


def database_url() -> str:
    url = settings.BACKEND_URL or config.get_main_option("sqlalchemy.url")
    if not url:
        raise ConfigurationError(["BACKEND_URL"])
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _connect_with_retry(connectable):
    # the database container may still be starting
    for attempt in range(1, CONNECT_ATTEMPTS + 1):
        try:
            return connectable.connect()
        except OperationalError:
            if attempt == CONNECT_ATTEMPTS:
                raise
            logger.info("db_not_ready attempt=%s/%s", attempt, CONNECT_ATTEMPTS)
            time.sleep(CONNECT_DELAY_SECONDS)


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section) or {}
    section["sqlalchemy.url"] = database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with _connect_with_retry(connectable) as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
