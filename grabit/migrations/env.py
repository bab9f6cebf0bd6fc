"""
grabit/migrations/env.py — Alembic environment for the Grabit schema.

The database URL comes from the same config classes the app uses
(grabit.config), so `alembic upgrade head` and the running service always
agree on where the tables live. TEST_RUN=1 selects the testing config.

    alembic upgrade head
    TEST_RUN=1 alembic upgrade head
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# grabit.config loads .env on import.
from grabit.config import ActiveConfig, config_by_name
from grabit.app.extensions import db
from grabit.app.models import (  # noqa: F401
    challenge,
    commit_approval,
    join_request,
    membership,
    user,
)

target_metadata = db.metadata

_config_class = config_by_name["testing"] if os.getenv("TEST_RUN") else ActiveConfig
db_url = _config_class.SQLALCHEMY_DATABASE_URI
if not db_url:
    raise RuntimeError(
        f"{_config_class.__name__} has no SQLALCHEMY_DATABASE_URI; set DATABASE_URL."
    )

config = context.config
config.set_main_option("sqlalchemy.url", db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    _configure(
        url=db_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _configure(connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
