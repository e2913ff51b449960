"""
alembic/env.py — Plebiscite Migration Environment
==================================================

Migrations target PostgreSQL through ``DATABASE_URL`` (read from ``.env``).
The schema has two reference cycles, ``ideas.change_id → changes`` and
``users.top_endorsement_id → endorsements``.  Both foreign keys are declared
with ``use_alter`` on the models, so autogenerate emits them as separate
``ALTER TABLE`` steps after every table exists; the initial revision does
the same by hand.  SQLite cannot add constraints with ``ALTER``, so the
in-memory test databases are built with ``Base.metadata.create_all``
instead of these migrations.
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from alembic import context

load_dotenv()

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from plebiscite.database.models import Base  # noqa: E402

target_metadata = Base.metadata


def _database_url() -> str:
    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )
    return url


def _configure_kwargs() -> dict:
    # Status columns are plain strings; catch width changes on autogenerate.
    return {"target_metadata": target_metadata, "compare_type": True}


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout (``alembic upgrade --sql``)."""
    context.configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a single unpooled connection."""
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs())
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
