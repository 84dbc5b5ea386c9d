"""Alembic environment for DocVault.

Loaded by alembic itself; docvault.persistence.migrate drives it without an
alembic.ini. A connection handed over in config.attributes["connection"] is
reused so callers control the transaction.
"""

from __future__ import annotations

from alembic import context
from sqlalchemy import create_engine

from docvault.persistence.db import get_database_url
from docvault.persistence.schema import metadata


def _run_offline() -> None:
    context.configure(
        url=get_database_url(admin=True),
        target_metadata=metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_online() -> None:
    connection = context.config.attributes.get("connection")
    if connection is None:
        engine = create_engine(get_database_url(admin=True))
        with engine.begin() as conn:
            context.configure(connection=conn, target_metadata=metadata)
            with context.begin_transaction():
                context.run_migrations()
        engine.dispose()
        return

    context.configure(connection=connection, target_metadata=metadata)
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _run_offline()
else:
    _run_online()
