"""Schema migrations, run programmatically (no alembic.ini needed)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine

from docvault.persistence.db import get_database_url

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def alembic_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def head_revision() -> str | None:
    """Newest revision shipped with the package."""
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def current_revision(engine: Engine) -> str | None:
    """Revision recorded in the database, or None if never migrated."""
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def upgrade(engine: Engine | None = None, revision: str = "head") -> str | None:
    """Apply migrations up to revision in one transaction.

    Uses DOCVAULT_DATABASE_ADMIN_URL (falling back to DOCVAULT_DATABASE_URL)
    when no engine is given.

    Returns:
        The database revision after the upgrade.
    """
    owns_engine = engine is None
    if engine is None:
        engine = create_engine(get_database_url(admin=True))

    try:
        config = alembic_config()
        with engine.begin() as conn:
            config.attributes["connection"] = conn
            command.upgrade(config, revision)
        reached = current_revision(engine)
    finally:
        if owns_engine:
            engine.dispose()

    logger.info("Database migrated", extra={"revision": reached})
    return reached
