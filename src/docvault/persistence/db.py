"""Database engine for the metadata store.

DOCVAULT_DATABASE_URL configures the application connection; migrations may
use a more privileged DOCVAULT_DATABASE_ADMIN_URL. When neither is set the
application runs on in-memory stores. Nothing falls back to a local database.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from sqlalchemy import create_engine

from docvault.errors import ConfigError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DOCVAULT_DATABASE_URL_ENV = "DOCVAULT_DATABASE_URL"
DOCVAULT_DATABASE_ADMIN_URL_ENV = "DOCVAULT_DATABASE_ADMIN_URL"

_engines: dict[str, Engine] = {}


class DatabaseConfigError(ConfigError):
    code = "DATABASE_NOT_CONFIGURED"


def is_database_configured() -> bool:
    return bool(os.environ.get(DOCVAULT_DATABASE_URL_ENV))


def get_database_url(admin: bool = False) -> str:
    """Connection URL; postgres:// is rewritten to postgresql:// for SQLAlchemy.

    Raises:
        DatabaseConfigError: If no URL is configured.
    """
    url = (os.environ.get(DOCVAULT_DATABASE_ADMIN_URL_ENV) if admin else None) or os.environ.get(
        DOCVAULT_DATABASE_URL_ENV
    )
    if not url:
        raise DatabaseConfigError(f"Database URL not configured; set {DOCVAULT_DATABASE_URL_ENV}")
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://") :]
    return url


def get_engine() -> Engine:
    """Process-wide engine for the application URL, created on first use."""
    url = get_database_url()
    engine = _engines.get(url)
    if engine is None:
        engine = create_engine(url, pool_size=5, max_overflow=10, pool_pre_ping=True)
        _engines[url] = engine
        logger.info("Created database engine", extra={"dialect": engine.dialect.name})
    return engine


def dispose_engines() -> None:
    while _engines:
        _, engine = _engines.popitem()
        engine.dispose()
