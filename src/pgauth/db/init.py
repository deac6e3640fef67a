"""Database initialisation from pgauth configuration.

Usage::

    from pgauth.config import get_config
    from pgauth.db.init import init_database

    init_database(get_config().settings.database)

The pool always connects as the *application* principal.  That role
cannot run DDL, so unlike a typical service the schema is never set up
from here: use ``pgauth db install`` with owner credentials instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pypgkit import Database, DatabaseConfig

if TYPE_CHECKING:
    from pgauth.config.settings import DatabaseSettings

log = logging.getLogger(__name__)


def _settings_to_config(settings: DatabaseSettings) -> DatabaseConfig:
    """Map pgauth DatabaseSettings to PyPGKit DatabaseConfig."""
    return DatabaseConfig(
        host=settings.host,
        port=settings.port,
        database=settings.database,
        user=settings.user,
        password=settings.password,
        sslmode=settings.sslmode,
        min_connections=settings.min_connections,
        max_connections=settings.max_connections,
        connection_timeout=settings.connection_timeout,
    )


def init_database(settings: DatabaseSettings) -> Database:
    """Initialise the :class:`Database` singleton from config settings.

    If the singleton is already initialised, returns the existing instance.

    Parameters
    ----------
    settings:
        The ``database`` section from :class:`PgauthSettings`.

    Returns
    -------
    Database
        The ready-to-use database instance.

    """
    if Database.is_initialized():
        log.debug("Database already initialised, returning existing instance")
        return Database.get_instance()

    config = _settings_to_config(settings)

    log.info(
        "Initialising database connection: %s@%s:%s/%s",
        settings.user,
        settings.host,
        settings.port,
        settings.database,
    )

    db = Database.init(
        config=config,
        schema_path=None,
        auto_setup=False,
        interactive=False,
    )

    log.info("Database initialised successfully")
    return db


def check_connection(db: Database) -> bool:
    """Return True when a trivial query round-trips."""
    try:
        return db.fetch_value("SELECT 1") == 1
    except Exception:  # noqa: BLE001
        log.exception("Database connectivity check failed")
        return False
