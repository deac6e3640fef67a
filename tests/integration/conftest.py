"""Integration test fixtures for pgauth.

These tests need a live PostgreSQL and are skipped unless the DSNs are
provided:

``PGAUTH_TEST_OWNER_DSN``
    A login allowed to create roles, the pgcrypto extension and a schema
    (typically a superuser in a throwaway database).
``PGAUTH_TEST_APP_DSN``
    An ordinary login; the installer makes it a member of the app role.
``PGAUTH_TEST_ADMIN_DSN`` (optional)
    An ordinary login; the installer makes it a member of the admin
    role.  Without it, admin calls run on the owner connection after
    ``SET ROLE``.
"""

from __future__ import annotations

import os

import psycopg
import pytest
from psycopg import sql
from psycopg.conninfo import conninfo_to_dict

from pgauth.config.settings import CredentialSettings, DatabaseSettings

OWNER_DSN = os.environ.get("PGAUTH_TEST_OWNER_DSN")
APP_DSN = os.environ.get("PGAUTH_TEST_APP_DSN")
ADMIN_DSN = os.environ.get("PGAUTH_TEST_ADMIN_DSN")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def _database_settings(app_dsn: str, owner_dsn: str, admin_dsn: str | None) -> DatabaseSettings:
    app = conninfo_to_dict(app_dsn)
    owner = conninfo_to_dict(owner_dsn)
    admin = conninfo_to_dict(admin_dsn) if admin_dsn else {}
    return DatabaseSettings(
        host=app.get("host", "localhost"),
        port=int(app.get("port", 5432)),
        database=app["dbname"],
        user=app["user"],
        password=app.get("password", ""),
        sslmode=app.get("sslmode", "prefer"),
        min_connections=1,
        max_connections=12,
        connection_timeout=10.0,
        owner_user=owner["user"],
        owner_password=owner.get("password", ""),
        admin_user=admin.get("user"),
        admin_password=admin.get("password", ""),
    )


@pytest.fixture(scope="session")
def creds() -> CredentialSettings:
    return CredentialSettings(
        schema="pgauth_it",
        owner_role="pgauth_it_owner",
        app_role="pgauth_it_app",
        admin_role="pgauth_it_admin",
        pgcrypto_schema="public",
        salt_bytes=32,
        min_secret_length=6,
        max_identity_length=255,
    )


@pytest.fixture(scope="session")
def db_settings() -> DatabaseSettings:
    return _database_settings(APP_DSN, OWNER_DSN, ADMIN_DSN)


# ---------------------------------------------------------------------------
# Schema lifecycle
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def installed(db_settings, creds):
    """Install a fresh credential schema once per session."""
    from pgauth.db.installer import SchemaInstaller

    SchemaInstaller(
        db_settings,
        creds,
        connect=lambda _settings: psycopg.connect(OWNER_DSN),
    ).install(create_roles=True, drop_existing=True)
    yield creds
    with psycopg.connect(OWNER_DSN, autocommit=True) as conn:
        conn.execute(
            sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(sql.Identifier(creds.schema)),
        )


@pytest.fixture()
def owner_conn(installed):
    with psycopg.connect(OWNER_DSN, autocommit=True) as conn:
        yield conn


@pytest.fixture(autouse=True)
def _empty_accounts(installed):
    """Start every integration test with an empty accounts table."""
    creds = installed
    with psycopg.connect(OWNER_DSN, autocommit=True) as conn:
        conn.execute(
            sql.SQL("TRUNCATE {}.accounts").format(sql.Identifier(creds.schema)),
        )
    yield


# ---------------------------------------------------------------------------
# Engine on the application pool
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def app_database(installed, db_settings):
    from pgauth.db.init import init_database

    return init_database(db_settings)


@pytest.fixture()
def engine(app_database, creds):
    from pgauth.services import CredentialEngine

    return CredentialEngine.from_settings(creds, app_database)


@pytest.fixture()
def admin_conn(installed, creds):
    """Connection acting as the admin role."""
    if ADMIN_DSN:
        with psycopg.connect(ADMIN_DSN, autocommit=True) as conn:
            yield conn
        return
    with psycopg.connect(OWNER_DSN, autocommit=True) as conn:
        conn.execute(sql.SQL("SET ROLE {}").format(sql.Identifier(creds.admin_role)))
        yield conn
