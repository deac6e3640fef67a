"""Install the credential schema, routines and grants as the owner.

Usage::

    from pgauth.db.installer import SchemaInstaller

    installer = SchemaInstaller(settings.database, settings.credentials)
    installer.install(create_roles=True)

The three bundled templates (``sql/schema.sql``, ``sql/routines.sql``,
``sql/grants.sql``) are rendered with :mod:`psycopg.sql` so that every
schema and role name is quoted as an identifier, then executed in a
single transaction on a dedicated owner connection.  The application
pool is never used here.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import psycopg
from psycopg import sql

if TYPE_CHECKING:
    from pgauth.config.settings import CredentialSettings, DatabaseSettings

_SQL_DIR = Path(__file__).parent / "sql"

TEMPLATES = ("schema.sql", "routines.sql", "grants.sql")

log = logging.getLogger(__name__)
audit_log = logging.getLogger("pgauth.audit")


class InstallError(Exception):
    """Raised when the schema cannot be installed."""


def owner_connect(db_settings: DatabaseSettings) -> psycopg.Connection:
    """Open a one-off connection as the owner principal.

    Raises :class:`InstallError` when no ``owner_user`` is configured.
    """
    if not db_settings.owner_user:
        msg = "database.owner_user is required for this operation"
        raise InstallError(msg)
    return psycopg.connect(
        host=db_settings.host,
        port=db_settings.port,
        dbname=db_settings.database,
        user=db_settings.owner_user,
        password=db_settings.owner_password,
        sslmode=db_settings.sslmode,
        connect_timeout=max(1, int(db_settings.connection_timeout)),
    )


def load_template(name: str) -> str:
    """Return the raw text of a bundled SQL template."""
    return (_SQL_DIR / name).read_text(encoding="utf-8")


def render_template(name: str, creds: CredentialSettings) -> sql.Composed:
    """Compose template *name* with quoted identifiers for *creds*."""
    return sql.SQL(load_template(name)).format(
        schema=sql.Identifier(creds.schema),
        owner_role=sql.Identifier(creds.owner_role),
        app_role=sql.Identifier(creds.app_role),
        admin_role=sql.Identifier(creds.admin_role),
        pgcrypto=sql.Identifier(creds.pgcrypto_schema),
        salt_bytes=sql.Literal(creds.salt_bytes),
    )


class SchemaInstaller:
    """Create or refresh the credential store in one transaction.

    Parameters
    ----------
    db_settings:
        Connection settings; ``owner_user``/``owner_password`` are used.
    creds:
        Schema name, role names and hashing parameters.
    connect:
        Connection factory, replaceable in tests.

    """

    def __init__(
        self,
        db_settings: DatabaseSettings,
        creds: CredentialSettings,
        connect=owner_connect,
    ) -> None:
        self._db_settings = db_settings
        self._creds = creds
        self._connect = connect

    def install(
        self,
        *,
        create_roles: bool = False,
        drop_existing: bool = False,
    ) -> None:
        """Run every template.  Idempotent unless *drop_existing* is set.

        Parameters
        ----------
        create_roles:
            Create missing ``NOLOGIN`` owner/app/admin roles first and
            make the configured logins members of them (``user`` of the
            app role, ``owner_user`` of the owner role, ``admin_user``
            of the admin role).
        drop_existing:
            ``DROP SCHEMA ... CASCADE`` first.  Destroys all accounts.

        """
        creds = self._creds
        log.info(
            "Installing credential schema %s (owner=%s, app=%s, admin=%s)",
            creds.schema,
            creds.owner_role,
            creds.app_role,
            creds.admin_role,
        )
        try:
            with self._connect(self._db_settings) as conn, conn.transaction():
                with conn.cursor() as cur:
                    if create_roles:
                        self._ensure_roles(cur)
                    if drop_existing:
                        log.warning("Dropping existing schema %s", creds.schema)
                        cur.execute(
                            sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(
                                sql.Identifier(creds.schema),
                            ),
                        )
                    for name in TEMPLATES:
                        log.debug("Applying %s", name)
                        cur.execute(render_template(name, creds))
        except psycopg.Error as exc:
            log.exception("Schema installation failed")
            msg = f"schema installation failed: {type(exc).__name__}"
            raise InstallError(msg) from exc

        log.info("Credential schema %s installed", creds.schema)
        audit_log.info(
            "Credential schema %s installed by %s (create_roles=%s, drop_existing=%s)",
            creds.schema,
            self._db_settings.owner_user,
            create_roles,
            drop_existing,
        )

    # -- roles ---------------------------------------------------------------

    def _ensure_roles(self, cur) -> None:
        creds = self._creds
        for role in (creds.owner_role, creds.app_role, creds.admin_role):
            cur.execute("SELECT 1 FROM pg_roles WHERE rolname = %s", (role,))
            if cur.fetchone() is None:
                log.info("Creating role %s", role)
                cur.execute(
                    sql.SQL("CREATE ROLE {} NOLOGIN").format(sql.Identifier(role)),
                )

        login = self._db_settings.user
        if login != creds.app_role:
            cur.execute(
                sql.SQL("GRANT {} TO {}").format(
                    sql.Identifier(creds.app_role),
                    sql.Identifier(login),
                ),
            )

        owner_login = self._db_settings.owner_user
        if owner_login and owner_login != creds.owner_role:
            cur.execute(
                sql.SQL("GRANT {} TO {}").format(
                    sql.Identifier(creds.owner_role),
                    sql.Identifier(owner_login),
                ),
            )

        admin_login = self._db_settings.admin_user
        if admin_login and admin_login != creds.admin_role:
            log.info("Granting %s to %s", creds.admin_role, admin_login)
            cur.execute(
                sql.SQL("GRANT {} TO {}").format(
                    sql.Identifier(creds.admin_role),
                    sql.Identifier(admin_login),
                ),
            )
