"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from pgauth.config import get_config

    db = get_config().settings.database
    print(db.host, db.port)        # typed, IDE-autocompleted
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """PostgreSQL connection and pool settings.

    ``user``/``password`` are the application principal, which holds
    nothing but ``EXECUTE`` on the credential routines.  The optional
    ``owner_user``/``owner_password`` pair is only used to install the
    schema and to run privilege audits.  ``admin_user``/``admin_password``
    name an optional login that is made a member of the admin role and
    used for listing accounts.
    """

    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str
    min_connections: int
    max_connections: int
    connection_timeout: float
    owner_user: str | None
    owner_password: str
    admin_user: str | None = None
    admin_password: str = ""


def _build_database(data: dict | None) -> DatabaseSettings:
    d = data or {}
    return DatabaseSettings(
        host=d.get("host", "localhost"),
        port=d.get("port", 5432),
        database=d["database"],
        user=d["user"],
        password=d.get("password", ""),
        sslmode=d.get("sslmode", "prefer"),
        min_connections=d.get("min_connections", 2),
        max_connections=d.get("max_connections", 10),
        connection_timeout=d.get("connection_timeout", 30.0),
        owner_user=d.get("owner_user"),
        owner_password=d.get("owner_password", ""),
        admin_user=d.get("admin_user"),
        admin_password=d.get("admin_password", ""),
    )


# ---------------------------------------------------------------------------
# Credential store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CredentialSettings:
    """Credential schema layout, role names and hashing parameters."""

    schema: str
    owner_role: str
    app_role: str
    admin_role: str
    pgcrypto_schema: str
    salt_bytes: int
    min_secret_length: int
    max_identity_length: int


def _build_credentials(data: dict | None) -> CredentialSettings:
    d = data or {}
    return CredentialSettings(
        schema=d.get("schema", "credentials"),
        owner_role=d.get("owner_role", "credentials_owner"),
        app_role=d.get("app_role", "authuser"),
        admin_role=d.get("admin_role", "authadmin"),
        pgcrypto_schema=d.get("pgcrypto_schema", "public"),
        salt_bytes=d.get("salt_bytes", 32),
        min_secret_length=d.get("min_secret_length", 6),
        max_identity_length=d.get("max_identity_length", 255),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, audit)."""

    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "json"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", True),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 104857600),
            backup_count=a.get("backup_count", 10),
        ),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PgauthSettings:
    database: DatabaseSettings
    credentials: CredentialSettings
    logging: LoggingSettings


def build_settings(data: dict) -> PgauthSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`PgauthConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return PgauthSettings(
        database=_build_database(data.get("database")),
        credentials=_build_credentials(data.get("credentials")),
        logging=_build_logging(data.get("logging")),
    )
