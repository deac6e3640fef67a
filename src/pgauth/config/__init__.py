"""Configuration subsystem for pgauth.

Public API::

    from pgauth.config import get_config, PgauthConfig

    # At startup (CLI only):
    PgauthConfig(config_file="config.yaml")

    # Everywhere else:
    cfg    = get_config()
    schema = cfg.settings.credentials.schema   # typed access
    custom = cfg.get("database.host")          # dynamic dot-path
"""

from pgauth.config.pgauth_config import (
    ConfigValidationError,
    PgauthConfig,
    get_config,
)
from pgauth.config.settings import (
    AuditLogSettings,
    CredentialSettings,
    DatabaseSettings,
    LoggingSettings,
    PgauthSettings,
)

__all__ = [
    "AuditLogSettings",
    "ConfigValidationError",
    "CredentialSettings",
    "DatabaseSettings",
    "LoggingSettings",
    # Core
    "PgauthConfig",
    # Root
    "PgauthSettings",
    "get_config",
]
