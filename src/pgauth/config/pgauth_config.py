"""pgauth configuration loader built on ConfigKit.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    PgauthConfig(config_file="/etc/pgauth/config.yaml")

    # 2. Any module retrieves it afterwards
    from pgauth.config import get_config
    cfg = get_config()
    cfg.settings.database.host  # typed access

    # 3. Dynamic access
    cfg.get("credentials.schema", default="credentials")
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from configkit import ConfigKit, ConfigKitMeta

from pgauth.config.settings import PgauthSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

# Schema and role names are spliced into DDL and routine calls, so keep
# them to plain lower-case identifiers.
_SQL_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")

_MIN_SALT_BYTES = 16
_MAX_IDENTITY_COLUMN = 255

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: PgauthConfig | None = None


def get_config() -> PgauthConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`PgauthConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "PgauthConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class PgauthConfig(ConfigKit):
    """Central configuration for pgauth.

    Subclasses :class:`configkit.ConfigKit`.  The JSON schema is
    bundled at ``config/schema.json``; users supply only ``config_file``.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(
        self,
        *,
        config_file: str | Path,
        schema_file: str | Path | None = None,  # noqa: ARG002
    ) -> None:
        """Initialise the pgauth configuration singleton.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file.
        schema_file:
            Ignored.  Exists only to satisfy the
            :class:`ConfigKitMeta` singleton guard.

        """
        global _instance  # noqa: PLW0603

        super().__init__(
            config_file=config_file,
            schema_file=_SCHEMA_PATH,
        )

        self._config_path = str(config_file)
        self._settings: PgauthSettings = build_settings(self.data)
        _instance = self

    # -- lifecycle overrides ------------------------------------------------

    def _load(self) -> None:
        """Load config file then resolve ``${VAR}`` env-var references.

        Runs env-var resolution **before** schema validation so that
        substituted values (e.g. ``${LOG_LEVEL:-INFO}``) are checked
        against enum constraints in the schema.
        """
        super()._load()
        _resolve_env_vars(self._data)

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> PgauthSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation.

        Called automatically by ConfigKit **after** schema validation
        passes.
        """
        errors: list[str] = []
        warnings: list[str] = []

        db = self.data.get("database") or {}
        creds = self.data.get("credentials") or {}

        # -- Database --
        min_conn = db.get("min_connections", 2)
        max_conn = db.get("max_connections", 10)
        if min_conn > max_conn:
            errors.append(
                f"database.min_connections ({min_conn}) must be <= "
                f"database.max_connections ({max_conn})",
            )

        owner_user = db.get("owner_user")
        if owner_user and owner_user == db.get("user"):
            warnings.append(
                "database.owner_user equals database.user; the application "
                "would connect with owner rights and bypass privilege separation",
            )

        admin_user = db.get("admin_user")
        if admin_user and admin_user == db.get("user"):
            errors.append(
                "database.admin_user must differ from database.user; the "
                "application login may not list accounts",
            )

        # -- Credentials --
        names = {
            "schema": creds.get("schema", "credentials"),
            "owner_role": creds.get("owner_role", "credentials_owner"),
            "app_role": creds.get("app_role", "authuser"),
            "admin_role": creds.get("admin_role", "authadmin"),
            "pgcrypto_schema": creds.get("pgcrypto_schema", "public"),
        }
        for key, value in names.items():
            if not _SQL_IDENT_RE.match(value):
                errors.append(
                    f"credentials.{key} ({value!r}) must be a lower-case SQL "
                    "identifier (letters, digits, underscore)",
                )

        roles = [names["owner_role"], names["app_role"], names["admin_role"]]
        if len(set(roles)) != len(roles):
            errors.append(
                "credentials.owner_role, credentials.app_role and "
                "credentials.admin_role must all be different",
            )

        salt_bytes = creds.get("salt_bytes", 32)
        if salt_bytes < _MIN_SALT_BYTES:
            errors.append(
                f"credentials.salt_bytes ({salt_bytes}) must be >= "
                f"{_MIN_SALT_BYTES} for cryptographic safety",
            )

        max_identity = creds.get("max_identity_length", _MAX_IDENTITY_COLUMN)
        if max_identity > _MAX_IDENTITY_COLUMN:
            errors.append(
                f"credentials.max_identity_length ({max_identity}) must be <= "
                f"{_MAX_IDENTITY_COLUMN} (column width)",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    def reload_settings(self) -> PgauthSettings:
        """Re-read the config file and rebuild settings.

        Does not reset the singleton.  Re-reads the file, resolves env
        vars, and returns a fresh :class:`PgauthSettings` tree.
        """
        import json  # noqa: PLC0415

        import yaml  # noqa: PLC0415

        source_file = self.data.get("_source") or self._config_path
        if not source_file:
            msg = "Cannot reload: no source file recorded"
            raise RuntimeError(msg)

        with open(source_file, encoding="utf-8") as f:  # noqa: PTH123
            if source_file.endswith((".yaml", ".yml")):
                new_data = yaml.safe_load(f)
            else:
                new_data = json.load(f)

        _resolve_env_vars(new_data)
        return build_settings(new_data)

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None
        ConfigKitMeta.reset()

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        source = self.data.get("_source") or self._config_path
        return f"<PgauthConfig config_file={source}>"
