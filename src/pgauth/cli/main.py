"""pgauth command-line entry point.

Usage::

    pgauth -c /etc/pgauth/config.yaml --validate-only
    pgauth -c config.yaml db install --create-roles
    pgauth -c config.yaml db status
    pgauth -c config.yaml account create --id 1 --email alice@example.com
    pgauth -c config.yaml account verify --email alice@example.com
    pgauth -c config.yaml account list --as-admin
    python -m pgauth -c config.yaml db status
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_STORE_ERROR = 2


def _get_version() -> str:
    from pgauth import __version__

    return __version__


def _add_email(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--email", required=True, help="Account email (identity)")


def _add_password_stdin(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--password-stdin",
        action="store_true",
        default=False,
        help="Read secrets from stdin, one per line, instead of prompting.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgauth",
        description="pgauth: PostgreSQL-backed credential store",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command")

    # db
    db_parser = subparsers.add_parser("db", help="Credential store management")
    db_sub = db_parser.add_subparsers(dest="db_command")
    install = db_sub.add_parser("install", help="Install schema, routines and grants")
    install.add_argument(
        "--create-roles",
        action="store_true",
        default=False,
        help="Create missing owner/app/admin roles first.",
    )
    install.add_argument(
        "--drop-existing",
        action="store_true",
        default=False,
        help="Drop the credential schema first (destroys all accounts).",
    )
    db_sub.add_parser("status", help="Check connectivity and audit privileges")

    # account
    account_parser = subparsers.add_parser("account", help="Account management")
    account_sub = account_parser.add_subparsers(dest="account_command")

    create = account_sub.add_parser("create", help="Create an account")
    create.add_argument("--id", type=int, required=True, dest="account_id", help="Account id")
    _add_email(create)
    _add_password_stdin(create)

    verify = account_sub.add_parser("verify", help="Verify an account secret")
    _add_email(verify)
    _add_password_stdin(verify)

    passwd = account_sub.add_parser("passwd", help="Change an account secret")
    _add_email(passwd)
    _add_password_stdin(passwd)

    change_email = account_sub.add_parser("change-email", help="Change an account email")
    _add_email(change_email)
    change_email.add_argument("--new-email", required=True, help="New email")
    _add_password_stdin(change_email)

    delete = account_sub.add_parser("delete", help="Delete an account")
    _add_email(delete)

    show = account_sub.add_parser("show", help="Show public account details")
    _add_email(show)

    listing = account_sub.add_parser("list", help="List all accounts (admin only)")
    listing.add_argument(
        "--as-admin",
        action="store_true",
        default=False,
        help="Connect as database.admin_user instead of the application login.",
    )

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"pgauth: error: {message}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, dispatches."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(EXIT_FAILURE)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from pgauth.config import ConfigValidationError, PgauthConfig

        config = PgauthConfig(config_file=str(config_path))
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(EXIT_FAILURE)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(EXIT_FAILURE)

    # -- replace bootstrap logging with structured logging ---
    from pgauth.logging import configure_logging

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(EXIT_OK)

    # -- dispatch subcommand ---
    command = args.command

    if command == "db":
        from pgauth.cli.commands.db import run_db

        run_db(config, args)
    elif command == "account":
        from pgauth.cli.commands.account import run_account

        run_account(config, args)
    else:
        parser.print_help(sys.stderr)
        sys.exit(EXIT_FAILURE)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    settings = config.settings
    db = settings.database
    creds = settings.credentials
    print("Configuration OK")
    print(f"  database:    {db.user}@{db.host}:{db.port}/{db.database}")
    print(f"  owner login: {db.owner_user or '(not configured)'}")
    print(f"  admin login: {db.admin_user or '(not configured)'}")
    print(f"  schema:      {creds.schema}")
    print(f"  roles:       owner={creds.owner_role} app={creds.app_role} admin={creds.admin_role}")
    print(f"  salt bytes:  {creds.salt_bytes}")
    print(f"  log level:   {settings.logging.level} ({settings.logging.format})")
