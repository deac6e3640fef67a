"""Account management subcommands.

Every command goes through :class:`CredentialEngine` on the application
pool, exactly as an embedding service would.  Secrets are read with
:func:`getpass.getpass` or, with ``--password-stdin``, one per line
from standard input; they are never accepted as arguments.
"""

from __future__ import annotations

import dataclasses
import getpass
import json
import logging
import sys

from pgauth.cli.main import EXIT_FAILURE, EXIT_OK, EXIT_STORE_ERROR, _print_error

log = logging.getLogger(__name__)


def run_account(config, args) -> None:
    """Handle account subcommands."""
    handlers = {
        "create": _create,
        "verify": _verify,
        "passwd": _passwd,
        "change-email": _change_email,
        "delete": _delete,
        "show": _show,
        "list": _list,
    }
    handler = handlers.get(args.account_command)
    if handler is None:
        _print_error(f"missing account subcommand ({', '.join(handlers)})")
        sys.exit(EXIT_FAILURE)

    from pgauth.core.errors import StoreError

    engine = _build_engine(config, as_admin=getattr(args, "as_admin", False))
    try:
        code = handler(engine, args)
    except StoreError as exc:
        _print_error(str(exc))
        sys.exit(EXIT_STORE_ERROR)
    sys.exit(code)


def _build_engine(config, *, as_admin: bool = False):
    from pgauth.db import init_database
    from pgauth.services import CredentialEngine

    db_settings = config.settings.database
    if as_admin:
        if not db_settings.admin_user:
            _print_error("--as-admin requires database.admin_user")
            sys.exit(EXIT_FAILURE)
        db_settings = dataclasses.replace(
            db_settings,
            user=db_settings.admin_user,
            password=db_settings.admin_password,
        )

    try:
        db = init_database(db_settings)
    except Exception as exc:  # noqa: BLE001
        log.exception("Database initialisation failed")
        _print_error(f"database initialisation failed: {exc}")
        sys.exit(EXIT_STORE_ERROR)
    return CredentialEngine.from_settings(config.settings.credentials, db)


def _read_secrets(args, *prompts: str) -> list[str]:
    """Collect one secret per prompt from stdin or the terminal."""
    if args.password_stdin:
        secrets = []
        for _ in prompts:
            line = sys.stdin.readline()
            secrets.append(line.rstrip("\r\n"))
        return secrets
    return [getpass.getpass(prompt) for prompt in prompts]


def _report(result) -> int:
    print(json.dumps(result.to_dict(), indent=2))
    return EXIT_OK if result.ok else EXIT_FAILURE


# -- handlers -------------------------------------------------------------------


def _create(engine, args) -> int:
    (secret,) = _read_secrets(args, "Password: ")
    return _report(engine.create(args.account_id, args.email, secret))


def _verify(engine, args) -> int:
    (secret,) = _read_secrets(args, "Password: ")
    result = engine.verify(args.email, secret)
    print("authenticated" if result.ok else "rejected")
    return EXIT_OK if result.ok else EXIT_FAILURE


def _passwd(engine, args) -> int:
    old_secret, new_secret = _read_secrets(args, "Current password: ", "New password: ")
    return _report(engine.change_secret(args.email, old_secret, new_secret))


def _change_email(engine, args) -> int:
    (secret,) = _read_secrets(args, "Password: ")
    return _report(engine.change_identity(args.email, args.new_email, secret))


def _delete(engine, args) -> int:
    return _report(engine.delete(args.email))


def _show(engine, args) -> int:
    return _report(engine.get_details(args.email))


def _list(engine, args) -> int:  # noqa: ARG001
    accounts = engine.list_all()
    print(json.dumps([account.to_dict() for account in accounts], indent=2))
    return EXIT_OK
