"""Credential store management subcommands."""

from __future__ import annotations

import logging
import sys

from pgauth.cli.main import EXIT_FAILURE, EXIT_OK, _print_error

log = logging.getLogger(__name__)


def run_db(config, args) -> None:
    """Handle db subcommands."""
    if args.db_command == "install":
        _db_install(config, args)
    elif args.db_command == "status":
        _db_status(config)
    else:
        _print_error("missing db subcommand (install, status)")
        sys.exit(EXIT_FAILURE)


def _db_install(config, args) -> None:
    """Install the schema, routines and grants with owner credentials."""
    from pgauth.db import InstallError, SchemaInstaller

    settings = config.settings
    installer = SchemaInstaller(settings.database, settings.credentials)
    try:
        installer.install(
            create_roles=args.create_roles,
            drop_existing=args.drop_existing,
        )
    except InstallError as exc:
        if args.debug:
            raise
        _print_error(str(exc))
        sys.exit(EXIT_FAILURE)

    print(f"Credential schema '{settings.credentials.schema}' installed")
    sys.exit(EXIT_OK)


def _db_status(config) -> None:
    """Check connectivity, then audit the grant model."""
    from pgauth.db import PrivilegeAudit, check_connection, init_database

    try:
        db = init_database(config.settings.database)
    except Exception as exc:  # noqa: BLE001
        log.exception("Database initialisation failed")
        _print_error(f"database initialisation failed: {exc}")
        sys.exit(EXIT_FAILURE)

    if not check_connection(db):
        _print_error("database is not reachable")
        sys.exit(EXIT_FAILURE)
    print("Connection: OK")

    report = PrivilegeAudit(db, config.settings.credentials).run()
    for finding in report.findings:
        mark = "PASS" if finding.passed else "FAIL"
        suffix = f"  ({finding.detail})" if finding.detail else ""
        print(f"  [{mark}] {finding.check}{suffix}")

    if not report.ok:
        _print_error(f"{len(report.failures)} privilege check(s) failed")
        sys.exit(EXIT_FAILURE)
    print("Privilege audit: OK")
    sys.exit(EXIT_OK)
