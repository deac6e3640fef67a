"""Privilege-separation audit.

Inspects the system catalogs and reports whether the credential store
is still locked down the way ``grants.sql`` leaves it.  The catalog
functions used here (``has_table_privilege``, ``has_function_privilege``,
``pg_proc``, ``pg_indexes``) are readable by any role, so the audit can
run on the unprivileged application pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pgauth.core.types import ADMIN_ROUTINES, APP_ROUTINES, ROUTINE_ARGS

if TYPE_CHECKING:
    from pypgkit import Database

    from pgauth.config.settings import CredentialSettings

log = logging.getLogger(__name__)

_TABLE_PRIVILEGES = "SELECT, INSERT, UPDATE, DELETE, TRUNCATE, REFERENCES, TRIGGER"
_IDENTITY_INDEX = "accounts_identity_idx"


@dataclass(frozen=True)
class Finding:
    check: str
    passed: bool
    detail: str = ""


@dataclass
class AuditReport:
    findings: list[Finding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(f.passed for f in self.findings)

    @property
    def failures(self) -> list[Finding]:
        return [f for f in self.findings if not f.passed]

    def add(self, check: str, passed: bool, detail: str = "") -> None:  # noqa: FBT001
        self.findings.append(Finding(check=check, passed=bool(passed), detail=detail))


def routine_signature(schema: str, name: str) -> str:
    """Return ``schema.name(argtypes)`` for catalog privilege lookups."""
    return f"{schema}.{name}({ROUTINE_ARGS[name]})"


class PrivilegeAudit:
    """Verify the grant model of an installed credential schema."""

    def __init__(self, db: Database, creds: CredentialSettings) -> None:
        self._db = db
        self._creds = creds

    def run(self) -> AuditReport:
        """Run every check and return the collected findings."""
        report = AuditReport()
        creds = self._creds

        if not self._schema_installed():
            report.add("schema_installed", False, f"{creds.schema}.accounts not found")
            return report
        report.add("schema_installed", True)

        self._check_table_access(report)
        self._check_routine_access(report)
        self._check_security_definer(report)
        self._check_identity_index(report)

        for finding in report.failures:
            log.warning("Privilege audit failed: %s %s", finding.check, finding.detail)
        return report

    # -- individual checks ---------------------------------------------------

    def _schema_installed(self) -> bool:
        return bool(
            self._db.fetch_value(
                "SELECT to_regclass(%s) IS NOT NULL",
                (f"{self._creds.schema}.accounts",),
            )
        )

    def _check_table_access(self, report: AuditReport) -> None:
        table = f"{self._creds.schema}.accounts"
        for role in (self._creds.app_role, self._creds.admin_role):
            has_any = self._db.fetch_value(
                "SELECT has_table_privilege(%s, %s, %s)",
                (role, table, _TABLE_PRIVILEGES),
            )
            report.add(
                f"no_table_access:{role}",
                not has_any,
                f"{role} holds privileges on {table}" if has_any else "",
            )

    def _check_routine_access(self, report: AuditReport) -> None:
        creds = self._creds
        schema = creds.schema
        for name in (*APP_ROUTINES, *ADMIN_ROUTINES):
            signature = routine_signature(schema, name)
            public_exec = self._db.fetch_value(
                "SELECT has_function_privilege('public', %s, 'EXECUTE')",
                (signature,),
            )
            report.add(f"no_public_execute:{name}", not public_exec)

            app_exec = self._can_execute(creds.app_role, signature)
            admin_exec = self._can_execute(creds.admin_role, signature)
            if name in APP_ROUTINES:
                report.add(f"app_execute:{name}", app_exec)
                report.add(f"admin_execute:{name}", admin_exec)
            else:
                report.add(
                    f"app_denied:{name}",
                    not app_exec,
                    f"{creds.app_role} may enumerate accounts" if app_exec else "",
                )
                report.add(f"admin_execute:{name}", admin_exec)

    def _can_execute(self, role: str, signature: str) -> bool:
        return bool(
            self._db.fetch_value(
                "SELECT has_function_privilege(%s, %s, 'EXECUTE')",
                (role, signature),
            )
        )

    def _check_security_definer(self, report: AuditReport) -> None:
        names = [str(r) for r in (*APP_ROUTINES, *ADMIN_ROUTINES)]
        rows = self._db.fetch_all(
            "SELECT p.proname, p.prosecdef "
            "FROM pg_proc p JOIN pg_namespace n ON n.oid = p.pronamespace "
            "WHERE n.nspname = %s AND p.proname = ANY(%s)",
            (self._creds.schema, names),
            as_dict=True,
        )
        definer = {row["proname"]: row["prosecdef"] for row in rows}
        for name in names:
            if name not in definer:
                report.add(f"security_definer:{name}", False, "routine missing")
            else:
                report.add(f"security_definer:{name}", definer[name])

    def _check_identity_index(self, report: AuditReport) -> None:
        present = self._db.fetch_value(
            "SELECT count(*) FROM pg_indexes "
            "WHERE schemaname = %s AND tablename = 'accounts' AND indexname = %s",
            (self._creds.schema, _IDENTITY_INDEX),
        )
        report.add("identity_index", bool(present), "" if present else f"{_IDENTITY_INDEX} missing")
