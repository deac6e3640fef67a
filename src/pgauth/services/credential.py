"""Credential engine: signup, verification and credential mutation.

Each public method validates the obvious shape of its input, makes
exactly one routine call through :class:`CredentialRoutines`, and maps
the routine's status string to a :class:`Result`.  The check-then-act
logic (existence, uniqueness, secret match, fresh salt) runs inside the
routine, in one transaction, under the owner's rights.

Domain failures come back as results.  Only a failing store raises,
as a :class:`~pgauth.core.errors.StoreError`.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import TYPE_CHECKING

import psycopg
from psycopg import errors as pg_errors
from pypgkit.exceptions import DatabaseConnectionError, PyPgKitError

from pgauth.core.errors import AccessDenied, StoreError, StoreUnavailable
from pgauth.core.result import Result
from pgauth.core.types import ROUTINE_STATUSES, Outcome
from pgauth.logging import security_events
from pgauth.models.account import Account
from pgauth.repositories.credential import CredentialRoutines

if TYPE_CHECKING:
    from collections.abc import Iterator

    from pypgkit import Database

    from pgauth.config.settings import CredentialSettings

log = logging.getLogger(__name__)

# Loose email shape: something@something, no whitespace.
_IDENTITY_RE = re.compile(r"^[^\s@]+@[^\s@]+$")

_MAX_ACCOUNT_ID = 2**31 - 1  # INTEGER column
_DEFAULT_MIN_SECRET_LENGTH = 6
_DEFAULT_MAX_IDENTITY_LENGTH = 255


def _classify(exc: Exception) -> type[StoreError]:
    if isinstance(exc, pg_errors.InsufficientPrivilege):
        return AccessDenied
    if isinstance(exc, (psycopg.OperationalError, DatabaseConnectionError)):
        return StoreUnavailable
    return StoreError


class CredentialEngine:
    """Account credential operations over the privileged store routines.

    Holds no per-call state; a single instance may be shared between
    threads, each call borrowing its own pooled connection.
    """

    def __init__(
        self,
        routines: CredentialRoutines,
        *,
        min_secret_length: int = _DEFAULT_MIN_SECRET_LENGTH,
        max_identity_length: int = _DEFAULT_MAX_IDENTITY_LENGTH,
    ) -> None:
        self._routines = routines
        self._min_secret_length = min_secret_length
        self._max_identity_length = max_identity_length

    @classmethod
    def from_settings(
        cls,
        creds: CredentialSettings,
        database: Database | None = None,
    ) -> CredentialEngine:
        """Build an engine for the schema and limits in *creds*."""
        return cls(
            CredentialRoutines(creds.schema, database),
            min_secret_length=creds.min_secret_length,
            max_identity_length=creds.max_identity_length,
        )

    # -- input checks ----------------------------------------------------------

    def _valid_identity(self, identity: object) -> bool:
        return (
            isinstance(identity, str)
            and 0 < len(identity) <= self._max_identity_length
            and "\x00" not in identity
            and _IDENTITY_RE.match(identity) is not None
        )

    @staticmethod
    def _present(secret: object) -> bool:
        return isinstance(secret, str) and len(secret) > 0 and "\x00" not in secret

    def _strong_enough(self, secret: object) -> bool:
        return self._present(secret) and len(secret) >= self._min_secret_length  # type: ignore[arg-type]

    @staticmethod
    def _valid_account_id(account_id: object) -> bool:
        return (
            isinstance(account_id, int)
            and not isinstance(account_id, bool)
            and 0 < account_id <= _MAX_ACCOUNT_ID
        )

    # -- store access ----------------------------------------------------------

    @contextmanager
    def _store(self, operation: str) -> Iterator[None]:
        """Translate driver and pool failures into :class:`StoreError` subclasses."""
        try:
            yield
        except (psycopg.Error, PyPgKitError) as exc:
            error_cls = _classify(exc)
            log.exception(
                "Credential store failure during %s",
                operation,
                extra={"operation": operation},
            )
            security_events.store_failure(operation, error_cls.kind)
            raise error_cls(operation) from exc

    @staticmethod
    def _outcome(operation: str, status: str) -> Outcome:
        if status not in ROUTINE_STATUSES:
            log.error(
                "Unexpected status %r from %s routine",
                status,
                operation,
                extra={"operation": operation},
            )
            security_events.store_failure(operation, StoreError.kind)
            raise StoreError(operation)
        return Outcome(status)

    # -- operations ------------------------------------------------------------

    def create(self, account_id: int, identity: str, secret: str) -> Result:
        """Create an account with a freshly salted secret hash.

        Returns ``OK`` with the public account, ``ALREADY_EXISTS`` when
        the identity (or id) is taken, or ``INVALID_INPUT``.
        """
        if not (
            self._valid_account_id(account_id)
            and self._valid_identity(identity)
            and self._strong_enough(secret)
        ):
            return Result(Outcome.INVALID_INPUT)

        with self._store("create"):
            status, account = self._routines.signup(account_id, identity, secret)
        outcome = self._outcome("create", status)

        if outcome is Outcome.OK:
            security_events.account_created(account_id, identity)
            return Result(Outcome.OK, detail="User signed up successfully", account=account)
        if outcome is Outcome.ALREADY_EXISTS:
            security_events.account_creation_rejected(account_id, identity)
        return Result(outcome)

    def verify(self, identity: str, secret: str) -> Result:
        """Check *secret* against the stored hash for *identity*.

        Unknown identity and wrong secret both yield ``REJECTED``; the
        difference is visible only in the security log.
        """
        if not self._valid_identity(identity) or not self._present(secret):
            security_events.authentication_failed(
                identity if isinstance(identity, str) else "-",
                Outcome.INVALID_INPUT.value,
            )
            return Result(Outcome.REJECTED)

        with self._store("verify"):
            status = self._routines.authenticate(identity, secret)
        outcome = self._outcome("verify", status)

        if outcome is Outcome.OK:
            security_events.authentication_succeeded(identity)
            return Result(Outcome.OK, detail="Authentication successful")
        security_events.authentication_failed(identity, outcome.value)
        return Result(Outcome.REJECTED)

    def change_secret(self, identity: str, old_secret: str, new_secret: str) -> Result:
        """Replace the secret after re-verifying *old_secret*.

        A new salt is drawn on every change.
        """
        if (
            not self._valid_identity(identity)
            or not self._present(old_secret)
            or not self._strong_enough(new_secret)
        ):
            return Result(Outcome.INVALID_INPUT)

        with self._store("change_secret"):
            status = self._routines.change_password(identity, old_secret, new_secret)
        outcome = self._outcome("change_secret", status)

        if outcome is Outcome.OK:
            security_events.password_changed(identity)
            return Result(Outcome.OK, detail="Password changed successfully")
        security_events.password_change_failed(identity, outcome.value)
        return Result(outcome)

    def change_identity(self, old_identity: str, new_identity: str, secret: str) -> Result:
        """Move an account to *new_identity*, keeping id, salt and hash."""
        if (
            not self._valid_identity(old_identity)
            or not self._valid_identity(new_identity)
            or not self._present(secret)
        ):
            return Result(Outcome.INVALID_INPUT)

        with self._store("change_identity"):
            status = self._routines.change_email(old_identity, new_identity, secret)
        outcome = self._outcome("change_identity", status)

        if outcome is Outcome.OK:
            security_events.identity_changed(old_identity, new_identity)
            return Result(Outcome.OK, detail="Email changed successfully")
        security_events.identity_change_failed(old_identity, new_identity, outcome.value)
        return Result(outcome)

    def delete(self, identity: str) -> Result:
        """Permanently remove the account owning *identity*."""
        if not self._valid_identity(identity):
            return Result(Outcome.INVALID_INPUT)

        with self._store("delete"):
            status = self._routines.delete(identity)
        outcome = self._outcome("delete", status)

        if outcome is Outcome.OK:
            security_events.account_deleted(identity)
            return Result(Outcome.OK, detail="User deleted successfully")
        return Result(outcome)

    def exists(self, identity: str) -> bool:
        if not self._valid_identity(identity):
            return False
        with self._store("exists"):
            return self._routines.exists(identity)

    def get_details(self, identity: str) -> Result:
        """Public fields of one account, or ``NOT_FOUND``."""
        if not self._valid_identity(identity):
            return Result(Outcome.INVALID_INPUT)
        with self._store("get_details"):
            account = self._routines.find_by_identity(identity)
        if account is None:
            return Result(Outcome.NOT_FOUND)
        return Result(Outcome.OK, account=account)

    def list_all(self) -> list[Account]:
        """All accounts ordered by id.

        Only the admin role may execute the underlying routine; on the
        application pool this raises :class:`AccessDenied`.
        """
        with self._store("list_all"):
            return self._routines.find_all()
