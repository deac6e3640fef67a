"""Structured security event logger.

Emits standardized security events for SIEM integration.
All events are logged to the ``pgauth.security`` logger with
a consistent ``event_id`` field for filtering and alerting.

No event carries a plaintext secret, salt or hash.  Extra fields are
still passed through :func:`~pgauth.logging.sanitize.sanitize_for_logs`
so a careless caller cannot leak one.
"""

from __future__ import annotations

import logging
from typing import Any

from pgauth.logging.sanitize import sanitize_for_logs

security_log = logging.getLogger("pgauth.security")


def _emit(
    event_id: str,
    message: str,
    *args: Any,  # noqa: ANN401
    account_id: int | None = None,
    severity: str = "INFO",
    **extra: Any,  # noqa: ANN401
) -> None:
    """Emit a structured security event.

    All *extra* keyword arguments are sanitized to redact
    credential material before logging.
    """
    sanitized_extra = sanitize_for_logs(extra)
    data: dict[str, object] = {
        "event_id": event_id,
        "severity": severity,
    }
    if account_id is not None:
        data["account_id"] = account_id
    data.update(sanitized_extra)
    level = getattr(logging, severity.upper(), logging.INFO)
    security_log.log(level, message, *args, extra=data)


def account_created(account_id: int, identity: str) -> None:
    """Log creation of a new account."""
    _emit(
        "pgauth.security.account_created",
        "Account created: %s",
        identity,
        account_id=account_id,
        identity=identity,
    )


def account_creation_rejected(account_id: int, identity: str) -> None:
    """Log a signup refused because the id or identity is already in use."""
    _emit(
        "pgauth.security.account_creation_rejected",
        "Account creation rejected, already exists: %s",
        identity,
        account_id=account_id,
        identity=identity,
        severity="WARNING",
    )


def authentication_succeeded(identity: str) -> None:
    """Log a successful secret verification."""
    _emit(
        "pgauth.security.authentication_succeeded",
        "Authentication succeeded: %s",
        identity,
        identity=identity,
    )


def authentication_failed(identity: str, reason: str) -> None:
    """Log a failed secret verification.

    *reason* (``not_found`` / ``wrong_secret``) is recorded for
    operators only; callers of the engine just see ``rejected``.
    """
    _emit(
        "pgauth.security.authentication_failed",
        "Authentication failed: %s (%s)",
        identity,
        reason,
        identity=identity,
        reason=reason,
        severity="WARNING",
    )


def password_changed(identity: str) -> None:
    """Log a completed password change."""
    _emit(
        "pgauth.security.password_changed",
        "Password changed: %s",
        identity,
        identity=identity,
        severity="WARNING",
    )


def password_change_failed(identity: str, reason: str) -> None:
    """Log a refused password change."""
    _emit(
        "pgauth.security.password_change_failed",
        "Password change refused: %s (%s)",
        identity,
        reason,
        identity=identity,
        reason=reason,
        severity="WARNING",
    )


def identity_changed(old_identity: str, new_identity: str) -> None:
    """Log an email/identity change."""
    _emit(
        "pgauth.security.identity_changed",
        "Identity changed: %s -> %s",
        old_identity,
        new_identity,
        old_identity=old_identity,
        new_identity=new_identity,
        severity="WARNING",
    )


def identity_change_failed(old_identity: str, new_identity: str, reason: str) -> None:
    """Log a refused identity change."""
    _emit(
        "pgauth.security.identity_change_failed",
        "Identity change refused: %s -> %s (%s)",
        old_identity,
        new_identity,
        reason,
        old_identity=old_identity,
        new_identity=new_identity,
        reason=reason,
        severity="WARNING",
    )


def account_deleted(identity: str) -> None:
    """Log permanent removal of an account."""
    _emit(
        "pgauth.security.account_deleted",
        "Account deleted: %s",
        identity,
        identity=identity,
        severity="WARNING",
    )


def store_failure(operation: str, kind: str) -> None:
    """Log that the credential store failed during *operation*."""
    _emit(
        "pgauth.security.store_failure",
        "Credential store failure during %s: %s",
        operation,
        kind,
        operation=operation,
        kind=kind,
        severity="ERROR",
    )
