"""Store failure types.

Domain failures (wrong secret, unknown identity, ...) are ordinary
:class:`~pgauth.core.result.Result` values.  The classes here cover the
other kind: the store itself could not answer.  They are the only
exceptions the engine raises.

Usage::

    try:
        result = engine.verify(email, password)
    except StoreError as exc:
        return exc.to_dict(), 503 if exc.kind == STORE_UNAVAILABLE else 500
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------

STORE_ERROR = "store_error"
STORE_UNAVAILABLE = "store_unavailable"
ACCESS_DENIED = "access_denied"

_GENERIC_MESSAGE = "Request failed"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """The credential store failed to complete an operation.

    The message is deliberately generic.  The driver exception, with
    query text and server detail, is only reachable through
    ``__cause__`` so that server-side logging can record it while
    nothing caller-facing does.

    Parameters
    ----------
    operation:
        Name of the engine operation that failed (``"create"``,
        ``"verify"``, ...).

    """

    kind = STORE_ERROR

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} failed: {self.kind}")

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a caller-safe payload."""
        return {
            "success": False,
            "error": self.kind,
            "message": _GENERIC_MESSAGE,
        }


class StoreUnavailable(StoreError):
    """The store could not be reached (connection refused, timeout, ...)."""

    kind = STORE_UNAVAILABLE


class AccessDenied(StoreError):
    """The connected principal may not execute the requested routine."""

    kind = ACCESS_DENIED
