"""Tagged operation results returned by the credential engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pgauth.core.types import Outcome

if TYPE_CHECKING:
    from pgauth.models.account import Account

_MESSAGES: dict[Outcome, str] = {
    Outcome.OK: "Success",
    Outcome.NOT_FOUND: "User not found",
    Outcome.ALREADY_EXISTS: "User already exists",
    Outcome.IDENTITY_TAKEN: "Email already in use",
    Outcome.WRONG_SECRET: "Invalid credentials",
    Outcome.REJECTED: "Invalid credentials",
    Outcome.INVALID_INPUT: "Invalid input",
}


@dataclass(frozen=True)
class Result:
    """Outcome of one engine operation plus any public payload.

    ``bool(result)`` is true only for :attr:`Outcome.OK`, so callers
    can write ``if engine.verify(email, pw): ...``.
    """

    outcome: Outcome
    account: Account | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the ``{"success", "message", ...}`` payload shape."""
        body: dict[str, Any] = {
            "success": self.ok,
            "message": self.detail or _MESSAGES[self.outcome],
        }
        if not self.ok:
            body["error"] = self.outcome.value
        if self.account is not None:
            body["user"] = self.account.to_dict()
        return body
