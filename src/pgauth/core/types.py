"""Enumerated types for the credential engine.

All enums inherit from ``StrEnum`` so their ``.value`` is the exact
status string returned by the stored routines.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Operation outcomes
# ---------------------------------------------------------------------------


class Outcome(StrEnum):
    OK = "ok"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    IDENTITY_TAKEN = "identity_taken"
    WRONG_SECRET = "wrong_secret"
    REJECTED = "rejected"
    INVALID_INPUT = "invalid_input"


# Status strings a routine may legitimately return.  Anything else is
# treated as a store fault.
ROUTINE_STATUSES = frozenset(
    {
        Outcome.OK,
        Outcome.NOT_FOUND,
        Outcome.ALREADY_EXISTS,
        Outcome.IDENTITY_TAKEN,
        Outcome.WRONG_SECRET,
        Outcome.INVALID_INPUT,
    }
)


# ---------------------------------------------------------------------------
# Store routines
# ---------------------------------------------------------------------------


class Routine(StrEnum):
    SIGNUP = "signup"
    AUTHENTICATE = "authenticate"
    CHANGE_PASSWORD = "change_password"
    CHANGE_EMAIL = "change_email"
    DELETE_ACCOUNT = "delete_account"
    ACCOUNT_EXISTS = "account_exists"
    GET_ACCOUNT = "get_account"
    LIST_ACCOUNTS = "list_accounts"


# Routines the application role may execute.
APP_ROUTINES = (
    Routine.SIGNUP,
    Routine.AUTHENTICATE,
    Routine.CHANGE_PASSWORD,
    Routine.CHANGE_EMAIL,
    Routine.DELETE_ACCOUNT,
    Routine.ACCOUNT_EXISTS,
    Routine.GET_ACCOUNT,
)

# Routines reserved for the administrative role.
ADMIN_ROUTINES = (Routine.LIST_ACCOUNTS,)

# Internal helpers, executable by nobody but the owner.
INTERNAL_ROUTINES = ("new_salt", "secret_digest", "secrets_equal", "touch_updated_at")

# Argument type lists used when naming a routine in catalog lookups,
# e.g. ``has_function_privilege(role, 'credentials.signup(integer, text, text)', ...)``.
ROUTINE_ARGS: dict[str, str] = {
    Routine.SIGNUP: "integer, text, text",
    Routine.AUTHENTICATE: "text, text",
    Routine.CHANGE_PASSWORD: "text, text, text",
    Routine.CHANGE_EMAIL: "text, text, text",
    Routine.DELETE_ACCOUNT: "text",
    Routine.ACCOUNT_EXISTS: "text",
    Routine.GET_ACCOUNT: "text",
    Routine.LIST_ACCOUNTS: "",
    "new_salt": "",
    "secret_digest": "bytea, text",
    "secrets_equal": "bytea, bytea",
    "touch_updated_at": "",
}
