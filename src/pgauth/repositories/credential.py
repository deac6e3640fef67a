"""Gateway to the credential store routines.

Unlike the usual ``BaseRepository`` subclasses this class never names
the ``accounts`` table: the connected role has no grant on it.  Every
method is a single ``SELECT <schema>.<routine>(...)`` and therefore a
single atomic transaction on a pooled connection.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pypgkit import Database

from pgauth.core.types import Routine
from pgauth.models.account import Account

if TYPE_CHECKING:
    from collections.abc import Sequence

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

_ACCOUNT_COLUMNS = "account_id, identity, created_at, updated_at"


class CredentialRoutines:
    """Call the ``SECURITY DEFINER`` routines of one credential schema.

    Driver exceptions (:class:`psycopg.Error`) propagate unchanged; the
    engine decides how to surface them.
    """

    def __init__(self, schema: str = "credentials", database: Database | None = None) -> None:
        if not _IDENT_RE.match(schema):
            msg = f"invalid schema name: {schema!r}"
            raise ValueError(msg)
        self._schema = schema
        self._db = database

    @property
    def db(self) -> Database:
        return self._db or Database.get_instance()

    def _call(self, routine: Routine, nargs: int) -> str:
        placeholders = ", ".join(["%s"] * nargs)
        return f"SELECT {self._schema}.{routine}({placeholders})"  # noqa: S608

    def _status(self, routine: Routine, params: Sequence) -> str:
        return self.db.fetch_value(self._call(routine, len(params)), tuple(params))

    @staticmethod
    def _row_to_entity(row: dict) -> Account:
        return Account(
            id=row["account_id"],
            identity=row["identity"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # -- mutations -------------------------------------------------------------

    def signup(
        self,
        account_id: int,
        identity: str,
        secret: str,
    ) -> tuple[str | None, Account | None]:
        """Create an account.

        Returns the routine status and, on ``ok``, the new account with
        the timestamps assigned by the insert.
        """
        row = self.db.fetch_one(
            f"SELECT status, created_at, updated_at FROM {self._schema}.{Routine.SIGNUP}(%s, %s, %s)",  # noqa: S608
            (account_id, identity, secret),
            as_dict=True,
        )
        if not row:
            return None, None
        if row["status"] != "ok":
            return row["status"], None
        return row["status"], Account(
            id=account_id,
            identity=identity,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def authenticate(self, identity: str, secret: str) -> str:
        """Check a secret; ``ok``, ``not_found`` or ``wrong_secret``."""
        return self._status(Routine.AUTHENTICATE, (identity, secret))

    def change_password(self, identity: str, old_secret: str, new_secret: str) -> str:
        return self._status(Routine.CHANGE_PASSWORD, (identity, old_secret, new_secret))

    def change_email(self, old_identity: str, new_identity: str, secret: str) -> str:
        return self._status(Routine.CHANGE_EMAIL, (old_identity, new_identity, secret))

    def delete(self, identity: str) -> str:
        return self._status(Routine.DELETE_ACCOUNT, (identity,))

    # -- reads -----------------------------------------------------------------

    def exists(self, identity: str) -> bool:
        return bool(self._status(Routine.ACCOUNT_EXISTS, (identity,)))

    def find_by_identity(self, identity: str) -> Account | None:
        """Public fields of the account owning *identity*, or None."""
        row = self.db.fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM {self._schema}.{Routine.GET_ACCOUNT}(%s)",  # noqa: S608
            (identity,),
            as_dict=True,
        )
        return self._row_to_entity(row) if row else None

    def find_all(self) -> list[Account]:
        """Every account ordered by id.  Requires the admin role."""
        rows = self.db.fetch_all(
            f"SELECT {_ACCOUNT_COLUMNS} FROM {self._schema}.{Routine.LIST_ACCOUNTS}() "  # noqa: S608
            "ORDER BY account_id",
            as_dict=True,
        )
        return [self._row_to_entity(row) for row in rows]
