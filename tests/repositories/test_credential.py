"""Unit tests for CredentialRoutines: the SQL issued for each routine."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest

from pgauth.models.account import Account
from pgauth.repositories.credential import CredentialRoutines

_T0 = datetime(2026, 1, 1, tzinfo=UTC)
_T1 = datetime(2026, 1, 2, tzinfo=UTC)


@pytest.fixture()
def db():
    return MagicMock()


@pytest.fixture()
def routines(db):
    return CredentialRoutines("credentials", db)


class TestConstruction:
    @pytest.mark.parametrize("schema", ["", "Credentials", "bad-name", "x; DROP TABLE y", "1abc"])
    def test_rejects_non_identifier_schema(self, schema):
        with pytest.raises(ValueError, match="invalid schema name"):
            CredentialRoutines(schema, MagicMock())

    @patch("pgauth.repositories.credential.Database")
    def test_falls_back_to_singleton(self, mock_db_class):
        routines = CredentialRoutines()
        assert routines.db is mock_db_class.get_instance.return_value


class TestMutations:
    def test_signup_returns_status_and_account(self, routines, db):
        db.fetch_one.return_value = {"status": "ok", "created_at": _T0, "updated_at": _T0}

        status, account = routines.signup(1, "a@b.c", "pw")

        assert status == "ok"
        assert account == Account(id=1, identity="a@b.c", created_at=_T0, updated_at=_T0)
        db.fetch_one.assert_called_once_with(
            "SELECT status, created_at, updated_at FROM credentials.signup(%s, %s, %s)",
            (1, "a@b.c", "pw"),
            as_dict=True,
        )
        db.fetch_value.assert_not_called()

    def test_signup_refused_has_no_account(self, routines, db):
        db.fetch_one.return_value = {"status": "already_exists", "created_at": None, "updated_at": None}

        assert routines.signup(1, "a@b.c", "pw") == ("already_exists", None)

    def test_signup_without_row(self, routines, db):
        db.fetch_one.return_value = None

        assert routines.signup(1, "a@b.c", "pw") == (None, None)

    def test_authenticate(self, routines, db):
        db.fetch_value.return_value = "wrong_secret"

        assert routines.authenticate("a@b.c", "pw") == "wrong_secret"
        db.fetch_value.assert_called_once_with(
            "SELECT credentials.authenticate(%s, %s)",
            ("a@b.c", "pw"),
        )

    def test_change_password(self, routines, db):
        routines.change_password("a@b.c", "old", "new")
        db.fetch_value.assert_called_once_with(
            "SELECT credentials.change_password(%s, %s, %s)",
            ("a@b.c", "old", "new"),
        )

    def test_change_email(self, routines, db):
        routines.change_email("a@b.c", "d@e.f", "pw")
        db.fetch_value.assert_called_once_with(
            "SELECT credentials.change_email(%s, %s, %s)",
            ("a@b.c", "d@e.f", "pw"),
        )

    def test_delete(self, routines, db):
        routines.delete("a@b.c")
        db.fetch_value.assert_called_once_with(
            "SELECT credentials.delete_account(%s)",
            ("a@b.c",),
        )

    def test_custom_schema_used(self, db):
        CredentialRoutines("auth", db).delete("a@b.c")
        assert db.fetch_value.call_args.args[0] == "SELECT auth.delete_account(%s)"


class TestReads:
    def test_exists(self, routines, db):
        db.fetch_value.return_value = True

        assert routines.exists("a@b.c") is True
        db.fetch_value.assert_called_once_with(
            "SELECT credentials.account_exists(%s)",
            ("a@b.c",),
        )

    def test_exists_false(self, routines, db):
        db.fetch_value.return_value = False
        assert routines.exists("a@b.c") is False

    def test_find_by_identity(self, routines, db):
        db.fetch_one.return_value = {
            "account_id": 7,
            "identity": "a@b.c",
            "created_at": _T0,
            "updated_at": _T1,
        }

        account = routines.find_by_identity("a@b.c")

        assert account == Account(id=7, identity="a@b.c", created_at=_T0, updated_at=_T1)
        query, params = db.fetch_one.call_args.args
        assert "FROM credentials.get_account(%s)" in query
        assert params == ("a@b.c",)
        assert db.fetch_one.call_args.kwargs == {"as_dict": True}

    def test_find_by_identity_missing(self, routines, db):
        db.fetch_one.return_value = None
        assert routines.find_by_identity("nobody@b.c") is None

    def test_find_all_ordered_by_id(self, routines, db):
        db.fetch_all.return_value = [
            {"account_id": 1, "identity": "a@b.c", "created_at": _T0, "updated_at": _T0},
            {"account_id": 2, "identity": "d@e.f", "created_at": _T1, "updated_at": _T1},
        ]

        accounts = routines.find_all()

        assert [a.id for a in accounts] == [1, 2]
        query = db.fetch_all.call_args.args[0]
        assert "FROM credentials.list_accounts()" in query
        assert query.endswith("ORDER BY account_id")
        assert db.fetch_all.call_args.kwargs == {"as_dict": True}
