"""Tests for emaktab_shot.credential_store (real sqlite in tmp_path)."""

from __future__ import annotations

import pytest

from emaktab_shot.credential_store import (
    CredentialNotFound,
    DuplicateKeyError,
    count_credentials,
    create_credential,
    delete_by_id,
    delete_by_login,
    find_all,
    find_by_name_or_login,
    get_by_login,
)


class TestCreate:
    def test_create_returns_stored_record(self, conn):
        cred = create_credential(conn, name="Alice", login="alice1", password="secret")
        assert cred.credential_id is not None
        assert cred.created_at and cred.updated_at
        stored = get_by_login(conn, "alice1")
        assert stored is not None
        assert (stored.name, stored.login, stored.password) == ("Alice", "alice1", "secret")

    def test_duplicate_login_rejected_and_count_unchanged(self, conn, make_cred):
        make_cred("Alice", "a1")
        make_cred("Bob", "b1")
        before = count_credentials(conn)
        with pytest.raises(DuplicateKeyError):
            create_credential(conn, name="Someone else", login="a1", password="x")
        assert count_credentials(conn) == before

    def test_same_name_different_login_allowed(self, conn, make_cred):
        make_cred("Alice", "a1")
        make_cred("Alice", "a2")
        assert count_credentials(conn) == 2

    def test_values_stored_verbatim(self, conn):
        create_credential(conn, name="O'Neil \"x\"", login="Login; DROP", password="  p w ")
        stored = get_by_login(conn, "Login; DROP")
        assert stored.name == "O'Neil \"x\""
        assert stored.password == "  p w "

    @pytest.mark.parametrize("field", ["name", "login", "password"])
    def test_empty_field_rejected(self, conn, field):
        values = {"name": "n", "login": "l", "password": "p"}
        values[field] = ""
        with pytest.raises(ValueError):
            create_credential(conn, **values)
        assert count_credentials(conn) == 0


class TestFind:
    def test_find_all_empty(self, conn):
        assert find_all(conn) == []

    def test_find_all_sorted_by_name_for_any_insert_order(self, conn, make_cred):
        for name, login in [("Zarina", "z"), ("Bobur", "b"), ("Aziz", "a"), ("Malika", "m")]:
            make_cred(name, login)
        names = [c.name for c in find_all(conn)]
        assert names == sorted(names)

    def test_find_by_name(self, conn, make_cred):
        make_cred("Alice", "alice1")
        assert find_by_name_or_login(conn, "Alice").login == "alice1"

    def test_find_by_login(self, conn, make_cred):
        make_cred("Alice", "alice1")
        assert find_by_name_or_login(conn, "alice1").name == "Alice"

    def test_find_missing_raises(self, conn, make_cred):
        make_cred("Alice", "alice1")
        with pytest.raises(CredentialNotFound):
            find_by_name_or_login(conn, "nobody")


class TestDelete:
    def test_delete_by_login_reports_removal(self, conn, make_cred):
        make_cred("Alice", "alice1")
        assert delete_by_login(conn, "alice1") is True
        assert delete_by_login(conn, "alice1") is False
        assert count_credentials(conn) == 0

    def test_delete_by_id(self, conn, make_cred):
        cred = make_cred("Alice", "alice1")
        make_cred("Bob", "bob1")
        assert delete_by_id(conn, cred.credential_id) is True
        assert [c.login for c in find_all(conn)] == ["bob1"]

    def test_delete_unknown_id_leaves_store(self, conn, make_cred):
        make_cred("Alice", "alice1")
        assert delete_by_id(conn, 9999) is False
        assert count_credentials(conn) == 1

    def test_login_reusable_after_delete(self, conn, make_cred):
        make_cred("Alice", "alice1")
        delete_by_login(conn, "alice1")
        make_cred("Alice again", "alice1")
        assert get_by_login(conn, "alice1").name == "Alice again"
