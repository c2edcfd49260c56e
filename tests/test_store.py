"""Unit tests for auth/store.py -- the account repository.

Covers:
- create / read_by_email / read_by_id round trip, role mapped back to Role
- duplicate email on create and on update -> AccountAlreadyExistsError
- unknown ids and emails -> AccountNotFoundError
- update overwrites mutable columns but never id or created_at
- soft delete hides the account from every read and from further updates
- driver failures surface as StoreError
"""

import dataclasses
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from auth.errors import AccountAlreadyExistsError, AccountNotFoundError, StoreError
from auth.models import Role
from auth.store import AccountStore


def test_create_then_read_by_email(store: AccountStore, account_factory) -> None:
    acct = account_factory("reader@example.com", "Valid123", name="Ria", points=3)
    store.create(acct)
    got = store.read_by_email("reader@example.com")
    assert got.id == acct.id
    assert got.name == "Ria"
    assert got.points == 3
    assert got.role is Role.CLIENT
    assert got.created_at
    assert got.deleted_at is None


def test_read_by_id(store: AccountStore, account_factory) -> None:
    acct = account_factory("admin@example.com", "Valid123", role=Role.ADMIN)
    store.create(acct)
    got = store.read_by_id(acct.id)
    assert got.email == "admin@example.com"
    assert got.role is Role.ADMIN
    assert got.password_hash == acct.password_hash
    assert got.salt == acct.salt


def test_duplicate_email_rejected(store: AccountStore, account_factory) -> None:
    store.create(account_factory("dup@example.com", "Valid123"))
    with pytest.raises(AccountAlreadyExistsError):
        store.create(account_factory("dup@example.com", "Other123"))


def test_email_lookup_is_exact(store: AccountStore, account_factory) -> None:
    store.create(account_factory("case@example.com", "Valid123"))
    with pytest.raises(AccountNotFoundError):
        store.read_by_email("CASE@example.com")


def test_unknown_lookups_raise_not_found(store: AccountStore) -> None:
    with pytest.raises(AccountNotFoundError):
        store.read_by_email("nobody@example.com")
    with pytest.raises(AccountNotFoundError):
        store.read_by_id("no-such-id")


def test_update_overwrites_mutable_fields(store: AccountStore, account_factory) -> None:
    acct = account_factory("old@example.com", "Valid123")
    store.create(acct)
    original = store.read_by_id(acct.id)
    updated = store.update(dataclasses.replace(original, email="new@example.com", phone="555", created_at="x"))
    assert updated.email == "new@example.com"
    assert updated.phone == "555"
    assert updated.created_at == original.created_at
    with pytest.raises(AccountNotFoundError):
        store.read_by_email("old@example.com")


def test_update_to_taken_email_conflicts(store: AccountStore, account_factory) -> None:
    a = account_factory("a@example.com", "Valid123")
    b = account_factory("b@example.com", "Valid123")
    store.create(a)
    store.create(b)
    with pytest.raises(AccountAlreadyExistsError):
        store.update(dataclasses.replace(store.read_by_id(b.id), email="a@example.com"))


def test_update_unknown_raises_not_found(store: AccountStore, account_factory) -> None:
    with pytest.raises(AccountNotFoundError):
        store.update(account_factory("ghost@example.com", "Valid123"))


def test_soft_delete_hides_account(store: AccountStore, account_factory) -> None:
    acct = account_factory("gone@example.com", "Valid123")
    store.create(acct)
    store.delete(acct.id)
    with pytest.raises(AccountNotFoundError):
        store.read_by_id(acct.id)
    with pytest.raises(AccountNotFoundError):
        store.read_by_email("gone@example.com")
    with pytest.raises(AccountNotFoundError):
        store.update(acct)
    with pytest.raises(AccountNotFoundError):
        store.delete(acct.id)


def test_soft_deleted_email_stays_reserved(store: AccountStore, account_factory) -> None:
    acct = account_factory("kept@example.com", "Valid123")
    store.create(acct)
    store.delete(acct.id)
    with pytest.raises(AccountAlreadyExistsError):
        store.create(account_factory("kept@example.com", "Valid123"))


def test_driver_failure_becomes_store_error(store: AccountStore) -> None:
    with patch.object(store.engine, "begin", side_effect=OperationalError("SELECT", {}, Exception("locked"))):
        with pytest.raises(StoreError):
            store.read_by_id("anything")
        assert store.ping() is False


def test_ping_ok(store: AccountStore) -> None:
    assert store.ping() is True
