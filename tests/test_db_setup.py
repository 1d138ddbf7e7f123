"""Store adapter: schema bootstrap, transaction scope and error translation."""

import pytest

import contacts
from conftest import count_rows
from db_setup import check_connection, get_db_connection, init_db, transaction
from errors import StoreError, TransientStoreError


def test_init_db_is_idempotent_and_creates_indexes(db_path, conn):
    init_db(db_path)

    indexes = {row["name"] for row in conn.execute("PRAGMA index_list('Contact')")}
    assert {"idx_contact_email", "idx_contact_phone", "idx_contact_linked"} <= indexes


def test_transaction_commits_on_success(conn):
    with transaction(conn) as cursor:
        contacts.create_contact(cursor, "a@x.com", "1")

    assert not conn.in_transaction
    assert count_rows(conn) == 1


def test_transaction_rolls_back_on_error(conn):
    with pytest.raises(ValueError):
        with transaction(conn) as cursor:
            contacts.create_contact(cursor, "a@x.com", "1")
            raise ValueError("boom")

    assert not conn.in_transaction
    assert count_rows(conn) == 0


def test_constraint_violation_is_a_store_error(conn):
    with pytest.raises(StoreError) as excinfo:
        with transaction(conn) as cursor:
            contacts.create_contact(cursor, "a@x.com", None, None, "tertiary")

    assert not isinstance(excinfo.value, TransientStoreError)
    assert count_rows(conn) == 0


def test_lock_contention_is_transient(db_path):
    holder = get_db_connection(db_path)
    blocked = get_db_connection(db_path, timeout=0)
    try:
        holder.execute("BEGIN IMMEDIATE")
        with pytest.raises(TransientStoreError):
            with transaction(blocked):
                pass
        assert not blocked.in_transaction
    finally:
        holder.execute("ROLLBACK")
        holder.close()
        blocked.close()


def test_created_contact_round_trip(conn):
    with transaction(conn) as cursor:
        primary = contacts.create_contact(cursor, "a@x.com", "1")
        secondary = contacts.create_contact(cursor, None, "2", primary["id"], contacts.SECONDARY)
        group = contacts.get_all_linked_contacts(cursor, primary["id"])

    assert primary["linkPrecedence"] == "primary"
    assert secondary["linkedId"] == primary["id"]
    assert [c["id"] for c in group] == [primary["id"], secondary["id"]]
    assert primary["createdAt"] <= secondary["createdAt"]


def test_find_contacts_without_criteria_returns_nothing(conn):
    with transaction(conn) as cursor:
        contacts.create_contact(cursor, "a@x.com", None)
        assert contacts.find_contacts(cursor) == []


def test_check_connection(conn):
    assert check_connection(conn)
    conn.close()
    assert not check_connection(conn)
