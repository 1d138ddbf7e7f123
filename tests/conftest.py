import pytest
from fastapi.testclient import TestClient

import main
from contacts import PRIMARY, SECONDARY
from db_setup import get_db_connection, init_db


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "contacts.db")
    init_db(path)
    return path


@pytest.fixture
def conn(db_path):
    connection = get_db_connection(db_path)
    yield connection
    connection.close()


@pytest.fixture
def client(db_path):
    def override_get_db():
        connection = get_db_connection(db_path)
        try:
            yield connection
        finally:
            connection.close()

    main.app.dependency_overrides[main.get_db] = override_get_db
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def seed(conn):
    """Insert a contact row directly, with an explicit creation time."""

    def _seed(email=None, phone=None, linked_id=None, created_at="2023-04-01T00:00:00.000000+00:00"):
        precedence = SECONDARY if linked_id is not None else PRIMARY
        cursor = conn.execute("""
            INSERT INTO Contact (phoneNumber, email, linkedId, linkPrecedence, createdAt, updatedAt)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (phone, email, linked_id, precedence, created_at, created_at))
        return cursor.lastrowid

    return _seed


def fetch(conn, contact_id):
    row = conn.execute("SELECT * FROM Contact WHERE id = ?", (contact_id,)).fetchone()
    return dict(row) if row else None


def count_rows(conn):
    return conn.execute("SELECT COUNT(*) FROM Contact").fetchone()[0]
