"""Contact queries. Every function runs on a cursor owned by ``db_setup.transaction``."""

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

PRIMARY = "primary"
SECONDARY = "secondary"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def find_contacts(cursor: sqlite3.Cursor, email: Optional[str] = None, phone: Optional[str] = None):
    clauses = []
    params = []
    if email is not None:
        clauses.append("email = ?")
        params.append(email)
    if phone is not None:
        clauses.append("phoneNumber = ?")
        params.append(phone)
    if not clauses:
        return []

    where = " OR ".join(clauses)
    cursor.execute(f"""
        SELECT * FROM Contact
        WHERE deletedAt IS NULL
        AND ({where})
        ORDER BY createdAt ASC, id ASC
    """, params)
    return [dict(row) for row in cursor.fetchall()]


def get_contact(cursor: sqlite3.Cursor, contact_id: int):
    cursor.execute("SELECT * FROM Contact WHERE id = ? AND deletedAt IS NULL", (contact_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_all_linked_contacts(cursor: sqlite3.Cursor, primary_id: int) -> List[dict]:
    """Return the group of ``primary_id``: the primary first, then secondaries oldest first."""
    primary = get_contact(cursor, primary_id)
    if not primary:
        return []

    cursor.execute("""
        SELECT * FROM Contact
        WHERE linkedId = ? AND deletedAt IS NULL
        ORDER BY createdAt ASC, id ASC
    """, (primary_id,))
    return [primary] + [dict(row) for row in cursor.fetchall()]


def create_contact(cursor: sqlite3.Cursor, email: Optional[str] = None, phone: Optional[str] = None,
                   linked_id: Optional[int] = None, precedence: str = PRIMARY) -> dict:
    now = _now()
    cursor.execute("""
        INSERT INTO Contact (phoneNumber, email, linkedId, linkPrecedence, createdAt, updatedAt)
        VALUES (?, ?, ?, ?, ?, ?)
    """, (phone, email, linked_id, precedence, now, now))
    return get_contact(cursor, cursor.lastrowid)


def update_to_secondary(cursor: sqlite3.Cursor, contact_id: int, primary_id: int):
    cursor.execute("""
        UPDATE Contact
        SET linkedId = ?, linkPrecedence = 'secondary', updatedAt = ?
        WHERE id = ?
    """, (primary_id, _now(), contact_id))


def relink_contacts(cursor: sqlite3.Cursor, old_primary_id: int, new_primary_id: int) -> int:
    """Point every contact linked to ``old_primary_id`` at ``new_primary_id``."""
    cursor.execute("""
        UPDATE Contact
        SET linkedId = ?, updatedAt = ?
        WHERE linkedId = ?
    """, (new_primary_id, _now(), old_primary_id))
    return cursor.rowcount

