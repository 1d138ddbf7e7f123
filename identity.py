"""Identity reconciliation.

A request carries an email and/or phone number. Every contact sharing either
value belongs to the same customer, so the matching contacts' groups are
merged under the oldest primary, any new (email, phoneNumber) pair is stored
as a secondary of that primary, and the consolidated group is returned.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

import contacts
from db_setup import transaction
from errors import DataIntegrityError, InvalidInputError, TransientStoreError

logger = logging.getLogger(__name__)


def _created_at(contact: dict) -> datetime:
    value = contact["createdAt"]
    if isinstance(value, datetime):
        created = value
    else:
        created = datetime.fromisoformat(str(value))
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


def seniority(contact: dict):
    """Sort key: oldest first, lower id first when timestamps tie."""
    return (_created_at(contact), contact["id"])


def governing_primary(cursor: sqlite3.Cursor, contact: dict) -> dict:
    """Return the primary that ``contact`` belongs to.

    Raises DataIntegrityError when a secondary's link target is missing,
    soft-deleted or itself a secondary.
    """
    if contact["linkPrecedence"] == contacts.PRIMARY:
        return contact
    linked_id = contact["linkedId"]
    primary = contacts.get_contact(cursor, linked_id) if linked_id is not None else None
    if primary is None or primary["linkPrecedence"] != contacts.PRIMARY:
        raise DataIntegrityError(contact["id"], linked_id)
    return primary


def collect_primaries(cursor: sqlite3.Cursor, matches: List[dict]) -> List[dict]:
    """Map matched contacts to their distinct governing primaries.

    Orphaned secondaries are logged and skipped rather than re-parented.
    """
    primaries = {}
    for contact in matches:
        if contact["linkedId"] in primaries:
            continue
        try:
            primary = governing_primary(cursor, contact)
        except DataIntegrityError as exc:
            logger.warning("Skipping contact %s: %s", exc.contact_id, exc)
            continue
        primaries.setdefault(primary["id"], primary)
    return list(primaries.values())


def select_master_primary(primaries: List[dict]) -> dict:
    if not primaries:
        raise ValueError("no primaries to choose from")
    return min(primaries, key=seniority)


def merge_primaries(cursor: sqlite3.Cursor, primaries: List[dict], master: dict):
    for primary in primaries:
        if primary["id"] == master["id"]:
            continue
        contacts.update_to_secondary(cursor, primary["id"], master["id"])
        moved = contacts.relink_contacts(cursor, primary["id"], master["id"])
        logger.info("Merged primary %s into %s (%d contacts relinked)",
                    primary["id"], master["id"], moved)


def pair_exists(group: List[dict], email: Optional[str], phone: Optional[str]) -> bool:
    return any(c["email"] == email and c["phoneNumber"] == phone for c in group)


def build_consolidated_response(group: List[dict]) -> dict:
    """Shape a group (primary first, then secondaries) into the /identify payload."""
    primary, secondaries = group[0], group[1:]

    emails = []
    phone_numbers = []
    seen_emails = set()
    seen_phones = set()
    for contact in group:
        email = contact["email"]
        if email and email not in seen_emails:
            seen_emails.add(email)
            emails.append(email)
        phone = contact["phoneNumber"]
        if phone and phone not in seen_phones:
            seen_phones.add(phone)
            phone_numbers.append(phone)

    return {
        "primaryContactId": primary["id"],
        "emails": emails,
        "phoneNumbers": phone_numbers,
        "secondaryContactIds": [c["id"] for c in secondaries],
    }


def resolve(cursor: sqlite3.Cursor, email: Optional[str] = None, phone: Optional[str] = None) -> dict:
    """Reconcile one (email, phone) pair. Must run inside ``db_setup.transaction``."""
    if email is None and phone is None:
        raise InvalidInputError("At least one of email or phoneNumber must be provided")

    matches = contacts.find_contacts(cursor, email, phone)
    primaries = collect_primaries(cursor, matches) if matches else []

    if not primaries:
        created = contacts.create_contact(cursor, email, phone, None, contacts.PRIMARY)
        logger.info("Created primary contact %s", created["id"])
        return build_consolidated_response([created])

    master = select_master_primary(primaries)
    if len(primaries) > 1:
        merge_primaries(cursor, primaries, master)

    group = contacts.get_all_linked_contacts(cursor, master["id"])
    if not pair_exists(group, email, phone):
        created = contacts.create_contact(cursor, email, phone, master["id"], contacts.SECONDARY)
        logger.info("Created secondary contact %s linked to %s", created["id"], master["id"])
        group = contacts.get_all_linked_contacts(cursor, master["id"])

    return build_consolidated_response(group)


def identify(conn: sqlite3.Connection, email: Optional[str] = None, phone: Optional[str] = None,
             retries: int = 1) -> dict:
    """Run ``resolve`` in its own transaction, retrying the whole unit on transient store errors."""
    attempt = 0
    while True:
        try:
            with transaction(conn) as cursor:
                return resolve(cursor, email, phone)
        except TransientStoreError as exc:
            if attempt >= retries:
                raise
            attempt += 1
            logger.warning("Transient store error, retrying (%d/%d): %s", attempt, retries, exc)
