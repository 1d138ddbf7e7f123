"""Error taxonomy for contact reconciliation.

Store driver exceptions are translated into these types in ``db_setup`` so the
resolver and the HTTP layer never inspect sqlite3 error codes.
"""

from typing import Optional


class IdentityError(Exception):
    """Base class for every error raised by the reconciliation core."""


class InvalidInputError(IdentityError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StoreError(IdentityError):
    """Unexpected failure reported by the contact store."""


class TransientStoreError(StoreError):
    """Lock contention, busy timeout or lost connection. Safe to retry the whole transaction."""


class DataIntegrityError(IdentityError):
    """A secondary contact points at a primary that is missing, deleted or not a primary.

    Never propagated out of a request: the resolver logs it and leaves the
    contact out of the merge.
    """

    def __init__(self, contact_id: int, linked_id: Optional[int]):
        super().__init__(
            f"contact {contact_id} is linked to {linked_id}, which is not an active primary"
        )
        self.contact_id = contact_id
        self.linked_id = linked_id
