"""
The studio profile: one well-known record kept in the document store.
"""

from __future__ import annotations

from typing import Optional

from roopsnap.backends import utc_now_iso
from roopsnap.docstore import DocumentStore

PROFILE_COLLECTION = "profile"


class ProfileStore:
    """Singleton key-value view over the first document of the profile collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self) -> Optional[dict]:
        return self.store.find_first(PROFILE_COLLECTION)

    def update(self, fields: dict) -> dict:
        """Write only the given fields, creating the profile if absent."""
        changes = dict(fields)
        changes["updated_at"] = utc_now_iso()
        self.store.update_first(PROFILE_COLLECTION, changes, upsert=True)
        return changes
