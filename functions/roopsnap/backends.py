"""
Resource backends and the fallback chain that orders them.

A backend implements one resource (contact messages or photos) on top of one
backing store and always returns records in the API shape, with the store's
native key normalized to a string ``id``.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, Protocol, Sequence, TypeVar

from roopsnap.docstore import DocumentStore
from roopsnap.errors import BackendError, RoopsnapError
from roopsnap.local_store import LocalFileStore
from roopsnap.schemas import DEFAULT_CATEGORY

logger = logging.getLogger(__name__)

CONTACT_COLLECTION = "contact_messages"
PHOTOS_COLLECTION = "photos"

B = TypeVar("B")
T = TypeVar("T")


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _timestamp_key(value: Any) -> float:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return float("-inf")
    else:
        return float("-inf")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def sort_newest_first(records: list[dict]) -> list[dict]:
    return sorted(
        records, key=lambda record: _timestamp_key(record.get("created_at")), reverse=True
    )


def _as_iso(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return value


CONTACT_REQUIRED = ("name", "email", "message", "created_at")
PHOTO_REQUIRED = ("url", "created_at")


def contact_record(record_id: Any, fields: dict) -> dict:
    return {
        "id": str(record_id),
        "name": fields.get("name"),
        "email": fields.get("email"),
        "phone": fields.get("phone"),
        "message": fields.get("message"),
        "created_at": _as_iso(fields.get("created_at")),
    }


def _category(value: Any) -> str:
    return value if isinstance(value, str) and value else DEFAULT_CATEGORY


def photo_record(record_id: Any, fields: dict) -> dict:
    return {
        "id": str(record_id),
        "url": fields.get("url"),
        "category": _category(fields.get("category")),
        "created_at": _as_iso(fields.get("created_at")),
    }


def complete_records(resource: str, records: list[dict], required: Sequence[str]) -> list[dict]:
    """
    Drop projected records that are missing a required field or hold a
    non-string where a string is expected, logging each one skipped.
    """
    kept = []
    for record in records:
        phone = record.get("phone")
        if all(isinstance(record.get(key), str) for key in required) and (
            phone is None or isinstance(phone, str)
        ):
            kept.append(record)
        else:
            logger.warning("Skipping malformed %s record %s", resource, record.get("id"))
    return kept


class ContactBackend(Protocol):
    name: str

    def list_messages(self) -> list[dict]:
        ...

    def insert_message(self, fields: dict) -> dict:
        ...

    def delete_message(self, record_id: str) -> bool:
        ...


class PhotoBackend(Protocol):
    name: str

    def list_photos(self) -> list[dict]:
        ...

    def insert_photo(self, fields: dict) -> dict:
        ...

    def delete_photo(self, record_id: str) -> bool:
        ...


class LocalStoreWriteError(OSError):
    """The local data directory could not be written."""


def _has_id(record: Any, record_id: str) -> bool:
    return isinstance(record, dict) and str(record.get("id")) == str(record_id)


def _next_local_id(records: list[dict]) -> str:
    candidate = int(time.time() * 1000)
    existing = {str(record.get("id")) for record in records if isinstance(record, dict)}
    while str(candidate) in existing:
        candidate += 1
    return str(candidate)


class DocumentContactBackend:
    name = "document"

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_messages(self) -> list[dict]:
        documents = self.store.find_all(CONTACT_COLLECTION, sort_field="created_at")
        return complete_records(
            "contact", [contact_record(doc["_id"], doc) for doc in documents], CONTACT_REQUIRED
        )

    def insert_message(self, fields: dict) -> dict:
        document = contact_record("", fields)
        document.pop("id")
        inserted_id = self.store.insert_one(CONTACT_COLLECTION, document)
        return contact_record(inserted_id, document)

    def delete_message(self, record_id: str) -> bool:
        return self.store.delete_by_id(CONTACT_COLLECTION, record_id)


class LocalContactBackend:
    name = "local"

    def __init__(self, local: LocalFileStore):
        self.local = local

    def list_messages(self) -> list[dict]:
        records = [
            contact_record(r.get("id"), r)
            for r in self.local.get_messages()
            if isinstance(r, dict)
        ]
        return complete_records("contact", records, CONTACT_REQUIRED)

    def insert_message(self, fields: dict) -> dict:
        messages = self.local.get_messages()
        record = contact_record(_next_local_id(messages), fields)
        messages.insert(0, record)
        if not self.local.save_messages(messages):
            raise LocalStoreWriteError("Local data directory is not writable")
        return record

    def delete_message(self, record_id: str) -> bool:
        messages = self.local.get_messages()
        remaining = [m for m in messages if not _has_id(m, record_id)]
        if len(remaining) == len(messages):
            return False
        if not self.local.save_messages(remaining):
            raise LocalStoreWriteError("Local data directory is not writable")
        return True


class DocumentPhotoBackend:
    name = "document"

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_photos(self) -> list[dict]:
        documents = self.store.find_all(PHOTOS_COLLECTION, sort_field="created_at")
        return complete_records(
            "photos", [photo_record(doc["_id"], doc) for doc in documents], PHOTO_REQUIRED
        )

    def insert_photo(self, fields: dict) -> dict:
        document = photo_record("", fields)
        document.pop("id")
        inserted_id = self.store.insert_one(PHOTOS_COLLECTION, document)
        return photo_record(inserted_id, document)

    def delete_photo(self, record_id: str) -> bool:
        return self.store.delete_by_id(PHOTOS_COLLECTION, record_id)


class LocalPhotoBackend:
    name = "local"

    def __init__(self, local: LocalFileStore):
        self.local = local

    def list_photos(self) -> list[dict]:
        records = [
            photo_record(r.get("id"), r) for r in self.local.get_photos() if isinstance(r, dict)
        ]
        return complete_records("photos", records, PHOTO_REQUIRED)

    def insert_photo(self, fields: dict) -> dict:
        photos = self.local.get_photos()
        record = photo_record(_next_local_id(photos), fields)
        photos.insert(0, record)
        if not self.local.save_photos(photos):
            raise LocalStoreWriteError("Local data directory is not writable")
        return record

    def delete_photo(self, record_id: str) -> bool:
        photos = self.local.get_photos()
        remaining = [p for p in photos if not _has_id(p, record_id)]
        if len(remaining) == len(photos):
            return False
        if not self.local.save_photos(remaining):
            raise LocalStoreWriteError("Local data directory is not writable")
        return True


class FallbackChain(Generic[B]):
    """
    Ordered backends for one resource.

    ``call`` runs an operation against each backend in turn and returns the
    first result that does not raise. Failures of earlier backends are logged
    and skipped; a failure of the last one becomes a ``BackendError``. Errors
    already meant for the caller (``RoopsnapError``) pass straight through.
    """

    def __init__(self, resource: str, backends: Sequence[B]):
        if not backends:
            raise ValueError(f"No backends configured for {resource}")
        self.resource = resource
        self.backends = list(backends)

    @property
    def names(self) -> list[str]:
        return [getattr(backend, "name", type(backend).__name__) for backend in self.backends]

    def call(self, operation: str, fn: Callable[[B], T]) -> T:
        last = len(self.backends) - 1
        for index, backend in enumerate(self.backends):
            backend_name = self.names[index]
            try:
                return fn(backend)
            except RoopsnapError:
                raise
            except Exception as e:
                if index == last:
                    logger.error(
                        "%s %s failed on %s backend: %s",
                        self.resource,
                        operation,
                        backend_name,
                        e,
                    )
                    raise BackendError("Database error", details=str(e)) from e
                logger.warning(
                    "%s %s failed on %s backend, falling back to %s: %s",
                    self.resource,
                    operation,
                    backend_name,
                    self.names[index + 1],
                    e,
                )
        raise BackendError("Database error")
