"""
Dependency wiring for the FastAPI app.

Backing stores are chosen from configuration once per process and reused by
every request.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from roopsnap.backends import (
    DocumentContactBackend,
    DocumentPhotoBackend,
    FallbackChain,
    LocalContactBackend,
    LocalPhotoBackend,
)
from roopsnap.config import Settings, get_settings
from roopsnap.db import SqlPhotoBackend
from roopsnap.docstore import DocumentStore, MongoDocumentStore
from roopsnap.local_store import LocalFileStore
from roopsnap.profile import ProfileStore
from roopsnap.storage import ObjectStorage, S3ObjectStorage

logger = logging.getLogger(__name__)

_UNSET: Any = object()
# Reentrant: building a chain fetches the stores it wraps.
_lock = threading.RLock()

_document_store: Any = _UNSET
_object_storage: Any = _UNSET
_local_store: Any = _UNSET
_contact_chain: Any = _UNSET
_photo_chain: Any = _UNSET


def build_document_store(settings: Settings) -> Optional[DocumentStore]:
    if not settings.mongodb_uri:
        return None
    return MongoDocumentStore(settings.mongodb_uri, settings.mongodb_db_name)


def build_object_storage(settings: Settings) -> Optional[ObjectStorage]:
    if not settings.object_storage_configured:
        return None
    return S3ObjectStorage(
        bucket=settings.storage_bucket,
        endpoint=settings.storage_endpoint or "",
        access_key_id=settings.aws_access_key_id or "",
        secret_access_key=settings.aws_secret_access_key or "",
        region=settings.storage_region,
        public_base_url=settings.storage_public_url,
    )


def build_contact_chain(
    document_store: Optional[DocumentStore], local_store: LocalFileStore
) -> FallbackChain:
    backends = []
    if document_store is not None:
        backends.append(DocumentContactBackend(document_store))
    backends.append(LocalContactBackend(local_store))
    return FallbackChain("contact", backends)


def build_photo_chain(
    settings: Settings,
    document_store: Optional[DocumentStore],
    local_store: LocalFileStore,
) -> FallbackChain:
    backends = []
    if settings.database_url:
        try:
            backends.append(SqlPhotoBackend(settings.database_url))
        except Exception as e:
            # An unreachable table at startup only removes it from the chain.
            logger.warning("Photo table unavailable, skipping it: %s", e)
    if document_store is not None:
        backends.append(DocumentPhotoBackend(document_store))
    backends.append(LocalPhotoBackend(local_store))
    return FallbackChain("photos", backends)


def _cached(name: str, build: Callable[[], Any]) -> Any:
    """
    Return the module-level singleton ``name``, building it on first use.

    The first build runs under ``_lock``. A ``None`` result (store not
    configured) is cached like any other value.
    """
    value = globals()[name]
    if value is _UNSET:
        with _lock:
            value = globals()[name]
            if value is _UNSET:
                value = build()
                globals()[name] = value
    return value


def get_document_store() -> Optional[DocumentStore]:
    """
    Return the process-wide document store, or None when MongoDB is not configured.
    """
    return _cached("_document_store", lambda: build_document_store(get_settings()))


def get_object_storage() -> Optional[ObjectStorage]:
    return _cached("_object_storage", lambda: build_object_storage(get_settings()))


def get_local_store() -> LocalFileStore:
    return _cached("_local_store", lambda: LocalFileStore(get_settings().data_dir))


def _build_contact_chain() -> FallbackChain:
    chain = build_contact_chain(get_document_store(), get_local_store())
    logger.info("Contact backends: %s", " -> ".join(chain.names))
    return chain


def _build_photo_chain() -> FallbackChain:
    chain = build_photo_chain(get_settings(), get_document_store(), get_local_store())
    logger.info("Photo backends: %s", " -> ".join(chain.names))
    return chain


def get_contact_chain() -> FallbackChain:
    return _cached("_contact_chain", _build_contact_chain)


def get_photo_chain() -> FallbackChain:
    return _cached("_photo_chain", _build_photo_chain)


def get_profile_store() -> Optional[ProfileStore]:
    store = get_document_store()
    if store is None:
        return None
    return ProfileStore(store)
