"""
Document database abstraction for MongoDB and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional, Protocol

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Collection-scoped operations the API needs from a document database."""

    def insert_one(self, collection: str, document: dict) -> str:
        ...

    def find_all(self, collection: str, sort_field: Optional[str] = None) -> list[dict]:
        ...

    def find_first(self, collection: str) -> Optional[dict]:
        ...

    def update_first(self, collection: str, fields: dict, upsert: bool = True) -> None:
        ...

    def delete_by_id(self, collection: str, record_id: Any) -> bool:
        ...

    def ping(self) -> None:
        ...


def id_candidates(record_id: Any) -> list[Any]:
    """
    Return the ``_id`` values to try when deleting ``record_id``.

    The native ObjectId comes first; the raw value is always tried as well so
    documents inserted with string ids can still be matched.
    """
    candidates: list[Any] = []
    if isinstance(record_id, ObjectId):
        candidates.append(record_id)
    else:
        try:
            candidates.append(ObjectId(record_id))
        except (InvalidId, TypeError):
            pass
    candidates.append(str(record_id))
    return candidates


class InMemoryDocumentStore:
    """Simple in-memory document database for development and tests."""

    def __init__(self):
        self.collections: dict[str, list[dict]] = {}

    def _collection(self, name: str) -> list[dict]:
        return self.collections.setdefault(name, [])

    def insert_one(self, collection: str, document: dict) -> str:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self._collection(collection).append(stored)
        return str(stored["_id"])

    def find_all(self, collection: str, sort_field: Optional[str] = None) -> list[dict]:
        documents = [copy.deepcopy(doc) for doc in self._collection(collection)]
        if sort_field:
            documents.sort(key=lambda doc: doc.get(sort_field) or "", reverse=True)
        return documents

    def find_first(self, collection: str) -> Optional[dict]:
        documents = self._collection(collection)
        return copy.deepcopy(documents[0]) if documents else None

    def update_first(self, collection: str, fields: dict, upsert: bool = True) -> None:
        documents = self._collection(collection)
        if documents:
            documents[0].update(copy.deepcopy(fields))
        elif upsert:
            self.insert_one(collection, fields)

    def delete_by_id(self, collection: str, record_id: Any) -> bool:
        documents = self._collection(collection)
        for candidate in id_candidates(record_id):
            for index, doc in enumerate(documents):
                if doc.get("_id") == candidate:
                    del documents[index]
                    return True
        return False

    def ping(self) -> None:
        return None


class MongoDocumentStore:
    """
    pymongo-backed implementation. The client connects lazily on first use and
    is shared by every request handled by this process.
    """

    def __init__(self, uri: str, db_name: str = "roopsnap"):
        if not uri:
            raise ValueError("MONGODB_URI is required for MongoDocumentStore")
        self.client = MongoClient(uri)
        self.db = self.client[db_name]
        logger.info("Using MongoDB database: %s", db_name)

    def insert_one(self, collection: str, document: dict) -> str:
        # insert_one mutates its argument with the generated _id.
        result = self.db[collection].insert_one(dict(document))
        return str(result.inserted_id)

    def find_all(self, collection: str, sort_field: Optional[str] = None) -> list[dict]:
        cursor = self.db[collection].find({})
        if sort_field:
            cursor = cursor.sort(sort_field, DESCENDING)
        return list(cursor)

    def find_first(self, collection: str) -> Optional[dict]:
        return self.db[collection].find_one({})

    def update_first(self, collection: str, fields: dict, upsert: bool = True) -> None:
        self.db[collection].update_one({}, {"$set": fields}, upsert=upsert)

    def delete_by_id(self, collection: str, record_id: Any) -> bool:
        coll = self.db[collection]
        for candidate in id_candidates(record_id):
            result = coll.delete_one({"_id": candidate})
            if result.deleted_count:
                return True
        return False

    def ping(self) -> None:
        self.client.admin.command("ping")
