"""Document store boundary.

The application reads its collections through pushed snapshots
(``subscribe``) and writes through ``save`` / ``remove``. A snapshot is a
plain mapping of document id to document data; ordering is not guaranteed
and consumers sort when order matters.

InMemoryStore backs tests and local runs; FirestoreRestStore (see
firestore.py) talks to the hosted database.
"""

import copy
import json
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Protocol

from src.booking.errors import StoreUnavailable
from src.booking.logging import get_logger

logger = get_logger(__name__)

Snapshot = dict[str, dict[str, Any]]
OnSnapshot = Callable[[Snapshot], None]
OnError = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class Collection(str, Enum):
    ANIMATIONS = "animations"
    BOOKINGS = "bookings"
    SETTINGS = "settings"
    CHANGELOG = "changelog"


class DocumentStore(Protocol):
    async def save(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Upsert a document by id."""
        ...

    async def remove(self, collection: str, doc_id: str) -> None:
        ...

    async def fetch(self, collection: str) -> Snapshot:
        ...

    def subscribe(
        self, collection: str, on_snapshot: OnSnapshot, on_error: OnError | None = None
    ) -> Unsubscribe:
        """Deliver the current snapshot now and again after every change."""
        ...


def collection_name(collection: str | Collection) -> str:
    return collection.value if isinstance(collection, Collection) else collection


class InMemoryStore:
    """Dict-backed store that pushes a full snapshot on every write.

    ``fail_writes`` makes save/remove raise StoreUnavailable, to exercise
    the failure path of callers.
    """

    def __init__(self, initial: dict[str, Snapshot] | None = None) -> None:
        self._collections: dict[str, Snapshot] = defaultdict(dict)
        self._subscribers: dict[str, list[tuple[OnSnapshot, OnError | None]]] = defaultdict(list)
        self.fail_writes = False
        for collection, documents in (initial or {}).items():
            self._collections[collection_name(collection)] = copy.deepcopy(documents)

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryStore":
        """Seed from a JSON file shaped {collection: {id: document}}."""
        with open(path, encoding="utf-8") as f:
            return cls(json.load(f))

    def snapshot(self, collection: str | Collection) -> Snapshot:
        return copy.deepcopy(self._collections[collection_name(collection)])

    def _check_writable(self, collection: str) -> None:
        if self.fail_writes:
            raise StoreUnavailable(f"Store unavailable for writes to {collection!r}")

    def _publish(self, collection: str) -> None:
        for on_snapshot, _ in list(self._subscribers[collection]):
            on_snapshot(self.snapshot(collection))

    async def save(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        collection = collection_name(collection)
        self._check_writable(collection)
        self._collections[collection][doc_id] = copy.deepcopy(data)
        logger.debug("document_saved", collection=collection, doc_id=doc_id)
        self._publish(collection)

    async def remove(self, collection: str, doc_id: str) -> None:
        collection = collection_name(collection)
        self._check_writable(collection)
        self._collections[collection].pop(doc_id, None)
        logger.debug("document_removed", collection=collection, doc_id=doc_id)
        self._publish(collection)

    async def fetch(self, collection: str) -> Snapshot:
        return self.snapshot(collection)

    def subscribe(
        self, collection: str, on_snapshot: OnSnapshot, on_error: OnError | None = None
    ) -> Unsubscribe:
        collection = collection_name(collection)
        entry = (on_snapshot, on_error)
        self._subscribers[collection].append(entry)
        on_snapshot(self.snapshot(collection))

        def unsubscribe() -> None:
            if entry in self._subscribers[collection]:
                self._subscribers[collection].remove(entry)

        return unsubscribe


def create_store(config: Any) -> DocumentStore:
    """Build the store selected by ``config.store_backend``.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = config.store_backend.lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "firestore":
        from src.booking.firestore import FirestoreRestStore

        return FirestoreRestStore(
            project_id=config.firestore_project_id,
            api_key=config.firestore_api_key,
            database=config.firestore_database,
            timeout=config.http_timeout_seconds,
        )
    raise ValueError(f"Unknown store backend {config.store_backend!r}")
