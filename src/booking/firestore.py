"""Firestore REST adapter for the document store boundary.

Uses the Firestore v1 REST API with ``requests``; blocking calls run in a
worker thread so the async store interface is preserved. Transient failures
(connection errors, timeouts, 429 and 5xx) are retried with tenacity and
surface as StoreUnavailable once retries are exhausted. A missing project id
is reported at write time, not at construction.

The REST API has no push channel, so ``subscribe`` delivers snapshots on
``refresh()`` and after each write made through this adapter.
"""

import asyncio
from typing import Any

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.booking.errors import StoreUnavailable
from src.booking.logging import get_logger
from src.booking.store import OnError, OnSnapshot, Snapshot, Unsubscribe, collection_name

logger = get_logger(__name__)

FIRESTORE_BASE = "https://firestore.googleapis.com/v1"
PAGE_SIZE = 300


def encode_value(value: Any) -> dict[str, Any]:
    """Python value -> Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple, set)):
        values = [encode_value(item) for item in value]
        return {"arrayValue": {"values": values} if values else {}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {str(key): encode_value(item) for key, item in data.items()}


def decode_value(value: dict[str, Any]) -> Any:
    """Firestore typed value -> Python value."""
    kind, payload = next(iter(value.items()))
    if kind == "nullValue":
        return None
    if kind == "booleanValue":
        return bool(payload)
    if kind == "integerValue":
        return int(payload)
    if kind == "doubleValue":
        return float(payload)
    if kind in ("stringValue", "timestampValue", "referenceValue"):
        return payload
    if kind == "arrayValue":
        return [decode_value(item) for item in payload.get("values", [])]
    if kind == "mapValue":
        return decode_fields(payload.get("fields", {}))
    raise ValueError(f"Unsupported Firestore value type {kind!r}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(item) for key, item in fields.items()}


class FirestoreRestStore:
    """Document store backed by the Firestore REST API."""

    def __init__(
        self,
        project_id: str,
        api_key: str = "",
        database: str = "(default)",
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self.project_id = project_id
        self.api_key = api_key
        self.database = database
        self.timeout = timeout
        self._session = session or requests.Session()
        self._subscribers: dict[str, list[tuple[OnSnapshot, OnError | None]]] = {}

    @property
    def documents_url(self) -> str:
        return (
            f"{FIRESTORE_BASE}/projects/{self.project_id}"
            f"/databases/{self.database}/documents"
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(StoreUnavailable),
        reraise=True,
    )
    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        params = dict(kwargs.pop("params", None) or {})
        if self.api_key:
            params["key"] = self.api_key
        try:
            response = self._session.request(
                method, url, params=params, timeout=self.timeout, **kwargs
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("firestore_request_failed", method=method, error=str(e))
            raise StoreUnavailable(f"Firestore unreachable: {e}") from e
        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(
                "firestore_request_failed", method=method, status=response.status_code
            )
            raise StoreUnavailable(f"Firestore returned {response.status_code}")
        return response

    def _request(
        self, method: str, path: str, *, allow_missing: bool = False, **kwargs: Any
    ) -> dict[str, Any]:
        if not self.project_id:
            raise StoreUnavailable("Firestore project id is not configured")
        response = self._send(method, f"{self.documents_url}/{path}", **kwargs)
        if allow_missing and response.status_code == 404:
            return {}
        if response.status_code >= 400:
            raise StoreUnavailable(
                f"Firestore rejected {method} {path}: {response.status_code} {response.text[:200]}"
            )
        return response.json() if response.content else {}

    def _fetch_sync(self, collection: str) -> Snapshot:
        snapshot: Snapshot = {}
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {"pageSize": PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token
            data = self._request("GET", collection, allow_missing=True, params=params)
            for document in data.get("documents", []):
                doc_id = document["name"].rsplit("/", 1)[-1]
                snapshot[doc_id] = decode_fields(document.get("fields", {}))
            page_token = data.get("nextPageToken")
            if not page_token:
                return snapshot

    async def save(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        collection = collection_name(collection)
        # PATCH without an update mask replaces the whole document (upsert)
        await asyncio.to_thread(
            self._request,
            "PATCH",
            f"{collection}/{doc_id}",
            json={"fields": encode_fields(data)},
        )
        logger.info("document_saved", collection=collection, doc_id=doc_id)
        await self._refresh_if_watched(collection)

    async def remove(self, collection: str, doc_id: str) -> None:
        collection = collection_name(collection)
        await asyncio.to_thread(
            self._request, "DELETE", f"{collection}/{doc_id}", allow_missing=True
        )
        logger.info("document_removed", collection=collection, doc_id=doc_id)
        await self._refresh_if_watched(collection)

    async def fetch(self, collection: str) -> Snapshot:
        return await asyncio.to_thread(self._fetch_sync, collection_name(collection))

    def subscribe(
        self, collection: str, on_snapshot: OnSnapshot, on_error: OnError | None = None
    ) -> Unsubscribe:
        collection = collection_name(collection)
        entry = (on_snapshot, on_error)
        self._subscribers.setdefault(collection, []).append(entry)

        def unsubscribe() -> None:
            entries = self._subscribers.get(collection, [])
            if entry in entries:
                entries.remove(entry)

        return unsubscribe

    async def refresh(self, collection: str | None = None) -> None:
        """Pull and deliver snapshots for one or all watched collections.

        Fetch failures go to each subscriber's on_error instead of raising.
        """
        names = [collection_name(collection)] if collection else list(self._subscribers)
        for name in names:
            entries = list(self._subscribers.get(name, []))
            if not entries:
                continue
            try:
                snapshot = await self.fetch(name)
            except StoreUnavailable as e:
                logger.error("snapshot_failed", collection=name, error=str(e))
                for _, on_error in entries:
                    if on_error is not None:
                        on_error(e)
                continue
            for on_snapshot, _ in entries:
                on_snapshot(dict(snapshot))

    async def _refresh_if_watched(self, collection: str) -> None:
        if self._subscribers.get(collection):
            await self.refresh(collection)
