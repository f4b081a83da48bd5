import json

import pytest

from src.booking.config import BookingConfig
from src.booking.errors import StoreUnavailable
from src.booking.firestore import FirestoreRestStore
from src.booking.store import Collection, InMemoryStore, create_store


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_save_and_fetch(self):
        store = InMemoryStore()
        await store.save("bookings", "b1", {"time": 9})

        assert await store.fetch("bookings") == {"b1": {"time": 9}}
        assert store.snapshot(Collection.BOOKINGS) == {"b1": {"time": 9}}

    @pytest.mark.asyncio
    async def test_stored_data_is_copied(self):
        store = InMemoryStore()
        data = {"tags": ["a"]}
        await store.save("animations", "a1", data)
        data["tags"].append("b")

        snapshot = await store.fetch("animations")
        snapshot["a1"]["tags"].append("c")

        assert store.snapshot("animations") == {"a1": {"tags": ["a"]}}

    @pytest.mark.asyncio
    async def test_subscribe_pushes_current_then_changes(self):
        store = InMemoryStore({"bookings": {"b1": {"time": 9}}})
        received = []
        unsubscribe = store.subscribe("bookings", received.append)

        await store.save("bookings", "b2", {"time": 10})
        await store.remove("bookings", "b1")
        unsubscribe()
        await store.save("bookings", "b3", {"time": 14})

        assert received == [
            {"b1": {"time": 9}},
            {"b1": {"time": 9}, "b2": {"time": 10}},
            {"b2": {"time": 10}},
        ]

    @pytest.mark.asyncio
    async def test_failing_writes(self):
        store = InMemoryStore()
        store.fail_writes = True
        with pytest.raises(StoreUnavailable):
            await store.save("bookings", "b1", {})
        with pytest.raises(StoreUnavailable):
            await store.remove("bookings", "b1")
        assert store.snapshot("bookings") == {}

    @pytest.mark.asyncio
    async def test_remove_missing_document_is_a_no_op(self):
        store = InMemoryStore()
        await store.remove("bookings", "nope")
        assert store.snapshot("bookings") == {}

    def test_from_json(self, tmp_path):
        seed = tmp_path / "seed.json"
        seed.write_text(json.dumps({"animations": {"a1": {"title": "Contes"}}}), encoding="utf-8")

        store = InMemoryStore.from_json(seed)

        assert store.snapshot("animations") == {"a1": {"title": "Contes"}}


class TestCreateStore:
    def test_memory(self):
        assert isinstance(create_store(BookingConfig(store_backend="memory")), InMemoryStore)

    def test_firestore(self):
        store = create_store(
            BookingConfig(store_backend="Firestore", firestore_project_id="demo-project")
        )
        assert isinstance(store, FirestoreRestStore)
        assert store.project_id == "demo-project"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown store backend"):
            create_store(BookingConfig(store_backend="sqlite"))
