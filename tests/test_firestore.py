import pytest

from src.booking.errors import StoreUnavailable
from src.booking.firestore import (
    FirestoreRestStore,
    decode_fields,
    decode_value,
    encode_fields,
    encode_value,
)

from tests.fakes import FakeResponse, FakeSession

DOCUMENTS = "https://firestore.googleapis.com/v1/projects/demo/databases/(default)/documents"


def make_store(*responses, project_id="demo"):
    session = FakeSession(*responses)
    return FirestoreRestStore(project_id, api_key="key123", session=session), session


class TestValueEncoding:
    def test_scalars(self):
        assert encode_value(None) == {"nullValue": None}
        assert encode_value(True) == {"booleanValue": True}
        assert encode_value(9) == {"integerValue": "9"}
        assert encode_value(12.5) == {"doubleValue": 12.5}
        assert encode_value("Lille") == {"stringValue": "Lille"}

    def test_nested(self):
        fields = encode_fields(
            {"allowedDays": [2, 4], "animatorSettings": {"Alice": {"inactiveSlots": []}}}
        )
        assert fields["allowedDays"] == {
            "arrayValue": {"values": [{"integerValue": "2"}, {"integerValue": "4"}]}
        }
        assert fields["animatorSettings"]["mapValue"]["fields"]["Alice"] == {
            "mapValue": {"fields": {"inactiveSlots": {"arrayValue": {}}}}
        }

    def test_decode_inverts_encode(self):
        data = {"time": 9, "busCost": 120.0, "noBusRequired": False, "tags": ["a"], "x": None}
        assert decode_fields(encode_fields(data)) == data

    def test_timestamps_decode_as_strings(self):
        assert decode_value({"timestampValue": "2025-10-07T08:00:00Z"}) == "2025-10-07T08:00:00Z"

    def test_unsupported_types(self):
        with pytest.raises(TypeError):
            encode_value(object())
        with pytest.raises(ValueError):
            decode_value({"geoPointValue": {}})


class TestRequests:
    @pytest.mark.asyncio
    async def test_save_patches_the_document(self):
        store, session = make_store(FakeResponse(200, {"name": "x"}))
        await store.save("bookings", "b1", {"time": 9})

        call = session.calls[0]
        assert call["method"] == "PATCH"
        assert call["url"] == f"{DOCUMENTS}/bookings/b1"
        assert call["params"] == {"key": "key123"}
        assert call["json"] == {"fields": {"time": {"integerValue": "9"}}}

    @pytest.mark.asyncio
    async def test_fetch_follows_pages(self):
        store, session = make_store(
            FakeResponse(
                200,
                {
                    "documents": [
                        {"name": f"{DOCUMENTS}/bookings/b1", "fields": {"time": {"integerValue": "9"}}}
                    ],
                    "nextPageToken": "p2",
                },
            ),
            FakeResponse(
                200,
                {"documents": [{"name": f"{DOCUMENTS}/bookings/b2", "fields": {}}]},
            ),
        )

        snapshot = await store.fetch("bookings")

        assert snapshot == {"b1": {"time": 9}, "b2": {}}
        assert session.calls[1]["params"]["pageToken"] == "p2"

    @pytest.mark.asyncio
    async def test_missing_collection_is_empty(self):
        store, _ = make_store(FakeResponse(404, {"error": {}}))
        assert await store.fetch("changelog") == {}

    @pytest.mark.asyncio
    async def test_missing_project_id_fails_at_write_time(self):
        store, session = make_store(project_id="")
        with pytest.raises(StoreUnavailable, match="project id"):
            await store.save("bookings", "b1", {})
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self):
        store, session = make_store(FakeResponse(503, {"error": {}}))
        with pytest.raises(StoreUnavailable):
            await store.remove("bookings", "b1")
        assert len(session.calls) == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        store, session = make_store(FakeResponse(403, {"error": {}}, text="denied"))
        with pytest.raises(StoreUnavailable, match="403"):
            await store.save("bookings", "b1", {})
        assert len(session.calls) == 1


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_refresh_delivers_snapshots(self):
        store, _ = make_store(
            FakeResponse(200, {"documents": [{"name": f"{DOCUMENTS}/settings/global", "fields": {}}]})
        )
        received = []
        store.subscribe("settings", received.append)

        await store.refresh()

        assert received == [{"global": {}}]

    @pytest.mark.asyncio
    async def test_writes_refresh_watched_collections(self):
        store, session = make_store(FakeResponse(200, {}))
        received = []
        unsubscribe = store.subscribe("bookings", received.append)

        await store.save("bookings", "b1", {})
        unsubscribe()
        await store.save("bookings", "b2", {})

        assert received == [{}]
        assert [c["method"] for c in session.calls] == ["PATCH", "GET", "PATCH"]

    @pytest.mark.asyncio
    async def test_refresh_errors_go_to_on_error(self):
        store, _ = make_store(FakeResponse(500, {}))
        errors = []
        store.subscribe("bookings", lambda snapshot: None, errors.append)

        await store.refresh("bookings")

        assert len(errors) == 1
        assert isinstance(errors[0], StoreUnavailable)
