"""Tests for core.store: the Supabase gateway, driven through httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest

import core.config as config
import core.store as store_module
from core.errors import NotFoundError, StoreError
from core.store import SupabaseStore, get_store

BASE = "https://abc.supabase.co"


def _store(handler) -> tuple[SupabaseStore, list]:
    """Store whose requests go to `handler`; returns the store and the request log."""
    seen = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return SupabaseStore(BASE + "/", "test-key", transport=httpx.MockTransport(recording)), seen


class TestTableApi:

    def test_insert_posts_row_and_returns_representation(self):
        row = {"id": "p-1", "name": "Alice", "created_at": "2024-05-01T10:00:00+00:00"}
        store, seen = _store(lambda r: httpx.Response(201, json=[row]))

        result = asyncio.run(store.insert("people", {"name": "Alice"}))

        assert result == row
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/people"
        assert request.headers["Prefer"] == "return=representation"
        assert request.headers["apikey"] == "test-key"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert json.loads(request.content) == [{"name": "Alice"}]

    def test_select_builds_filters_and_order(self):
        store, seen = _store(lambda r: httpx.Response(200, json=[{"id": "p-1"}]))

        rows = asyncio.run(store.select(
            "people", columns="id,name", filters={"location": "Paris"},
            order="created_at", ascending=False,
        ))

        assert rows == [{"id": "p-1"}]
        params = seen[0].url.params
        assert params["select"] == "id,name"
        assert params["location"] == "eq.Paris"
        assert params["order"] == "created_at.desc"

    def test_select_one_returns_first_row(self):
        store, seen = _store(lambda r: httpx.Response(200, json=[{"id": "p-1", "name": "Alice"}]))

        row = asyncio.run(store.select_one("people", "p-1"))

        assert row["name"] == "Alice"
        assert seen[0].url.params["id"] == "eq.p-1"

    def test_select_one_missing_raises_not_found(self):
        store, _ = _store(lambda r: httpx.Response(200, json=[]))

        with pytest.raises(NotFoundError):
            asyncio.run(store.select_one("people", "nope"))

    def test_not_found_is_a_store_error(self):
        assert issubclass(NotFoundError, StoreError)

    def test_update_patches_by_id(self):
        store, seen = _store(lambda r: httpx.Response(204))

        asyncio.run(store.update("people", "p-1", {"photo_url": None}))

        request = seen[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.p-1"
        assert json.loads(request.content) == {"photo_url": None}

    def test_delete_by_id(self):
        store, seen = _store(lambda r: httpx.Response(204))

        asyncio.run(store.delete("people", "p-1"))

        assert seen[0].method == "DELETE"
        assert seen[0].url.params["id"] == "eq.p-1"


class TestStorageApi:

    def test_upload_blob(self):
        store, seen = _store(lambda r: httpx.Response(200, json={"Key": "portraits/k.jpg"}))

        asyncio.run(store.upload_blob("portraits", "abc-photo.jpg", b"jpeg-bytes", content_type="image/jpeg"))

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/storage/v1/object/portraits/abc-photo.jpg"
        assert request.headers["Content-Type"] == "image/jpeg"
        assert request.headers["cache-control"] == "max-age=3600"
        assert request.headers["x-upsert"] == "false"
        assert request.content == b"jpeg-bytes"

    def test_public_url(self):
        store, seen = _store(lambda r: httpx.Response(500))

        url = store.public_url("portraits", "abc-my photo.jpg")

        assert url == f"{BASE}/storage/v1/object/public/portraits/abc-my%20photo.jpg"
        assert seen == []  # no request

    def test_delete_blob_sends_prefixes(self):
        store, seen = _store(lambda r: httpx.Response(200, json=[]))

        asyncio.run(store.delete_blob("portraits", "abc-photo.jpg"))

        request = seen[0]
        assert request.method == "DELETE"
        assert request.url.path == "/storage/v1/object/portraits"
        assert json.loads(request.content) == {"prefixes": ["abc-photo.jpg"]}


class TestErrors:

    @pytest.mark.parametrize("body, expected", [
        ({"message": "duplicate key value"}, "duplicate key value"),
        ({"error_description": "Invalid API key"}, "Invalid API key"),
        ({"msg": "Bucket not found"}, "Bucket not found"),
        ({"error": "Payload too large"}, "Payload too large"),
    ])
    def test_error_message_extracted(self, body, expected):
        store, _ = _store(lambda r: httpx.Response(400, json=body))

        with pytest.raises(StoreError) as exc_info:
            asyncio.run(store.insert("people", {"name": "Alice"}))

        assert exc_info.value.message == expected
        assert exc_info.value.status_code == 400

    def test_plain_text_error(self):
        store, _ = _store(lambda r: httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(StoreError, match="Bad Gateway"):
            asyncio.run(store.delete("people", "p-1"))

    def test_empty_error_body_uses_status(self):
        store, _ = _store(lambda r: httpx.Response(503))

        with pytest.raises(StoreError, match="HTTP 503"):
            asyncio.run(store.update("people", "p-1", {}))

    def test_transport_failure_becomes_store_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        store, _ = _store(refuse)

        with pytest.raises(StoreError, match="Connection error"):
            asyncio.run(store.upload_blob("portraits", "k.jpg", b"x"))


class TestGetStore:

    def test_missing_config_fails_fast(self, monkeypatch):
        monkeypatch.setattr(store_module, "_store", None)
        monkeypatch.setattr(config, "SUPABASE_URL", "")
        monkeypatch.setattr(config, "SUPABASE_API_KEY", "")

        with pytest.raises(RuntimeError, match="SUPABASE_URL or SUPABASE_API_KEY"):
            get_store()

    def test_builds_singleton_from_config(self, monkeypatch):
        monkeypatch.setattr(store_module, "_store", None)
        monkeypatch.setattr(config, "SUPABASE_URL", BASE)
        monkeypatch.setattr(config, "SUPABASE_API_KEY", "k")

        first = get_store()

        assert first.url == BASE
        assert get_store() is first
