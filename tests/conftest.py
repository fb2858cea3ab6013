"""Shared test fixtures: in-memory store, isolated audit log, test client, images."""

import io
import itertools
import os
import uuid
from collections import defaultdict
from urllib.parse import quote

import pytest
from PIL import Image
from starlette.testclient import TestClient

from core.errors import NotFoundError, StoreError


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class FakeStore:
    """
    Stand-in for SupabaseStore with the same async interface.

    rows:  table -> id -> row
    blobs: bucket -> key -> bytes
    fail:  method name -> error message raised as StoreError
    """

    base_url = "https://test-project.supabase.co"

    def __init__(self):
        self.rows = defaultdict(dict)
        self.blobs = defaultdict(dict)
        self.fail = {}
        self.calls = []
        self._clock = itertools.count(1)

    def _call(self, method: str):
        self.calls.append(method)
        if method in self.fail:
            raise StoreError(self.fail[method], status_code=500)

    def seed(self, table: str = "people", **values) -> dict:
        """Insert a row directly, bypassing failure injection."""
        row = {
            "id": str(uuid.uuid4()),
            "created_at": f"2024-01-01T00:00:{next(self._clock):02d}+00:00",
            "location": None,
            "context": None,
            "their_story": None,
            "date_met": None,
            "message_to_the_world": None,
            "photo_url": None,
        }
        row.update(values)
        self.rows[table][row["id"]] = row
        return row

    async def insert(self, table, record):
        self._call("insert")
        return dict(self.seed(table, **record))

    async def select(self, table, columns="*", filters=None, order=None, ascending=True):
        self._call("select")
        rows = [dict(r) for r in self.rows[table].values()]
        for column, value in (filters or {}).items():
            rows = [r for r in rows if str(r.get(column)) == str(value)]
        if order:
            rows.sort(key=lambda r: r.get(order) or "", reverse=not ascending)
        if columns != "*":
            wanted = columns.split(",")
            rows = [{k: r.get(k) for k in wanted} for r in rows]
        return rows

    async def select_one(self, table, id, columns="*"):
        rows = await self.select(table, columns=columns, filters={"id": id})
        if not rows:
            raise NotFoundError(f"No row in {table} with id {id}", status_code=404)
        return rows[0]

    async def update(self, table, id, patch):
        self._call("update")
        if id in self.rows[table]:
            self.rows[table][id].update(patch)

    async def delete(self, table, id):
        self._call("delete")
        self.rows[table].pop(id, None)

    async def upload_blob(self, bucket, key, data, content_type="application/octet-stream",
                          cache_control="3600", upsert=False):
        self._call("upload_blob")
        if key in self.blobs[bucket] and not upsert:
            raise StoreError("The resource already exists", status_code=409)
        self.blobs[bucket][key] = data

    def public_url(self, bucket, key):
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(key)}"

    async def delete_blob(self, bucket, key):
        self._call("delete_blob")
        self.blobs[bucket].pop(key, None)

    # Helpers for assertions
    def people(self) -> list[dict]:
        return list(self.rows["people"].values())

    def portraits(self) -> dict:
        return self.blobs["portraits"]


@pytest.fixture
def store():
    return FakeStore()


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_audit_log(tmp_path, monkeypatch):
    """Point the audit log and run id at a temp dir and reset the recorder."""
    import core.config as config
    import core.event_recorder as event_recorder

    monkeypatch.setattr(config, "LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(config, "DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr(event_recorder, "_recorder", None)
    yield tmp_path / "logs" / "events.jsonl"


@pytest.fixture
def client(store):
    """Test client for the FastHTML app, wired to the in-memory store."""
    from unittest.mock import patch
    from app.main import app

    with patch("app.main.get_store", return_value=store):
        yield TestClient(app)


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def make_image_bytes(size=(64, 64), fmt="JPEG", noise=False, **save_options) -> bytes:
    """Encode a test image. Noise images resist compression, so they stay large."""
    if noise:
        img = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    else:
        img = Image.new("RGB", size, (200, 120, 40))
    buf = io.BytesIO()
    img.save(buf, format=fmt, **save_options)
    return buf.getvalue()


@pytest.fixture
def small_jpeg() -> bytes:
    return make_image_bytes()


@pytest.fixture
def large_jpeg() -> bytes:
    """Well over 300 KB."""
    data = make_image_bytes((1000, 1000), noise=True, quality=95)
    assert len(data) > 300 * 1024
    return data
