"""
Shared pytest fixtures.

Environment variables are set at module level, before any src/ imports,
so get_settings() reads the test values the first time a request needs them.
"""

import os

# Unit tests pin these; the integration module reads INTEGRATION_* instead.
os.environ["ADMIN_PIN"] = "482913"
os.environ["SUPABASE_URL"] = "https://club.supabase.test"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "service-role-test-key"
os.environ["MEDIA_BUCKET"] = "public"
os.environ["MEDIA_FOLDER"] = "news"

import pytest
from fastapi.testclient import TestClient

from shared.errors import RemoteUploadError, RemoteWriteError

PIN = "482913"
BASE_URL = "https://club.supabase.test"
FIXED_MS = 1760000000123


def body(action: str, pin: str = PIN, **fields) -> dict:
    return {"pin": pin, "action": action, **fields}


# ── Backend double ──────────────────────────────────────────────────────────────

class FakeBackend:
    """Records every call; echoes inserts back like return=representation."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.fail_on: dict[str, Exception] = {}

    def insert(self, collection, records, return_representation=True):
        self.calls.append(("insert", collection, records))
        if "insert" in self.fail_on:
            raise self.fail_on["insert"]
        return [{"id": i + 1, **record} for i, record in enumerate(records)]

    def delete_all(self, collection, filters):
        self.calls.append(("delete_all", collection, filters))
        if "delete_all" in self.fail_on:
            raise self.fail_on["delete_all"]

    def upload_object(self, bucket, object_key, data, content_type):
        self.calls.append(("upload_object", bucket, object_key, data, content_type))
        if "upload_object" in self.fail_on:
            raise self.fail_on["upload_object"]
        return f"{BASE_URL}/storage/v1/object/public/{bucket}/{object_key}"

    def fail(self, method: str, exc: Exception | None = None) -> None:
        if exc is None:
            exc = (
                RemoteUploadError("Storage upload failed: 500 boom", 500, "boom")
                if method == "upload_object"
                else RemoteWriteError("500 boom", 500, "boom")
            )
        self.fail_on[method] = exc


# ── App fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def app(backend):
    """The FastAPI app with the network backend and clock swapped out."""
    from admin.dispatcher import get_clock  # noqa: PLC0415
    from admin.handler import app  # noqa: PLC0415
    from shared.backend import get_backend  # noqa: PLC0415
    from shared.config import get_settings  # noqa: PLC0415

    get_settings.cache_clear()
    app.dependency_overrides[get_backend] = lambda: backend
    app.dependency_overrides[get_clock] = lambda: (lambda: FIXED_MS)
    yield app
    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=True)
