"""Tests for the HTTP surface: methods, CORS, JSON parsing, configuration, Lambda adapter."""

import asyncio
import importlib
import json

import pytest
from fastapi.testclient import TestClient

from shared.config import get_settings, load_settings
from shared.errors import ConfigurationError
from tests.conftest import body

URL = "/api/admin"


class TestMethods:
    def test_options_is_a_preflight(self, client: TestClient):
        r = client.options(URL)
        assert r.status_code == 200
        assert r.json() == {"ok": True, "preflight": True}
        assert r.headers["Access-Control-Allow-Origin"] == "*"
        assert r.headers["Access-Control-Allow-Methods"] == "POST,OPTIONS"
        assert r.headers["Access-Control-Allow-Headers"] == "Content-Type"

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "TRACE"])
    def test_other_methods_return_405(self, client: TestClient, method: str):
        r = client.request(method, URL)
        assert r.status_code == 405
        assert r.json() == {"ok": False, "error": "Use POST", "reason": "method_not_allowed"}
        assert r.headers["Access-Control-Allow-Origin"] == "*"

    def test_405_elsewhere_keeps_default_body(self, client: TestClient):
        r = client.post("/health")
        assert r.status_code == 405
        assert r.json() == {"detail": "Method Not Allowed"}

    def test_netlify_path_is_mounted(self, client: TestClient):
        r = client.post("/.netlify/functions/admin", json=body("ping"))
        assert r.status_code == 200
        assert r.json()["pong"] is True

    def test_errors_carry_cors_headers(self, client: TestClient):
        r = client.post(URL, json=body("ping", pin="nope"))
        assert r.status_code == 401
        assert r.headers["Access-Control-Allow-Origin"] == "*"

    def test_health(self, client: TestClient):
        assert client.get("/health").json() == {"status": "ok"}


class TestJsonBody:
    def test_malformed_json_returns_400(self, client: TestClient):
        r = client.post(URL, content=b"{not json", headers={"Content-Type": "application/json"})
        assert r.status_code == 400
        assert r.json() == {"ok": False, "error": "Bad JSON", "reason": "validation"}

    def test_non_object_json_returns_400(self, client: TestClient):
        r = client.post(URL, content=b'["ping"]', headers={"Content-Type": "application/json"})
        assert r.status_code == 400
        assert r.json()["error"] == "Bad JSON"

    def test_empty_body_is_an_empty_object(self, client: TestClient):
        r = client.post(URL, content=b"")
        assert r.status_code == 401
        assert r.json()["error"] == "Missing pin"


class TestConfiguration:
    @pytest.mark.parametrize("name", ["ADMIN_PIN", "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"])
    def test_missing_env_returns_500(self, client: TestClient, monkeypatch, name: str):
        monkeypatch.setenv(name, "  ")
        get_settings.cache_clear()
        r = client.post(URL, json=body("ping"))
        assert r.status_code == 500
        assert r.json() == {"ok": False, "error": f"Missing env: {name}", "reason": "configuration"}

    def test_missing_env_fails_at_import(self, app, monkeypatch):
        import admin.handler  # noqa: PLC0415

        monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY")
        get_settings.cache_clear()
        with pytest.raises(ConfigurationError, match="SUPABASE_SERVICE_ROLE_KEY"):
            importlib.reload(admin.handler)
        get_settings.cache_clear()

    def test_settings_are_trimmed_and_defaulted(self):
        settings = load_settings(
            {
                "ADMIN_PIN": " 1234 ",
                "SUPABASE_URL": "https://x.supabase.co/",
                "SUPABASE_SERVICE_ROLE_KEY": "k",
                "MEDIA_FOLDER": "/gallery/",
            }
        )
        assert settings.admin_pin == "1234"
        assert settings.supabase_url == "https://x.supabase.co"
        assert settings.media_bucket == "public"
        assert settings.media_folder == "gallery"
        assert settings.timeout_seconds == 10.0

    @pytest.mark.parametrize("timeout", ["0", "-1", "soon"])
    def test_bad_timeout(self, timeout: str):
        with pytest.raises(ConfigurationError):
            load_settings(
                {
                    "ADMIN_PIN": "1",
                    "SUPABASE_URL": "https://x.supabase.co",
                    "SUPABASE_SERVICE_ROLE_KEY": "k",
                    "BACKEND_TIMEOUT_SECONDS": timeout,
                }
            )

    def test_settings_are_frozen(self):
        settings = load_settings(
            {"ADMIN_PIN": "1", "SUPABASE_URL": "https://x.supabase.co", "SUPABASE_SERVICE_ROLE_KEY": "k"}
        )
        with pytest.raises(Exception):
            settings.admin_pin = "2"


class TestLambdaHandler:
    @pytest.fixture(autouse=True)
    def mangum_loop(self):
        # Mangum drives the app on the current thread's event loop.
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        yield loop
        asyncio.set_event_loop(None)
        loop.close()

    def _event(self, method: str, payload: dict | None = None) -> dict:
        return {
            "version": "2.0",
            "routeKey": "$default",
            "rawPath": URL,
            "rawQueryString": "",
            "headers": {"content-type": "application/json", "host": "admin.example.com"},
            "requestContext": {
                "accountId": "123456789012",
                "apiId": "api-id",
                "domainName": "admin.example.com",
                "domainPrefix": "admin",
                "http": {
                    "method": method,
                    "path": URL,
                    "protocol": "HTTP/1.1",
                    "sourceIp": "127.0.0.1",
                    "userAgent": "pytest",
                },
                "requestId": "id",
                "routeKey": "$default",
                "stage": "$default",
                "time": "12/Mar/2020:19:03:58 +0000",
                "timeEpoch": 1583348638390,
            },
            "body": json.dumps(payload) if payload is not None else None,
            "isBase64Encoded": False,
        }

    def test_ping_through_mangum(self, app):
        from admin.handler import handler  # noqa: PLC0415

        response = handler(self._event("POST", body("ping")), None)
        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == {"ok": True, "pong": True}

    def test_preflight_through_mangum(self, app):
        from admin.handler import handler  # noqa: PLC0415

        response = handler(self._event("OPTIONS"), None)
        assert response["statusCode"] == 200
        assert json.loads(response["body"])["preflight"] is True
