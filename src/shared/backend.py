"""Supabase REST + Storage client: row inserts, filtered deletes, object uploads.

This is the only module that talks to the network. The dispatcher depends on
the BackendClient protocol, so tests swap in a recording double.
"""

import json
import logging
from typing import Iterator, Protocol
from urllib.parse import quote

import httpx
from fastapi import Depends

from shared.config import Settings, get_settings
from shared.errors import RemoteUploadError, RemoteWriteError
from shared.storage import public_object_url

logger = logging.getLogger(__name__)


class BackendClient(Protocol):
    def insert(
        self, collection: str, records: list[dict], return_representation: bool = True
    ) -> list[dict]: ...

    def delete_all(self, collection: str, filters: dict[str, str]) -> None: ...

    def upload_object(
        self, bucket: str, object_key: str, data: bytes, content_type: str
    ) -> str: ...


def _error_message(response: httpx.Response) -> str:
    """Pull a readable message out of a PostgREST / Storage error body."""
    text = response.text
    try:
        data = json.loads(text) if text else None
    except ValueError:
        data = None

    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if message:
            return str(message)
    return text.strip() or response.reason_phrase or "Supabase error"


class SupabaseBackend:
    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        self.base_url = settings.supabase_url
        self._client = httpx.Client(
            base_url=settings.supabase_url,
            headers={
                "apikey": settings.service_role_key,
                "Authorization": f"Bearer {settings.service_role_key}",
            },
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SupabaseBackend":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Data API ───────────────────────────────────────────────────────────────

    def _rest(self, method: str, collection: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, f"/rest/v1/{collection}", **kwargs)
        except httpx.HTTPError as exc:
            logger.error("rest_request_failed method=%s collection=%s error=%s", method, collection, exc)
            raise RemoteWriteError(f"{collection}: request failed: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "rest_request_rejected method=%s collection=%s status=%s message=%s",
                method, collection, response.status_code, message,
            )
            raise RemoteWriteError(
                f"{response.status_code} {message}",
                upstream_status=response.status_code,
                upstream_message=message,
            )
        return response

    def insert(
        self, collection: str, records: list[dict], return_representation: bool = True
    ) -> list[dict]:
        """Batch-insert rows. Returns the upstream echo, or [] for return=minimal."""
        prefer = "return=representation" if return_representation else "return=minimal"
        response = self._rest("POST", collection, json=records, headers={"Prefer": prefer})
        if not return_representation or not response.content:
            return []
        try:
            rows = response.json()
        except ValueError as exc:
            logger.error(
                "rest_response_unreadable collection=%s status=%s", collection, response.status_code
            )
            raise RemoteWriteError(
                f"{collection}: unreadable response",
                upstream_status=response.status_code,
                upstream_message=response.text[:200],
            ) from exc
        return rows if isinstance(rows, list) else [rows]

    def delete_all(self, collection: str, filters: dict[str, str]) -> None:
        """Delete every row matching the PostgREST filters, e.g. {"id": "gt.0"}."""
        if not filters:
            # PostgREST refuses unfiltered deletes; fail here with a clearer message.
            raise ValueError("delete_all needs at least one filter")
        self._rest("DELETE", collection, params=filters)

    # ── Storage ────────────────────────────────────────────────────────────────

    def upload_object(self, bucket: str, object_key: str, data: bytes, content_type: str) -> str:
        """Upload (upsert) bytes to bucket/object_key and return the public URL."""
        path = f"/storage/v1/object/{quote(bucket, safe='')}/{object_key}"
        try:
            response = self._client.post(
                path,
                content=data,
                headers={
                    "Content-Type": content_type or "application/octet-stream",
                    "x-upsert": "true",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("storage_upload_failed bucket=%s key=%s error=%s", bucket, object_key, exc)
            raise RemoteUploadError(f"Storage upload failed: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.error(
                "storage_upload_rejected bucket=%s key=%s status=%s message=%s",
                bucket, object_key, response.status_code, message,
            )
            raise RemoteUploadError(
                f"Storage upload failed: {response.status_code} {message}",
                upstream_status=response.status_code,
                upstream_message=message,
            )

        return public_object_url(self.base_url, bucket, object_key)


def get_backend(settings: Settings = Depends(get_settings)) -> Iterator[BackendClient]:
    """FastAPI dependency: one HTTP client per request, closed afterwards."""
    with SupabaseBackend(settings) as backend:
        yield backend
