"""The single admin endpoint: POST /api/admin.

Body:
    {"pin": "<shared secret>", "action": "<name>", ...action fields}

Every response is a JSON envelope with an "ok" flag and permissive CORS
headers, so the static admin page can call it from any origin:

    {"ok": true, ...}                                    200
    {"ok": false, "error": "...", "reason": "..."}       400 / 401 / 405 / 500

The same routes are mounted under /.netlify/functions/admin, the path the
admin UI was first deployed against.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from admin.dispatcher import ActionDispatcher, get_clock
from shared.backend import BackendClient, get_backend
from shared.config import Settings, get_settings
from shared.errors import AdminError, ValidationError

router = APIRouter()

PATHS = ("/api/admin", "/.netlify/functions/admin")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST,OPTIONS",
}


def envelope(content: dict, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content, status_code=status_code, headers=CORS_HEADERS)


def admin_error_handler(request: Request, exc: AdminError) -> JSONResponse:
    """Registered on the app for AdminError; no stack trace reaches the caller."""
    return envelope(exc.to_dict(), status_code=exc.status_code)


async def _read_json(request: Request) -> dict:
    raw = await request.body()
    try:
        body = json.loads(raw or b"{}")
    except ValueError:
        raise ValidationError("Bad JSON")
    if not isinstance(body, dict):
        raise ValidationError("Bad JSON")
    return body


# ── Routes ─────────────────────────────────────────────────────────────────────

async def run_action(
    request: Request,
    settings: Settings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
    clock=Depends(get_clock),
):
    payload = await _read_json(request)
    dispatcher = ActionDispatcher(settings, backend, clock)
    # Backend calls block; keep them off the event loop.
    result = await run_in_threadpool(dispatcher.dispatch, payload)
    return envelope(result)


def preflight():
    return envelope({"ok": True, "preflight": True})


def method_not_allowed() -> JSONResponse:
    return envelope(
        {"ok": False, "error": "Use POST", "reason": "method_not_allowed"}, status_code=405
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Any method other than POST/OPTIONS on the admin paths gets the 405 envelope."""
    if exc.status_code == 405 and request.url.path in PATHS:
        return method_not_allowed()
    return await http_exception_handler(request, exc)


for _path in PATHS:
    router.add_api_route(_path, run_action, methods=["POST"])
    router.add_api_route(_path, preflight, methods=["OPTIONS"], include_in_schema=False)
