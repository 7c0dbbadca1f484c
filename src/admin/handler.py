"""
Admin Lambda entry point.

Local dev:
    PYTHONPATH=src uv run uvicorn admin.handler:app --reload --port 8001

Lambda handler (API Gateway HTTP API):
    admin.handler.handler
"""

import logging
import os

from fastapi import FastAPI
from mangum import Mangum
from starlette.exceptions import HTTPException as StarletteHTTPException

from admin.routes import actions
from shared.config import get_settings
from shared.errors import AdminError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

# A deployment missing ADMIN_PIN or SUPABASE_* fails here, at import, not on its first request.
get_settings()

app = FastAPI(
    title="Club Admin API",
    description="Write-only API for the club website: news, fixtures, squad, standings and media. Every action requires the admin PIN.",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(actions.router)
app.add_exception_handler(AdminError, actions.admin_error_handler)
app.add_exception_handler(StarletteHTTPException, actions.http_error_handler)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}


# Mangum adapts the FastAPI ASGI app for AWS Lambda + API Gateway (HTTP API).
handler = Mangum(app, lifespan="off")
