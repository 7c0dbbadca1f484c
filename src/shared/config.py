"""Process configuration, read once from the environment.

Required:
    ADMIN_PIN                   shared secret every operator presents
    SUPABASE_URL                base URL of the Supabase project
    SUPABASE_SERVICE_ROLE_KEY   service-level key for REST + Storage

Optional:
    MEDIA_BUCKET             storage bucket for uploads  (default "public")
    MEDIA_FOLDER             logical folder inside it    (default "news")
    BACKEND_TIMEOUT_SECONDS  per-call upstream timeout   (default 10)
"""

import os
from functools import lru_cache
from typing import Mapping

from pydantic import BaseModel, ConfigDict

from shared.errors import ConfigurationError

_REQUIRED = ("ADMIN_PIN", "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    admin_pin: str
    supabase_url: str
    service_role_key: str
    media_bucket: str = "public"
    media_folder: str = "news"
    timeout_seconds: float = 10.0


def _env(environ: Mapping[str, str], key: str) -> str:
    return str(environ.get(key) or "").strip()


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment, failing on the first missing value."""
    environ = os.environ if environ is None else environ

    for key in _REQUIRED:
        if not _env(environ, key):
            raise ConfigurationError(f"Missing env: {key}")

    raw_timeout = _env(environ, "BACKEND_TIMEOUT_SECONDS") or "10"
    try:
        timeout = float(raw_timeout)
    except ValueError:
        raise ConfigurationError(f"Bad env: BACKEND_TIMEOUT_SECONDS={raw_timeout!r}")
    if not timeout > 0:
        raise ConfigurationError(f"Bad env: BACKEND_TIMEOUT_SECONDS={raw_timeout!r}")

    return Settings(
        admin_pin=_env(environ, "ADMIN_PIN"),
        supabase_url=_env(environ, "SUPABASE_URL").rstrip("/"),
        service_role_key=_env(environ, "SUPABASE_SERVICE_ROLE_KEY"),
        media_bucket=_env(environ, "MEDIA_BUCKET") or "public",
        media_folder=_env(environ, "MEDIA_FOLDER").strip("/") or "news",
        timeout_seconds=timeout,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """FastAPI dependency. Loaded on first use and never mutated afterwards."""
    return load_settings()
