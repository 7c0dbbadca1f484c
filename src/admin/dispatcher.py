"""Action dispatcher: PIN check, action lookup, normalization, backend calls.

Each action is one short, linear pipeline. Only replace_table makes more than
one backend call:

    1. delete every row of table_rows
    2. insert the new, stamped rows in one batch

There is no transaction around the pair. If step 2 fails the standings are
left empty and TableReplacementError says so; re-running the same request
restores them.
"""

import logging
import threading
import time
from typing import Callable

from shared.auth import verify_pin
from shared.backend import BackendClient
from shared.config import Settings
from shared.errors import (
    AdminError,
    RemoteWriteError,
    TableReplacementError,
    UnknownActionError,
    ValidationError,
)
from shared.models import normalize
from shared.storage import build_object_key

logger = logging.getLogger(__name__)

NEWS = "news"
MATCHES = "matches"
PLAYERS = "players"
TABLE_ROWS = "table_rows"

# PostgREST refuses a DELETE without a filter; every row has a positive id.
ALL_ROWS = {"id": "gt.0"}

# Serializes delete+insert pairs within this process only.
_table_lock = threading.Lock()


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def get_clock() -> Callable[[], int]:
    """FastAPI dependency; tests override it with a fixed clock."""
    return now_ms


class ActionDispatcher:
    def __init__(
        self,
        settings: Settings,
        backend: BackendClient,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings
        self.backend = backend
        self.clock = clock
        self._handlers: dict[str, Callable[[dict], dict]] = {
            "ping": self._ping,
            "add_news": self._add_news,
            "add_match": self._add_match,
            "add_player": self._add_player,
            "replace_table": self._replace_table,
            "upload_media": self._upload_media,
        }

    def dispatch(self, payload: dict) -> dict:
        """Run one action and return the success envelope. Raises AdminError on failure."""
        action = str(payload.get("action") or "").strip()
        try:
            verify_pin(payload.get("pin"), self.settings)
            if not action:
                raise ValidationError("Missing action")
            handler = self._handlers.get(action)
            if handler is None:
                raise UnknownActionError(action)
            result = handler(payload)
        except AdminError as exc:
            level = logging.WARNING if exc.status_code < 500 else logging.ERROR
            logger.log(level, "action_failed action=%s reason=%s error=%s", action or "-", exc.reason, exc.message)
            raise

        logger.info("action_ok action=%s", action)
        return {"ok": True, **result}

    # ── Handlers ───────────────────────────────────────────────────────────────

    def _ping(self, payload: dict) -> dict:
        return {"pong": True}

    def _insert_one(self, collection: str, action: str, payload: dict) -> dict:
        record = normalize(action, payload)
        inserted = self.backend.insert(collection, [record.model_dump(mode="json")])
        return {"inserted": inserted}

    def _add_news(self, payload: dict) -> dict:
        return self._insert_one(NEWS, "add_news", payload)

    def _add_match(self, payload: dict) -> dict:
        return self._insert_one(MATCHES, "add_match", payload)

    def _add_player(self, payload: dict) -> dict:
        return self._insert_one(PLAYERS, "add_player", payload)

    def _replace_table(self, payload: dict) -> dict:
        table = normalize("replace_table", payload)
        rows = table.stamped_rows()

        with _table_lock:
            self.backend.delete_all(TABLE_ROWS, ALL_ROWS)
            try:
                inserted = self.backend.insert(TABLE_ROWS, rows)
            except RemoteWriteError as exc:
                raise TableReplacementError.from_insert_failure(exc) from exc

        logger.info(
            "table_replaced season=%s round=%s rows=%d", table.season, table.round, len(rows)
        )
        return {"inserted": len(inserted), "season": table.season, "round": table.round}

    def _upload_media(self, payload: dict) -> dict:
        asset = normalize("upload_media", payload)
        object_key = build_object_key(self.settings.media_folder, asset.filename, self.clock())
        url = self.backend.upload_object(
            self.settings.media_bucket, object_key, asset.data, asset.content_type
        )
        return {"url": url, "path": object_key}
