"""Request payloads for each admin action, and the normalizer that builds them.

The admin UI posts loosely typed form values (numbers as strings, blank
inputs as ""). Every model coerces its input the same way: text is trimmed,
blanks fall back to defaults or null, and required values that end up empty
are reported as missing.
"""

import base64
import binascii
import math
import re
from datetime import date, time
from typing import Annotated, Any, Callable

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from shared.errors import UnknownActionError, ValidationError
from shared.storage import safe_file_name

DEFAULT_COMPETITION = "Zona Dunav"
DEFAULT_MATCH_STATUS = "scheduled"
DEFAULT_SEASON = "2025/2026"
DEFAULT_FILENAME = "news.jpg"
DEFAULT_CONTENT_TYPE = "image/jpeg"

_MIME = re.compile(r"^[\w.+-]+/[\w.+-]+$", re.ASCII)


# ── Coercion ───────────────────────────────────────────────────────────────────

def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _required_text(value: Any) -> str:
    text = _text(value)
    if not text:
        raise PydanticCustomError("missing", "Field required")
    return text


def _optional_text(value: Any) -> str | None:
    return _text(value) or None


def _text_or(default: str) -> Callable[[Any], str]:
    def coerce(value: Any) -> str:
        return _text(value) or default
    return coerce


def _finite_number(value: Any) -> float | None:
    """float(value) if it is a finite number, else None. Booleans are not numbers."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _stat(value: Any) -> int:
    number = _finite_number(value)
    return 0 if number is None else int(number)


def _positive_number(value: Any) -> int | float:
    number = _finite_number(value)
    if number is None or number <= 0:
        raise PydanticCustomError("positive_number", "must be a finite number greater than zero")
    return int(number) if number.is_integer() else number


def _content_type(value: Any) -> str:
    text = _text(value) or DEFAULT_CONTENT_TYPE
    if not _MIME.match(text.split(";", 1)[0].strip()):
        raise PydanticCustomError("content_type", "expected a MIME type like image/jpeg")
    return text


def _decode_base64(value: Any) -> bytes:
    text = "".join(_text(value).split())
    if not text:
        raise PydanticCustomError("missing", "Field required")
    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise PydanticCustomError("base64", "not valid base64")
    if not data:
        raise PydanticCustomError("base64", "decodes to zero bytes")
    return data


Text = Annotated[str, BeforeValidator(_text)]
RequiredText = Annotated[str, BeforeValidator(_required_text)]
OptionalText = Annotated[str | None, BeforeValidator(_optional_text)]
Stat = Annotated[int, BeforeValidator(_stat)]


# ── Action payloads ────────────────────────────────────────────────────────────

class NewsPost(BaseModel):
    title: RequiredText
    body: RequiredText
    image_url: OptionalText = None


class Match(BaseModel):
    competition: Annotated[str, BeforeValidator(_text_or(DEFAULT_COMPETITION))] = DEFAULT_COMPETITION
    match_date: Annotated[date | None, BeforeValidator(_optional_text)] = None
    match_time: Annotated[time | None, BeforeValidator(_optional_text)] = None
    home_team: RequiredText
    away_team: RequiredText
    venue: OptionalText = None
    round: OptionalText = None
    status: Annotated[str, BeforeValidator(_text_or(DEFAULT_MATCH_STATUS))] = DEFAULT_MATCH_STATUS


class Player(BaseModel):
    full_name: RequiredText
    number: Annotated[int | float, BeforeValidator(_positive_number)]
    position_group: RequiredText


class TableRow(BaseModel):
    """One standings line. Numbers the UI leaves blank or garbled count as 0."""

    team: Text = ""
    played: Stat = 0
    wins: Stat = 0
    draws: Stat = 0
    losses: Stat = 0
    goals_for: Stat = 0
    goals_against: Stat = 0
    goal_diff: Stat = 0
    points: Stat = 0


class TableReplacement(BaseModel):
    season: Annotated[str, BeforeValidator(_text_or(DEFAULT_SEASON))] = DEFAULT_SEASON
    round: Text = ""
    rows: list[TableRow]

    @field_validator("rows", mode="before")
    @classmethod
    def _rows_present(cls, value: Any) -> list:
        if not isinstance(value, list) or not value:
            raise PydanticCustomError("missing", "Field required")
        # Anything that is not an object has no team and is dropped below.
        return [row if isinstance(row, dict) else {} for row in value]

    @field_validator("rows")
    @classmethod
    def _drop_rows_without_team(cls, rows: list[TableRow]) -> list[TableRow]:
        kept = [row for row in rows if row.team]
        if not kept:
            raise PydanticCustomError("no_teams", "no row has a team name")
        return kept

    def stamped_rows(self) -> list[dict]:
        """Rows ready for insertion, each carrying this table's season and round."""
        return [
            {**row.model_dump(), "season": self.season, "round": self.round}
            for row in self.rows
        ]


class MediaAsset(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filename: Annotated[
        str, BeforeValidator(lambda value: safe_file_name(_text(value) or DEFAULT_FILENAME))
    ] = DEFAULT_FILENAME
    content_type: Annotated[str, BeforeValidator(_content_type)] = Field(
        default=DEFAULT_CONTENT_TYPE, alias="contentType"
    )
    data: Annotated[bytes, BeforeValidator(_decode_base64)] = Field(alias="base64")


ACTION_MODELS: dict[str, type[BaseModel]] = {
    "add_news": NewsPost,
    "add_match": Match,
    "add_player": Player,
    "replace_table": TableReplacement,
    "upload_media": MediaAsset,
}


# ── Normalizer ─────────────────────────────────────────────────────────────────

def _describe(exc: PydanticValidationError) -> str:
    """Turn the first pydantic error into "Missing <field>" / "Invalid <field>: ..."."""
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"])
    if error["type"] == "missing":
        return f"Missing {field}"
    if not field:
        return error["msg"]
    return f"Invalid {field}: {error['msg']}"


def normalize(action: str, payload: dict) -> BaseModel:
    """Validate a raw request body into the typed record for `action`.

    Raises ValidationError naming the first bad field. No I/O.
    """
    model = ACTION_MODELS.get(action)
    if model is None:
        raise UnknownActionError(action)
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(_describe(exc)) from exc
