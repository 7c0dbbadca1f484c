"""Object-key and public-URL helpers for Supabase Storage uploads."""

import re

_UNSAFE = re.compile(r"[^\w.\-]+", re.ASCII)
MAX_FILENAME_LENGTH = 120


def safe_file_name(name: object, default: str = "file") -> str:
    """Replace anything outside [A-Za-z0-9_.-] with "_" and cap the length."""
    text = "" if name is None else str(name).strip()
    return _UNSAFE.sub("_", text)[:MAX_FILENAME_LENGTH] or default


def build_object_key(folder: str, filename: str, timestamp_ms: int) -> str:
    """
    Construct the storage key for an upload.

    Pattern:
      <folder>/<millisecond-timestamp>_<filename>

    The timestamp keeps two uploads of "cover.jpg" from overwriting each other.
    """
    return f"{folder}/{timestamp_ms}_{filename}"


def public_object_url(base_url: str, bucket: str, object_key: str) -> str:
    """Public URL of an object in a bucket marked public."""
    return f"{base_url.rstrip('/')}/storage/v1/object/public/{bucket}/{object_key}"
