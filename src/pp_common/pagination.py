"""Opaque keyset cursors.

A cursor is base64(JSON) of the sort key of the last row on the page. Callers
fetch ``limit + 1`` rows and use :func:`split_page` to detect ``has_more``
without a COUNT(*) query.
"""

import base64
import json
from datetime import datetime
from typing import Any, TypeVar

from src.pp_common.datetime_utils import ensure_aware

T = TypeVar("T")


def cursor_encode(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":"), default=str)
    return base64.urlsafe_b64encode(raw.encode()).decode()


def cursor_decode(cursor: str | None) -> dict[str, Any] | None:
    """Decode a cursor string. Returns None on a missing or malformed cursor."""
    if not cursor:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def split_page(rows: list[T], limit: int) -> tuple[list[T], bool]:
    """Trim a ``limit + 1`` fetch to ``limit`` rows and report has_more."""
    return rows[:limit], len(rows) > limit


def encode_ts_cursor(ts: datetime, row_id: str) -> str:
    """Cursor for lists ordered by (timestamp, id)."""
    return cursor_encode({"ts": ts.isoformat(), "id": row_id})


def decode_ts_cursor(cursor: str | None) -> tuple[datetime | None, str | None]:
    """Inverse of :func:`encode_ts_cursor`; (None, None) on a missing or malformed cursor."""
    decoded = cursor_decode(cursor)
    if not decoded:
        return None, None
    try:
        return ensure_aware(datetime.fromisoformat(str(decoded["ts"]))), str(decoded["id"])
    except (KeyError, ValueError):
        return None, None
