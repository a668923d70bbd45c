"""
ULID generation and UTC timestamp helpers.

All persisted timestamps use one fixed-width UTC format,
``YYYY-MM-DDTHH:MM:SS.mmmZ``, so that string comparison in SQL
(``scheduled_for <= ?``) matches chronological order on every backend.

Tags:
    timestamps, ulid, utc, datetime, rankbrnd
"""

from __future__ import annotations

import random
import time
from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def generate_ulid() -> str:
    """
    Generate a ULID-like identifier.

    Format: 26 characters, Crockford base32, time-sortable.
    """
    timestamp_ms = int(time.time() * 1000)
    timestamp_chars = _encode_base32(timestamp_ms, 10)
    random_part = "".join(random.choices(_ENCODING, k=16))
    return timestamp_chars + random_part


def to_iso8601(dt: datetime | None) -> str | None:
    """Format a datetime in the canonical storage format.

    Naive datetimes are assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def from_iso8601(s: str | None) -> datetime | None:
    """Parse an ISO 8601 string to an aware UTC datetime."""
    if s is None or s == "":
        return None
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def today_iso(now: datetime | None = None) -> str:
    """Return the UTC calendar date as ``YYYY-MM-DD``."""
    return (now or utc_now()).astimezone(UTC).date().isoformat()


def parse_date(value: str | date | None) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


# ULID base32 alphabet (Crockford's)
_ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ENCODING_LEN = len(_ENCODING)


def _encode_base32(value: int, length: int) -> str:
    """Encode integer to base32 string of fixed length."""
    result = []
    for _ in range(length):
        result.append(_ENCODING[value % _ENCODING_LEN])
        value //= _ENCODING_LEN
    return "".join(reversed(result))
