"""Timezone handling for scheduled publishing.

Users pick a wall-clock time in their own zone; the queue stores UTC.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from rankbrnd.core.timestamps import utc_now

DEFAULT_TIMEZONE = "UTC"

_LOCALE_TIMEZONES = {
    "en-US": "America/New_York",
    "en-CA": "America/Toronto",
    "en-GB": "Europe/London",
    "en-AU": "Australia/Sydney",
    "en-NZ": "Pacific/Auckland",
    "fr-FR": "Europe/Paris",
    "de-DE": "Europe/Berlin",
    "es-ES": "Europe/Madrid",
    "it-IT": "Europe/Rome",
    "pt-BR": "America/Sao_Paulo",
    "ja-JP": "Asia/Tokyo",
    "ko-KR": "Asia/Seoul",
    "zh-CN": "Asia/Shanghai",
    "zh-TW": "Asia/Taipei",
    "ar-AE": "Asia/Dubai",
    "ru-RU": "Europe/Moscow",
    "tr-TR": "Europe/Istanbul",
}


def is_valid_timezone(name: str | None) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def timezone_from_headers(headers: Mapping[str, str]) -> str:
    """Guess the caller's zone from ``X-Timezone`` or ``Accept-Language``."""
    lowered = {k.lower(): v for k, v in headers.items()}
    for key in ("x-timezone", "x-client-timezone"):
        candidate = lowered.get(key)
        if candidate and is_valid_timezone(candidate):
            return candidate

    accept_language = lowered.get("accept-language")
    if accept_language:
        locale = accept_language.split(",")[0].split(";")[0].strip()
        candidate = _LOCALE_TIMEZONES.get(locale)
        if candidate:
            return candidate
    return DEFAULT_TIMEZONE


def _zone(tz: str) -> ZoneInfo:
    if not is_valid_timezone(tz):
        raise ValueError(f"Invalid timezone: {tz}")
    return ZoneInfo(tz)


def to_utc(value: str | datetime, tz: str = DEFAULT_TIMEZONE) -> datetime:
    """Interpret *value* and return an aware UTC datetime.

    Strings ending in ``Z`` or carrying an explicit offset are converted
    directly; naive values are wall-clock time in *tz*.

    Raises:
        ValueError: unparseable date or unknown timezone.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Invalid date: {value}") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_zone(tz))
    return parsed.astimezone(UTC)


def from_utc(value: str | datetime, tz: str = DEFAULT_TIMEZONE) -> datetime:
    """Convert a UTC instant to an aware datetime in *tz*."""
    return to_utc(value, "UTC").astimezone(_zone(tz))


def format_in_timezone(value: str | datetime, tz: str = DEFAULT_TIMEZONE, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    return from_utc(value, tz).strftime(fmt)


def format_relative_time(target: datetime, base: datetime | None = None) -> str:
    """Short relative description: ``in 5m``, ``3h ago``, ``just now``."""
    base = base or utc_now()
    diff_ms = (target - base).total_seconds() * 1000
    future = diff_ms >= 0
    seconds = int(abs(diff_ms) // 1000)
    if seconds == 0:
        return "just now"

    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if seconds < 60:
        amount = f"{seconds}s"
    elif minutes < 60:
        amount = f"{minutes}m"
    elif hours < 24:
        amount = f"{hours}h"
    elif days < 30:
        amount = f"{days}d"
    else:
        amount = f"{days // 30}mo"
    return f"in {amount}" if future else f"{amount} ago"
