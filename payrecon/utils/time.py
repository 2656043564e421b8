"""Time utilities."""
from datetime import UTC, datetime, timezone
from typing import Any


def utcnow() -> datetime:
    """Return current UTC time with timezone awareness."""

    return datetime.now(tz=UTC)


def epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def parse_iso_utc(value: str) -> datetime:
    """Parse an ISO 8601 string and normalize it to UTC."""

    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 string or an epoch-milliseconds number.

    Returns ``None`` when the value is absent or cannot be interpreted.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return parse_iso_utc(text)
        except ValueError:
            return None
    return None


__all__ = ["utcnow", "epoch_millis", "parse_iso_utc", "parse_timestamp"]
