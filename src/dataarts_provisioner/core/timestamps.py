"""Timestamp conversion helpers."""

from __future__ import annotations

from datetime import UTC, datetime

_RFC3339 = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp_rfc3339(seconds: int) -> str:
    """Format a Unix timestamp (seconds) as RFC3339 in UTC, without fractional seconds."""
    return datetime.fromtimestamp(seconds, UTC).strftime(_RFC3339)


def format_millis_rfc3339(millis: int | float | None) -> str:
    """Format an epoch-millisecond value as RFC3339; ``None`` maps to ``""``.

    Raises:
        ValueError: *millis* is outside the range ``datetime`` can represent.
    """
    if millis is None:
        return ""
    try:
        return format_timestamp_rfc3339(int(millis) // 1000)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValueError(f"epoch milliseconds out of range: {millis}") from exc
