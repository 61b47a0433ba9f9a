"""Timezone-aware conversions between epoch milliseconds and wall-clock text."""

from __future__ import annotations

from datetime import datetime, tzinfo

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def zone(tz_name: str) -> tzinfo:
    """Look up an IANA timezone.

    Raises:
        ValueError: If the name is unknown on this system.
    """

    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"invalid timezone: {tz_name!r} (e.g. Europe/Berlin)") from exc


def local_time(epoch_ms: int, tz_name: str) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000.0, tz=zone(tz_name))


def range_bound_ms(text: str, tz_name: str) -> int:
    """Turn a ``--range-start``/``--range-end`` value into epoch milliseconds.

    Accepts ``YYYY-MM-DD HH:MM:SS`` (or with ``T``), optionally with an offset such as
    ``+02:00``. Without an offset the time is read in ``tz_name``.

    Raises:
        ValueError: If the text is not a datetime.
    """

    try:
        dt = datetime.fromisoformat(text.strip())
    except ValueError as exc:
        raise ValueError(f"cannot parse datetime: {text!r} (expected e.g. 2026-01-01 09:30:00)") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=zone(tz_name))
    return round(dt.timestamp() * 1000)


def format_dwell(seconds: float) -> str:
    """Dwell time as ``HH:MM:SS``; hours are not wrapped at 24."""

    minutes, sec = divmod(int(round(max(0.0, seconds))), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{sec:02d}"
