from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Union

from ..core.constants import MINUTES_PER_DAY
from ..core.exceptions import FormatError

TimeLike = Union[str, time, datetime, timedelta]


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def minutes_since_midnight(value: TimeLike) -> int:
    """Convert a wall-clock value to minutes since midnight.

    Accepts ``HH:MM`` / ``HH:MM:SS`` strings (seconds are truncated), ``time``
    and ``datetime`` objects, and ``timedelta`` values as returned by
    mysql-connector for TIME columns.
    """

    if isinstance(value, datetime):
        return value.hour * 60 + value.minute

    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if isinstance(value, timedelta):
        total_minutes = int(value.total_seconds()) // 60
        return total_minutes % MINUTES_PER_DAY

    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise FormatError(f"Invalid time string: {value!r}")
        try:
            hours = int(parts[0])
            minutes = int(parts[1])
        except ValueError:
            raise FormatError(f"Invalid time string: {value!r}") from None
        if hours < 0 or minutes < 0:
            raise FormatError(f"Invalid time string: {value!r}")
        return hours * 60 + minutes

    raise FormatError(f"Unsupported time value type: {type(value)!r}")
