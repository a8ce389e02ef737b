"""Class duration from wall-clock start/end times.

Slots may cross midnight (a 23:00-00:30 lesson lasts 90 minutes), so a plain
``end - start`` is not enough.
"""

from __future__ import annotations

from ..common.datetime_utils import TimeLike, minutes_since_midnight
from ..core.constants import MINUTES_PER_DAY


def calculate_duration_minutes(start: TimeLike, end: TimeLike) -> int:
    """Return the non-negative duration in minutes between ``start`` and ``end``.

    Raises ``FormatError`` when either value has no hour:minute components.
    """

    start_minutes = minutes_since_midnight(start)
    end_minutes = minutes_since_midnight(end)

    if end_minutes < start_minutes:
        return (MINUTES_PER_DAY - start_minutes) + end_minutes
    return end_minutes - start_minutes
