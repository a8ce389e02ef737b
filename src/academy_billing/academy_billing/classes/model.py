from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Optional

from ..core.constants import MINUTES_PER_HOUR
from ..core.enums import ClassStatus


@dataclass(frozen=True)
class ClassInstance:
    """Domain entity: one scheduled or completed lesson."""

    class_id: int
    student_id: int
    class_date: date
    start_time: Optional[time]
    end_time: Optional[time]
    duration: int
    status: ClassStatus
    package_id: Optional[int] = None
    teacher_id: Optional[int] = None

    @property
    def duration_hours(self) -> float:
        return self.duration / MINUTES_PER_HOUR

    @property
    def counts_toward_limit(self) -> bool:
        return self.status.counts_toward_limit

    @property
    def chronological_key(self) -> tuple:
        # Same order as ORDER BY class_date, start_time, id (NULL times first).
        return (self.class_date, self.start_time or time.min, self.class_id)


@dataclass(frozen=True)
class TimedClassRow:
    """Read-model for duration repair: raw stored times, not yet validated."""

    class_id: int
    start_time: Any
    end_time: Any
    duration: int
