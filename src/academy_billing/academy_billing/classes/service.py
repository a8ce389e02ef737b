from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..core.exceptions import FormatError
from .duration import calculate_duration_minutes
from .repository import ClassRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DurationFix:
    class_id: int
    old_minutes: int
    new_minutes: int


@dataclass
class DurationRepairReport:
    dry_run: bool
    fixes: list[DurationFix] = field(default_factory=list)
    skipped: int = 0
    invalid: list[int] = field(default_factory=list)

    @property
    def fixed(self) -> int:
        return len(self.fixes)


class DurationRepairService:
    """Recompute stored durations from start/end times (midnight-aware)."""

    def __init__(self, classes: ClassRegistry):
        self._classes = classes

    def repair(self, *, dry_run: bool = False) -> DurationRepairReport:
        report = DurationRepairReport(dry_run=dry_run)

        for row in self._classes.list_timed_classes():
            try:
                minutes = calculate_duration_minutes(row.start_time, row.end_time)
            except FormatError as exc:
                # Never guess a duration; leave the record for manual review.
                logger.warning("Skipping duration of class #%s: %s", row.class_id, exc)
                report.invalid.append(row.class_id)
                continue

            if minutes == row.duration:
                report.skipped += 1
                continue

            if not dry_run:
                self._classes.update_duration(row.class_id, minutes)
            logger.info("Class #%s duration %s min -> %s min", row.class_id, row.duration, minutes)
            report.fixes.append(DurationFix(class_id=row.class_id, old_minutes=row.duration, new_minutes=minutes))

        return report
