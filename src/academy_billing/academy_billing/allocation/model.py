from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.constants import MINUTES_PER_HOUR
from ..core.enums import PackageStatus


@dataclass(frozen=True)
class ClassAssignment:
    """Where one completed class belongs after a reallocation pass."""

    class_id: int
    class_date: date
    duration: int
    counts_toward_limit: bool
    previous_package_id: Optional[int]
    package_id: Optional[int]
    reason: str

    @property
    def changed(self) -> bool:
        return self.previous_package_id != self.package_id


@dataclass(frozen=True)
class PackageUsage:
    """Hours consumed by the classes admitted into one package."""

    package_id: int
    student_id: int
    round_number: int
    status: PackageStatus
    total_hours: float
    capacity_minutes: int
    used_minutes: int
    class_ids: tuple[int, ...]

    @property
    def used_hours(self) -> float:
        return self.used_minutes / MINUTES_PER_HOUR

    @property
    def remaining_hours(self) -> float:
        return round(max(0, self.capacity_minutes - self.used_minutes) / MINUTES_PER_HOUR, 2)

    @property
    def over_capacity(self) -> bool:
        return self.used_minutes > self.capacity_minutes


@dataclass(frozen=True)
class ClassReassigned:
    """Domain event: a class moved to another package (or out of any)."""

    class_id: int
    student_id: int
    previous_package_id: Optional[int]
    package_id: Optional[int]


@dataclass(frozen=True)
class PackageFinished:
    """Domain event: an active package ran out of hours."""

    package_id: int
    student_id: int


@dataclass(frozen=True)
class AllocationPlan:
    """Result of the pure allocation pass; nothing is persisted yet."""

    assignments: tuple[ClassAssignment, ...]
    usages: tuple[PackageUsage, ...]
    events: tuple[ClassReassigned, ...]

    @property
    def changes(self) -> tuple[ClassAssignment, ...]:
        return tuple(a for a in self.assignments if a.changed)

    @property
    def changed_count(self) -> int:
        return len(self.changes)

    @property
    def unassigned_class_ids(self) -> tuple[int, ...]:
        return tuple(a.class_id for a in self.assignments if a.package_id is None)

    def usage_for(self, package_id: int) -> Optional[PackageUsage]:
        for usage in self.usages:
            if usage.package_id == package_id:
                return usage
        return None

    def package_of(self, class_id: int) -> Optional[int]:
        for assignment in self.assignments:
            if assignment.class_id == class_id:
                return assignment.package_id
        return None
