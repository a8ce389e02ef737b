"""Chronological assignment of completed classes to a student's packages.

Packages are consumed in round order: paid (frozen) packages first, then the
active/finished ones, walking the class timeline with a single cursor. A class
is admitted into the current package when it does not count toward the limit,
when it still fits, or when the package has no counted usage yet (a single
long class must not block the whole timeline). Whatever is left when every
package is full ends up unassigned.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence

from ..classes.model import ClassInstance
from ..core.exceptions import InconsistentStateWarning
from ..packages.model import Package
from .model import AllocationPlan, ClassAssignment, ClassReassigned, PackageUsage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Fill:
    usage: PackageUsage
    assignments: tuple[ClassAssignment, ...]
    next_index: int


def order_packages(packages: Sequence[Package]) -> list[Package]:
    """Processing order: paid by round, then active/finished by round."""

    by_round = sorted(packages, key=lambda p: (p.round_number, p.package_id))
    return [p for p in by_round if p.is_frozen] + [p for p in by_round if not p.is_frozen]


def order_classes(classes: Sequence[ClassInstance]) -> list[ClassInstance]:
    completed = [c for c in classes if c.status.is_completed]
    return sorted(completed, key=lambda c: c.chronological_key)


def _admits(package: Package, cls: ClassInstance, used_minutes: int) -> bool:
    if not cls.counts_toward_limit:
        return True

    limit = package.capacity_minutes
    if limit <= 0:
        return False
    if used_minutes == 0:
        return True
    return used_minutes + cls.duration <= limit


def _fill_package(package: Package, timeline: Sequence[ClassInstance], start: int) -> _Fill:
    used_minutes = 0
    assignments: list[ClassAssignment] = []
    index = start

    while index < len(timeline):
        cls = timeline[index]
        if not _admits(package, cls, used_minutes):
            break

        if cls.counts_toward_limit:
            used_minutes += cls.duration

        assignments.append(
            ClassAssignment(
                class_id=cls.class_id,
                class_date=cls.class_date,
                duration=cls.duration,
                counts_toward_limit=cls.counts_toward_limit,
                previous_package_id=cls.package_id,
                package_id=package.package_id,
                reason=f"round {package.round_number} ({package.status.value})",
            )
        )
        index += 1

    usage = PackageUsage(
        package_id=package.package_id,
        student_id=package.student_id,
        round_number=package.round_number,
        status=package.status,
        total_hours=float(package.total_hours or 0),
        capacity_minutes=package.capacity_minutes,
        used_minutes=used_minutes,
        class_ids=tuple(a.class_id for a in assignments),
    )
    return _Fill(usage=usage, assignments=tuple(assignments), next_index=index)


def _check_package(package: Package) -> None:
    if package.total_hours is not None and package.total_hours < 0:
        message = (
            f"Package #{package.package_id} (round {package.round_number}) has a negative "
            f"hour budget ({package.total_hours}); it will not take counted classes"
        )
        logger.warning(message)
        warnings.warn(message, InconsistentStateWarning, stacklevel=3)


def _unassign(cls: ClassInstance) -> ClassAssignment:
    return ClassAssignment(
        class_id=cls.class_id,
        class_date=cls.class_date,
        duration=cls.duration,
        counts_toward_limit=cls.counts_toward_limit,
        previous_package_id=cls.package_id,
        package_id=None,
        reason="no package capacity left",
    )


def allocate(packages: Sequence[Package], classes: Sequence[ClassInstance]) -> AllocationPlan:
    """Compute the package of every completed class of one student.

    Pure: the inputs are not modified and nothing is written. Classes with a
    non-completed status are ignored.
    """

    timeline = order_classes(classes)
    assignments: list[ClassAssignment] = []
    usages: list[PackageUsage] = []

    cursor = 0
    for package in order_packages(packages):
        _check_package(package)
        fill = _fill_package(package, timeline, cursor)
        assignments.extend(fill.assignments)
        usages.append(fill.usage)
        cursor = fill.next_index

    assignments.extend(_unassign(cls) for cls in timeline[cursor:])

    student_of: dict[int, int] = {c.class_id: c.student_id for c in timeline}
    events = tuple(
        ClassReassigned(
            class_id=a.class_id,
            student_id=student_of[a.class_id],
            previous_package_id=a.previous_package_id,
            package_id=a.package_id,
        )
        for a in assignments
        if a.changed
    )
    return AllocationPlan(assignments=tuple(assignments), usages=tuple(usages), events=events)


def remaining_hours_for(package: Package, plan: AllocationPlan) -> Optional[float]:
    """Remaining hours after the plan, or None when the package has no hour budget."""

    if package.total_hours is None:
        return None
    usage = plan.usage_for(package.package_id)
    return usage.remaining_hours if usage else round(max(0.0, float(package.total_hours)), 2)
