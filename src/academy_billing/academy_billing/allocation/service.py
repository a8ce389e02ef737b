from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..common.validators import require_positive_id
from ..notifications.dispatcher import EventDispatcher, build_dispatcher
from ..packages.model import Package
from .allocator import allocate, remaining_hours_for
from .finished import FinishedPackageDetector
from .model import AllocationPlan, ClassAssignment, PackageFinished, PackageUsage
from .unit_of_work import AllocationUnitOfWork, StudentLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentReport:
    student_id: int
    dry_run: bool
    changes: tuple[ClassAssignment, ...] = ()
    usages: tuple[PackageUsage, ...] = ()
    finished_package_ids: tuple[int, ...] = ()
    error: Optional[str] = None

    @property
    def changed(self) -> int:
        return len(self.changes)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    dry_run: bool
    students: list[StudentReport] = field(default_factory=list)

    @property
    def total_changed(self) -> int:
        return sum(r.changed for r in self.students if r.ok)

    @property
    def total_errors(self) -> int:
        return sum(1 for r in self.students if not r.ok)

    @property
    def errors(self) -> list[StudentReport]:
        return [r for r in self.students if not r.ok]


class PackageAllocationService:
    """Read, compute, write: reassign a student's classes to packages.

    Each student is one unit of work. Dry runs compute the same plan inside a
    transaction that is always rolled back.
    """

    def __init__(
        self,
        uow: AllocationUnitOfWork,
        *,
        detector: Optional[FinishedPackageDetector] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self._uow = uow
        self._detector = detector or FinishedPackageDetector()
        self._dispatcher = dispatcher or build_dispatcher()

    def reallocate_student(self, student_id: int, *, dry_run: bool = False) -> StudentReport:
        student_id = require_positive_id(student_id, "student_id")

        with self._uow.begin(commit=not dry_run) as ledger:
            packages, plan = self._plan(ledger, student_id)
            finished = self._finished_events(packages, plan)
            if not dry_run:
                finished = self._apply(ledger, packages, plan, finished)

        if not dry_run:
            self._dispatcher.dispatch([*plan.events, *finished])

        return StudentReport(
            student_id=student_id,
            dry_run=dry_run,
            changes=plan.changes,
            usages=plan.usages,
            finished_package_ids=tuple(e.package_id for e in finished),
        )

    def reallocate(self, student_id: Optional[int] = None, *, dry_run: bool = False) -> BatchReport:
        """Reallocate one student, or every student owning packages.

        A failing student is recorded in the report and the sweep goes on.
        """

        with self._uow.begin(commit=False) as ledger:
            student_ids = list(ledger.packages.list_student_ids(student_id))

        report = BatchReport(dry_run=dry_run)
        for sid in student_ids:
            try:
                report.students.append(self.reallocate_student(sid, dry_run=dry_run))
            except Exception as exc:
                logger.exception("Reallocation failed for student #%s", sid)
                report.students.append(StudentReport(student_id=sid, dry_run=dry_run, error=str(exc)))
        return report

    def _plan(self, ledger: StudentLedger, student_id: int) -> tuple[Sequence[Package], AllocationPlan]:
        packages = ledger.packages.list_packages(student_id)
        classes = ledger.classes.list_completed_classes(student_id)
        plan = allocate(packages, classes)
        logger.debug(
            "Student #%s: %s package(s), %s class(es), %s change(s)",
            student_id,
            len(packages),
            len(plan.assignments),
            plan.changed_count,
        )
        return packages, plan

    def _finished_events(self, packages: Sequence[Package], plan: AllocationPlan) -> list[PackageFinished]:
        events = []
        for package in packages:
            event = self._detector.detect(package, remaining_hours=remaining_hours_for(package, plan))
            if event:
                events.append(event)
        return events

    def _apply(
        self,
        ledger: StudentLedger,
        packages: Sequence[Package],
        plan: AllocationPlan,
        finished: list[PackageFinished],
    ) -> list[PackageFinished]:
        for change in plan.changes:
            ledger.classes.set_package_id(change.class_id, change.package_id)

        for package in packages:
            if package.is_frozen:
                continue
            remaining = remaining_hours_for(package, plan)
            if remaining is None:
                continue
            if package.remaining_hours is None or abs(package.remaining_hours - remaining) >= 0.005:
                ledger.packages.update_remaining_hours(package.package_id, remaining)

        return [e for e in finished if ledger.packages.transition_to_finished(e.package_id)]
