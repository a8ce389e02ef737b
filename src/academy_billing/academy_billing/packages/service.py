from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..allocation.finished import FinishedPackageDetector
from ..allocation.model import PackageFinished
from ..allocation.unit_of_work import AllocationUnitOfWork, StudentLedger
from ..classes.model import ClassInstance
from ..common.validators import require_non_negative, require_positive_id
from ..core.constants import DEFAULT_CURRENCY
from ..core.enums import ClassStatus, PackageStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..notifications.dispatcher import EventDispatcher, build_dispatcher
from .model import Package, hours_to_minutes

logger = logging.getLogger(__name__)

HOURS_QUANTUM = Decimal("0.01")


def _subtract_hours(remaining: float, used: float) -> float:
    left = Decimal(str(remaining)) - Decimal(str(used))
    return float(max(Decimal("0"), left).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ClassStatusChange:
    class_id: int
    previous_status: ClassStatus
    status: ClassStatus
    deducted: bool = False
    finished_package_ids: tuple[int, ...] = ()


class PackageService:
    """Package bookkeeping outside of a full reallocation.

    Class status changes charge hours to the class's package, new rounds
    replace the active package, and finished packages can be topped up again.
    Every operation is one unit of work; ``PackageFinished`` events are
    dispatched after the commit.
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

    @staticmethod
    def _require_package(ledger: StudentLedger, package_id: int) -> Package:
        package = ledger.packages.get(package_id)
        if not package:
            raise NotFoundError(f"Package #{package_id} does not exist")
        return package

    @staticmethod
    def _require_class(ledger: StudentLedger, class_id: int) -> ClassInstance:
        cls = ledger.classes.get(class_id)
        if not cls:
            raise NotFoundError(f"Class #{class_id} does not exist")
        return cls

    @staticmethod
    def has_room(package: Package, duration_hours: float) -> bool:
        """Whether a class of this length still fits; finished packages never have room."""

        if package.status is not PackageStatus.ACTIVE:
            return False
        if package.tracks_hours:
            return hours_to_minutes(package.remaining_hours) >= hours_to_minutes(duration_hours)
        return (package.remaining_classes or 0) > 0

    def _deduct(self, ledger: StudentLedger, package: Package, duration_hours: float) -> tuple[bool, list[PackageFinished]]:
        if package.status is not PackageStatus.ACTIVE or package.is_exhausted:
            logger.info("Package #%s is %s, nothing deducted", package.package_id, package.status.value)
            return False, []

        remaining_hours = package.remaining_hours
        if package.tracks_hours:
            remaining_hours = _subtract_hours(package.remaining_hours, duration_hours)
        remaining_classes = package.remaining_classes
        if remaining_classes is not None and remaining_classes > 0:
            remaining_classes -= 1

        ledger.packages.record_deduction(
            package.package_id,
            remaining_hours=remaining_hours,
            remaining_classes=remaining_classes,
        )
        logger.info(
            "Package #%s: deducted %sh, %sh left",
            package.package_id,
            duration_hours,
            remaining_hours,
        )

        event = self._detector.detect(
            replace(package, remaining_hours=remaining_hours, remaining_classes=remaining_classes)
        )
        if event and ledger.packages.transition_to_finished(package.package_id):
            return True, [event]
        return True, []

    def deduct_class(self, package_id: int, duration_hours: float = 1.0) -> bool:
        """Charge one class to an active package; finishes it when nothing is left.

        Returns False, without writing, when the package is not active or is
        already used up.
        """

        package_id = require_positive_id(package_id, "package_id")
        require_non_negative(duration_hours, "duration_hours")

        with self._uow.begin() as ledger:
            deducted, finished = self._deduct(ledger, self._require_package(ledger, package_id), duration_hours)

        self._dispatcher.dispatch(finished)
        return deducted

    def can_add_class(self, package_id: int, duration_hours: float) -> bool:
        package_id = require_positive_id(package_id, "package_id")
        with self._uow.begin(commit=False) as ledger:
            return self.has_room(self._require_package(ledger, package_id), duration_hours)

    def add_class_to_package(self, class_id: int) -> ClassStatus:
        """Book a scheduled class: pending if its package has room, waiting list otherwise."""

        class_id = require_positive_id(class_id, "class_id")
        with self._uow.begin() as ledger:
            cls = self._require_class(ledger, class_id)
            if cls.package_id is None:
                return cls.status

            package = self._require_package(ledger, cls.package_id)
            status = ClassStatus.PENDING if self.has_room(package, cls.duration_hours) else ClassStatus.WAITING_LIST
            ledger.classes.set_status(class_id, status)

        return status

    def change_class_status(self, class_id: int, status: ClassStatus) -> ClassStatusChange:
        """Store a new class status and charge its package when the class now counts.

        Only a move from a not-yet-completed status into a counted one is
        charged, so repeating a status change never deducts twice. Moving a
        completed class back is not refunded here; ``reallocate`` rebuilds the
        counters from the class history.
        """

        class_id = require_positive_id(class_id, "class_id")
        status = ClassStatus(status)

        with self._uow.begin() as ledger:
            cls = self._require_class(ledger, class_id)
            if cls.status is not status:
                ledger.classes.set_status(class_id, status)

            deducted, finished = False, []
            charge = status.is_completed and status.counts_toward_limit and not cls.status.is_completed
            if charge and cls.package_id is not None:
                package = self._require_package(ledger, cls.package_id)
                deducted, finished = self._deduct(ledger, package, cls.duration_hours)

        self._dispatcher.dispatch(finished)
        return ClassStatusChange(
            class_id=class_id,
            previous_status=cls.status,
            status=status,
            deducted=deducted,
            finished_package_ids=tuple(e.package_id for e in finished),
        )

    def activate_new_round(
        self,
        student_id: int,
        *,
        total_hours: float,
        hour_price: Optional[float] = None,
        currency: str = DEFAULT_CURRENCY,
        start_date: Optional[date] = None,
    ) -> Package:
        """Open the next round for a student; any active package is closed as finished."""

        student_id = require_positive_id(student_id, "student_id")
        if not total_hours or total_hours <= 0:
            raise ValidationError("total_hours is required for package creation")

        finished: list[PackageFinished] = []
        with self._uow.begin() as ledger:
            for old in ledger.packages.list_packages(student_id):
                if old.status is not PackageStatus.ACTIVE:
                    continue
                ledger.packages.record_deduction(
                    old.package_id,
                    remaining_hours=0 if old.remaining_hours is not None else None,
                    remaining_classes=0 if old.remaining_classes is not None else None,
                )
                if ledger.packages.transition_to_finished(old.package_id):
                    finished.append(PackageFinished(package_id=old.package_id, student_id=student_id))

            package = Package(
                package_id=0,
                student_id=student_id,
                round_number=ledger.packages.next_round_number(student_id),
                status=PackageStatus.ACTIVE,
                total_hours=float(total_hours),
                remaining_hours=float(total_hours),
                hour_price=hour_price,
                currency=currency or DEFAULT_CURRENCY,
                start_date=start_date,
            )
            package = replace(package, package_id=ledger.packages.create(package))

        logger.info(
            "Student #%s: round %s opened as package #%s (%sh)",
            student_id,
            package.round_number,
            package.package_id,
            package.total_hours,
        )
        self._dispatcher.dispatch(finished)
        return package

    def reactivate_package(
        self,
        package_id: int,
        *,
        total_hours: Optional[float] = None,
        hour_price: Optional[float] = None,
        currency: Optional[str] = None,
    ) -> Package:
        """Refill a finished package and book its waiting list, oldest class first."""

        package_id = require_positive_id(package_id, "package_id")

        finished: list[PackageFinished] = []
        with self._uow.begin() as ledger:
            package = self._require_package(ledger, package_id)
            if package.status is not PackageStatus.FINISHED:
                raise ValidationError(f"Package #{package_id} is {package.status.value} and cannot be reactivated")

            total = total_hours if total_hours is not None else package.total_hours
            if not total or total <= 0:
                raise ValidationError(f"Package #{package_id} needs total_hours to be reactivated")

            ledger.packages.reactivate(
                package_id,
                total_hours=float(total),
                hour_price=hour_price if hour_price is not None else package.hour_price,
                currency=currency or package.currency,
            )
            package = self._require_package(ledger, package_id)

            for waiting in ledger.classes.list_waiting(package_id):
                if not self.has_room(package, waiting.duration_hours):
                    break
                ledger.classes.set_status(waiting.class_id, ClassStatus.PENDING)
                _, events = self._deduct(ledger, package, waiting.duration_hours)
                finished.extend(events)
                package = self._require_package(ledger, package_id)

        self._dispatcher.dispatch(finished)
        return package
