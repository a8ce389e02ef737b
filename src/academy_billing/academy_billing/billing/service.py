from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..classes.model import ClassInstance
from ..classes.repository import ClassRegistry
from ..core.enums import BillStatus
from ..core.exceptions import NotFoundError
from ..packages.repository import PackageStore
from .calculator.base import BillCalculator
from .calculator.hourly_rate_calculator import HourlyRateBillCalculator
from .model import PackageBillSummary, StatementRow
from .repository import BillRepository


class BillingService:
    def __init__(
        self,
        bills: BillRepository,
        classes: ClassRegistry,
        packages: PackageStore,
        *,
        calculator: Optional[BillCalculator] = None,
    ):
        self._bills = bills
        self._classes = classes
        self._packages = packages
        self._calculator = calculator or HourlyRateBillCalculator()

    def _require_package(self, package_id: int):
        package = self._packages.get(int(package_id))
        if not package:
            raise NotFoundError(f"Package #{package_id} does not exist")
        return package

    def class_amount(self, cls: ClassInstance, *, teacher_rate: Optional[float] = None) -> Decimal:
        """Amount due for one class, priced with its package's hour price."""

        hour_price = None
        if cls.package_id is not None:
            package = self._packages.get(cls.package_id)
            hour_price = package.hour_price if package else None
        return self._calculator.amount(cls.duration, hour_price=hour_price, fallback_rate=teacher_rate)

    def package_summary(self, package_id: int) -> PackageBillSummary:
        package = self._require_package(package_id)
        bills = self._bills.list_for_package(package.package_id)

        total = sum((b.amount for b in bills), Decimal("0.00"))
        unpaid = sum((b.amount for b in bills if b.status != BillStatus.PAID), Decimal("0.00"))
        return PackageBillSummary(
            package_id=package.package_id,
            total_amount=total,
            unpaid_amount=unpaid,
            bill_count=len(bills),
            currency=package.currency,
        )

    def package_statement(self, package_id: int) -> tuple[list[StatementRow], float]:
        """Classes of a package with a running hour counter.

        Returns the rows and the total hours used; teacher cancellations are
        listed but do not move the counter.
        """

        package = self._require_package(package_id)
        classes = sorted(
            (c for c in self._classes.list_for_package(package.package_id) if c.status.is_completed),
            key=lambda c: c.chronological_key,
        )

        rows: list[StatementRow] = []
        cumulative = 0.0
        for c in classes:
            if c.counts_toward_limit:
                cumulative += c.duration_hours
            rows.append(
                StatementRow(
                    class_id=c.class_id,
                    class_date=c.class_date,
                    status=c.status.value,
                    duration_hours=round(c.duration_hours, 2),
                    cumulative_hours=round(cumulative, 2),
                    counts_toward_limit=c.counts_toward_limit,
                )
            )
        return rows, round(cumulative, 2)
