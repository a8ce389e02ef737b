from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..core.constants import DEFAULT_CURRENCY, MINUTES_PER_HOUR
from ..core.enums import PackageStatus


@dataclass(frozen=True)
class Package:
    """Domain entity: a purchased bundle of lesson hours for one student."""

    package_id: int
    student_id: int
    round_number: int
    status: PackageStatus
    total_hours: Optional[float]
    remaining_hours: Optional[float] = None
    total_classes: Optional[int] = None
    remaining_classes: Optional[int] = None
    hour_price: Optional[float] = None
    currency: str = DEFAULT_CURRENCY
    last_notification_sent: Optional[datetime] = None
    notification_count: int = 0
    updated_at: Optional[datetime] = None
    start_date: Optional[date] = None

    @property
    def is_frozen(self) -> bool:
        return self.status.is_frozen

    @property
    def tracks_hours(self) -> bool:
        return self.remaining_hours is not None

    @property
    def capacity_minutes(self) -> int:
        return hours_to_minutes(self.total_hours)

    @property
    def is_exhausted(self) -> bool:
        """Hours left <= 0, or classes left <= 0 for packages without hours."""

        if self.tracks_hours:
            return self.remaining_hours <= 0
        return (self.remaining_classes or 0) <= 0


def hours_to_minutes(hours: Optional[float]) -> int:
    """Whole minutes of a DECIMAL(8,2) hour value (2.05 h -> 123)."""

    if hours is None:
        return 0
    minutes = Decimal(str(hours)) * MINUTES_PER_HOUR
    return int(minutes.to_integral_value(rounding=ROUND_HALF_UP))


def normalize_capacity(package: Package, *, legacy_class_hours: float) -> Package:
    """Express a class-count package in hours.

    Old packages only carry ``total_classes``/``remaining_classes``; every
    class is counted as ``legacy_class_hours`` hours. The class counts are kept
    on the record.
    """

    if package.total_hours is not None or package.total_classes is None:
        return package

    remaining_hours = package.remaining_hours
    if remaining_hours is None and package.remaining_classes is not None:
        remaining_hours = package.remaining_classes * legacy_class_hours

    return replace(
        package,
        total_hours=package.total_classes * legacy_class_hours,
        remaining_hours=remaining_hours,
    )
