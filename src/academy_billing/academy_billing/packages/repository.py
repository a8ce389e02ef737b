from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Package


class PackageStore(Protocol):
    def list_packages(self, student_id: int) -> Sequence[Package]:
        """Packages of a student sorted by round_number ascending."""

        raise NotImplementedError

    def get(self, package_id: int) -> Optional[Package]:
        raise NotImplementedError

    def list_student_ids(self, student_id: Optional[int] = None) -> Sequence[int]:
        """Students owning at least one package (optionally just one of them)."""

        raise NotImplementedError

    def update_remaining_hours(self, package_id: int, value: float) -> None:
        raise NotImplementedError

    def transition_to_finished(self, package_id: int) -> bool:
        """Move an active package to finished. Returns False if it was not active."""

        raise NotImplementedError

    def list_finished(self, student_id: Optional[int] = None) -> Sequence[Package]:
        raise NotImplementedError

    def record_notification_sent(self, package_id: int, at: datetime) -> None:
        raise NotImplementedError

    def record_deduction(
        self,
        package_id: int,
        *,
        remaining_hours: Optional[float],
        remaining_classes: Optional[int],
    ) -> None:
        """Persist hours/classes left after a class was charged to the package."""

        raise NotImplementedError

    def next_round_number(self, student_id: int) -> int:
        raise NotImplementedError

    def create(self, package: Package) -> int:
        """Insert a package and return its id."""

        raise NotImplementedError

    def reactivate(
        self,
        package_id: int,
        *,
        total_hours: float,
        hour_price: Optional[float],
        currency: str,
    ) -> bool:
        """Reset a finished package to a full active one. Returns False if it was not finished."""

        raise NotImplementedError
