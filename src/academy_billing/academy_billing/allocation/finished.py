from __future__ import annotations

from dataclasses import replace
from typing import Optional

from ..core.enums import PackageStatus
from ..packages.model import Package
from .model import PackageFinished


class FinishedPackageDetector:
    """Decide whether an active package has run out of hours.

    Only ``active`` packages can transition; finished and paid packages never
    produce a second event, so calling this repeatedly is safe.
    """

    def detect(self, package: Package, *, remaining_hours: Optional[float] = None) -> Optional[PackageFinished]:
        if package.status is not PackageStatus.ACTIVE:
            return None

        if remaining_hours is not None:
            package = replace(package, remaining_hours=remaining_hours)

        if not package.is_exhausted:
            return None
        return PackageFinished(package_id=package.package_id, student_id=package.student_id)
