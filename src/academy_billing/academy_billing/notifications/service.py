from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import PackageStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..packages.model import Package
from ..packages.repository import PackageStore
from .notifier import PackageNotifier


class NotificationService:
    """Finished-package reminders: who still needs one, and bookkeeping."""

    def __init__(
        self,
        packages: PackageStore,
        notifier: PackageNotifier,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._packages = packages
        self._notifier = notifier
        self._clock = clock

    @staticmethod
    def needs_notification(package: Package, *, force: bool = False) -> bool:
        """Finished and never notified, or finished again since the last notice."""

        if package.status is not PackageStatus.FINISHED:
            return False
        if force or package.last_notification_sent is None:
            return True
        if package.updated_at is None:
            return False
        return package.updated_at > package.last_notification_sent

    def pending_packages(self, student_id: Optional[int] = None) -> Sequence[Package]:
        return [p for p in self._packages.list_finished(student_id) if self.needs_notification(p)]

    def notify(self, package_id: int, *, force: bool = False) -> bool:
        package = self._packages.get(int(package_id))
        if not package:
            raise NotFoundError(f"Package #{package_id} does not exist")
        if package.status is not PackageStatus.FINISHED:
            raise ValidationError(f"Package #{package_id} is {package.status.value}, not finished")
        if not self.needs_notification(package, force=force):
            return False

        self._notifier.on_package_finished(package.package_id, package.student_id)
        self.mark_notified(package.package_id)
        return True

    def mark_notified(self, package_id: int, *, at: Optional[datetime] = None) -> None:
        self._packages.record_notification_sent(int(package_id), at or self._clock())
