from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import ClassStatus
from .model import ClassInstance, TimedClassRow


class ClassRegistry(Protocol):
    def list_completed_classes(self, student_id: int) -> Sequence[ClassInstance]:
        """Attended and cancelled classes of a student.

        Sorted by (class_date, start_time, class_id).
        """

        raise NotImplementedError

    def set_package_id(self, class_id: int, package_id: Optional[int]) -> None:
        raise NotImplementedError

    def list_for_package(self, package_id: int) -> Sequence[ClassInstance]:
        raise NotImplementedError

    def list_timed_classes(self) -> Sequence[TimedClassRow]:
        """Classes having both a start and an end time."""

        raise NotImplementedError

    def update_duration(self, class_id: int, minutes: int) -> None:
        raise NotImplementedError

    def get(self, class_id: int) -> Optional[ClassInstance]:
        raise NotImplementedError

    def set_status(self, class_id: int, status: ClassStatus) -> None:
        raise NotImplementedError

    def list_waiting(self, package_id: int) -> Sequence[ClassInstance]:
        """Waiting-list classes of a package, oldest first."""

        raise NotImplementedError
