from __future__ import annotations

from enum import Enum


class ClassStatus(str, Enum):
    """Lifecycle status of a class instance as stored in the database."""

    PENDING = "pending"
    ATTENDED = "attended"
    CANCELLED_BY_STUDENT = "cancelled_by_student"
    CANCELLED_BY_TEACHER = "cancelled_by_teacher"
    ABSENT_STUDENT = "absent_student"
    WAITING_LIST = "waiting_list"

    @property
    def is_completed(self) -> bool:
        return self in COMPLETED_CLASS_STATUSES

    @property
    def counts_toward_limit(self) -> bool:
        """Teacher cancellations never consume package hours."""
        return self is not ClassStatus.CANCELLED_BY_TEACHER


COMPLETED_CLASS_STATUSES = frozenset(
    {
        ClassStatus.ATTENDED,
        ClassStatus.CANCELLED_BY_STUDENT,
        ClassStatus.CANCELLED_BY_TEACHER,
    }
)


class PackageStatus(str, Enum):
    """Package lifecycle: active -> finished -> paid."""

    ACTIVE = "active"
    FINISHED = "finished"
    PAID = "paid"

    @property
    def is_frozen(self) -> bool:
        return self is PackageStatus.PAID


class BillStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    PAID = "paid"
