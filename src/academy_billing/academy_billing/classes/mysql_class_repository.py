from __future__ import annotations

import logging
from datetime import time
from typing import Optional, Sequence

from ..core.enums import COMPLETED_CLASS_STATUSES, ClassStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import borrowed_cursor, fetchall, fetchone, normalize_mysql_time
from .model import ClassInstance, TimedClassRow
from .repository import ClassRegistry

logger = logging.getLogger(__name__)

_CLASS_COLUMNS = "id, student_id, teacher_id, package_id, class_date, start_time, end_time, duration, status"


def _as_time(value, *, class_id: int) -> Optional[time]:
    normalized = normalize_mysql_time(value)
    if isinstance(normalized, str):
        logger.warning("Class #%s has an unparseable time %r; ordering it first in its day", class_id, value)
        return None
    return normalized


def _row_to_class(r: dict) -> ClassInstance:
    class_id = int(r["id"])
    return ClassInstance(
        class_id=class_id,
        student_id=int(r["student_id"]),
        teacher_id=int(r["teacher_id"]) if r.get("teacher_id") is not None else None,
        package_id=int(r["package_id"]) if r.get("package_id") is not None else None,
        class_date=r["class_date"],
        start_time=_as_time(r.get("start_time"), class_id=class_id),
        end_time=_as_time(r.get("end_time"), class_id=class_id),
        duration=int(r.get("duration") or 0),
        status=ClassStatus(r["status"]),
    )


class MySQLClassRepository(ClassRegistry):
    """Class registry over the ``classes`` table.

    Bound to an open unit-of-work cursor, reads take ``FOR UPDATE`` row locks
    so a concurrent status change cannot be overwritten mid-reallocation.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, cursor=None, lock: bool = False):
        self._conn_factory = conn_factory
        self._cursor = cursor
        self._lock = lock

    def _lock_clause(self) -> str:
        return " FOR UPDATE" if self._lock else ""

    def list_completed_classes(self, student_id: int) -> Sequence[ClassInstance]:
        statuses = sorted(s.value for s in COMPLETED_CLASS_STATUSES)
        placeholders = ",".join(["%s"] * len(statuses))
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"""
                SELECT {_CLASS_COLUMNS}
                FROM classes
                WHERE student_id=%s AND status IN ({placeholders})
                ORDER BY class_date ASC, start_time ASC, id ASC
                {self._lock_clause()}
                """,
                (int(student_id), *statuses),
            )
            return [_row_to_class(r) for r in fetchall(cur)]

    def set_package_id(self, class_id: int, package_id: Optional[int]) -> None:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                "UPDATE classes SET package_id=%s WHERE id=%s",
                (int(package_id) if package_id is not None else None, int(class_id)),
            )

    def list_for_package(self, package_id: int) -> Sequence[ClassInstance]:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"""
                SELECT {_CLASS_COLUMNS}
                FROM classes
                WHERE package_id=%s
                ORDER BY class_date ASC, start_time ASC, id ASC
                """,
                (int(package_id),),
            )
            return [_row_to_class(r) for r in fetchall(cur)]

    def list_timed_classes(self) -> Sequence[TimedClassRow]:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                """
                SELECT id, start_time, end_time, duration
                FROM classes
                WHERE start_time IS NOT NULL AND end_time IS NOT NULL
                ORDER BY id ASC
                """
            )
            return [
                TimedClassRow(
                    class_id=int(r["id"]),
                    start_time=normalize_mysql_time(r["start_time"]),
                    end_time=normalize_mysql_time(r["end_time"]),
                    duration=int(r.get("duration") or 0),
                )
                for r in fetchall(cur)
            ]

    def update_duration(self, class_id: int, minutes: int) -> None:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute("UPDATE classes SET duration=%s WHERE id=%s", (int(minutes), int(class_id)))

    def get(self, class_id: int) -> Optional[ClassInstance]:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"SELECT {_CLASS_COLUMNS} FROM classes WHERE id=%s{self._lock_clause()}",
                (int(class_id),),
            )
            r = fetchone(cur)
            return _row_to_class(r) if r else None

    def set_status(self, class_id: int, status: ClassStatus) -> None:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute("UPDATE classes SET status=%s WHERE id=%s", (ClassStatus(status).value, int(class_id)))

    def list_waiting(self, package_id: int) -> Sequence[ClassInstance]:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"""
                SELECT {_CLASS_COLUMNS}
                FROM classes
                WHERE package_id=%s AND status=%s
                ORDER BY created_at ASC, id ASC
                {self._lock_clause()}
                """,
                (int(package_id), ClassStatus.WAITING_LIST.value),
            )
            return [_row_to_class(r) for r in fetchall(cur)]
