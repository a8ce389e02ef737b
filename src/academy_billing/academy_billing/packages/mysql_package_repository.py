from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.constants import DEFAULT_CURRENCY, DEFAULT_LEGACY_CLASS_HOURS
from ..core.enums import PackageStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, borrowed_cursor, fetchall, fetchone
from .model import Package, normalize_capacity
from .repository import PackageStore

_PACKAGE_COLUMNS = """
    id, student_id, round_number, status, total_hours, remaining_hours,
    total_classes, remaining_classes, hour_price, currency,
    last_notification_sent, notification_count, updated_at, start_date
"""


def _optional_int(value) -> Optional[int]:
    return int(value) if value is not None else None


class MySQLPackageRepository(PackageStore):
    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        cursor=None,
        lock: bool = False,
        legacy_class_hours: float = DEFAULT_LEGACY_CLASS_HOURS,
    ):
        self._conn_factory = conn_factory
        self._cursor = cursor
        self._lock = lock
        self._legacy_class_hours = float(legacy_class_hours)

    def _to_package(self, r: dict) -> Package:
        package = Package(
            package_id=int(r["id"]),
            student_id=int(r["student_id"]),
            round_number=int(r["round_number"]),
            status=PackageStatus(r["status"]),
            total_hours=as_float(r.get("total_hours")),
            remaining_hours=as_float(r.get("remaining_hours")),
            total_classes=_optional_int(r.get("total_classes")),
            remaining_classes=_optional_int(r.get("remaining_classes")),
            hour_price=as_float(r.get("hour_price")),
            currency=r.get("currency") or DEFAULT_CURRENCY,
            last_notification_sent=r.get("last_notification_sent"),
            notification_count=int(r.get("notification_count") or 0),
            updated_at=r.get("updated_at"),
            start_date=r.get("start_date"),
        )
        return normalize_capacity(package, legacy_class_hours=self._legacy_class_hours)

    def _lock_clause(self) -> str:
        return " FOR UPDATE" if self._lock else ""

    def list_packages(self, student_id: int) -> Sequence[Package]:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"""
                SELECT {_PACKAGE_COLUMNS}
                FROM packages
                WHERE student_id=%s
                ORDER BY round_number ASC, id ASC
                {self._lock_clause()}
                """,
                (int(student_id),),
            )
            return [self._to_package(r) for r in fetchall(cur)]

    def get(self, package_id: int) -> Optional[Package]:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"SELECT {_PACKAGE_COLUMNS} FROM packages WHERE id=%s{self._lock_clause()}",
                (int(package_id),),
            )
            r = fetchone(cur)
            return self._to_package(r) if r else None

    def list_student_ids(self, student_id: Optional[int] = None) -> Sequence[int]:
        clauses = []
        params: list[object] = []
        if student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(student_id))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"SELECT DISTINCT student_id FROM packages {where} ORDER BY student_id ASC",
                tuple(params),
            )
            return [int(r["student_id"]) for r in fetchall(cur)]

    def update_remaining_hours(self, package_id: int, value: float) -> None:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                "UPDATE packages SET remaining_hours=%s, updated_at=updated_at WHERE id=%s",
                (round(float(value), 2), int(package_id)),
            )

    def transition_to_finished(self, package_id: int) -> bool:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                "UPDATE packages SET status=%s, updated_at=NOW() WHERE id=%s AND status=%s",
                (PackageStatus.FINISHED.value, int(package_id), PackageStatus.ACTIVE.value),
            )
            return cur.rowcount > 0

    def list_finished(self, student_id: Optional[int] = None) -> Sequence[Package]:
        clauses = ["status=%s"]
        params: list[object] = [PackageStatus.FINISHED.value]
        if student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(student_id))

        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                f"""
                SELECT {_PACKAGE_COLUMNS}
                FROM packages
                WHERE {' AND '.join(clauses)}
                ORDER BY updated_at DESC, id DESC
                """,
                tuple(params),
            )
            return [self._to_package(r) for r in fetchall(cur)]

    def record_notification_sent(self, package_id: int, at: datetime) -> None:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                """
                UPDATE packages
                SET last_notification_sent=%s,
                    notification_count=COALESCE(notification_count, 0) + 1,
                    updated_at=updated_at
                WHERE id=%s
                """,
                (at, int(package_id)),
            )

    def record_deduction(
        self,
        package_id: int,
        *,
        remaining_hours: Optional[float],
        remaining_classes: Optional[int],
    ) -> None:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                """
                UPDATE packages
                SET remaining_hours=%s, remaining_classes=%s, updated_at=updated_at
                WHERE id=%s
                """,
                (
                    round(float(remaining_hours), 2) if remaining_hours is not None else None,
                    _optional_int(remaining_classes),
                    int(package_id),
                ),
            )

    def next_round_number(self, student_id: int) -> int:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                "SELECT COALESCE(MAX(round_number), 0) + 1 AS next_round FROM packages WHERE student_id=%s",
                (int(student_id),),
            )
            r = fetchone(cur)
            return int(r["next_round"]) if r else 1

    def create(self, package: Package) -> int:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                """
                INSERT INTO packages (
                    student_id, start_date, total_classes, remaining_classes,
                    total_hours, remaining_hours, hour_price, currency, round_number, status
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    int(package.student_id),
                    package.start_date,
                    package.total_classes,
                    package.remaining_classes,
                    package.total_hours,
                    package.remaining_hours,
                    package.hour_price,
                    package.currency,
                    int(package.round_number),
                    package.status.value,
                ),
            )
            return int(cur.lastrowid)

    def reactivate(
        self,
        package_id: int,
        *,
        total_hours: float,
        hour_price: Optional[float],
        currency: str,
    ) -> bool:
        with borrowed_cursor(self._conn_factory, self._cursor) as cur:
            cur.execute(
                """
                UPDATE packages
                SET status=%s, total_hours=%s, remaining_hours=%s,
                    remaining_classes=total_classes, hour_price=%s, currency=%s
                WHERE id=%s AND status=%s
                """,
                (
                    PackageStatus.ACTIVE.value,
                    round(float(total_hours), 2),
                    round(float(total_hours), 2),
                    hour_price,
                    currency,
                    int(package_id),
                    PackageStatus.FINISHED.value,
                ),
            )
            return cur.rowcount > 0
