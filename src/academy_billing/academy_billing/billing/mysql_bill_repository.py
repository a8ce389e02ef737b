from __future__ import annotations

import json
from decimal import Decimal
from typing import Sequence

from ..core.constants import DEFAULT_CURRENCY
from ..core.enums import BillStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Bill
from .repository import BillRepository


def _class_ids(value) -> tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value or "[]")
    return tuple(int(v) for v in value or [])


class MySQLBillRepository(BillRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_package(self, package_id: int) -> Sequence[Bill]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT b.id, b.student_id, b.teacher_id, b.package_id, b.class_ids,
                       b.duration, b.amount, b.currency, b.status, b.bill_date
                FROM bills b
                LEFT JOIN classes c ON JSON_CONTAINS(b.class_ids, CAST(c.id AS JSON))
                WHERE b.package_id=%s OR c.package_id=%s
                ORDER BY b.id ASC
                """,
                (int(package_id), int(package_id)),
            )
            return [
                Bill(
                    bill_id=int(r["id"]),
                    student_id=int(r["student_id"]),
                    teacher_id=int(r["teacher_id"]) if r.get("teacher_id") is not None else None,
                    package_id=int(r["package_id"]) if r.get("package_id") is not None else None,
                    class_ids=_class_ids(r.get("class_ids")),
                    duration=int(r.get("duration") or 0),
                    amount=Decimal(str(r["amount"])),
                    currency=r.get("currency") or DEFAULT_CURRENCY,
                    status=BillStatus(r["status"]),
                    bill_date=r.get("bill_date"),
                )
                for r in fetchall(cur)
            ]
