from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.constants import DEFAULT_CURRENCY
from ..core.enums import BillStatus


@dataclass(frozen=True)
class Bill:
    """Financial record for one or more classes, usually of one package."""

    bill_id: int
    student_id: int
    amount: Decimal
    status: BillStatus
    package_id: Optional[int] = None
    teacher_id: Optional[int] = None
    class_ids: tuple[int, ...] = ()
    duration: int = 0
    currency: str = DEFAULT_CURRENCY
    bill_date: Optional[date] = None


@dataclass(frozen=True)
class PackageBillSummary:
    package_id: int
    total_amount: Decimal
    unpaid_amount: Decimal
    bill_count: int
    currency: str


@dataclass(frozen=True)
class StatementRow:
    """Read-model: one class line of a package statement."""

    class_id: int
    class_date: date
    status: str
    duration_hours: float
    cumulative_hours: float
    counts_toward_limit: bool
