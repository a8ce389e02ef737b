from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ...common.validators import require_non_negative
from ...core.constants import MINUTES_PER_HOUR
from .base import BillCalculator

CENT = Decimal("0.01")


class HourlyRateBillCalculator(BillCalculator):
    """Standard rule: duration hours x package hour price (teacher rate if unset)."""

    def amount(self, duration_minutes: int, *, hour_price: Optional[float], fallback_rate: Optional[float] = None) -> Decimal:
        require_non_negative(duration_minutes, "duration_minutes")

        rate = hour_price if hour_price else fallback_rate
        if not rate:
            return Decimal("0.00")

        hours = Decimal(int(duration_minutes)) / Decimal(MINUTES_PER_HOUR)
        return (hours * Decimal(str(rate))).quantize(CENT, rounding=ROUND_HALF_UP)
