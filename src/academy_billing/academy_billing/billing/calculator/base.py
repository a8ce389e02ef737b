from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional


class BillCalculator(ABC):
    """Calculator interface (Strategy Pattern for bill amounts)."""

    @abstractmethod
    def amount(self, duration_minutes: int, *, hour_price: Optional[float], fallback_rate: Optional[float] = None) -> Decimal:
        raise NotImplementedError
