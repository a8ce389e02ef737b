from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_positive_id(value: Optional[int], field_name: str) -> int:
    if value is None or int(value) <= 0:
        raise ValidationError(f"{field_name} must be a positive integer")
    return int(value)


def require_non_negative(value: float, field_name: str) -> float:
    if value is None or value < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return value
