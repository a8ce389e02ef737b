from decimal import Decimal

import pytest

from src.academy_billing.academy_billing.billing.calculator.hourly_rate_calculator import HourlyRateBillCalculator
from src.academy_billing.academy_billing.core.exceptions import ValidationError


def test_amount_uses_package_hour_price():
    calc = HourlyRateBillCalculator()
    assert calc.amount(90, hour_price=20.0, fallback_rate=35.0) == Decimal("30.00")


def test_amount_falls_back_to_teacher_rate():
    calc = HourlyRateBillCalculator()
    assert calc.amount(45, hour_price=None, fallback_rate=12.5) == Decimal("9.38")


def test_amount_without_any_rate_is_zero():
    assert HourlyRateBillCalculator().amount(60, hour_price=None) == Decimal("0.00")


def test_negative_duration_is_rejected():
    with pytest.raises(ValidationError):
        HourlyRateBillCalculator().amount(-5, hour_price=10.0)
