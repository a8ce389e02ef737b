from __future__ import annotations

from src.academy_billing.academy_billing.core.enums import PackageStatus
from src.academy_billing.academy_billing.packages.model import Package, normalize_capacity


def _legacy(**overrides) -> Package:
    values = dict(
        package_id=1,
        student_id=1,
        round_number=1,
        status=PackageStatus.ACTIVE,
        total_hours=None,
        remaining_hours=None,
        total_classes=8,
        remaining_classes=3,
    )
    values.update(overrides)
    return Package(**values)


def test_class_count_package_is_expressed_in_hours():
    package = normalize_capacity(_legacy(), legacy_class_hours=1.5)

    assert package.total_hours == 12
    assert package.remaining_hours == 4.5
    assert package.total_classes == 8
    assert package.capacity_minutes == 720


def test_hour_package_is_left_untouched():
    package = _legacy(total_hours=10.0, remaining_hours=2.0)

    assert normalize_capacity(package, legacy_class_hours=1.5) is package


def test_package_without_any_budget_stays_empty():
    package = normalize_capacity(_legacy(total_classes=None, remaining_classes=None), legacy_class_hours=1.0)

    assert package.total_hours is None
    assert package.capacity_minutes == 0


def test_exhaustion_uses_hours_when_tracked():
    assert _legacy(total_hours=5.0, remaining_hours=0.0, remaining_classes=4).is_exhausted
    assert not _legacy(total_hours=5.0, remaining_hours=0.5, remaining_classes=0).is_exhausted


def test_exhaustion_falls_back_to_class_count():
    assert _legacy(remaining_classes=0).is_exhausted
    assert not _legacy(remaining_classes=2).is_exhausted


def test_decimal_hour_budgets_convert_to_whole_minutes():
    assert _legacy(total_hours=2.05).capacity_minutes == 123
    assert _legacy(total_hours=4.1).capacity_minutes == 246
    assert _legacy(total_hours=1.33).capacity_minutes == 80


def test_package_without_remaining_hours_does_not_track_hours():
    assert not _legacy().tracks_hours
    assert _legacy(remaining_hours=0.0).tracks_hours
