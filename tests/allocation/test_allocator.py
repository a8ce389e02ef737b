from __future__ import annotations

from datetime import time

import pytest

from src.academy_billing.academy_billing.allocation.allocator import allocate, remaining_hours_for
from src.academy_billing.academy_billing.core.enums import ClassStatus, PackageStatus
from src.academy_billing.academy_billing.core.exceptions import InconsistentStateWarning
from tests.in_memory import make_class, make_package


def test_chronological_spillover_into_next_round():
    p1 = make_package(1, round_number=1, total_hours=2)
    p2 = make_package(2, round_number=2, total_hours=5)
    classes = [make_class(10, day=1), make_class(11, day=2), make_class(12, day=3)]

    plan = allocate([p1, p2], classes)

    assert plan.package_of(10) == 1
    assert plan.package_of(11) == 1
    assert plan.package_of(12) == 2
    assert plan.usage_for(1).used_hours == 2
    assert plan.usage_for(2).used_hours == 1
    assert plan.changed_count == 3


def test_unassigned_tail_is_cleared():
    package = make_package(1, round_number=1, total_hours=1)
    classes = [make_class(10, day=1, package_id=1), make_class(11, day=2, package_id=1)]

    plan = allocate([package], classes)

    assert plan.package_of(10) == 1
    assert plan.package_of(11) is None
    assert plan.unassigned_class_ids == (11,)
    assert [c.class_id for c in plan.changes] == [11]
    assert plan.changes[0].reason == "no package capacity left"


def test_empty_package_admits_one_long_class():
    package = make_package(1, round_number=1, total_hours=1.0)
    plan = allocate([package], [make_class(10, day=1, minutes=150)])

    usage = plan.usage_for(1)
    assert plan.package_of(10) == 1
    assert usage.used_hours == 2.5
    assert usage.over_capacity
    assert usage.remaining_hours == 0


def test_long_class_is_not_admitted_once_package_has_hours():
    p1 = make_package(1, round_number=1, total_hours=2)
    p2 = make_package(2, round_number=2, total_hours=2)
    classes = [make_class(10, day=1, minutes=60), make_class(11, day=2, minutes=150)]

    plan = allocate([p1, p2], classes)

    assert plan.package_of(10) == 1
    assert plan.package_of(11) == 2


def test_paid_packages_are_filled_before_active_ones():
    active = make_package(1, round_number=1, total_hours=1)
    paid = make_package(2, round_number=2, total_hours=1, status=PackageStatus.PAID)
    classes = [make_class(10, day=1, package_id=2), make_class(11, day=2, package_id=1)]

    plan = allocate([active, paid], classes)

    assert plan.package_of(10) == 2
    assert plan.package_of(11) == 1
    assert plan.changed_count == 0


def test_teacher_cancellation_does_not_consume_hours():
    package = make_package(1, round_number=1, total_hours=2)
    classes = [
        make_class(10, day=1),
        make_class(11, day=2, status=ClassStatus.CANCELLED_BY_TEACHER),
        make_class(12, day=3, status=ClassStatus.CANCELLED_BY_STUDENT),
    ]

    plan = allocate([package], classes)

    assert [a.package_id for a in plan.assignments] == [1, 1, 1]
    assert plan.usage_for(1).used_hours == 2


def test_teacher_cancellation_is_admitted_into_a_full_package():
    p1 = make_package(1, round_number=1, total_hours=1)
    p2 = make_package(2, round_number=2, total_hours=1)
    classes = [
        make_class(10, day=1),
        make_class(11, day=2, status=ClassStatus.CANCELLED_BY_TEACHER),
        make_class(12, day=3),
    ]

    plan = allocate([p1, p2], classes)

    assert plan.package_of(11) == 1
    assert plan.package_of(12) == 2


def test_zero_hour_package_only_sweeps_non_counting_classes():
    empty = make_package(1, round_number=1, total_hours=0)
    regular = make_package(2, round_number=2, total_hours=3)
    classes = [
        make_class(10, day=1, status=ClassStatus.CANCELLED_BY_TEACHER),
        make_class(11, day=2),
        make_class(12, day=3, status=ClassStatus.CANCELLED_BY_TEACHER),
    ]

    plan = allocate([empty, regular], classes)

    assert plan.package_of(10) == 1
    assert plan.package_of(11) == 2
    assert plan.package_of(12) == 2
    assert plan.usage_for(1).used_minutes == 0


def test_negative_hour_budget_warns_and_takes_no_counting_class():
    broken = make_package(1, round_number=1, total_hours=-2)
    regular = make_package(2, round_number=2, total_hours=3)

    with pytest.warns(InconsistentStateWarning):
        plan = allocate([broken, regular], [make_class(10, day=1)])

    assert plan.package_of(10) == 2


def test_no_packages_unassigns_everything():
    classes = [make_class(10, day=1, package_id=7), make_class(11, day=2)]

    plan = allocate([], classes)

    assert plan.unassigned_class_ids == (10, 11)
    assert [c.class_id for c in plan.changes] == [10]
    assert plan.usages == ()


def test_no_classes_is_a_noop():
    plan = allocate([make_package(1, round_number=1, total_hours=5)], [])

    assert plan.assignments == ()
    assert plan.changed_count == 0
    assert plan.usage_for(1).used_minutes == 0


def test_ties_on_date_and_time_are_broken_by_class_id():
    package = make_package(1, round_number=1, total_hours=1)
    classes = [make_class(21, day=1, start=time(9, 0)), make_class(20, day=1, start=time(9, 0))]

    plan = allocate([package], classes)

    assert plan.package_of(20) == 1
    assert plan.package_of(21) is None


def test_classes_are_ordered_by_date_then_start_time():
    package = make_package(1, round_number=1, total_hours=1)
    classes = [
        make_class(1, day=2, start=time(8, 0)),
        make_class(2, day=1, start=time(18, 0)),
        make_class(3, day=1, start=time(9, 0)),
    ]

    plan = allocate([package], classes)

    assert [a.class_id for a in plan.assignments] == [3, 2, 1]
    assert plan.package_of(3) == 1


def test_pending_and_absent_classes_are_ignored():
    package = make_package(1, round_number=1, total_hours=5)
    classes = [
        make_class(10, day=1, status=ClassStatus.PENDING),
        make_class(11, day=2, status=ClassStatus.ABSENT_STUDENT),
        make_class(12, day=3),
    ]

    plan = allocate([package], classes)

    assert [a.class_id for a in plan.assignments] == [12]


def test_every_class_lands_in_exactly_one_place():
    packages = [
        make_package(1, round_number=1, total_hours=2, status=PackageStatus.PAID),
        make_package(2, round_number=2, total_hours=1.5, status=PackageStatus.FINISHED),
        make_package(3, round_number=3, total_hours=2),
    ]
    classes = [make_class(100 + i, day=i + 1, minutes=45) for i in range(12)]

    plan = allocate(packages, classes)

    assigned = [cid for usage in plan.usages for cid in usage.class_ids]
    assert len(assigned) == len(set(assigned))
    assert sorted(assigned + list(plan.unassigned_class_ids)) == [c.class_id for c in classes]
    for usage in plan.usages:
        assert usage.used_minutes <= usage.total_hours * 60


def test_paid_package_keeps_its_classes():
    paid = make_package(1, round_number=1, total_hours=2, status=PackageStatus.PAID)
    active = make_package(2, round_number=2, total_hours=4)
    classes = [
        make_class(10, day=1, package_id=1),
        make_class(11, day=2, package_id=1),
        make_class(12, day=3, package_id=1),
        make_class(13, day=4),
    ]

    plan = allocate([paid, active], classes)

    assert plan.package_of(10) == 1
    assert plan.package_of(11) == 1
    assert plan.package_of(12) == 2
    assert plan.package_of(13) == 2


def test_inputs_are_not_modified():
    package = make_package(1, round_number=1, total_hours=1)
    classes = [make_class(10, day=1, package_id=None)]

    allocate([package], classes)

    assert classes[0].package_id is None


def test_remaining_hours_follow_the_plan():
    package = make_package(1, round_number=1, total_hours=3)
    legacy = make_package(2, round_number=2, total_hours=None)
    plan = allocate([package, legacy], [make_class(10, day=1, minutes=90)])

    assert remaining_hours_for(package, plan) == 1.5
    assert remaining_hours_for(legacy, plan) is None


def test_class_filling_a_decimal_budget_exactly_is_admitted():
    p1 = make_package(1, round_number=1, total_hours=2.05)
    p2 = make_package(2, round_number=2, total_hours=5)
    classes = [make_class(10, day=1, minutes=60), make_class(11, day=2, minutes=63)]

    plan = allocate([p1, p2], classes)

    assert plan.package_of(11) == 1
    assert plan.usage_for(1).used_minutes == 123
    assert plan.usage_for(1).remaining_hours == 0


def test_exactly_full_decimal_budget_is_not_over_capacity():
    package = make_package(1, round_number=1, total_hours=4.1)

    plan = allocate([package], [make_class(10, day=1, minutes=246)])

    usage = plan.usage_for(1)
    assert usage.used_minutes == 246
    assert not usage.over_capacity
    assert remaining_hours_for(package, plan) == 0
