from __future__ import annotations

from dataclasses import replace

from click.testing import CliRunner

from src.academy_billing.academy_billing.allocation.service import PackageAllocationService
from src.academy_billing.academy_billing.billing.service import BillingService
from src.academy_billing.academy_billing.classes.service import DurationRepairService
from src.academy_billing.academy_billing.container import Container
from src.academy_billing.academy_billing.core.enums import ClassStatus, PackageStatus
from src.academy_billing.academy_billing.core.exceptions import PersistenceError
from src.academy_billing.academy_billing import main as cli_module
from src.academy_billing.academy_billing.main import cli
from src.academy_billing.academy_billing.notifications.dispatcher import build_dispatcher
from src.academy_billing.academy_billing.notifications.service import NotificationService
from src.academy_billing.academy_billing.packages.service import PackageService
from tests.in_memory import (
    InMemoryClasses,
    InMemoryPackages,
    InMemoryStore,
    InMemoryUnitOfWork,
    RecordingNotifier,
    make_class,
    make_package,
)


class NoBills:
    def list_for_package(self, package_id):
        return []


def _container(store: InMemoryStore, notifier: RecordingNotifier) -> Container:
    classes = InMemoryClasses(store)
    packages = InMemoryPackages(store)
    uow = InMemoryUnitOfWork(store)
    dispatcher = build_dispatcher(notifier)
    return Container(
        conn=None,
        allocation_service=PackageAllocationService(uow, dispatcher=dispatcher),
        package_service=PackageService(uow, dispatcher=dispatcher),
        duration_service=DurationRepairService(classes),
        notification_service=NotificationService(packages, notifier),
        billing_service=BillingService(NoBills(), classes, packages),
    )


def _store() -> InMemoryStore:
    return InMemoryStore(
        packages=[
            make_package(1, round_number=1, total_hours=2),
            make_package(2, round_number=2, total_hours=5),
        ],
        classes=[make_class(10, day=1), make_class(11, day=2), make_class(12, day=3)],
    )


def _invoke(store, *args, notifier=None):
    notifier = notifier or RecordingNotifier()
    return CliRunner().invoke(cli, list(args), obj=_container(store, notifier))


def test_reallocate_dry_run_prints_plan_and_saves_nothing():
    store = _store()

    result = _invoke(store, "reallocate", "--dry-run")

    assert result.exit_code == 0
    assert "DRY RUN MODE" in result.output
    assert "Class #12 (2025-01-03): NULL -> 2" in result.output
    assert "would fix 3 class assignment(s) across 1 student(s)" in result.output
    assert store.classes[12].package_id is None


def test_reallocate_saves_and_reports_finished_package():
    store = _store()
    notifier = RecordingNotifier()

    result = _invoke(store, "reallocate", "--student-id", "1", notifier=notifier)

    assert result.exit_code == 0
    assert "Fixed 3 class assignment(s) across 1 student(s)" in result.output
    assert "Package #1 is now finished" in result.output
    assert store.classes[12].package_id == 2
    assert notifier.calls == [(1, 1)]


def test_reallocate_without_students_fails():
    result = _invoke(InMemoryStore(), "reallocate")

    assert result.exit_code == 1
    assert "No students found with packages." in result.output


def test_fix_durations_reports_counts():
    store = _store()

    result = _invoke(store, "fix-durations")

    assert result.exit_code == 0
    assert "Fixed 0 classes, skipped 3 classes, 0 invalid." in result.output


def test_finished_packages_notify():
    store = _store()
    store.packages[1] = make_package(1, round_number=1, total_hours=2, remaining_hours=0, status=PackageStatus.FINISHED)
    notifier = RecordingNotifier()

    result = _invoke(store, "finished-packages", "--notify", notifier=notifier)

    assert result.exit_code == 0
    assert "Package #1 (student #1, round 1), notified 0 time(s): notified" in result.output
    assert notifier.calls == [(1, 1)]
    assert store.packages[1].notification_count == 1


def test_package_statement_for_unknown_package():
    result = _invoke(_store(), "package-statement", "42")

    assert result.exit_code == 1
    assert "Package #42 does not exist" in result.output


def test_package_statement_lists_classes():
    store = _store()
    _invoke(store, "reallocate")

    result = _invoke(store, "package-statement", "1")

    assert result.exit_code == 0
    assert "Total used: 2h" in result.output
    assert "Bills: 0, total 0.00 USD, unpaid 0.00 USD" in result.output


def test_init_db_applies_given_schema(monkeypatch, tmp_path):
    schema = tmp_path / "schema.sql"
    schema.write_text("CREATE TABLE packages (id INT);", encoding="utf-8")
    applied = []
    monkeypatch.setattr(cli_module, "apply_schema", lambda cfg, *, schema_path: applied.append(str(schema_path)))
    monkeypatch.setattr(cli_module, "list_tables", lambda cfg: ["packages"])

    result = _invoke(_store(), "init-db", "--schema", str(schema))

    assert result.exit_code == 0
    assert applied == [str(schema)]
    assert "(tables=1)" in result.output


class UnreachableUnitOfWork:
    def begin(self, *, commit=True):
        raise PersistenceError("Cannot connect to database: refused")


def test_reallocate_reports_database_errors_without_traceback():
    container = replace(
        _container(_store(), RecordingNotifier()),
        allocation_service=PackageAllocationService(UnreachableUnitOfWork()),
    )

    result = CliRunner().invoke(cli, ["reallocate"], obj=container)

    assert result.exit_code == 1
    assert not isinstance(result.exception, PersistenceError)
    assert "Error: Cannot connect to database: refused" in result.output


def test_class_status_charges_and_finishes_package():
    store = InMemoryStore(
        packages=[make_package(1, round_number=1, total_hours=1)],
        classes=[make_class(10, day=1, status=ClassStatus.PENDING, package_id=1)],
    )
    notifier = RecordingNotifier()

    result = _invoke(store, "class-status", "10", "attended", notifier=notifier)

    assert result.exit_code == 0
    assert "Class #10: pending -> attended" in result.output
    assert "Package #1 is now finished" in result.output
    assert notifier.calls == [(1, 1)]


def test_new_round_and_reactivate_commands():
    store = InMemoryStore(packages=[make_package(1, round_number=1, total_hours=2)])

    opened = _invoke(store, "new-round", "1", "--hours", "6", "--start-date", "2025-03-01")
    refilled = _invoke(store, "reactivate-package", "1", "--hours", "3")

    assert opened.exit_code == 0
    assert "Package #2 (round 2) opened for student #1 with 6h" in opened.output
    assert store.packages[2].start_date.isoformat() == "2025-03-01"
    assert refilled.exit_code == 0
    assert "Package #1 is active, 3h of 3h left" in refilled.output


def test_reactivating_an_active_package_fails_cleanly():
    result = _invoke(_store(), "reactivate-package", "1")

    assert result.exit_code == 1
    assert "cannot be reactivated" in result.output
