from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .allocation.mysql_unit_of_work import MySQLAllocationUnitOfWork
from .allocation.service import PackageAllocationService
from .billing.mysql_bill_repository import MySQLBillRepository
from .billing.service import BillingService
from .classes.mysql_class_repository import MySQLClassRepository
from .classes.service import DurationRepairService
from .core.constants import DEFAULT_LEGACY_CLASS_HOURS
from .database.connection import DBConfig, DatabaseConnection
from .notifications.dispatcher import build_dispatcher
from .notifications.notifier import LoggingNotifier, PackageNotifier
from .notifications.service import NotificationService
from .packages.mysql_package_repository import MySQLPackageRepository
from .packages.service import PackageService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    allocation_service: PackageAllocationService
    package_service: PackageService
    duration_service: DurationRepairService
    notification_service: NotificationService
    billing_service: BillingService


def build_container(
    *,
    db_config: dict,
    legacy_class_hours: float = DEFAULT_LEGACY_CLASS_HOURS,
    notifier: Optional[PackageNotifier] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    notifier = notifier or LoggingNotifier()

    classes_repo = MySQLClassRepository(conn)
    packages_repo = MySQLPackageRepository(conn, legacy_class_hours=legacy_class_hours)
    bills_repo = MySQLBillRepository(conn)

    uow = MySQLAllocationUnitOfWork(conn, legacy_class_hours=legacy_class_hours)
    dispatcher = build_dispatcher(notifier)

    return Container(
        conn=conn,
        allocation_service=PackageAllocationService(uow, dispatcher=dispatcher),
        package_service=PackageService(uow, dispatcher=dispatcher),
        duration_service=DurationRepairService(classes_repo),
        notification_service=NotificationService(packages_repo, notifier),
        billing_service=BillingService(bills_repo, classes_repo, packages_repo),
    )
