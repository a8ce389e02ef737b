from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from ..classes.mysql_class_repository import MySQLClassRepository
from ..core.constants import DEFAULT_LEGACY_CLASS_HOURS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from ..packages.mysql_package_repository import MySQLPackageRepository
from .unit_of_work import AllocationUnitOfWork, StudentLedger


class MySQLAllocationUnitOfWork(AllocationUnitOfWork):
    """One connection, one transaction; reads lock the rows they return."""

    def __init__(self, conn_factory: DatabaseConnection, *, legacy_class_hours: float = DEFAULT_LEGACY_CLASS_HOURS):
        self._conn_factory = conn_factory
        self._legacy_class_hours = legacy_class_hours

    @contextmanager
    def begin(self, *, commit: bool = True) -> Iterator[StudentLedger]:
        with db_cursor(self._conn_factory, commit=commit) as (_, cur):
            yield StudentLedger(
                classes=MySQLClassRepository(self._conn_factory, cursor=cur, lock=True),
                packages=MySQLPackageRepository(
                    self._conn_factory,
                    cursor=cur,
                    lock=True,
                    legacy_class_hours=self._legacy_class_hours,
                ),
            )
