from __future__ import annotations

from dataclasses import dataclass
from typing import ContextManager, Protocol

from ..classes.repository import ClassRegistry
from ..packages.repository import PackageStore


@dataclass(frozen=True)
class StudentLedger:
    """Repositories bound to one open transaction."""

    classes: ClassRegistry
    packages: PackageStore


class AllocationUnitOfWork(Protocol):
    def begin(self, *, commit: bool = True) -> ContextManager[StudentLedger]:
        """Open a transaction.

        Commits on a clean exit when ``commit`` is true, rolls back otherwise
        and on any exception.
        """

        raise NotImplementedError
