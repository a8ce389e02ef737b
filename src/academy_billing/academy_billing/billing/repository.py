from __future__ import annotations

from typing import Protocol, Sequence

from .model import Bill


class BillRepository(Protocol):
    def list_for_package(self, package_id: int) -> Sequence[Bill]:
        """Bills of a package, directly or through one of its classes."""

        raise NotImplementedError
