from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class PackageNotifier(Protocol):
    """Billing/notification collaborator told about finished packages.

    Delivery (WhatsApp, e-mail, push) is the implementer's business; the
    allocation engine only fires and forgets.
    """

    def on_package_finished(self, package_id: int, student_id: int) -> None:
        raise NotImplementedError


class LoggingNotifier(PackageNotifier):
    """Default notifier: records the event in the application log."""

    def on_package_finished(self, package_id: int, student_id: int) -> None:
        logger.info("Package #%s of student #%s is finished and awaits payment", package_id, student_id)
