from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from ..allocation.model import ClassReassigned, PackageFinished
from .notifier import LoggingNotifier, PackageNotifier

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventDispatcher:
    """Route domain events to subscribers after the transaction committed.

    A failing subscriber is logged and skipped; the data is already saved and
    the other subscribers still get the event.
    """

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def dispatch(self, events: Iterable[Any]) -> int:
        delivered = 0
        for event in events:
            for handler in self._handlers.get(type(event), []):
                try:
                    handler(event)
                    delivered += 1
                except Exception:
                    logger.exception("Subscriber %r failed for %r", handler, event)
        return delivered


def log_class_reassigned(event: ClassReassigned) -> None:
    logger.info(
        "Class #%s of student #%s: package %s -> %s",
        event.class_id,
        event.student_id,
        event.previous_package_id if event.previous_package_id is not None else "NULL",
        event.package_id if event.package_id is not None else "NULL",
    )


def build_dispatcher(notifier: Optional[PackageNotifier] = None) -> EventDispatcher:
    notifier = notifier or LoggingNotifier()

    dispatcher = EventDispatcher()
    dispatcher.subscribe(ClassReassigned, log_class_reassigned)
    dispatcher.subscribe(
        PackageFinished,
        lambda event: notifier.on_package_finished(event.package_id, event.student_id),
    )
    return dispatcher
