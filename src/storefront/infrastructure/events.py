"""Event publisher that writes every checkout event to the log."""

from __future__ import annotations

import logging

from storefront.domain.port.event_publisher import CheckoutEvent, EventKind, EventPublisher

logger = logging.getLogger(__name__)

_WARNING_KINDS = frozenset({EventKind.ERROR, EventKind.ORDER_FAILED, EventKind.AUTH_FAILED})


class LoggingEventPublisher(EventPublisher):

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def publish(self, event: CheckoutEvent) -> None:
        level = logging.WARNING if event.kind in _WARNING_KINDS else logging.INFO
        self._log.log(level, "event %s %s", event.kind.value, event.data)
