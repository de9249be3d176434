"""Abstract port for outbound checkout events.

The controller never reaches for globals to tell the outside world what
happened; it publishes events through this port.  A rendering layer,
analytics bridge or plain logger can sit behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class EventKind(Enum):
    CART_UPDATED = "cart_updated"
    CHECKOUT_STARTED = "checkout_started"
    CHECKOUT_EXITED = "checkout_exited"
    CHECKOUT_ABANDONED = "checkout_abandoned"
    STEP_VIEWED = "step_viewed"
    STEP_COMPLETED = "step_completed"
    STEP_BACK = "step_back"
    AUTH_REQUESTED = "auth_requested"
    AUTH_SUCCEEDED = "auth_succeeded"
    AUTH_FAILED = "auth_failed"
    PAYMENT_REDIRECT = "payment_redirect"
    ORDER_COMPLETED = "order_completed"
    ORDER_FAILED = "order_failed"
    ERROR = "error"


@dataclass(frozen=True)
class CheckoutEvent:
    kind: EventKind
    data: dict = field(default_factory=dict)


class EventPublisher(ABC):

    @abstractmethod
    def publish(self, event: CheckoutEvent) -> None:
        """Deliver an event.  Must not raise."""
