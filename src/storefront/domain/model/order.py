"""Order snapshot and submission outcomes.

OrderDetails is created once an order has been submitted and never
changes afterwards within the session.  The submission and status types
describe what the server said; deciding what that *means* for the shopper
is the job of the order result handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storefront.domain.model.checkout import AddressData
from storefront.domain.model.value_objects import Money

PAID_STATUSES = frozenset({"completed", "paid", "confirmed", "processing", "shipped"})
FAILED_STATUSES = frozenset({"failed", "cancelled", "canceled", "declined", "expired"})


class ResultState(Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failure"
    NOT_FOUND = "not_found"


class FailureKind(Enum):
    VALIDATION = "validation"  # cart/address/stock rejected -> back to cart
    PAYMENT = "payment"  # processor declined -> retry payment


@dataclass(frozen=True)
class TaxLine:
    name: str
    rate: str
    amount: Money

    def label(self) -> str:
        return f"{self.name} ({self.rate}%)"


@dataclass(frozen=True)
class OrderLine:
    name: str
    quantity: int
    subtotal: Money
    variant_name: str | None = None


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Money
    total: Money
    tax: Money | None = None
    shipping: Money | None = None
    discount: Money | None = None


@dataclass(frozen=True)
class OrderDetails:
    """Immutable snapshot of a submitted order."""

    order_id: str
    totals: OrderTotals
    order_number: str | None = None
    status: str | None = None
    items: tuple[OrderLine, ...] = ()
    tax_breakdown: tuple[TaxLine, ...] = ()
    tax_inclusive: bool = False
    customer_email: str | None = None
    shipping_address: AddressData | None = None
    billing_address: AddressData | None = None
    payment_method: str | None = None

    @property
    def tax_label(self) -> str:
        """Single jurisdiction shows its name and rate, several show ``Tax``."""
        if len(self.tax_breakdown) == 1:
            return self.tax_breakdown[0].label()
        return "Tax"


@dataclass(frozen=True)
class CheckoutSubmission:
    """Server reply to order submission."""

    order_id: str | None
    status: str
    payment_url: str | None = None
    payment_gateway: str | None = None
    payment_method: str | None = None
    test_mode: bool = False
    order: OrderDetails | None = None

    @property
    def requires_redirect(self) -> bool:
        return bool(self.payment_url)

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES

    @property
    def is_offline(self) -> bool:
        return self.status == "pending" and self.payment_method in ("offline", "manual")


@dataclass(frozen=True)
class OrderStatusReport:
    status: str
    payment_status: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_STATUSES or self.payment_status in ("paid", "completed")

    @property
    def is_failed(self) -> bool:
        return self.status in FAILED_STATUSES or self.payment_status in FAILED_STATUSES
