"""Cart aggregate: the server-confirmed view of what the shopper is buying.

The Cart is read-mostly on the client.  It is only ever replaced wholesale
by a snapshot returned from the storefront API; nothing here recomputes
totals.  The aggregate does own the soft inventory rule used to refuse
quantity increases before a request is made.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storefront.domain.exceptions import EntityNotFoundError, ValidationError
from storefront.domain.model.value_objects import Money


class InventoryPolicy(Enum):
    DENY = "deny"
    CONTINUE = "continue"


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class CartItem:
    """A single line in the cart as reported by the server."""

    id: str
    product_id: str
    name: str
    quantity: int
    price: Money  # unit price
    subtotal: Money
    variant_id: str | None = None
    variant_name: str | None = None
    inventory_policy: InventoryPolicy = InventoryPolicy.CONTINUE
    inventory_count: int | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValidationError(f"Cart item {self.id} quantity must be at least 1")

    @property
    def max_quantity(self) -> int | None:
        """Upper bound the client enforces, or None when unbounded."""
        if self.inventory_policy is InventoryPolicy.DENY and self.inventory_count is not None:
            return self.inventory_count
        return None

    @property
    def is_over_stock(self) -> bool:
        limit = self.max_quantity
        return limit is not None and self.quantity > limit

    def check_quantity(self, quantity: int) -> None:
        """Soft inventory check for a requested quantity.

        Decreases are always allowed; increases past the available stock of
        a ``deny`` item are refused.
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        limit = self.max_quantity
        if limit is None or quantity <= self.quantity or quantity <= limit:
            return
        if limit <= 0:
            raise ValidationError("Out of stock")
        raise ValidationError(f"Maximum quantity ({limit}) already in cart")


@dataclass(frozen=True)
class CartTotals:
    subtotal: Money
    total: Money
    tax: Money | None = None
    shipping: Money | None = None
    discount: Money | None = None

    @property
    def has_discount(self) -> bool:
        return self.discount is not None and self.discount.is_positive


@dataclass(frozen=True)
class OrderLink:
    """Order reference a cart carries once it has been checked out."""

    order_id: str
    order_number: str | None = None
    created_at: str | None = None
    payment_method: str | None = None


@dataclass(frozen=True)
class Cart:
    """Aggregate root for the shopper's cart.

    Invariants:
    - ``totals`` are exactly what the server reported
    - item order is the server's order
    """

    id: str
    items: tuple[CartItem, ...]
    totals: CartTotals
    currency: str = "USD"
    discount_code: str | None = None
    discount_type: DiscountType | None = None
    discount_value: str | None = None
    requires_shipping: bool = True
    has_billing_address: bool = False
    has_shipping_address: bool = False
    order_status: OrderStatus | None = None
    order_id: str | None = None
    order_details: OrderLink | None = None
    visitor_country: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def has_discount(self) -> bool:
        return self.discount_code is not None and self.totals.has_discount

    @property
    def has_order(self) -> bool:
        return self.order_status is not None

    @property
    def stock_problems(self) -> list[CartItem]:
        """Items whose quantity exceeds what a ``deny`` policy allows."""
        return [item for item in self.items if item.is_over_stock]

    def find_item(self, item_id: str) -> CartItem:
        for item in self.items:
            if item.id == item_id:
                return item
        raise EntityNotFoundError(f"Item '{item_id}' is not in the cart")

    @staticmethod
    def empty(cart_id: str = "", currency: str = "USD") -> Cart:
        zero = Money.zero(currency)
        return Cart(
            id=cart_id,
            items=(),
            totals=CartTotals(subtotal=zero, total=zero),
            currency=currency,
        )


@dataclass(frozen=True)
class AddItemRequest:
    """Input: what the shopper asked to add."""

    product_id: str
    variant_id: str | None = None
    quantity: int = 1

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValidationError("Quantity must be at least 1")


@dataclass(frozen=True)
class DiscountResult:
    """Server reply to applying or removing a discount code."""

    cart: Cart
    message: str = ""

