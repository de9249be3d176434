"""Domain service: what the cart footer and summary show.

Display convention:
  Subtotal = sum of items BEFORE cart-level discounts
  Discount line shown as a negative deduction
  Estimated total shown only while a positive discount is applied
  Tax & shipping read "calculated at checkout" until the cart carries them

All figures come straight from the server's totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from storefront.domain.model.cart import Cart, CartItem, DiscountType
from storefront.domain.model.value_objects import Money

CALCULATED_AT_CHECKOUT = "Calculated at checkout"
TAXES_AND_SHIPPING_NOTE = "Taxes and shipping calculated at checkout"


@dataclass(frozen=True)
class ItemLine:
    item_id: str
    name: str
    quantity: int
    unit_price: str
    subtotal: str
    variant_name: str | None = None
    max_quantity: int | None = None

    @property
    def at_stock_limit(self) -> bool:
        return self.max_quantity is not None and self.quantity >= self.max_quantity


@dataclass(frozen=True)
class DiscountLine:
    code: str
    description: str
    amount: str  # already negated, e.g. "-$10.00"


@dataclass(frozen=True)
class CartSummary:
    items: tuple[ItemLine, ...]
    item_count: int
    subtotal: str
    tax: str
    shipping: str
    discount: DiscountLine | None = None
    estimated_total: str | None = None
    note: str | None = None

    @property
    def has_estimated_total(self) -> bool:
        return self.estimated_total is not None


def discount_description(cart: Cart) -> str:
    """``10% off`` for percentage codes, empty otherwise."""
    if cart.discount_type is not DiscountType.PERCENTAGE or not cart.discount_value:
        return ""
    try:
        pct = Decimal(str(cart.discount_value))
    except InvalidOperation:
        return ""
    if pct == pct.to_integral_value():
        return f"{int(pct)}% off"
    return f"{pct.normalize()}% off"


def summarize_cart(cart: Cart) -> CartSummary:
    totals = cart.totals

    discount = None
    estimated_total = None
    if cart.has_discount:
        discount = DiscountLine(
            code=cart.discount_code or "",
            description=discount_description(cart),
            amount=totals.discount.negated_display(),
        )
        estimated_total = str(totals.total)

    tax = _charge_or_pending(totals.tax)
    shipping = _charge_or_pending(totals.shipping)
    note = None
    if CALCULATED_AT_CHECKOUT in (tax, shipping):
        note = TAXES_AND_SHIPPING_NOTE

    return CartSummary(
        items=tuple(_item_line(item) for item in cart.items),
        item_count=cart.item_count,
        subtotal=str(totals.subtotal),
        tax=tax,
        shipping=shipping,
        discount=discount,
        estimated_total=estimated_total,
        note=note,
    )


def _charge_or_pending(charge: Money | None) -> str:
    if charge is None or not charge.is_positive:
        return CALCULATED_AT_CHECKOUT
    return str(charge)


def _item_line(item: CartItem) -> ItemLine:
    return ItemLine(
        item_id=item.id,
        name=item.name,
        quantity=item.quantity,
        unit_price=str(item.price),
        subtotal=str(item.subtotal),
        variant_name=item.variant_name,
        max_quantity=item.max_quantity,
    )
