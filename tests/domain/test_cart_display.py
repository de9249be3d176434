"""Unit tests for the cart summary display rules."""

from storefront.domain.model.cart import Cart, CartItem, CartTotals, DiscountType, InventoryPolicy
from storefront.domain.model.value_objects import Money
from storefront.domain.service.cart_display import (
    CALCULATED_AT_CHECKOUT,
    TAXES_AND_SHIPPING_NOTE,
    discount_description,
    summarize_cart,
)


def _cart(totals, **kwargs):
    item = CartItem(
        id="i1",
        product_id="p1",
        name="Widget",
        quantity=2,
        price=Money(5000),
        subtotal=Money(10000),
        inventory_policy=InventoryPolicy.DENY,
        inventory_count=2,
    )
    return Cart(id="c1", items=(item,), totals=totals, **kwargs)


class TestSummary:

    def test_no_discount(self):
        summary = summarize_cart(_cart(CartTotals(subtotal=Money(10000), total=Money(10000))))
        assert summary.subtotal == "$100.00"
        assert summary.discount is None
        assert not summary.has_estimated_total

    def test_percentage_discount_shows_estimated_total(self):
        cart = _cart(
            CartTotals(subtotal=Money(10000), total=Money(9000), discount=Money(1000)),
            discount_code="SAVE10",
            discount_type=DiscountType.PERCENTAGE,
            discount_value="10",
        )
        summary = summarize_cart(cart)

        # Subtotal is before the discount; totals are the server's
        assert summary.subtotal == "$100.00"
        assert summary.discount.code == "SAVE10"
        assert summary.discount.description == "10% off"
        assert summary.discount.amount == "-$10.00"
        assert summary.estimated_total == "$90.00"

    def test_zero_discount_hides_line(self):
        cart = _cart(
            CartTotals(subtotal=Money(10000), total=Money(10000), discount=Money(0)),
            discount_code="SAVE10",
        )
        summary = summarize_cart(cart)
        assert summary.discount is None
        assert summary.estimated_total is None

    def test_tax_and_shipping_pending(self):
        summary = summarize_cart(_cart(CartTotals(subtotal=Money(100), total=Money(100))))
        assert summary.tax == CALCULATED_AT_CHECKOUT
        assert summary.shipping == CALCULATED_AT_CHECKOUT
        assert summary.note == TAXES_AND_SHIPPING_NOTE

    def test_known_charges_are_shown(self):
        totals = CartTotals(
            subtotal=Money(100), total=Money(900), tax=Money(300), shipping=Money(500)
        )
        summary = summarize_cart(_cart(totals))
        assert summary.tax == "$3.00"
        assert summary.shipping == "$5.00"
        assert summary.note is None

    def test_item_lines(self):
        summary = summarize_cart(_cart(CartTotals(subtotal=Money(10000), total=Money(10000))))
        (line,) = summary.items
        assert line.unit_price == "$50.00"
        assert line.subtotal == "$100.00"
        assert line.at_stock_limit
        assert summary.item_count == 2


class TestDiscountDescription:

    def _cart(self, discount_type, value):
        return _cart(
            CartTotals(subtotal=Money(100), total=Money(100)),
            discount_type=discount_type,
            discount_value=value,
        )

    def test_fractional_percentage(self):
        assert discount_description(self._cart(DiscountType.PERCENTAGE, "12.50")) == "12.5% off"

    def test_fixed_has_no_description(self):
        assert discount_description(self._cart(DiscountType.FIXED, "500")) == ""

    def test_garbage_value(self):
        assert discount_description(self._cart(DiscountType.PERCENTAGE, "ten")) == ""
