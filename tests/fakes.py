"""In-memory fakes for testing.

``FakeStorefrontApi`` implements the same abstract port as the HTTP client
but keeps a tiny store in memory: a catalogue, one cart, customers, saved
checkout data and orders.  Totals are computed "server side" here so tests
can check that the client only ever displays what it is given.

Tests can script failures per method with ``fail()`` and hold a request
in flight with ``hold()`` / ``release()``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace

from storefront.domain.exceptions import ApiError
from storefront.domain.model.cart import (
    AddItemRequest,
    Cart,
    CartItem,
    CartTotals,
    DiscountResult,
    DiscountType,
    InventoryPolicy,
)
from storefront.domain.model.checkout import (
    AddressData,
    AuthCodeSent,
    AuthResponse,
    CheckoutRequest,
    CustomerCheckResult,
    CustomerData,
    PaymentMethod,
    PaymentMethodList,
    SavedCheckoutData,
)
from storefront.domain.model.order import (
    CheckoutSubmission,
    OrderDetails,
    OrderStatusReport,
    OrderTotals,
)
from storefront.domain.model.value_objects import Money
from storefront.domain.port.event_publisher import CheckoutEvent, EventKind, EventPublisher
from storefront.domain.port.storefront_api import StorefrontApi

OTP_CODE = "482019"

CARD = PaymentMethod(gateway="stripe", name="Card")
PAYPAL = PaymentMethod(gateway="paypal", name="PayPal")
BANK_TRANSFER = PaymentMethod(gateway="manual", name="Bank transfer", manual_method_id="7")


@dataclass
class FakeProduct:
    id: str
    name: str
    price: int  # minor units
    inventory_policy: InventoryPolicy = InventoryPolicy.CONTINUE
    inventory_count: int | None = None


@dataclass
class _Line:
    id: str
    product_id: str
    variant_id: str | None
    quantity: int


@dataclass
class FakeCustomer:
    password: str | None = None


def shipping_address(**overrides) -> AddressData:
    values = dict(
        name="Ada Lovelace",
        line1="1 Main St",
        city="Springfield",
        state="IL",
        postal_code="62701",
        country="US",
    )
    values.update(overrides)
    return AddressData(**values)


class FakeStorefrontApi(StorefrontApi):

    def __init__(self, products: list[FakeProduct] | None = None, currency: str = "USD") -> None:
        self.currency = currency
        self.products: dict[str, FakeProduct] = {}
        for p in products or [FakeProduct("p1", "Widget", 1500), FakeProduct("p2", "Gadget", 2500)]:
            self.products[p.id] = p
        self.requires_shipping = True
        self.tax = 0
        self.shipping = 0

        self._lines: list[_Line] = []
        self._next_line = 1
        self.discount_code: str | None = None
        self.coupons = {
            "SAVE10": (DiscountType.PERCENTAGE, 10),
            "FIVEOFF": (DiscountType.FIXED, 500),
        }

        self.customers: dict[str, FakeCustomer] = {}
        self.otp_code = OTP_CODE
        self.verified_codes: list[str] = []
        self.logged_in: str | None = None

        self.saved = SavedCheckoutData()
        self.checkout_data_updates: list[tuple] = []

        self.payment_method_list = PaymentMethodList((CARD, PAYPAL))
        self.checkout_requests: list[CheckoutRequest] = []
        self.next_submission: CheckoutSubmission | None = None
        self.orders: dict[str, OrderDetails] = {}
        self.statuses: list[OrderStatusReport] = []
        self._next_order = 1

        self.calls: list[str] = []
        self._errors: dict[str, list[Exception]] = {}
        self._gates: dict[str, asyncio.Event] = {}
        self.entered: dict[str, asyncio.Event] = {}

    # --- Test controls --------------------------------------------------------

    def fail(self, method: str, exc: Exception, times: int = 1) -> None:
        """Make the next *times* calls to *method* raise *exc*."""
        self._errors.setdefault(method, []).extend([exc] * times)

    def hold(self, method: str) -> None:
        """Block calls to *method* until ``release`` is called."""
        self._gates[method] = asyncio.Event()
        self.entered[method] = asyncio.Event()

    def release(self, method: str) -> None:
        self._gates.pop(method).set()

    def count(self, method: str) -> int:
        return self.calls.count(method)

    async def _enter(self, method: str) -> None:
        self.calls.append(method)
        gate = self._gates.get(method)
        if gate is not None:
            self.entered[method].set()
            await gate.wait()
        else:
            # Yield like a real round trip would
            await asyncio.sleep(0)
        queued = self._errors.get(method)
        if queued:
            raise queued.pop(0)

    def put(self, product_id: str, quantity: int, variant_id: str | None = None) -> str:
        """Seed the cart directly, bypassing any checks."""
        line = _Line(f"item-{self._next_line}", product_id, variant_id, quantity)
        self._next_line += 1
        self._lines.append(line)
        return line.id

    def add_customer(self, email: str, password: str | None = None) -> None:
        self.customers[email.lower()] = FakeCustomer(password)

    # --- Server-side cart -----------------------------------------------------

    def snapshot(self) -> Cart:
        items = []
        for line in self._lines:
            product = self.products[line.product_id]
            items.append(CartItem(
                id=line.id,
                product_id=product.id,
                name=product.name,
                quantity=line.quantity,
                price=Money(product.price, self.currency),
                subtotal=Money(product.price * line.quantity, self.currency),
                variant_id=line.variant_id,
                inventory_policy=product.inventory_policy,
                inventory_count=product.inventory_count,
            ))
        subtotal = sum(item.subtotal.amount for item in items)

        discount = 0
        discount_type = discount_value = None
        if self.discount_code is not None:
            discount_type, value = self.coupons[self.discount_code]
            discount_value = str(value)
            if discount_type is DiscountType.PERCENTAGE:
                discount = subtotal * value // 100
            else:
                discount = min(value, subtotal)

        total = subtotal - discount + self.tax + self.shipping
        return Cart(
            id="cart-1",
            items=tuple(items),
            totals=CartTotals(
                subtotal=Money(subtotal, self.currency),
                total=Money(total, self.currency),
                tax=Money(self.tax, self.currency),
                shipping=Money(self.shipping, self.currency),
                discount=Money(discount, self.currency) if discount_type else None,
            ),
            currency=self.currency,
            discount_code=self.discount_code,
            discount_type=discount_type,
            discount_value=discount_value,
            requires_shipping=self.requires_shipping,
        )

    def _line(self, item_id: str) -> _Line:
        for line in self._lines:
            if line.id == item_id:
                return line
        raise ApiError("Cart item not found", status=404)

    async def get_cart(self) -> Cart:
        await self._enter("get_cart")
        return self.snapshot()

    async def add_item(self, request: AddItemRequest) -> Cart:
        await self._enter("add_item")
        product = self.products.get(request.product_id)
        if product is None:
            raise ApiError("Product not found", code="PRODUCT_NOT_FOUND", status=404)
        for line in self._lines:
            if line.product_id == request.product_id and line.variant_id == request.variant_id:
                line.quantity += request.quantity
                break
        else:
            self.put(request.product_id, request.quantity, request.variant_id)
        return self.snapshot()

    async def update_item(self, item_id: str, quantity: int) -> Cart:
        await self._enter("update_item")
        self._line(item_id).quantity = quantity
        return self.snapshot()

    async def remove_item(self, item_id: str) -> Cart:
        await self._enter("remove_item")
        self._lines.remove(self._line(item_id))
        return self.snapshot()

    async def clear_cart(self) -> Cart:
        await self._enter("clear_cart")
        self._lines = []
        self.discount_code = None
        return self.snapshot()

    async def apply_discount(self, code: str) -> DiscountResult:
        await self._enter("apply_discount")
        if code.upper() not in self.coupons:
            raise ApiError("Invalid discount code", code="INVALID_DISCOUNT", status=422)
        self.discount_code = code.upper()
        return DiscountResult(self.snapshot(), "Discount applied")

    async def remove_discount(self) -> DiscountResult:
        await self._enter("remove_discount")
        self.discount_code = None
        return DiscountResult(self.snapshot(), "Discount removed")

    # --- Checkout data --------------------------------------------------------

    async def get_checkout_data(self) -> SavedCheckoutData:
        await self._enter("get_checkout_data")
        return self.saved

    async def update_checkout_data(
        self,
        customer: CustomerData,
        shipping_address: AddressData | None,
        billing_address: AddressData | None,
    ) -> None:
        await self._enter("update_checkout_data")
        self.checkout_data_updates.append((customer, shipping_address, billing_address))
        self.saved = SavedCheckoutData(
            customer=replace(customer),
            shipping_address=shipping_address,
            billing_address=billing_address,
        )

    @property
    def last_checkout_data(self) -> tuple:
        return self.checkout_data_updates[-1]

    # --- Customer authentication ----------------------------------------------

    async def check_customer(self, email: str) -> CustomerCheckResult:
        await self._enter("check_customer")
        customer = self.customers.get(email.lower())
        if customer is None:
            return CustomerCheckResult(exists=False, has_password=False)
        return CustomerCheckResult(exists=True, has_password=customer.password is not None)

    async def send_auth(self, email: str) -> AuthCodeSent:
        await self._enter("send_auth")
        return AuthCodeSent(auth_sent=True, auth_method="otp")

    async def verify_auth(self, email: str, code: str) -> AuthResponse:
        await self._enter("verify_auth")
        self.verified_codes.append(code)
        if code != self.otp_code:
            return AuthResponse(authenticated=False, message="Invalid verification code")
        self.logged_in = email
        return AuthResponse(authenticated=True, access_token="tok-otp")

    async def password_login(self, email: str, password: str) -> AuthResponse:
        await self._enter("password_login")
        customer = self.customers.get(email.lower())
        if customer is None or customer.password != password:
            raise ApiError("Invalid email or password", code="INVALID_CREDENTIALS", status=401)
        self.logged_in = email
        return AuthResponse(authenticated=True, access_token="tok-password")

    async def create_account(self, email: str, password: str) -> AuthResponse:
        await self._enter("create_account")
        self.customers[email.lower()] = FakeCustomer(password)
        return AuthResponse(authenticated=True, access_token="tok-new")

    async def logout(self) -> None:
        await self._enter("logout")
        self.logged_in = None

    # --- Payment and orders ---------------------------------------------------

    async def get_payment_methods(self) -> PaymentMethodList:
        await self._enter("get_payment_methods")
        return self.payment_method_list

    async def checkout(self, request: CheckoutRequest) -> CheckoutSubmission:
        await self._enter("checkout")
        self.checkout_requests.append(request)

        cart = self.snapshot()
        order_id = f"order-{self._next_order}"
        self._next_order += 1
        self.orders[order_id] = OrderDetails(
            order_id=order_id,
            order_number=str(1000 + len(self.orders)),
            status="paid",
            totals=OrderTotals(subtotal=cart.totals.subtotal, total=cart.totals.total),
            customer_email=self.saved.customer.email or None,
            payment_method=request.gateway,
        )
        self._lines = []
        self.discount_code = None

        if self.next_submission is not None:
            submission, self.next_submission = self.next_submission, None
            return submission
        return CheckoutSubmission(order_id=order_id, status="paid")

    async def get_order(self, order_id: str) -> OrderDetails:
        await self._enter("get_order")
        order = self.orders.get(order_id)
        if order is None:
            raise ApiError("Order not found", status=404)
        return order

    async def get_order_status(self, order_id: str) -> OrderStatusReport:
        await self._enter("get_order_status")
        if order_id not in self.orders:
            raise ApiError("Order not found", status=404)
        if self.statuses:
            return self.statuses.pop(0)
        return OrderStatusReport(status="pending")


class RecordingEventPublisher(EventPublisher):

    def __init__(self) -> None:
        self.events: list[CheckoutEvent] = []

    def publish(self, event: CheckoutEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[EventKind]:
        return [e.kind for e in self.events]

    def of(self, kind: EventKind) -> list[CheckoutEvent]:
        return [e for e in self.events if e.kind is kind]


async def no_sleep(seconds: float) -> None:
    await asyncio.sleep(0)
