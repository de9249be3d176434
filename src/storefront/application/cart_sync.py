"""Application service: keeps the client's cart in step with the server.

Every mutation (add/update/remove/clear, apply/remove a discount code) goes
through one ``asyncio.Lock`` per cart, so a second request waits for the
first and then runs against the freshest snapshot.  The server's reply
always replaces the whole cart; nothing is patched locally.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from storefront.application import messages
from storefront.domain.exceptions import ApiError, RequestInFlightError
from storefront.domain.model.cart import AddItemRequest, Cart, DiscountResult
from storefront.domain.port.event_publisher import CheckoutEvent, EventKind, EventPublisher
from storefront.domain.port.storefront_api import StorefrontApi
from storefront.domain.service.cart_display import CartSummary, summarize_cart

logger = logging.getLogger(__name__)

CartListener = Callable[[Cart], None]


class CartSynchronizer:

    def __init__(self, api: StorefrontApi, events: EventPublisher | None = None) -> None:
        self._api = api
        self._events = events
        self._lock = asyncio.Lock()
        self._cart: Cart | None = None
        self._listeners: list[CartListener] = []

        # Coupon field state, shown inline next to the apply button
        self.coupon_code = ""
        self.coupon_error: str | None = None
        self.coupon_loading = False

    # --- Queries --------------------------------------------------------------

    @property
    def cart(self) -> Cart | None:
        return self._cart

    @property
    def summary(self) -> CartSummary | None:
        if self._cart is None:
            return None
        return summarize_cart(self._cart)

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Mutations ------------------------------------------------------------

    async def load(self) -> Cart:
        return await self._mutate("load", self._api.get_cart)

    async def add_item(self, request: AddItemRequest) -> Cart:
        return await self._mutate("add", lambda: self._api.add_item(request))

    async def update_quantity(self, item_id: str, quantity: int) -> Cart:
        """Change an item's quantity.

        The soft inventory rule is checked against the snapshot current at
        the moment the request runs, not when it was queued.
        """

        async def call() -> Cart:
            cart = self._cart if self._cart is not None else await self._api.get_cart()
            cart.find_item(item_id).check_quantity(quantity)
            return await self._api.update_item(item_id, quantity)

        return await self._mutate("update", call)

    async def remove_item(self, item_id: str) -> Cart:
        return await self._mutate("remove", lambda: self._api.remove_item(item_id))

    async def clear(self) -> Cart:
        return await self._mutate("clear", self._api.clear_cart)

    def replace(self, cart: Cart) -> None:
        """Adopt a snapshot obtained from the server elsewhere."""
        self._cart = cart
        for listener in list(self._listeners):
            listener(cart)
        if self._events is not None:
            self._events.publish(
                CheckoutEvent(
                    EventKind.CART_UPDATED,
                    {"cart_id": cart.id, "item_count": cart.item_count, "total": cart.totals.total.amount},
                )
            )

    # --- Discount codes -------------------------------------------------------

    def set_coupon_code(self, code: str) -> None:
        self.coupon_code = code
        self.coupon_error = None

    async def apply_coupon(self, code: str | None = None) -> bool:
        """Apply a discount code.

        Returns True when the server accepted it.  A rejected code sets
        ``coupon_error`` and leaves the current cart untouched.
        """
        code = (self.coupon_code if code is None else code).strip()
        if not code:
            self.coupon_error = messages.COUPON_REQUIRED
            return False

        result = await self._discount_request(
            lambda: self._api.apply_discount(code), messages.COUPON_FAILED
        )
        if result is None:
            return False
        self.coupon_code = ""
        logger.info("Discount code %s applied to cart %s", code, result.cart.id)
        return True

    async def remove_coupon(self) -> bool:
        result = await self._discount_request(
            self._api.remove_discount, messages.COUPON_REMOVE_FAILED
        )
        return result is not None

    async def _discount_request(
        self,
        call: Callable[[], Awaitable[DiscountResult]],
        fallback: str,
    ) -> DiscountResult | None:
        if self.coupon_loading:
            raise RequestInFlightError("A discount code request is already in progress")

        self.coupon_loading = True
        self.coupon_error = None
        try:
            async with self._lock:
                try:
                    result = await call()
                except ApiError as exc:
                    logger.warning("Discount request rejected: %s", exc.message)
                    self.coupon_error = messages.describe_api_error(exc, fallback)
                    return None
                self.replace(result.cart)
                return result
        finally:
            self.coupon_loading = False

    # --- Internal helpers -----------------------------------------------------

    async def _mutate(self, action: str, call: Callable[[], Awaitable[Cart]]) -> Cart:
        async with self._lock:
            cart = await call()
            logger.debug("Cart %s after %s: %d item(s)", cart.id, action, cart.item_count)
            self.replace(cart)
            return cart

