"""Abstract port for the storefront REST API.

Every method is a coroutine.  Implementations return domain objects and
raise ``ApiError`` (``RateLimitedError`` for HTTP 429, ``NetworkError``
when no response arrived), never transport-specific exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storefront.domain.model.cart import AddItemRequest, Cart, DiscountResult
from storefront.domain.model.checkout import (
    AddressData,
    AuthCodeSent,
    AuthResponse,
    CheckoutRequest,
    CustomerCheckResult,
    CustomerData,
    PaymentMethodList,
    SavedCheckoutData,
)
from storefront.domain.model.order import CheckoutSubmission, OrderDetails, OrderStatusReport


class StorefrontApi(ABC):

    # --- Cart -----------------------------------------------------------------

    @abstractmethod
    async def get_cart(self) -> Cart:
        """Return the current cart snapshot."""

    @abstractmethod
    async def add_item(self, request: AddItemRequest) -> Cart:
        """Add a product (or variant) and return the updated cart."""

    @abstractmethod
    async def update_item(self, item_id: str, quantity: int) -> Cart:
        """Set an item's quantity and return the updated cart."""

    @abstractmethod
    async def remove_item(self, item_id: str) -> Cart:
        """Remove an item and return the updated cart."""

    @abstractmethod
    async def clear_cart(self) -> Cart:
        """Remove every item and return the (empty) cart."""

    @abstractmethod
    async def apply_discount(self, code: str) -> DiscountResult:
        """Apply a discount code; the result carries the whole new cart."""

    @abstractmethod
    async def remove_discount(self) -> DiscountResult:
        """Remove the applied discount code."""

    # --- Checkout data --------------------------------------------------------

    @abstractmethod
    async def get_checkout_data(self) -> SavedCheckoutData:
        """Return the checkout data saved against the cart."""

    @abstractmethod
    async def update_checkout_data(
        self,
        customer: CustomerData,
        shipping_address: AddressData | None,
        billing_address: AddressData | None,
    ) -> None:
        """Persist the checkout drafts against the cart."""

    # --- Customer authentication ----------------------------------------------

    @abstractmethod
    async def check_customer(self, email: str) -> CustomerCheckResult:
        """Classify an email as new, guest-with-history or registered."""

    @abstractmethod
    async def send_auth(self, email: str) -> AuthCodeSent:
        """Send a one-time code to the email."""

    @abstractmethod
    async def verify_auth(self, email: str, code: str) -> AuthResponse:
        """Verify a one-time code and link the customer to the cart."""

    @abstractmethod
    async def password_login(self, email: str, password: str) -> AuthResponse:
        """Log in with a password and link the customer to the cart."""

    @abstractmethod
    async def create_account(self, email: str, password: str) -> AuthResponse:
        """Create an account for a customer who just checked out as guest."""

    @abstractmethod
    async def logout(self) -> None:
        """End the customer session server-side."""

    # --- Payment and orders ---------------------------------------------------

    @abstractmethod
    async def get_payment_methods(self) -> PaymentMethodList:
        """Return the payment methods available for the cart."""

    @abstractmethod
    async def checkout(self, request: CheckoutRequest) -> CheckoutSubmission:
        """Submit the order."""

    @abstractmethod
    async def get_order(self, order_id: str) -> OrderDetails:
        """Return an order snapshot; raises ApiError with status 404 if unknown."""

    @abstractmethod
    async def get_order_status(self, order_id: str) -> OrderStatusReport:
        """Return the order's current status."""
