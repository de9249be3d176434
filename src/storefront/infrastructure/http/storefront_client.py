"""Storefront API client.

httpx implementation of the ``StorefrontApi`` port.  Requests go to
``{api_url}/public/{publishable_key}/...`` and carry the cart token, the
customer's bearer token (once signed in) and the shopper's locale.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from storefront.domain.exceptions import NetworkError, RateLimitedError
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
from storefront.domain.port.storefront_api import StorefrontApi
from storefront.infrastructure.http import mapping

logger = logging.getLogger(__name__)


class HttpStorefrontApi(StorefrontApi):

    def __init__(
        self,
        api_url: str,
        publishable_key: str,
        cart_token: str | None = None,
        locale: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = f"{api_url.rstrip('/')}/public/{publishable_key}"
        self.cart_token = cart_token
        self.auth_token: str | None = None
        self.locale = locale
        self._http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._http_client.aclose()

    async def __aenter__(self) -> HttpStorefrontApi:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.cart_token:
            headers["X-Cart-Token"] = self.cart_token
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        if self.locale:
            headers["Accept-Language"] = self.locale
        return headers

    async def _request(self, method: str, path: str, body: dict | None = None) -> Any:
        try:
            response = await self._http_client.request(
                method, path, json=body, headers=self._headers()
            )
        except httpx.TransportError as exc:
            logger.warning("%s %s failed before a response: %s", method, path, exc)
            raise NetworkError() from exc

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None

        if response.status_code >= 400:
            error = mapping.api_error(response.status_code, data)
            logger.debug(
                "%s %s -> %d %s", method, path, response.status_code, error.code or error.message
            )
            if response.status_code == 429:
                raise RateLimitedError(error.message, code=error.code, details=error.details)
            raise error
        return data

    def _remember_token(self, response: AuthResponse) -> AuthResponse:
        if response.authenticated and response.access_token:
            self.auth_token = response.access_token
        return response

    # --- Cart -----------------------------------------------------------------

    async def get_cart(self) -> Cart:
        return mapping.cart(await self._request("GET", "cart"))

    async def add_item(self, request: AddItemRequest) -> Cart:
        body = {"productId": request.product_id, "quantity": request.quantity}
        if request.variant_id:
            body["variantId"] = request.variant_id
        return mapping.cart(await self._request("POST", "cart/items", body))

    async def update_item(self, item_id: str, quantity: int) -> Cart:
        body = {"quantity": quantity}
        return mapping.cart(await self._request("PUT", f"cart/items/{item_id}", body))

    async def remove_item(self, item_id: str) -> Cart:
        return mapping.cart(await self._request("DELETE", f"cart/items/{item_id}"))

    async def clear_cart(self) -> Cart:
        return mapping.cart(await self._request("DELETE", "cart"))

    async def apply_discount(self, code: str) -> DiscountResult:
        return mapping.discount_result(
            await self._request("POST", "cart/discount", {"code": code})
        )

    async def remove_discount(self) -> DiscountResult:
        return mapping.discount_result(await self._request("DELETE", "cart/discount"))

    # --- Checkout data --------------------------------------------------------

    async def get_checkout_data(self) -> SavedCheckoutData:
        return mapping.saved_checkout_data(await self._request("GET", "cart/checkout-data"))

    async def update_checkout_data(
        self,
        customer: CustomerData,
        shipping_address: AddressData | None,
        billing_address: AddressData | None,
    ) -> None:
        body = mapping.checkout_data_payload(customer, shipping_address, billing_address)
        await self._request("PUT", "cart/checkout-data", body)

    # --- Customer authentication ----------------------------------------------

    async def check_customer(self, email: str) -> CustomerCheckResult:
        return mapping.customer_check(
            await self._request("POST", "cart/check-customer", {"email": email})
        )

    async def send_auth(self, email: str) -> AuthCodeSent:
        return mapping.auth_code_sent(
            await self._request("POST", "cart/send-auth", {"email": email})
        )

    async def verify_auth(self, email: str, code: str) -> AuthResponse:
        body = {"email": email, "code": code}
        return self._remember_token(
            mapping.auth_response(await self._request("POST", "cart/verify-auth", body))
        )

    async def password_login(self, email: str, password: str) -> AuthResponse:
        body = {"email": email, "password": password}
        return self._remember_token(
            mapping.auth_response(await self._request("POST", "cart/login", body))
        )

    async def create_account(self, email: str, password: str) -> AuthResponse:
        body = {"email": email, "password": password}
        return self._remember_token(
            mapping.auth_response(await self._request("POST", "cart/create-account", body))
        )

    async def logout(self) -> None:
        try:
            await self._request("POST", "auth/logout")
        finally:
            self.auth_token = None

    # --- Payment and orders ---------------------------------------------------

    async def get_payment_methods(self) -> PaymentMethodList:
        return mapping.payment_methods(await self._request("GET", "payment-methods"))

    async def checkout(self, request: CheckoutRequest) -> CheckoutSubmission:
        body = mapping.checkout_payload(request)
        return mapping.checkout_submission(await self._request("POST", "cart/checkout", body))

    async def get_order(self, order_id: str) -> OrderDetails:
        return mapping.order_details(await self._request("GET", f"orders/{order_id}"))

    async def get_order_status(self, order_id: str) -> OrderStatusReport:
        return mapping.order_status(await self._request("GET", f"orders/{order_id}/status"))

