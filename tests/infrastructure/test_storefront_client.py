"""Tests for the httpx storefront client against a mock transport."""

import asyncio
import json

import httpx
import pytest

from storefront.domain.exceptions import ApiError, NetworkError, RateLimitedError
from storefront.domain.model.cart import AddItemRequest
from storefront.domain.model.checkout import CheckoutRequest, CustomerData
from storefront.infrastructure.http.storefront_client import HttpStorefrontApi

EMPTY_CART = {"data": {"id": "cart_1", "items": [], "totals": {"subtotal": 0, "total": 0}}}


def _setup(routes):
    """Client whose requests are answered from *routes*: ``(method, path) -> (status, body)``."""
    seen = []

    def handler(request):
        seen.append(request)
        path = request.url.path.split("/public/pk_test/", 1)[1]
        status, body = routes[(request.method, path)]
        if isinstance(body, Exception):
            raise body
        if body is None:
            return httpx.Response(status)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    api = HttpStorefrontApi(
        "https://api.test/v3/",
        "pk_test",
        cart_token="cart_abc",
        locale="fr",
        transport=httpx.MockTransport(handler),
    )
    return api, seen


def _run(api, call):
    async def scenario():
        async with api:
            return await call()

    return asyncio.run(scenario())


def _body(request):
    return json.loads(request.content)


class TestRequests:

    def test_headers_and_url(self):
        api, seen = _setup({("GET", "cart"): (200, EMPTY_CART)})

        cart = _run(api, api.get_cart)

        assert cart.is_empty
        request = seen[0]
        assert str(request.url) == "https://api.test/v3/public/pk_test/cart"
        assert request.headers["X-Cart-Token"] == "cart_abc"
        assert request.headers["Accept-Language"] == "fr"
        assert "Authorization" not in request.headers

    def test_add_item_body(self):
        api, seen = _setup({("POST", "cart/items"): (200, EMPTY_CART)})

        _run(api, lambda: api.add_item(AddItemRequest("p1", quantity=2, variant_id="v1")))

        assert _body(seen[0]) == {"productId": "p1", "quantity": 2, "variantId": "v1"}

    def test_update_checkout_data_accepts_empty_reply(self):
        api, seen = _setup({("PUT", "cart/checkout-data"): (204, None)})

        _run(api, lambda: api.update_checkout_data(CustomerData(email="a@b.co"), None, None))

        assert _body(seen[0])["email"] == "a@b.co"

    def test_checkout(self):
        reply = {
            "data": {"id": "order-1", "status": "pending"},
            "meta": {"payment_url": "https://pay.example/1"},
        }
        api, seen = _setup({("POST", "cart/checkout"): (201, reply)})

        submission = _run(api, lambda: api.checkout(CheckoutRequest(gateway="stripe")))

        assert submission.payment_url == "https://pay.example/1"
        assert _body(seen[0]) == {"gateway": "stripe", "locale": "en"}


class TestErrors:

    def test_error_envelope(self):
        body = {"error": {"message": "Invalid discount code", "code": "INVALID_DISCOUNT"}}
        api, _ = _setup({("POST", "cart/discount"): (422, body)})

        with pytest.raises(ApiError, match="Invalid discount code") as info:
            _run(api, lambda: api.apply_discount("BOGUS"))

        assert info.value.status == 422
        assert info.value.code == "INVALID_DISCOUNT"

    def test_rate_limited(self):
        api, _ = _setup({("POST", "cart/check-customer"): (429, {"error": "Slow down"})})

        with pytest.raises(RateLimitedError) as info:
            _run(api, lambda: api.check_customer("a@b.co"))

        assert info.value.is_rate_limited

    def test_not_found(self):
        api, _ = _setup({("GET", "orders/ghost"): (404, {"message": "Order not found"})})

        with pytest.raises(ApiError) as info:
            _run(api, lambda: api.get_order("ghost"))

        assert info.value.is_not_found

    def test_transport_failure(self):
        error = httpx.ConnectError("connection refused")
        api, _ = _setup({("GET", "cart"): (0, error)})

        with pytest.raises(NetworkError):
            _run(api, api.get_cart)

    def test_non_json_error_body(self):
        api, _ = _setup({("GET", "cart"): (502, "<html>Bad gateway</html>")})

        with pytest.raises(ApiError, match="API request failed") as info:
            _run(api, api.get_cart)

        assert info.value.is_server_error


class TestCustomerToken:

    def test_token_remembered_after_login(self):
        routes = {
            ("POST", "cart/login"): (200, {"data": {"authenticated": True, "accessToken": "tok"}}),
            ("GET", "cart"): (200, EMPTY_CART),
        }
        api, seen = _setup(routes)

        async def scenario():
            async with api:
                await api.password_login("a@b.co", "hunter22")
                await api.get_cart()

        asyncio.run(scenario())

        assert api.auth_token == "tok"
        assert seen[1].headers["Authorization"] == "Bearer tok"

    def test_failed_verification_keeps_no_token(self):
        reply = {"authenticated": False, "message": "Invalid verification code"}
        api, _ = _setup({("POST", "cart/verify-auth"): (200, reply)})

        response = _run(api, lambda: api.verify_auth("a@b.co", "000000"))

        assert not response.authenticated
        assert api.auth_token is None

    def test_logout_clears_token_even_on_error(self):
        api, _ = _setup({("POST", "auth/logout"): (500, None)})
        api.auth_token = "tok"

        with pytest.raises(ApiError):
            _run(api, api.logout)

        assert api.auth_token is None
