"""JSON <-> domain mapping for the storefront API.

The API is not consistent about key style; every reader here accepts
``snake_case`` and ``camelCase`` spellings of the same key.  Responses may
also arrive wrapped in a ``data`` or ``cart`` envelope.
"""

from __future__ import annotations

from typing import Any

from storefront.domain.exceptions import ApiError
from storefront.domain.model.cart import (
    Cart,
    CartItem,
    CartTotals,
    DiscountResult,
    DiscountType,
    InventoryPolicy,
    OrderLink,
    OrderStatus,
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
    OrderLine,
    OrderStatusReport,
    OrderTotals,
    TaxLine,
)
from storefront.domain.model.value_objects import Money

Json = dict[str, Any]


# --- Key helpers --------------------------------------------------------------


def camel(key: str) -> str:
    """``postal_code`` -> ``postalCode``."""
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def pick(data: Json, key: str, default: Any = None) -> Any:
    """Read *key* in either spelling."""
    if key in data and data[key] is not None:
        return data[key]
    value = data.get(camel(key))
    return default if value is None else value


def unwrap(body: Any, *envelopes: str) -> Any:
    """Strip the first matching envelope, e.g. ``{"data": {...}}`` or ``{"data": [...]}``."""
    if isinstance(body, dict):
        for envelope in envelopes:
            inner = body.get(envelope)
            if isinstance(inner, (dict, list)):
                return inner
    return body


def _require_object(body: Any, what: str) -> Json:
    if not isinstance(body, dict):
        raise ApiError(f"Unexpected {what} response from the store")
    return body


def _enum(kind, value):
    if not value:
        return None
    try:
        return kind(value)
    except ValueError:
        raise ApiError(f"Unexpected {kind.__name__} '{value}' from the store") from None


# --- Readers ------------------------------------------------------------------


def money(data: Any, currency: str = "USD") -> Money | None:
    if data is None:
        return None
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        return Money(int(round(data)), currency)
    amount = pick(data, "amount")
    if amount is None:
        return None
    return Money(
        int(round(amount)),
        pick(data, "currency", currency),
        pick(data, "formatted", ""),
    )


def cart_item(data: Json, currency: str) -> CartItem:
    quantity = int(pick(data, "quantity", 1))
    price = money(pick(data, "price"), currency) or Money.zero(currency)
    subtotal = money(pick(data, "subtotal"), currency) or Money(price.amount * quantity, price.currency)
    count = pick(data, "inventory_count")
    return CartItem(
        id=str(pick(data, "id")),
        product_id=str(pick(data, "product_id", "")),
        name=pick(data, "product_name") or pick(data, "name", ""),
        quantity=quantity,
        price=price,
        subtotal=subtotal,
        variant_id=pick(data, "variant_id"),
        variant_name=pick(data, "variant_name"),
        inventory_policy=_enum(InventoryPolicy, pick(data, "inventory_policy")) or InventoryPolicy.CONTINUE,
        inventory_count=int(count) if count is not None else None,
    )


def cart(body: Any) -> Cart:
    data = _require_object(unwrap(body, "cart", "data"), "cart")
    # {"data": {"cart": {...}}}
    data = unwrap(data, "cart")
    currency = pick(data, "currency", "USD")
    totals = pick(data, "totals", {})
    zero = Money.zero(currency)

    discount_type = pick(data, "discount_type")
    order_status = pick(data, "order_status")
    link = pick(data, "order_details")
    return Cart(
        id=str(pick(data, "id", "")),
        items=tuple(cart_item(item, currency) for item in pick(data, "items", [])),
        totals=CartTotals(
            subtotal=money(pick(totals, "subtotal"), currency) or zero,
            total=money(pick(totals, "total"), currency) or zero,
            tax=money(pick(totals, "tax"), currency),
            shipping=money(pick(totals, "shipping"), currency),
            discount=money(pick(totals, "discount"), currency),
        ),
        currency=currency,
        discount_code=pick(data, "discount_code"),
        discount_type=_enum(DiscountType, discount_type),
        discount_value=str(pick(data, "discount_value")) if pick(data, "discount_value") is not None else None,
        requires_shipping=bool(pick(data, "requires_shipping", True)),
        has_billing_address=bool(pick(data, "has_billing_address", False)),
        has_shipping_address=bool(pick(data, "has_shipping_address", False)),
        order_status=_enum(OrderStatus, order_status),
        order_id=pick(data, "order_id"),
        order_details=OrderLink(
            order_id=str(pick(link, "order_id")),
            order_number=pick(link, "order_number"),
            created_at=pick(link, "created_at"),
            payment_method=pick(link, "payment_method"),
        ) if isinstance(link, dict) and pick(link, "order_id") else None,
        visitor_country=pick(data, "visitor_country"),
    )


def discount_result(body: Any) -> DiscountResult:
    message = body.get("message", "") if isinstance(body, dict) else ""
    return DiscountResult(cart=cart(body), message=message or "")


def address(data: Any) -> AddressData | None:
    if not isinstance(data, dict) or not data:
        return None
    return AddressData(**{
        key: str(pick(data, key, "")) for key in AddressData.__dataclass_fields__
    })


def saved_checkout_data(body: Any) -> SavedCheckoutData:
    data = unwrap(body, "data")
    if not isinstance(data, dict):
        return SavedCheckoutData()
    customer = CustomerData(**{
        key: str(pick(data, key, "")) for key in CustomerData.__dataclass_fields__
    })
    return SavedCheckoutData(
        customer=customer,
        shipping_address=address(pick(data, "shipping_address")),
        billing_address=address(pick(data, "billing_address")),
    )


def customer_check(body: Any) -> CustomerCheckResult:
    data = _require_object(unwrap(body, "data"), "customer check")
    return CustomerCheckResult(
        exists=bool(pick(data, "exists", False)),
        has_password=bool(pick(data, "has_password", False)),
    )


def auth_code_sent(body: Any) -> AuthCodeSent:
    data = _require_object(unwrap(body, "data"), "verification code")
    return AuthCodeSent(
        auth_sent=bool(pick(data, "auth_sent", False)),
        auth_method=pick(data, "auth_method"),
        message=pick(data, "message"),
    )


def auth_response(body: Any) -> AuthResponse:
    data = _require_object(unwrap(body, "data"), "authentication")
    user = pick(data, "user") or {}
    user_id = pick(data, "user_id") or pick(user, "id")
    return AuthResponse(
        authenticated=bool(pick(data, "authenticated", False)),
        message=pick(data, "message"),
        access_token=pick(data, "access_token") or pick(data, "token"),
        user_id=str(user_id) if user_id is not None else None,
    )


def payment_methods(body: Any) -> PaymentMethodList:
    data = unwrap(body, "data")
    if isinstance(data, list):
        raw, test_mode = data, False
    else:
        data = _require_object(data, "payment methods")
        raw, test_mode = pick(data, "payment_methods", []), bool(pick(data, "test_mode", False))
    methods = []
    for item in raw:
        manual_id = pick(item, "manual_payment_method_id") or pick(item, "manual_method_id")
        methods.append(PaymentMethod(
            gateway=pick(item, "gateway", ""),
            name=pick(item, "name", "") or pick(item, "gateway", ""),
            manual_method_id=str(manual_id) if manual_id is not None else None,
            description=pick(item, "description"),
            icon=pick(item, "icon"),
        ))
    return PaymentMethodList(methods=tuple(methods), test_mode=test_mode)


def order_details(body: Any) -> OrderDetails:
    data = _require_object(unwrap(body, "data", "order"), "order")
    currency = pick(data, "currency", "USD")
    totals = pick(data, "totals", {})
    zero = Money.zero(currency)
    customer = pick(data, "customer") or {}
    return OrderDetails(
        order_id=str(pick(data, "id") or pick(data, "order_id")),
        totals=OrderTotals(
            subtotal=money(pick(totals, "subtotal"), currency) or zero,
            total=money(pick(totals, "total"), currency) or zero,
            tax=money(pick(totals, "tax"), currency),
            shipping=money(pick(totals, "shipping"), currency),
            discount=money(pick(totals, "discount"), currency),
        ),
        order_number=pick(data, "order_number"),
        status=pick(data, "status"),
        items=tuple(
            OrderLine(
                name=pick(item, "product_name") or pick(item, "name", ""),
                quantity=int(pick(item, "quantity", 1)),
                subtotal=money(pick(item, "subtotal"), currency) or zero,
                variant_name=pick(item, "variant_name"),
            )
            for item in pick(data, "items", [])
        ),
        tax_breakdown=tuple(
            TaxLine(
                name=pick(line, "name", "Tax"),
                rate=str(pick(line, "rate", "")),
                amount=money(pick(line, "amount"), currency) or zero,
            )
            for line in pick(data, "tax_breakdown", [])
        ),
        tax_inclusive=bool(pick(data, "tax_inclusive", False)),
        customer_email=pick(data, "customer_email") or pick(customer, "email"),
        shipping_address=address(pick(data, "shipping_address")),
        billing_address=address(pick(data, "billing_address")),
        payment_method=pick(data, "payment_method"),
    )


def checkout_submission(body: Any) -> CheckoutSubmission:
    """Order submission reply: the order in ``data``, payment hand-off in ``meta``."""
    body = _require_object(body, "checkout")
    data = body.get("data") if isinstance(body.get("data"), dict) else body
    meta = body.get("meta") if isinstance(body.get("meta"), dict) else {}
    order_id = pick(data, "id") or pick(data, "order_id")
    has_totals = isinstance(pick(data, "totals"), dict)
    return CheckoutSubmission(
        order_id=str(order_id) if order_id is not None else None,
        status=pick(data, "status", "pending"),
        payment_url=pick(meta, "payment_url") or pick(data, "payment_url"),
        payment_gateway=pick(meta, "payment_gateway"),
        payment_method=pick(data, "payment_method"),
        test_mode=bool(pick(meta, "test_mode", False)),
        order=order_details(data) if has_totals and order_id is not None else None,
    )


def order_status(body: Any) -> OrderStatusReport:
    data = _require_object(unwrap(body, "data"), "order status")
    return OrderStatusReport(
        status=pick(data, "status", "pending"),
        payment_status=pick(data, "payment_status"),
    )


def api_error(status: int, body: Any) -> ApiError:
    """Build the error for a non-2xx response: ``{"error": {message, code, details}}``."""
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return ApiError(
            error.get("message") or "API request failed",
            code=error.get("code"),
            details=error.get("details"),
            status=status,
        )
    if isinstance(error, str):
        return ApiError(error, status=status)
    message = body.get("message") if isinstance(body, dict) else None
    return ApiError(message or "API request failed", status=status)


# --- Writers ------------------------------------------------------------------


def _camel_keys(data: dict[str, Any]) -> Json:
    return {camel(key): value for key, value in data.items()}


def address_payload(data: AddressData | None) -> Json | None:
    if data is None:
        return None
    return _camel_keys(data.to_payload())


def checkout_data_payload(
    customer: CustomerData,
    shipping_address: AddressData | None,
    billing_address: AddressData | None,
) -> Json:
    payload = _camel_keys(customer.to_payload())
    if shipping_address is not None:
        payload["shippingAddress"] = address_payload(shipping_address)
    if billing_address is not None:
        payload["billingAddress"] = address_payload(billing_address)
    if shipping_address is not None and billing_address is not None:
        payload["sameAsBilling"] = shipping_address.same_as(billing_address)
    return payload


def checkout_payload(request: CheckoutRequest) -> Json:
    payload: Json = {"gateway": request.gateway, "locale": request.locale or "en"}
    optional = {
        "manualPaymentMethodId": request.manual_payment_method_id,
        "returnUrl": request.return_url,
        "cancelUrl": request.cancel_url,
        "agreeToTerms": request.agree_to_terms,
        "marketingOptIn": request.marketing_opt_in,
        "notes": request.notes,
    }
    payload.update({key: value for key, value in optional.items() if value is not None})
    return payload
