"""Data Transfer Objects: read-only snapshots handed to the rendering layer.

The rendering layer never reads controller attributes directly; it asks
for a view, draws it, and dispatches intents back.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from storefront.domain.model.checkout import (
    AddressData,
    CheckoutStep,
    CustomerData,
    FieldErrors,
    PaymentMethod,
)
from storefront.domain.model.order import FailureKind, OrderDetails, ResultState
from storefront.domain.service.cart_display import CartSummary


@dataclass(frozen=True)
class AuthView:
    """Output: the contact step's sign-in prompt."""

    stage: str
    email: str
    busy: bool
    error: str | None = None
    otp_digits: tuple[str, ...] = ()
    otp_focus: int = 0
    can_load_saved_details: bool = False


@dataclass(frozen=True)
class ResultView:
    """Output: the terminal order-result screen."""

    state: ResultState
    order_id: str | None = None
    order: OrderDetails | None = None
    failure_kind: FailureKind | None = None
    messages: tuple[str, ...] = ()
    redirect_url: str | None = None
    offline_payment: bool = False
    taking_longer: bool = False
    checking_status: bool = False
    notice: str | None = None
    account_created: bool = False
    account_error: str | None = None
    can_create_account: bool = False


@dataclass(frozen=True)
class CheckoutView:
    """Output: everything needed to draw the checkout at one moment."""

    is_checking_out: bool
    step: CheckoutStep | None
    title: str
    step_number: int
    step_total: int
    busy: bool
    customer: CustomerData
    shipping_address: AddressData
    billing_address: AddressData
    same_as_billing: bool
    requires_shipping: bool
    payment_methods: tuple[PaymentMethod, ...]
    selected_payment: str | None
    payment_step_skipped: bool
    terms_accepted: bool
    errors: FieldErrors = field(default_factory=dict)
    step_error: str | None = None
    cart: CartSummary | None = None
    auth: AuthView | None = None
    result: ResultView | None = None
