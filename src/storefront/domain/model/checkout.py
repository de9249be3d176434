"""Checkout drafts, merchant configuration and the types exchanged during checkout.

Drafts (customer and addresses) are mutable: they accumulate partial input
across steps and are only pushed to the server when a step is left.
Everything the server hands back (check results, payment methods) is
frozen.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum

from storefront.domain.exceptions import ValidationError

FieldErrors = dict[str, str]


class CheckoutStep(Enum):
    CUSTOMER = "customer"
    SHIPPING = "shipping"
    BILLING = "billing"
    PAYMENT = "payment"
    REVIEW = "review"

    @property
    def title(self) -> str:
        return _STEP_TITLES[self]

    @property
    def analytics_name(self) -> str:
        return _STEP_ANALYTICS_NAMES[self]


_STEP_TITLES = {
    CheckoutStep.CUSTOMER: "Contact Info",
    CheckoutStep.SHIPPING: "Shipping Address",
    CheckoutStep.BILLING: "Billing Address",
    CheckoutStep.PAYMENT: "Payment",
    CheckoutStep.REVIEW: "Review Order",
}

_STEP_ANALYTICS_NAMES = {
    CheckoutStep.CUSTOMER: "contact_information",
    CheckoutStep.SHIPPING: "shipping_address",
    CheckoutStep.BILLING: "billing_address",
    CheckoutStep.PAYMENT: "payment_method",
    CheckoutStep.REVIEW: "order_review",
}


class FieldVisibility(Enum):
    HIDDEN = "hidden"
    OPTIONAL = "optional"
    REQUIRED = "required"


class TermsMode(Enum):
    NONE = "none"
    IMPLICIT = "implicit"  # "by completing your order you agree..."
    REQUIRED_CHECKBOX = "required_checkbox"


@dataclass(frozen=True)
class CheckoutConfig:
    """Merchant settings that shape the checkout flow."""

    terms_mode: TermsMode = TermsMode.IMPLICIT
    name_visibility: FieldVisibility = FieldVisibility.REQUIRED
    phone_visibility: FieldVisibility = FieldVisibility.OPTIONAL
    company_visibility: FieldVisibility = FieldVisibility.OPTIONAL
    poll_interval_seconds: float = 3.0
    poll_max_attempts: int = 40
    account_password_min_length: int = 8
    locale: str = "en"
    return_url: str | None = None
    cancel_url: str | None = None

    def __post_init__(self) -> None:
        if self.poll_interval_seconds < 0:
            raise ValidationError("Poll interval cannot be negative")
        if self.poll_max_attempts < 1:
            raise ValidationError("Poll attempts must be at least 1")


@dataclass
class CustomerData:
    """Contact details draft for the customer step."""

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    company: str = ""

    def merge(self, changes: dict[str, str | None]) -> bool:
        """Apply changed fields; ``None`` values are ignored.

        Empty strings are kept; they mean the shopper cleared the field.
        Returns True if anything changed.
        """
        return _merge(self, changes)

    def to_payload(self) -> dict[str, str]:
        return asdict(self)


@dataclass
class AddressData:
    """Postal address draft for the shipping and billing steps."""

    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    name: str = ""
    company: str = ""
    phone: str = ""

    def merge(self, changes: dict[str, str | None]) -> bool:
        return _merge(self, changes)

    @property
    def is_complete(self) -> bool:
        """Has the minimum fields the server accepts as an address."""
        return all((self.line1, self.city, self.postal_code, self.country))

    def copy(self) -> AddressData:
        return replace(self)

    def to_payload(self) -> dict[str, str]:
        return asdict(self)

    def same_as(self, other: AddressData) -> bool:
        keys = ("line1", "line2", "city", "state", "postal_code", "country")
        return all(getattr(self, k) == getattr(other, k) for k in keys)


def _merge(draft, changes: dict[str, str | None]) -> bool:
    known = {f.name for f in fields(draft)}
    changed = False
    for key, value in changes.items():
        if key not in known:
            raise ValidationError(f"Unknown field '{key}'")
        if value is None:
            continue
        if getattr(draft, key) != value:
            setattr(draft, key, value)
            changed = True
    return changed


@dataclass(frozen=True)
class SavedCheckoutData:
    """Checkout data the server holds for the current cart."""

    customer: CustomerData = field(default_factory=CustomerData)
    shipping_address: AddressData | None = None
    billing_address: AddressData | None = None

    @property
    def same_as_billing(self) -> bool:
        """Only differing saved addresses turn the shortcut off."""
        if self.shipping_address is None or self.billing_address is None:
            return True
        return self.shipping_address.same_as(self.billing_address)


@dataclass(frozen=True)
class CustomerCheckResult:
    exists: bool
    has_password: bool


@dataclass(frozen=True)
class AuthResponse:
    authenticated: bool
    message: str | None = None
    access_token: str | None = None
    user_id: str | None = None


@dataclass(frozen=True)
class AuthCodeSent:
    auth_sent: bool
    auth_method: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class PaymentMethod:
    """A way to pay offered by the store.

    ``gateway`` identifies the processor (``stripe``, ``paypal``, ...).
    Manual methods (bank transfer, cash on delivery) use the ``manual``
    gateway and carry their own id.
    """

    gateway: str
    name: str
    manual_method_id: str | None = None
    description: str | None = None
    icon: str | None = None

    @property
    def is_manual(self) -> bool:
        return self.manual_method_id is not None or self.gateway == "manual"

    @property
    def key(self) -> str:
        if self.manual_method_id:
            return f"{self.gateway}:{self.manual_method_id}"
        return self.gateway


@dataclass(frozen=True)
class PaymentMethodList:
    methods: tuple[PaymentMethod, ...]
    test_mode: bool = False

    def find(self, key: str) -> PaymentMethod:
        for method in self.methods:
            if method.key == key:
                return method
        raise ValidationError(f"Payment method '{key}' is not available")

    @property
    def auto_select(self) -> PaymentMethod | None:
        """The method to pre-select when there is nothing to choose."""
        if len(self.methods) == 1 and not self.methods[0].is_manual:
            return self.methods[0]
        return None


@dataclass(frozen=True)
class CheckoutRequest:
    """Input to order submission."""

    gateway: str
    manual_payment_method_id: str | None = None
    locale: str = "en"
    return_url: str | None = None
    cancel_url: str | None = None
    agree_to_terms: bool | None = None
    marketing_opt_in: bool | None = None
    notes: str | None = None
