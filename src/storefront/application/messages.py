"""User-visible messages.

Default English wording; a rendering layer with its own string table can
key on the constant names.
"""

from __future__ import annotations

from storefront.domain.exceptions import ApiError, NetworkError

RATE_LIMITED = "Too many attempts. Please wait a moment."
NETWORK_FAILURE = "We couldn't reach the store. Please check your connection and try again."

CHECK_EMAIL_FAILED = "We couldn't check your email. Please try again."
INVALID_PASSWORD = "Incorrect password. Please try again."
LOGIN_FAILED = "Sign in failed. Please try again."
SEND_CODE_FAILED = "We couldn't send a verification code. Please try again."
RESEND_CODE_FAILED = "Failed to resend code. Please try again."
INVALID_CODE = "Invalid verification code. Please try again."
EXPIRED_CODE = "This code has expired. Please request a new one."
VERIFY_FAILED = "Verification failed. Please try again."

COUPON_REQUIRED = "Please enter a discount code."
COUPON_FAILED = "This discount code could not be applied."
COUPON_REMOVE_FAILED = "The discount could not be removed. Please try again."

SELECT_PAYMENT_METHOD = "Please select a payment method."
ACCEPT_TERMS = "Please accept the terms and conditions to continue."
SAVE_DETAILS_FAILED = "We couldn't save your details. Please try again."
STOCK_CHANGED = "Some items in your cart are no longer available in the requested quantity."
CART_EMPTY = "Your cart is empty."

CHECKOUT_FAILED = "Checkout failed. Please try again."
CART_VALIDATION_FAILED = "Please review your cart and try again"
PAYMENT_FAILED = "There was a problem processing your payment"
PAYMENT_CANCELLED = "Payment was cancelled. Your items are still in your cart."
PAYMENT_STILL_PROCESSING = (
    "Your payment is still being processed. This can sometimes take a few minutes."
)
ORDER_NOT_FOUND = (
    "Unable to find order details. If you just completed a payment, "
    "please check your email for confirmation."
)
ORDER_DETAILS_UNAVAILABLE = (
    "Order details are currently unavailable. Please check your email for confirmation."
)

ACCOUNT_PASSWORD_TOO_SHORT = "Password must be at least {min_length} characters."
ACCOUNT_CREATE_FAILED = "We couldn't create your account. Please try again."


def describe_api_error(exc: ApiError, fallback: str) -> str:
    """Message for an API failure the shopper can retry."""
    if exc.is_rate_limited:
        return RATE_LIMITED
    if isinstance(exc, NetworkError):
        return NETWORK_FAILURE
    return exc.message or fallback
