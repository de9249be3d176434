"""Application service: identify the shopper on the contact step.

Once an email is entered the server classifies it:

    check ──► guest      (new email, or known email without a password)
          └─► password   (registered account)
    guest/password ──► otp (after requesting a one-time code)
    password/otp ──► authenticated
    any ──► dismissed    (continue as guest; sticky until the email changes)

Only one request (check, login, send code, verify) may be in flight at a
time.  Results that arrive after ``invalidate()`` (the shopper left the
contact step) are discarded.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from storefront.application import messages
from storefront.domain.exceptions import (
    OTP_EXPIRED,
    ApiError,
    CheckoutStateError,
    NetworkError,
    RequestInFlightError,
    ValidationError,
)
from storefront.domain.model.checkout import AuthResponse, CustomerCheckResult
from storefront.domain.port.event_publisher import CheckoutEvent, EventKind, EventPublisher
from storefront.domain.port.storefront_api import StorefrontApi
from storefront.domain.service.otp import OtpEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AuthStage(Enum):
    CHECK = "check"
    GUEST = "guest"
    PASSWORD = "password"
    OTP = "otp"
    AUTHENTICATED = "authenticated"
    DISMISSED = "dismissed"


class AuthErrorKind(Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    EXPIRED_CODE = "expired_code"
    NETWORK = "network"
    FAILED = "failed"


class _Stale(Exception):
    """The flow was invalidated while a request was in flight."""


class AuthenticationFlow:

    def __init__(self, api: StorefrontApi, events: EventPublisher | None = None) -> None:
        self._api = api
        self._events = events
        self._epoch = 0
        self._dismissed = False
        self._stage_before_otp = AuthStage.CHECK

        self.stage = AuthStage.CHECK
        self.checked_email = ""
        self.check_result: CustomerCheckResult | None = None
        self.otp = OtpEntry()
        self.error: str | None = None
        self.error_kind: AuthErrorKind | None = None
        self.pending: str | None = None

    # --- Queries --------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self.pending is not None

    @property
    def challenge_active(self) -> bool:
        """A password or code prompt is open and blocks the contact step."""
        return self.stage in (AuthStage.PASSWORD, AuthStage.OTP)

    @property
    def is_authenticated(self) -> bool:
        return self.stage is AuthStage.AUTHENTICATED

    @property
    def can_load_saved_details(self) -> bool:
        """Known email without a password: offer to send a code."""
        return (
            self.stage is AuthStage.GUEST
            and self.check_result is not None
            and self.check_result.exists
        )

    def is_classified(self, email: str) -> bool:
        return self.check_result is not None and _same_email(email, self.checked_email)

    # --- Lifecycle ------------------------------------------------------------

    def invalidate(self) -> None:
        """Drop the results of anything still in flight."""
        self._epoch += 1

    def email_changed(self, email: str) -> None:
        """Forget the classification (and any dismissal) for a different email."""
        if self.checked_email and not _same_email(email, self.checked_email):
            self.reset()

    def reset(self) -> None:
        self.invalidate()
        self._dismissed = False
        self.stage = AuthStage.CHECK
        self.checked_email = ""
        self.check_result = None
        self.otp.clear()
        self._clear_error()

    def dismiss(self) -> None:
        """Continue as guest; stays dismissed until the email changes."""
        self._dismissed = True
        self.stage = AuthStage.DISMISSED
        self.otp.clear()
        self._clear_error()

    def back_from_otp(self) -> None:
        if self.stage is not AuthStage.OTP:
            raise CheckoutStateError("No verification code prompt is open")
        self.stage = self._stage_before_otp
        self.otp.clear()
        self._clear_error()

    # --- Requests -------------------------------------------------------------

    async def check(self, email: str) -> CustomerCheckResult | None:
        """Classify *email*.  Repeat checks of the same email are no-ops."""
        email = email.strip()
        if "@" not in email:
            return None
        if self.is_classified(email):
            return self.check_result
        self.email_changed(email)

        try:
            result = await self._request(
                "check", lambda: self._api.check_customer(email), messages.CHECK_EMAIL_FAILED
            )
        except _Stale:
            logger.debug("Discarding stale customer check for %s", email)
            return None
        if result is None:
            return None

        self.checked_email = email
        self.check_result = result
        if self._dismissed:
            self.stage = AuthStage.DISMISSED
        elif result.exists and result.has_password:
            self.stage = AuthStage.PASSWORD
        else:
            self.stage = AuthStage.GUEST
        logger.info("Customer check for %s: stage=%s", email, self.stage.value)
        return result

    async def password_login(self, password: str) -> bool:
        if self.stage is not AuthStage.PASSWORD:
            raise CheckoutStateError("Password sign-in is not available for this email")
        if not password:
            raise ValidationError("Password is required")

        email = self.checked_email
        self._publish(EventKind.AUTH_REQUESTED, method="password")
        try:
            response = await self._request(
                "login",
                lambda: self._api.password_login(email, password),
                messages.LOGIN_FAILED,
                invalid_message=messages.INVALID_PASSWORD,
            )
        except _Stale:
            return False
        return self._settle(response, "password", messages.INVALID_PASSWORD)

    async def request_code(self) -> bool:
        """Send a one-time code and open the code prompt."""
        if self.check_result is None or not self.check_result.exists:
            raise CheckoutStateError("A verification code can only be sent to a known email")
        if self.stage is AuthStage.OTP:
            return await self.resend_code()

        email = self.checked_email
        self._publish(EventKind.AUTH_REQUESTED, method="otp")
        try:
            sent = await self._request(
                "send", lambda: self._api.send_auth(email), messages.SEND_CODE_FAILED
            )
        except _Stale:
            return False
        if sent is None:
            return False
        if not sent.auth_sent:
            self._set_error(AuthErrorKind.FAILED, sent.message or messages.SEND_CODE_FAILED)
            return False

        self._stage_before_otp = self.stage
        self.stage = AuthStage.OTP
        self.otp.clear()
        return True

    async def resend_code(self) -> bool:
        """Start the code prompt over: clear input, send a new code."""
        if self.stage is not AuthStage.OTP:
            raise CheckoutStateError("No verification code prompt is open")
        self.otp.clear()
        self._clear_error()

        email = self.checked_email
        try:
            sent = await self._request(
                "resend", lambda: self._api.send_auth(email), messages.RESEND_CODE_FAILED
            )
        except _Stale:
            return False
        if sent is None:
            return False
        if not sent.auth_sent:
            self._set_error(AuthErrorKind.FAILED, sent.message or messages.RESEND_CODE_FAILED)
            return False
        return True

    async def type_digit(self, index: int, value: str) -> bool | None:
        """Handle a keystroke in OTP field *index*.

        Verification fires by itself once all six fields hold digits.
        Returns the verification outcome, or None if none was attempted.
        """
        self._require_otp()
        if self.error:
            self._clear_error()
        self.otp.type(index, value)
        return await self._auto_verify()

    async def paste_code(self, text: str) -> bool | None:
        self._require_otp()
        if not self.otp.paste(text):
            return None
        self._clear_error()
        return await self._auto_verify()

    def backspace(self, index: int) -> None:
        self._require_otp()
        self.otp.backspace(index)

    async def verify(self) -> bool:
        self._require_otp()
        if not self.otp.is_complete:
            raise ValidationError("Enter all 6 digits of the verification code")

        email, code = self.checked_email, self.otp.code
        try:
            response = await self._request(
                "verify",
                lambda: self._api.verify_auth(email, code),
                messages.VERIFY_FAILED,
                invalid_message=messages.INVALID_CODE,
            )
        except _Stale:
            return False
        finally:
            if not self.is_authenticated:
                self.otp.clear()
        return self._settle(response, "otp", messages.INVALID_CODE)

    async def logout(self) -> None:
        """End the server session.  Best effort: local state resets regardless."""
        try:
            await self._api.logout()
        except ApiError as exc:
            logger.warning("Logout request failed, continuing: %s", exc.message)
        self.reset()

    # --- Internal helpers -----------------------------------------------------

    async def _auto_verify(self) -> bool | None:
        if not self.otp.is_complete or self.busy:
            return None
        return await self.verify()

    async def _request(
        self,
        name: str,
        call: Callable[[], Awaitable[T]],
        fallback: str,
        invalid_message: str | None = None,
    ) -> T | None:
        """Run one authentication request.

        Raises RequestInFlightError if another is pending and _Stale if the
        flow was invalidated meanwhile.  API errors become ``error`` and
        yield None.
        """
        if self.pending is not None:
            raise RequestInFlightError(
                f"Authentication request '{self.pending}' is still in progress"
            )
        epoch = self._epoch
        self.pending = name
        self._clear_error()
        try:
            result = await call()
        except ApiError as exc:
            if epoch != self._epoch:
                raise _Stale() from exc
            logger.warning("Authentication request %s failed: %s", name, exc.message)
            kind, message = _classify(exc, fallback, invalid_message)
            self._set_error(kind, message)
            self._publish(EventKind.AUTH_FAILED, request=name, error=kind.value)
            return None
        finally:
            self.pending = None
        if epoch != self._epoch:
            raise _Stale()
        return result

    def _settle(self, response: AuthResponse | None, method: str, invalid: str) -> bool:
        if response is None:
            return False
        if not response.authenticated:
            self._set_error(AuthErrorKind.INVALID_CREDENTIAL, response.message or invalid)
            self._publish(EventKind.AUTH_FAILED, method=method, error="invalid_credential")
            return False
        self.stage = AuthStage.AUTHENTICATED
        self.otp.clear()
        self._clear_error()
        logger.info("Customer %s authenticated via %s", self.checked_email, method)
        self._publish(EventKind.AUTH_SUCCEEDED, method=method)
        return True

    def _require_otp(self) -> None:
        if self.stage is not AuthStage.OTP:
            raise CheckoutStateError("No verification code prompt is open")

    def _set_error(self, kind: AuthErrorKind, message: str) -> None:
        self.error_kind = kind
        self.error = message

    def _clear_error(self) -> None:
        self.error_kind = None
        self.error = None

    def _publish(self, kind: EventKind, **data) -> None:
        if self._events is not None:
            self._events.publish(CheckoutEvent(kind, {"step": "customer", **data}))


def _classify(
    exc: ApiError,
    fallback: str,
    invalid_message: str | None,
) -> tuple[AuthErrorKind, str]:
    if exc.is_rate_limited:
        return AuthErrorKind.RATE_LIMITED, messages.RATE_LIMITED
    if exc.code == OTP_EXPIRED or exc.status == 410:
        return AuthErrorKind.EXPIRED_CODE, messages.EXPIRED_CODE
    if isinstance(exc, NetworkError):
        return AuthErrorKind.NETWORK, messages.NETWORK_FAILURE
    if invalid_message is not None and exc.status in (401, 422):
        return AuthErrorKind.INVALID_CREDENTIAL, exc.message or invalid_message
    return AuthErrorKind.FAILED, fallback


def _same_email(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()
