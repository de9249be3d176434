"""Application service: decide and hold the outcome of an order submission.

Terminal states and what leads to them:

- ``success``: the server reports the order paid, or it awaits an offline
  payment (bank transfer, cash on delivery);
- ``pending``: the shopper was sent to a payment page, or the payment is
  still being confirmed and the order status is polled;
- ``failure``: the submission was rejected.  ``CART_VALIDATION_FAILED``
  sends the shopper back to the cart, anything else offers a payment retry;
- ``not_found``: the shopper came back from a payment page and no order
  can be located.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from storefront.application import messages
from storefront.application.dto import ResultView
from storefront.domain.exceptions import (
    ApiError,
    CheckoutStateError,
    RequestInFlightError,
    ValidationError,
)
from storefront.domain.model.cart import Cart
from storefront.domain.model.checkout import CheckoutConfig
from storefront.domain.model.order import (
    FAILED_STATUSES,
    CheckoutSubmission,
    FailureKind,
    OrderDetails,
    ResultState,
)
from storefront.domain.port.event_publisher import CheckoutEvent, EventKind, EventPublisher
from storefront.domain.port.storefront_api import StorefrontApi

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class OrderResultHandler:

    def __init__(
        self,
        api: StorefrontApi,
        events: EventPublisher | None = None,
        config: CheckoutConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._api = api
        self._events = events
        self._config = config or CheckoutConfig()
        self._sleep = sleep
        self._epoch = 0
        self._account_pending = False
        self._clear()

    def _clear(self) -> None:
        self.state: ResultState | None = None
        self.order_id: str | None = None
        self.order: OrderDetails | None = None
        self.failure_kind: FailureKind | None = None
        self.messages: tuple[str, ...] = ()
        self.redirect_url: str | None = None
        self.offline_payment = False
        self.taking_longer = False
        self.checking_status = False
        self.notice: str | None = None
        self.customer_email: str | None = None
        self.customer_authenticated = False
        self.account_created = False
        self.account_error: str | None = None

    # --- Queries --------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self.state is not None

    @property
    def can_create_account(self) -> bool:
        return (
            self.state is ResultState.SUCCESS
            and not self.customer_authenticated
            and not self.account_created
            and bool(self.customer_email)
        )

    def view(self) -> ResultView | None:
        if self.state is None:
            return None
        return ResultView(
            state=self.state,
            order_id=self.order_id,
            order=self.order,
            failure_kind=self.failure_kind,
            messages=self.messages,
            redirect_url=self.redirect_url,
            offline_payment=self.offline_payment,
            taking_longer=self.taking_longer,
            checking_status=self.checking_status,
            notice=self.notice,
            account_created=self.account_created,
            account_error=self.account_error,
            can_create_account=self.can_create_account,
        )

    # --- Outcomes -------------------------------------------------------------

    async def handle_submission(
        self,
        submission: CheckoutSubmission,
        customer_email: str | None = None,
        customer_authenticated: bool = False,
    ) -> ResultState:
        """Turn the server's reply to order submission into a result state.

        A payment still being confirmed is polled before returning.
        """
        self.reset()
        self.order_id = submission.order_id
        self.customer_email = customer_email
        self.customer_authenticated = customer_authenticated

        if submission.requires_redirect:
            self.state = ResultState.PENDING
            self.redirect_url = submission.payment_url
            logger.info(
                "Order %s awaits payment at %s", submission.order_id, submission.payment_gateway
            )
            self._publish(
                EventKind.PAYMENT_REDIRECT,
                order_id=submission.order_id,
                payment_gateway=submission.payment_gateway,
                test_mode=submission.test_mode,
            )
            return self.state

        if submission.is_paid:
            await self._succeed(submission.order)
            return self.state

        if submission.is_offline:
            self.offline_payment = True
            await self._succeed(submission.order)
            return self.state

        self.state = ResultState.PENDING
        return await self.poll()

    def record_failure(self, exc: ApiError) -> ResultState:
        """Classify a rejected submission."""
        if exc.is_cart_validation:
            kind, fallback = FailureKind.VALIDATION, messages.CART_VALIDATION_FAILED
        else:
            kind, fallback = FailureKind.PAYMENT, messages.PAYMENT_FAILED
        self._fail(kind, _split_lines(exc.message) or (fallback,))
        logger.error("Order submission failed (%s): %s", kind.value, exc.message)
        return self.state

    async def poll(self) -> ResultState:
        """Poll the order status until it settles or the attempts run out."""
        if self.order_id is None:
            raise CheckoutStateError("There is no order to check")
        epoch = self._epoch
        self.taking_longer = False

        for attempt in range(1, self._config.poll_max_attempts + 1):
            await self._sleep(self._config.poll_interval_seconds)
            if epoch != self._epoch:
                logger.debug("Polling for order %s abandoned", self.order_id)
                return self.state
            try:
                report = await self._api.get_order_status(self.order_id)
            except ApiError as exc:
                if exc.is_not_found:
                    self._not_found()
                    return self.state
                logger.warning(
                    "Status check %d for order %s failed: %s", attempt, self.order_id, exc.message
                )
                continue
            if epoch != self._epoch:
                return self.state
            if report.is_paid:
                await self._succeed()
                return self.state
            if report.is_failed:
                self._fail(FailureKind.PAYMENT, (messages.PAYMENT_FAILED,))
                return self.state

        logger.info(
            "Order %s still pending after %d checks", self.order_id, self._config.poll_max_attempts
        )
        self.taking_longer = True
        self.notice = messages.PAYMENT_STILL_PROCESSING
        return self.state

    async def check_status(self) -> ResultState:
        """Manual re-check offered once polling has given up."""
        if self.state is not ResultState.PENDING or self.order_id is None:
            raise CheckoutStateError("There is no pending order to check")
        if self.checking_status:
            raise RequestInFlightError("The order status is already being checked")

        self.checking_status = True
        try:
            report = await self._api.get_order_status(self.order_id)
        except ApiError as exc:
            logger.warning("Status check for order %s failed: %s", self.order_id, exc.message)
            self.notice = messages.describe_api_error(exc, messages.PAYMENT_STILL_PROCESSING)
            return self.state
        finally:
            self.checking_status = False

        if report.is_paid:
            await self._succeed()
        elif report.is_failed:
            self._fail(FailureKind.PAYMENT, (messages.PAYMENT_FAILED,))
        else:
            self.notice = messages.PAYMENT_STILL_PROCESSING
        return self.state

    async def resume_payment_return(
        self,
        order_id: str | None,
        cart: Cart | None = None,
    ) -> ResultState:
        """The shopper came back from a payment page.

        Without an order id the cart's order linkage is used.  An order the
        API cannot return but the cart knows about is still a success, shown
        without details.
        """
        self.reset()
        linked = cart.order_id if cart is not None else None
        if linked is None and cart is not None and cart.order_details is not None:
            linked = cart.order_details.order_id
        self.order_id = order_id or linked
        if self.order_id is None:
            self._not_found()
            return self.state

        try:
            order = await self._api.get_order(self.order_id)
        except ApiError as exc:
            logger.warning("Order %s could not be loaded: %s", self.order_id, exc.message)
            if exc.is_not_found and not (cart is not None and cart.has_order):
                self._not_found()
                return self.state
            self._mark_success(None)
            self.notice = messages.ORDER_DETAILS_UNAVAILABLE
            return self.state

        self.customer_email = order.customer_email
        status = (order.status or "").lower()
        if status in FAILED_STATUSES:
            self._fail(FailureKind.PAYMENT, (messages.PAYMENT_FAILED,))
        elif status == "pending" and order.payment_method not in ("offline", "manual"):
            self.state = ResultState.PENDING
            return await self.poll()
        else:
            self.offline_payment = status == "pending"
            self._mark_success(order)
        return self.state

    async def create_account(self, password: str) -> bool:
        """Turn the guest who just ordered into a registered customer."""
        if self.customer_authenticated:
            raise CheckoutStateError("You are already signed in")
        if self.state is not ResultState.SUCCESS or not self.customer_email:
            raise CheckoutStateError("An account can only be created after a successful order")
        if self.account_created:
            return True
        if self._account_pending:
            raise RequestInFlightError("Your account is already being created")

        min_length = self._config.account_password_min_length
        if len(password) < min_length:
            raise ValidationError(messages.ACCOUNT_PASSWORD_TOO_SHORT.format(min_length=min_length))

        self._account_pending = True
        self.account_error = None
        try:
            response = await self._api.create_account(self.customer_email, password)
        except ApiError as exc:
            logger.warning("Account creation for %s failed: %s", self.customer_email, exc.message)
            self.account_error = messages.describe_api_error(exc, messages.ACCOUNT_CREATE_FAILED)
            return False
        finally:
            self._account_pending = False

        if not response.authenticated:
            self.account_error = response.message or messages.ACCOUNT_CREATE_FAILED
            return False
        self.account_created = True
        logger.info("Account created for %s", self.customer_email)
        return True

    def reset(self) -> None:
        """Forget the current outcome and stop any polling in progress."""
        self._epoch += 1
        self._clear()

    # --- Internal helpers -----------------------------------------------------

    async def _succeed(self, order: OrderDetails | None = None) -> None:
        if order is None and self.order_id is not None:
            try:
                order = await self._api.get_order(self.order_id)
            except ApiError as exc:
                logger.warning("Order %s details unavailable: %s", self.order_id, exc.message)
                self.notice = messages.ORDER_DETAILS_UNAVAILABLE
        self._mark_success(order)

    def _mark_success(self, order: OrderDetails | None) -> None:
        self.state = ResultState.SUCCESS
        self.order = order
        self.taking_longer = False
        if order is not None:
            self.order_id = order.order_id
            self.customer_email = self.customer_email or order.customer_email
            if self.notice == messages.PAYMENT_STILL_PROCESSING:
                self.notice = None
        logger.info("Order %s completed", self.order_id)
        self._publish(
            EventKind.ORDER_COMPLETED,
            order_id=self.order_id,
            total=order.totals.total.amount if order is not None else None,
            offline_payment=self.offline_payment,
        )

    def _fail(self, kind: FailureKind, lines: Iterable[str]) -> None:
        self.state = ResultState.FAILURE
        self.failure_kind = kind
        self.messages = tuple(lines)
        self.taking_longer = False
        self._publish(
            EventKind.ORDER_FAILED,
            order_id=self.order_id,
            failure=kind.value,
            messages=list(self.messages),
        )

    def _not_found(self) -> None:
        self.state = ResultState.NOT_FOUND
        self.messages = (messages.ORDER_NOT_FOUND,)

    def _publish(self, kind: EventKind, **data) -> None:
        if self._events is not None:
            self._events.publish(CheckoutEvent(kind, data))


def _split_lines(message: str | None) -> tuple[str, ...]:
    if not message:
        return ()
    return tuple(line.strip() for line in message.split("\n") if line.strip())
