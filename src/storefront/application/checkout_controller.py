"""Application service: the checkout wizard.

Owns which step the shopper is on, the customer and address drafts, the
per-step errors and the payment selection.  The rendering layer reads a
``CheckoutView`` snapshot and dispatches intents (``on_*`` methods); the
controller validates locally, talks to the storefront API and moves
between steps according to the current ``StepPlan``.

Every navigation bumps a generation counter.  Work that awaited the API
checks it afterwards and drops its result when the shopper has moved on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace

from storefront.application import messages
from storefront.application.auth_flow import AuthenticationFlow, AuthStage
from storefront.application.cart_sync import CartSynchronizer
from storefront.application.dto import AuthView, CheckoutView
from storefront.application.order_result import OrderResultHandler, Sleep
from storefront.domain.exceptions import (
    ApiError,
    CheckoutStateError,
    NetworkError,
    RequestInFlightError,
    ValidationError,
)
from storefront.domain.model.cart import Cart
from storefront.domain.model.checkout import (
    AddressData,
    CheckoutConfig,
    CheckoutRequest,
    CheckoutStep,
    CustomerData,
    FieldErrors,
    PaymentMethod,
    PaymentMethodList,
    TermsMode,
)
from storefront.domain.model.order import ResultState
from storefront.domain.port.event_publisher import CheckoutEvent, EventKind, EventPublisher
from storefront.domain.port.storefront_api import StorefrontApi
from storefront.domain.service.step_flow import StepPlan
from storefront.domain.service.validation import is_valid_email, validate_address, validate_customer

logger = logging.getLogger(__name__)

ViewListener = Callable[[CheckoutView], None]

OTP_TITLE = "Enter verification code"


class CheckoutController:

    def __init__(
        self,
        api: StorefrontApi,
        cart: CartSynchronizer,
        events: EventPublisher | None = None,
        config: CheckoutConfig | None = None,
        auth: AuthenticationFlow | None = None,
        results: OrderResultHandler | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._api = api
        self._cart = cart
        self._events = events
        self._config = config or CheckoutConfig()
        self.auth = auth or AuthenticationFlow(api, events)
        self.results = results or OrderResultHandler(api, events, self._config, sleep)
        self._listeners: list[ViewListener] = []
        self._generation = 0

        self.is_checking_out = False
        self.step: CheckoutStep | None = None
        self.busy = False
        self.step_error: str | None = None
        self.errors: dict[CheckoutStep, FieldErrors] = {}
        self.payment_methods: PaymentMethodList | None = None
        self.payment_step_skipped = False
        self._reset_drafts()

        cart.subscribe(self._on_cart_replaced)

    def _reset_drafts(self) -> None:
        self.customer = CustomerData()
        self.shipping_address = AddressData()
        self.billing_address = AddressData()
        self.same_as_billing = True
        self.selected_payment: str | None = None
        self.terms_accepted = False
        self.marketing_opt_in = False
        self.notes = ""
        self._synced_fingerprint: tuple | None = None

    # --- Queries --------------------------------------------------------------

    @property
    def plan(self) -> StepPlan:
        cart = self._cart.cart
        return StepPlan(
            requires_shipping=cart.requires_shipping if cart is not None else True,
            same_as_billing=self.same_as_billing,
            payment_skipped=self.payment_step_skipped,
        )

    @property
    def is_guest(self) -> bool:
        return not self.auth.is_authenticated

    @property
    def selected_method(self) -> PaymentMethod | None:
        if self.selected_payment is None or self.payment_methods is None:
            return None
        return self.payment_methods.find(self.selected_payment)

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def view(self) -> CheckoutView:
        plan = self.plan
        step = self.step
        if step is not None and not plan.is_skipped(step):
            number = plan.position(step)
        else:
            number = 0

        if step is None:
            title = "Cart"
        elif step is CheckoutStep.CUSTOMER and self.auth.stage is AuthStage.OTP:
            title = OTP_TITLE
        else:
            title = step.title

        methods = self.payment_methods.methods if self.payment_methods is not None else ()
        return CheckoutView(
            is_checking_out=self.is_checking_out,
            step=step,
            title=title,
            step_number=number,
            step_total=plan.total,
            busy=self.busy,
            customer=replace(self.customer),
            shipping_address=self.shipping_address.copy(),
            billing_address=self.billing_address.copy(),
            same_as_billing=self.same_as_billing,
            requires_shipping=plan.requires_shipping,
            payment_methods=methods,
            selected_payment=self.selected_payment,
            payment_step_skipped=self.payment_step_skipped,
            terms_accepted=self.terms_accepted,
            errors=dict(self.errors.get(step, {})) if step is not None else {},
            step_error=self.step_error,
            cart=self._cart.summary,
            auth=self._auth_view() if step is CheckoutStep.CUSTOMER else None,
            result=self.results.view(),
        )

    # --- Entering and leaving -------------------------------------------------

    async def start_checkout(self) -> CheckoutStep:
        """Enter checkout on the contact step.

        Requires a non-empty cart.  Saved checkout data is loaded if the
        server has any; payment methods are loaded and a lone automated
        gateway is pre-selected with the payment step skipped.
        """
        if self.is_checking_out:
            raise CheckoutStateError("Checkout is already in progress")
        with self._working():
            cart = self._cart.cart
            if cart is None:
                cart = await self._cart.load()
            if cart.is_empty:
                raise ValidationError(messages.CART_EMPTY)

            self._generation += 1
            generation = self._generation
            self.results.reset()
            self.errors = {}
            self.step_error = None

            await self._load_saved_data(generation)
            await self._load_payment_methods()

            self.is_checking_out = True
            self.step = self.plan.first
            logger.info("Checkout started for cart %s", cart.id)
            self._publish(
                EventKind.CHECKOUT_STARTED,
                cart_id=cart.id,
                item_count=cart.item_count,
                total=cart.totals.total.amount,
                currency=cart.currency,
            )
            self._publish_step(EventKind.STEP_VIEWED, self.step)
        return self.step

    def exit_checkout(self) -> None:
        """Leave checkout; drafts are kept for the next visit."""
        if not self.is_checking_out:
            return
        self._leave("exited")
        self._notify()

    # --- Contact step ---------------------------------------------------------

    def on_customer_change(self, changes: dict[str, str | None]) -> None:
        if not self.customer.merge(changes):
            return
        if changes.get("email") is not None:
            self.auth.email_changed(self.customer.email)
        self._clear_field_errors(CheckoutStep.CUSTOMER, changes)
        self._notify()

    async def on_check_email(self) -> None:
        """Classify the entered email (on blur)."""
        email = self.customer.email.strip()
        if not is_valid_email(email):
            return
        generation = self._generation
        await self.auth.check(email)
        if generation != self._generation:
            logger.debug("Ignoring customer check finished after navigation")
            return
        self._notify()

    async def on_password_login(self, password: str) -> bool:
        self._require_step(CheckoutStep.CUSTOMER)
        with self._working():
            generation = self._generation
            authenticated = await self.auth.password_login(password)
            if authenticated:
                await self._after_authenticated(generation)
        self._notify()
        return authenticated

    async def on_request_code(self) -> bool:
        self._require_step(CheckoutStep.CUSTOMER)
        with self._working():
            sent = await self.auth.request_code()
        self._notify()
        return sent

    async def on_resend_code(self) -> bool:
        self._require_step(CheckoutStep.CUSTOMER)
        with self._working():
            sent = await self.auth.resend_code()
        self._notify()
        return sent

    async def on_otp_input(self, index: int, value: str) -> bool | None:
        self._require_step(CheckoutStep.CUSTOMER)
        with self._working():
            generation = self._generation
            verified = await self.auth.type_digit(index, value)
            if verified:
                await self._after_authenticated(generation)
        self._notify()
        return verified

    async def on_otp_paste(self, text: str) -> bool | None:
        self._require_step(CheckoutStep.CUSTOMER)
        with self._working():
            generation = self._generation
            verified = await self.auth.paste_code(text)
            if verified:
                await self._after_authenticated(generation)
        self._notify()
        return verified

    def on_otp_backspace(self, index: int) -> None:
        self._require_step(CheckoutStep.CUSTOMER)
        self.auth.backspace(index)
        self._notify()

    def on_dismiss_auth(self) -> None:
        self._require_step(CheckoutStep.CUSTOMER)
        self.auth.dismiss()
        self._notify()

    async def on_logout(self) -> None:
        await self.auth.logout()
        self._synced_fingerprint = None
        self._notify()

    # --- Address steps --------------------------------------------------------

    def on_shipping_change(self, changes: dict[str, str | None]) -> None:
        if self.shipping_address.merge(changes):
            self._clear_field_errors(CheckoutStep.SHIPPING, changes)
            self._notify()

    def on_billing_change(self, changes: dict[str, str | None]) -> None:
        if self.billing_address.merge(changes):
            self._clear_field_errors(CheckoutStep.BILLING, changes)
            self._notify()

    def on_same_as_billing(self, enabled: bool) -> None:
        """Toggle "billing address same as shipping"."""
        self.same_as_billing = enabled
        if enabled:
            self.billing_address = self.shipping_address.copy()
            self.errors.pop(CheckoutStep.BILLING, None)
        self._reconcile_step()
        self._notify()

    # --- Payment and review ---------------------------------------------------

    def on_select_payment(self, key: str) -> None:
        if self.payment_methods is None:
            raise CheckoutStateError("Payment methods have not been loaded")
        method = self.payment_methods.find(key)
        self.selected_payment = method.key
        self.errors.pop(CheckoutStep.PAYMENT, None)
        if self.step_error == messages.SELECT_PAYMENT_METHOD:
            self.step_error = None
        self._notify()

    def on_terms(self, accepted: bool) -> None:
        self.terms_accepted = accepted
        if accepted and self.step_error == messages.ACCEPT_TERMS:
            self.step_error = None
            self.errors.pop(CheckoutStep.REVIEW, None)
        self._notify()

    def on_marketing_opt_in(self, opted_in: bool) -> None:
        self.marketing_opt_in = opted_in

    def on_notes(self, notes: str) -> None:
        self.notes = notes

    # --- Discount codes -------------------------------------------------------

    def on_coupon_input(self, code: str) -> None:
        self._cart.set_coupon_code(code)
        self._notify()

    async def on_apply_coupon(self) -> bool:
        applied = await self._cart.apply_coupon()
        self._notify()
        return applied

    async def on_remove_coupon(self) -> bool:
        removed = await self._cart.remove_coupon()
        self._notify()
        return removed

    # --- Navigation -----------------------------------------------------------

    async def on_step_next(self) -> bool:
        """Validate the current step and move to the next one in the plan.

        On ``review`` this submits the order.  Returns True if the shopper
        left the step.
        """
        step = self._require_checking_out()
        if step is CheckoutStep.REVIEW:
            return await self.on_checkout_complete() is not None
        with self._working():
            advanced = await self._advance(self._generation)
        self._notify()
        return advanced

    def on_back(self) -> CheckoutStep | None:
        """Go to the nearest earlier step; back from the contact step exits."""
        step = self._require_checking_out()
        if step is CheckoutStep.CUSTOMER and self.auth.stage is AuthStage.OTP:
            self.auth.back_from_otp()
            self._notify()
            return step

        previous = self.plan.previous_before(step)
        if previous is None:
            self.exit_checkout()
            return None
        self._publish_step(EventKind.STEP_BACK, step, to_step=previous.analytics_name)
        self._go_to(previous)
        self._notify()
        return previous

    def edit_step(self, step: CheckoutStep) -> None:
        """Jump back to an earlier step, e.g. from the review summary."""
        current = self._require_checking_out()
        if self.plan.is_skipped(step):
            raise CheckoutStateError(f"Step '{step.value}' is not part of this checkout")
        if not self.plan.is_before(step, current):
            raise CheckoutStateError("Only earlier steps can be edited")
        self._go_to(step)
        self._notify()

    # --- Submission -----------------------------------------------------------

    async def on_checkout_complete(self) -> ResultState | None:
        """Submit the order from the review step.

        Returns the result state, or None when the order was not submitted
        (a step-scoped error explains why).
        """
        if self._require_checking_out() is not CheckoutStep.REVIEW:
            raise CheckoutStateError("Orders are submitted from the review step")
        if self._config.terms_mode is TermsMode.REQUIRED_CHECKBOX and not self.terms_accepted:
            self._set_step_error(messages.ACCEPT_TERMS, {"terms": messages.ACCEPT_TERMS})
            return None
        method = self.selected_method
        if method is None:
            self._set_step_error(messages.SELECT_PAYMENT_METHOD)
            return None

        with self._working():
            state = await self._submit(method)
        self._notify()
        return state

    async def _submit(self, method: PaymentMethod) -> ResultState | None:
        self.step_error = None
        generation = self._generation

        # Stock may have changed since the cart was last fetched
        try:
            cart = await self._cart.load()
        except ApiError as exc:
            if self._stale(generation, "cart re-check"):
                return None
            logger.warning("Cart re-check before submission failed: %s", exc.message)
            self.step_error = messages.describe_api_error(exc, messages.CHECKOUT_FAILED)
            return None
        if self._stale(generation, "cart re-check") or cart.is_empty:
            return None
        if cart.stock_problems:
            self.step_error = messages.STOCK_CHANGED
            return None
        if not await self._sync_drafts(CheckoutStep.REVIEW, generation):
            return None
        if self._stale(generation, "checkout data sync"):
            return None

        request = CheckoutRequest(
            gateway=method.gateway,
            manual_payment_method_id=method.manual_method_id,
            locale=self._config.locale,
            return_url=self._config.return_url,
            cancel_url=self._config.cancel_url,
            agree_to_terms=(
                self.terms_accepted
                if self._config.terms_mode is TermsMode.REQUIRED_CHECKBOX
                else None
            ),
            marketing_opt_in=self.marketing_opt_in or None,
            notes=self.notes.strip() or None,
        )
        try:
            submission = await self._api.checkout(request)
        except ApiError as exc:
            if self._stale(generation, "order submission"):
                return None
            if isinstance(exc, NetworkError) or exc.is_rate_limited:
                logger.warning("Order submission did not reach the store: %s", exc.message)
                self.step_error = messages.describe_api_error(exc, messages.CHECKOUT_FAILED)
                return None
            self._publish(EventKind.ERROR, step="review", error=exc.code or "checkout_failed")
            return self.results.record_failure(exc)
        if self._stale(generation, f"order {submission.order_id}"):
            return None

        state = await self.results.handle_submission(
            submission,
            customer_email=self.customer.email,
            customer_authenticated=self.auth.is_authenticated,
        )
        if state is ResultState.SUCCESS:
            await self._order_completed()
        return state

    # --- After the order ------------------------------------------------------

    def on_retry_payment(self) -> CheckoutStep:
        """Payment failed: go back to choose or retry payment."""
        self._require_checking_out()
        self.results.reset()
        target = CheckoutStep.REVIEW if self.payment_step_skipped else CheckoutStep.PAYMENT
        self._go_to(target)
        self._notify()
        return target

    async def on_back_to_cart(self) -> Cart:
        """Validation failure: return to the cart to fix it."""
        self.results.reset()
        if self.is_checking_out:
            self._leave("back_to_cart")
        cart = await self._cart.load()
        self._notify()
        return cart

    async def on_continue_shopping(self) -> Cart:
        self.results.reset()
        cart = await self._cart.load()
        self._notify()
        return cart

    async def on_check_order_status(self) -> ResultState:
        state = await self.results.check_status()
        if state is ResultState.SUCCESS:
            await self._order_completed()
        self._notify()
        return state

    async def on_create_account(self, password: str) -> bool:
        created = await self.results.create_account(password)
        self._notify()
        return created

    async def resume_payment_return(self, order_id: str | None) -> ResultState:
        """The shopper came back from the payment page."""
        cart = self._cart.cart
        if cart is None:
            cart = await self._cart.load()
        state = await self.results.resume_payment_return(order_id, cart)
        if state is ResultState.SUCCESS:
            await self._order_completed()
        self._notify()
        return state

    async def payment_cancelled(self) -> Cart:
        """The shopper cancelled on the payment page; the cart is intact."""
        self.results.reset()
        cart = await self._cart.load()
        self.step_error = messages.PAYMENT_CANCELLED
        self._notify()
        return cart

    # --- Internal helpers -----------------------------------------------------

    async def _advance(self, generation: int) -> bool:
        step = self.step
        errors = self._validate(step)
        if errors:
            self.errors[step] = errors
            return False
        self.errors.pop(step, None)
        self.step_error = None

        if step is CheckoutStep.CUSTOMER:
            email = self.customer.email.strip()
            classify = (
                self.auth.pending != "check"
                and not self.auth.is_authenticated
                and not self.auth.is_classified(email)
            )
            if classify:
                await self.auth.check(email)
                if generation != self._generation:
                    return False
            if self.auth.challenge_active:
                return False

        if step is CheckoutStep.PAYMENT:
            if self.selected_method is None:
                self._set_step_error(messages.SELECT_PAYMENT_METHOD)
                return False
        elif not await self._sync_drafts(step, generation):
            return False
        if generation != self._generation:
            logger.debug("Dropping advance from %s after navigation", step.value)
            return False

        target = self.plan.next_after(step)
        self._publish_step(EventKind.STEP_COMPLETED, step)
        self._go_to(target)
        return True

    def _validate(self, step: CheckoutStep) -> FieldErrors:
        if step is CheckoutStep.CUSTOMER:
            return validate_customer(self.customer, self._config, is_guest=self.is_guest)
        if step is CheckoutStep.SHIPPING:
            return validate_address(self.shipping_address)
        if step is CheckoutStep.BILLING:
            return validate_address(self.billing_address)
        return {}

    async def _after_authenticated(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._synced_fingerprint = None
        await self._load_saved_data(generation)
        if generation != self._generation or self.step is not CheckoutStep.CUSTOMER:
            return
        await self._advance(generation)

    async def _load_saved_data(self, generation: int) -> None:
        """Fill empty draft fields from what the server has saved.  Best effort."""
        try:
            saved = await self._api.get_checkout_data()
        except ApiError as exc:
            logger.warning("Saved checkout data unavailable: %s", exc.message)
            return
        if generation != self._generation:
            logger.debug("Ignoring saved checkout data loaded after navigation")
            return

        _fill_blanks(self.customer, saved.customer.to_payload())
        if saved.shipping_address is not None:
            _fill_blanks(self.shipping_address, saved.shipping_address.to_payload())
        if saved.billing_address is not None:
            _fill_blanks(self.billing_address, saved.billing_address.to_payload())
        self.same_as_billing = saved.same_as_billing

    async def _load_payment_methods(self) -> None:
        methods = await self._api.get_payment_methods()
        self.payment_methods = methods
        auto = methods.auto_select
        self.payment_step_skipped = auto is not None
        if auto is not None:
            self.selected_payment = auto.key
        elif all(method.key != self.selected_payment for method in methods.methods):
            self.selected_payment = None

    def _payload(self) -> tuple[CustomerData, AddressData | None, AddressData | None]:
        requires_shipping = self.plan.requires_shipping
        shipping = None
        if requires_shipping and self.shipping_address.is_complete:
            shipping = self.shipping_address.copy()
        if requires_shipping and self.same_as_billing:
            billing = shipping.copy() if shipping is not None else None
        elif self.billing_address.is_complete:
            billing = self.billing_address.copy()
        else:
            billing = None
        return replace(self.customer), shipping, billing

    async def _sync_drafts(self, step: CheckoutStep, generation: int) -> bool:
        """Push the drafts to the server unless they are unchanged since the last push.

        A rejection that arrives after the shopper has moved on is dropped.
        """
        customer, shipping, billing = self._payload()
        fingerprint = _fingerprint(customer, shipping, billing)
        if fingerprint == self._synced_fingerprint:
            logger.debug("Checkout data unchanged, not resending")
            return True
        try:
            await self._api.update_checkout_data(customer, shipping, billing)
        except ApiError as exc:
            if generation != self._generation:
                logger.debug("Ignoring checkout data rejection from %s after navigation", step.value)
                return False
            logger.warning("Checkout data rejected on %s: %s", step.value, exc.message)
            self._set_step_error(
                messages.describe_api_error(exc, messages.SAVE_DETAILS_FAILED),
                _field_errors(exc),
                step,
            )
            return False
        self._synced_fingerprint = fingerprint
        return True

    async def _order_completed(self) -> None:
        order_id = self.results.order_id
        if self.is_checking_out:
            self._leave("completed")
        self._reset_drafts()
        try:
            await self._cart.load()
        except ApiError as exc:
            logger.warning("Cart reload after order %s failed: %s", order_id, exc.message)
            previous = self._cart.cart
            self._cart.replace(Cart.empty(currency=previous.currency if previous else "USD"))

    def _go_to(self, step: CheckoutStep) -> None:
        if self.step is CheckoutStep.CUSTOMER and step is not CheckoutStep.CUSTOMER:
            self.auth.invalidate()
        self._generation += 1
        self.step = step
        self.step_error = None
        logger.info("Checkout step: %s", step.value)
        self._publish_step(EventKind.STEP_VIEWED, step)

    def _leave(self, reason: str) -> None:
        step = self.step
        self._generation += 1
        self.auth.invalidate()
        self.is_checking_out = False
        self.step = None
        logger.info("Checkout left (%s) at step %s", reason, step.value if step else None)
        self._publish(EventKind.CHECKOUT_EXITED, reason=reason)
        if reason != "completed" and step is not None:
            self._publish(EventKind.CHECKOUT_ABANDONED, step=step.analytics_name)

    def _reconcile_step(self) -> None:
        """Move off the current step if the plan no longer includes it."""
        if self.step is None or not self.plan.is_skipped(self.step):
            return
        target = self.plan.next_after(self.step) or self.plan.previous_before(self.step)
        self._go_to(target)

    def _on_cart_replaced(self, cart: Cart) -> None:
        if not self.is_checking_out:
            return
        if cart.is_empty:
            logger.info("Cart %s emptied during checkout", cart.id)
            self._leave("cart_empty")
            self.step_error = messages.CART_EMPTY
        else:
            self._reconcile_step()
        self._notify()

    @contextmanager
    def _working(self) -> Iterator[None]:
        if self.busy:
            raise RequestInFlightError("Another checkout action is still in progress")
        self.busy = True
        self._notify()
        try:
            yield
        finally:
            self.busy = False

    def _require_checking_out(self) -> CheckoutStep:
        if not self.is_checking_out or self.step is None:
            raise CheckoutStateError("Checkout has not been started")
        return self.step

    def _require_step(self, step: CheckoutStep) -> None:
        if self._require_checking_out() is not step:
            raise CheckoutStateError(f"Not available outside the '{step.value}' step")

    def _stale(self, generation: int, what: str) -> bool:
        if generation == self._generation:
            return False
        logger.debug("Dropping %s result after navigation", what)
        return True

    def _set_step_error(
        self,
        message: str,
        field_errors: FieldErrors | None = None,
        step: CheckoutStep | None = None,
    ) -> None:
        step = step or self.step
        self.step_error = message
        if field_errors:
            self.errors[step] = field_errors
        self._publish(EventKind.ERROR, step=step.analytics_name, error=message)
        self._notify()

    def _clear_field_errors(self, step: CheckoutStep, changes: dict[str, str | None]) -> None:
        errors = self.errors.get(step)
        if errors:
            for key in changes:
                errors.pop(key, None)

    def _auth_view(self) -> AuthView:
        auth = self.auth
        return AuthView(
            stage=auth.stage.value,
            email=auth.checked_email,
            busy=auth.busy,
            error=auth.error,
            otp_digits=auth.otp.digits,
            otp_focus=auth.otp.focus,
            can_load_saved_details=auth.can_load_saved_details,
        )

    def _publish_step(self, kind: EventKind, step: CheckoutStep, **extra) -> None:
        plan = self.plan
        number = plan.position(step) if not plan.is_skipped(step) else None
        self._publish(
            kind,
            step=step.analytics_name,
            step_number=number,
            total_steps=plan.total,
            **extra,
        )

    def _publish(self, kind: EventKind, **data) -> None:
        if self._events is not None:
            self._events.publish(CheckoutEvent(kind, data))

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in list(self._listeners):
            listener(view)


def _fill_blanks(draft: CustomerData | AddressData, saved: dict[str, str]) -> None:
    draft.merge({key: value for key, value in saved.items() if value and not getattr(draft, key)})


def _fingerprint(*parts: CustomerData | AddressData | None) -> tuple:
    return tuple(
        tuple(sorted(part.to_payload().items())) if part is not None else None
        for part in parts
    )


def _field_errors(exc: ApiError) -> FieldErrors:
    # Server keys may be prefixed, e.g. "shipping_address.postal_code"
    return {key.rsplit(".", 1)[-1]: message for key, message in exc.field_errors().items()}
