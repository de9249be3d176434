"""Interactive checkout: a terminal rendering of the checkout wizard.

Each step reads the controller's view, prompts for input, dispatches the
matching intents and asks the controller to continue.  The controller
decides where that leads.
"""

from __future__ import annotations

import click

from storefront.application.auth_flow import AuthStage
from storefront.application.checkout_controller import CheckoutController
from storefront.application.dto import CheckoutView
from storefront.domain.exceptions import ApiError, DomainException, ValidationError
from storefront.domain.model.checkout import AddressData, CheckoutStep
from storefront.domain.model.order import ResultState
from storefront.infrastructure.cli.cart_commands import display_cart
from storefront.infrastructure.cli.order_commands import display_result
from storefront.infrastructure.cli.runner import run

ADDRESS_FIELDS = (
    ("name", "Full name"),
    ("line1", "Address line 1"),
    ("line2", "Address line 2"),
    ("city", "City"),
    ("state", "State / region"),
    ("postal_code", "Postal code"),
    ("country", "Country code (e.g. US)"),
)


def _ask(label: str, current: str = "") -> str:
    return click.prompt(label, default=current, show_default=bool(current)).strip()


def _navigate() -> str:
    return click.prompt(
        "[c]ontinue, [b]ack or [q]uit",
        type=click.Choice(["c", "b", "q"]),
        default="c",
        show_choices=False,
    )


def _show_header(view: CheckoutView) -> None:
    click.echo()
    click.echo(f"== {view.title}  (step {view.step_number} of {view.step_total}) ==")


def _show_problems(view: CheckoutView) -> None:
    if view.step_error:
        click.echo(click.style(view.step_error, fg="red"))
    for field, message in view.errors.items():
        click.echo(click.style(f"  {field}: {message}", fg="red"))


async def _customer_step(ctl: CheckoutController) -> str:
    view = ctl.view()
    email = _ask("Email", view.customer.email)
    ctl.on_customer_change({"email": email})
    await ctl.on_check_email()

    while ctl.auth.challenge_active or ctl.auth.can_load_saved_details:
        auth = ctl.view().auth
        if auth.error:
            click.echo(click.style(auth.error, fg="red"))
        stage = ctl.auth.stage
        if stage is AuthStage.PASSWORD:
            password = click.prompt(
                "Password (leave blank to continue as guest)",
                default="",
                show_default=False,
                hide_input=True,
            )
            if not password:
                ctl.on_dismiss_auth()
            else:
                await ctl.on_password_login(password)
        elif stage is AuthStage.OTP:
            code = click.prompt(
                f"Code sent to {auth.email} ('r' to resend, blank to go back)",
                default="",
                show_default=False,
            ).strip()
            if not code:
                ctl.on_back()
            elif code.lower() == "r":
                await ctl.on_resend_code()
            else:
                await ctl.on_otp_paste(code)
        elif click.confirm("We found your details. Send a code to load them?", default=False):
            await ctl.on_request_code()
        else:
            ctl.on_dismiss_auth()
        if ctl.step is not CheckoutStep.CUSTOMER:
            # Signing in advanced the wizard
            return "advanced"

    if ctl.is_guest:
        view = ctl.view()
        ctl.on_customer_change({
            "first_name": _ask("First name", view.customer.first_name),
            "last_name": _ask("Last name", view.customer.last_name),
            "phone": _ask("Phone (optional)", view.customer.phone),
        })
    return _navigate()


def _address_changes(current: AddressData) -> dict[str, str]:
    return {field: _ask(label, getattr(current, field)) for field, label in ADDRESS_FIELDS}


async def _shipping_step(ctl: CheckoutController) -> str:
    view = ctl.view()
    ctl.on_shipping_change(_address_changes(view.shipping_address))
    ctl.on_same_as_billing(
        click.confirm("Use this address for billing?", default=view.same_as_billing)
    )
    return _navigate()


async def _billing_step(ctl: CheckoutController) -> str:
    ctl.on_billing_change(_address_changes(ctl.view().billing_address))
    return _navigate()


async def _payment_step(ctl: CheckoutController) -> str:
    view = ctl.view()
    if not view.payment_methods:
        click.echo("No payment methods are available for this store.")
        return "q"
    for index, method in enumerate(view.payment_methods, start=1):
        marker = "*" if method.key == view.selected_payment else " "
        description = f"  {method.description}" if method.description else ""
        click.echo(f" {marker} {index}. {method.name}{description}")
    choice = click.prompt(
        "Payment method",
        type=click.IntRange(1, len(view.payment_methods)),
        default=1,
    )
    ctl.on_select_payment(view.payment_methods[choice - 1].key)
    return _navigate()


async def _review_step(ctl: CheckoutController) -> str:
    view = ctl.view()
    display_cart(view.cart)
    click.echo()
    click.echo(f"Contact:  {view.customer.email}")
    if view.requires_shipping:
        ship = view.shipping_address
        click.echo(f"Ship to:  {ship.line1}, {ship.city} {ship.postal_code} {ship.country}")
    method = next(
        (m for m in view.payment_methods if m.key == view.selected_payment), None
    )
    if method is not None:
        click.echo(f"Payment:  {method.name}")
    click.echo()
    ctl.on_terms(click.confirm("I agree to the terms and conditions", default=True))
    return click.prompt(
        "[p]lace order, [b]ack or [q]uit",
        type=click.Choice(["p", "b", "q"]),
        default="p",
        show_choices=False,
    )


_STEPS = {
    CheckoutStep.CUSTOMER: _customer_step,
    CheckoutStep.SHIPPING: _shipping_step,
    CheckoutStep.BILLING: _billing_step,
    CheckoutStep.PAYMENT: _payment_step,
    CheckoutStep.REVIEW: _review_step,
}


async def _offer_account(ctl: CheckoutController) -> None:
    result = ctl.results.view()
    if result is None or not result.can_create_account:
        return
    if not click.confirm("Create an account to track your order?", default=False):
        return
    while not ctl.results.account_created:
        password = click.prompt("Password", hide_input=True, confirmation_prompt=True)
        try:
            if await ctl.on_create_account(password):
                click.echo("Your account has been created.")
                return
        except ValidationError as exc:
            click.echo(click.style(str(exc), fg="red"))
            continue
        click.echo(click.style(ctl.results.account_error or "", fg="red"))
        if not click.confirm("Try again?", default=True):
            return


async def _walk(sf) -> CheckoutView:
    ctl = sf.checkout
    await ctl.start_checkout()

    while ctl.is_checking_out and not ctl.results.active:
        view = ctl.view()
        _show_header(view)
        _show_problems(view)

        choice = await _STEPS[view.step](ctl)
        if choice == "q":
            ctl.exit_checkout()
        elif choice == "b":
            ctl.on_back()
        elif choice == "p":
            await ctl.on_checkout_complete()
        elif choice == "c":
            await ctl.on_step_next()

        result = ctl.results.view()
        if result is not None and result.state is ResultState.FAILURE:
            display_result(result)
            if click.confirm("Try again?", default=True):
                ctl.on_retry_payment()
            else:
                await ctl.on_back_to_cart()

    result = ctl.results.view()
    if result is not None:
        if result.state is ResultState.PENDING and result.redirect_url:
            sf.remember_pending_order(result.order_id)
        elif result.state is ResultState.SUCCESS:
            sf.start_new_cart()
            await _offer_account(ctl)
    return ctl.view()


@click.command("checkout")
def checkout() -> None:
    """Walk through checkout for the current cart."""
    try:
        view = run(_walk)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    if view.result is not None:
        click.echo()
        display_result(view.result)
    elif view.step_error:
        click.echo(view.step_error)
    else:
        click.echo("Checkout closed. Your cart has been kept.")
