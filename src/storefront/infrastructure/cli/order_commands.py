"""CLI commands for submitted orders."""

from __future__ import annotations

import click

from storefront.application.dto import ResultView
from storefront.domain.exceptions import ApiError, DomainException
from storefront.domain.model.order import FailureKind, OrderDetails, ResultState
from storefront.infrastructure.cli.cart_commands import display_cart
from storefront.infrastructure.cli.runner import run


def display_order(order: OrderDetails) -> None:
    """Shared formatting for displaying an order."""
    number = order.order_number or order.order_id
    click.echo(f"Order #{number}  (status={order.status or 'unknown'})")
    if order.customer_email:
        click.echo(f"Email:   {order.customer_email}")
    if order.payment_method:
        click.echo(f"Payment: {order.payment_method}")
    click.echo()

    click.echo(f"  {'Product':<30} {'Qty':>5} {'Total':>12}")
    click.echo(f"  {'-'*49}")
    for item in order.items:
        name = f"{item.name} ({item.variant_name})" if item.variant_name else item.name
        click.echo(f"  {name:<30} {item.quantity:>5} {str(item.subtotal):>12}")
    click.echo(f"  {'-'*49}")

    totals = order.totals
    click.echo(f"  {'Subtotal':<36} {str(totals.subtotal):>12}")
    if totals.discount is not None and totals.discount.is_positive:
        click.echo(f"  {'Discount':<36} {totals.discount.negated_display():>12}")
    if totals.shipping is not None:
        click.echo(f"  {'Shipping':<36} {str(totals.shipping):>12}")
    if totals.tax is not None and not order.tax_inclusive:
        click.echo(f"  {order.tax_label:<36} {str(totals.tax):>12}")
    click.echo(f"  {'Order Total':<36} {str(totals.total):>12}")
    if totals.tax is not None and order.tax_inclusive:
        click.echo(f"  Includes {totals.tax} {order.tax_label}")


def display_result(result: ResultView | None) -> None:
    """Shared formatting for the outcome of a checkout."""
    if result is None:
        return
    if result.state is ResultState.SUCCESS:
        click.echo("Thank you! Your order has been placed.")
        if result.offline_payment:
            click.echo("Your order will be processed once payment is received.")
        if result.order is not None:
            click.echo()
            display_order(result.order)
        elif result.order_id:
            click.echo(f"Order reference: {result.order_id}")
    elif result.state is ResultState.PENDING:
        if result.redirect_url:
            click.echo("Complete your payment here:")
            click.echo(f"  {result.redirect_url}")
            click.echo("Then run 'storefront order return' to see your order.")
        else:
            click.echo(f"Order {result.order_id} is awaiting payment confirmation.")
    elif result.state is ResultState.FAILURE:
        title = (
            "Please review your cart"
            if result.failure_kind is FailureKind.VALIDATION
            else "Payment failed"
        )
        click.echo(title)
        for line in result.messages:
            click.echo(f"  - {line}")
    else:
        for line in result.messages:
            click.echo(line)
    if result.notice:
        click.echo()
        click.echo(result.notice)


@click.command("show")
@click.option("--id", "order_id", required=True, help="Order ID to display.")
def order_show(order_id: str) -> None:
    """Show details of a submitted order."""

    async def action(sf):
        return await sf.api.get_order(order_id)

    try:
        order = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    display_order(order)


@click.command("status")
@click.option("--id", "order_id", required=True, help="Order ID to check.")
def order_status(order_id: str) -> None:
    """Show the payment status of an order."""

    async def action(sf):
        return await sf.api.get_order_status(order_id)

    try:
        report = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    payment = f", payment={report.payment_status}" if report.payment_status else ""
    click.echo(f"Order {order_id}: status={report.status}{payment}")


@click.command("return")
@click.option("--id", "order_id", default=None, help="Order ID from the payment page; defaults to the pending order.")
@click.option("--cancelled", is_flag=True, default=False, help="The payment was cancelled.")
def order_return(order_id: str | None, cancelled: bool) -> None:
    """Resume after returning from an external payment page."""

    async def action(sf):
        if cancelled:
            await sf.checkout.payment_cancelled()
            sf.remember_pending_order(None)
            return sf.checkout.view()
        state = await sf.checkout.resume_payment_return(order_id or sf.session.pending_order_id)
        if state is ResultState.SUCCESS:
            sf.start_new_cart()
        return sf.checkout.view()

    try:
        view = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    if cancelled:
        click.echo(view.step_error)
        click.echo()
        display_cart(view.cart)
    else:
        display_result(view.result)
