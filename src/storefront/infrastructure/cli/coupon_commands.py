"""CLI commands for discount codes."""

from __future__ import annotations

import click

from storefront.domain.exceptions import ApiError, DomainException
from storefront.infrastructure.cli.cart_commands import display_cart
from storefront.infrastructure.cli.runner import run


@click.command("apply")
@click.argument("code")
def coupon_apply(code: str) -> None:
    """Apply a discount code to the cart."""

    async def action(sf):
        applied = await sf.cart.apply_coupon(code)
        return applied, sf.cart.coupon_error, sf.cart.summary

    try:
        applied, error, summary = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    if not applied:
        raise click.ClickException(error or "The discount code could not be applied.")
    click.echo(f"Discount code {code.strip()} applied.")
    click.echo()
    display_cart(summary)


@click.command("remove")
def coupon_remove() -> None:
    """Remove the discount code from the cart."""

    async def action(sf):
        removed = await sf.cart.remove_coupon()
        return removed, sf.cart.coupon_error, sf.cart.summary

    try:
        removed, error, summary = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    if not removed:
        raise click.ClickException(error or "The discount could not be removed.")
    click.echo("Discount removed.")
    click.echo()
    display_cart(summary)
