"""CLI commands for the cart."""

from __future__ import annotations

import click

from storefront.domain.exceptions import ApiError, DomainException
from storefront.domain.model.cart import AddItemRequest
from storefront.domain.service.cart_display import CartSummary
from storefront.infrastructure.cli.runner import run


def display_cart(summary: CartSummary | None) -> None:
    """Shared formatting for displaying the cart."""
    if summary is None or not summary.items:
        click.echo("Your cart is empty.")
        return

    click.echo(f"Cart  ({summary.item_count} item(s))")
    click.echo()
    click.echo(f"  {'Item':<12} {'Product':<24} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*65}")
    for item in summary.items:
        name = f"{item.name} ({item.variant_name})" if item.variant_name else item.name
        limit = "  (max)" if item.at_stock_limit else ""
        click.echo(
            f"  {item.item_id:<12} {name:<24} {item.quantity:>5} "
            f"{item.unit_price:>10} {item.subtotal:>10}{limit}"
        )
    click.echo(f"  {'-'*65}")
    click.echo(f"  {'Subtotal':<43} {summary.subtotal:>21}")
    if summary.discount is not None:
        label = f"Discount ({summary.discount.code})"
        if summary.discount.description:
            label += f" {summary.discount.description}"
        click.echo(f"  {label:<43} {summary.discount.amount:>21}")
    click.echo(f"  {'Shipping':<43} {summary.shipping:>21}")
    click.echo(f"  {'Tax':<43} {summary.tax:>21}")
    if summary.estimated_total is not None:
        click.echo(f"  {'Estimated total':<43} {summary.estimated_total:>21}")
    if summary.note:
        click.echo()
        click.echo(summary.note)


@click.command("show")
def cart_show() -> None:
    """Show the current cart."""

    async def action(sf):
        await sf.cart.load()
        return sf.cart.summary

    try:
        summary = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    display_cart(summary)


@click.command("add")
@click.option("--product", "product_id", required=True, help="Product ID to add.")
@click.option("--variant", "variant_id", default=None, help="Variant ID, if the product has options.")
@click.option("--qty", "quantity", default=1, type=int, show_default=True, help="Quantity.")
def cart_add(product_id: str, variant_id: str | None, quantity: int) -> None:
    """Add a product to the cart."""

    async def action(sf):
        await sf.cart.add_item(AddItemRequest(product_id, variant_id, quantity))
        return sf.cart.summary

    try:
        summary = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    display_cart(summary)


@click.command("update")
@click.option("--item", "item_id", required=True, help="Cart item ID.")
@click.option("--qty", "quantity", required=True, type=int, help="New quantity.")
def cart_update(item_id: str, quantity: int) -> None:
    """Change the quantity of a cart item."""

    async def action(sf):
        await sf.cart.load()
        await sf.cart.update_quantity(item_id, quantity)
        return sf.cart.summary

    try:
        summary = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    display_cart(summary)


@click.command("remove")
@click.option("--item", "item_id", required=True, help="Cart item ID.")
def cart_remove(item_id: str) -> None:
    """Remove an item from the cart."""

    async def action(sf):
        await sf.cart.remove_item(item_id)
        return sf.cart.summary

    try:
        summary = run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    display_cart(summary)


@click.command("clear")
def cart_clear() -> None:
    """Remove every item from the cart."""

    async def action(sf):
        await sf.cart.clear()

    try:
        run(action)
    except (DomainException, ApiError) as exc:
        raise click.ClickException(str(exc))

    click.echo("Cart cleared.")
