import logging

import click

from storefront.infrastructure.cli.cart_commands import (
    cart_add,
    cart_clear,
    cart_remove,
    cart_show,
    cart_update,
)
from storefront.infrastructure.cli.checkout_commands import checkout
from storefront.infrastructure.cli.coupon_commands import coupon_apply, coupon_remove
from storefront.infrastructure.cli.order_commands import order_return, order_show, order_status


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log API traffic and checkout events.")
def cli(verbose: bool) -> None:
    """Storefront: cart and checkout from the terminal"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.group()
def cart() -> None:
    """Manage the cart."""


@cli.group()
def coupon() -> None:
    """Apply or remove discount codes."""


@cli.group()
def order() -> None:
    """Look up submitted orders."""


# Register subcommands
cart.add_command(cart_add)
cart.add_command(cart_clear)
cart.add_command(cart_remove)
cart.add_command(cart_show)
cart.add_command(cart_update)
coupon.add_command(coupon_apply)
coupon.add_command(coupon_remove)
order.add_command(order_return)
order.add_command(order_show)
order.add_command(order_status)
cli.add_command(checkout)
