"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from storefront.application.cart_sync import CartSynchronizer
from storefront.application.checkout_controller import CheckoutController
from storefront.infrastructure.config import StorefrontSettings, get_settings
from storefront.infrastructure.events import LoggingEventPublisher
from storefront.infrastructure.http.storefront_client import HttpStorefrontApi
from storefront.infrastructure.persistence.json_session_store import (
    JsonSessionStore,
    Session,
)


@dataclass
class Storefront:
    """Everything one CLI invocation needs, wired together."""

    api: HttpStorefrontApi
    cart: CartSynchronizer
    checkout: CheckoutController
    session: Session
    session_store: JsonSessionStore

    def remember_pending_order(self, order_id: str | None) -> None:
        self.session.pending_order_id = order_id
        self.save_session()

    def start_new_cart(self) -> None:
        self.session_store.rotate_cart_token(self.session)
        self.api.cart_token = self.session.cart_token

    def save_session(self) -> None:
        self.session.access_token = self.api.auth_token
        self.session_store.save(self.session)

    async def close(self) -> None:
        self.save_session()
        await self.api.close()


def session_store(settings: StorefrontSettings) -> JsonSessionStore:
    return JsonSessionStore(settings.data_dir / "session.json")


def storefront(
    settings: StorefrontSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Storefront:
    settings = settings or get_settings()
    store = session_store(settings)
    session = store.load()
    if settings.cart_token:
        session.cart_token = settings.cart_token

    api = HttpStorefrontApi(
        settings.api_url,
        settings.publishable_key,
        cart_token=session.cart_token,
        locale=settings.locale,
        timeout=settings.request_timeout,
        transport=transport,
    )
    api.auth_token = session.access_token

    events = LoggingEventPublisher()
    cart = CartSynchronizer(api, events)
    checkout = CheckoutController(api, cart, events, settings.checkout_config())
    return Storefront(
        api=api,
        cart=cart,
        checkout=checkout,
        session=session,
        session_store=store,
    )
