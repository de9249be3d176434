"""Run one asynchronous CLI action against a freshly wired storefront."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from storefront.infrastructure.bootstrap import Storefront, storefront

T = TypeVar("T")


def run(action: Callable[[Storefront], Awaitable[T]]) -> T:
    async def main() -> T:
        sf = storefront()
        try:
            return await action(sf)
        finally:
            await sf.close()

    return asyncio.run(main())
