# src/storefront/services/cart_mutations.py
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from storefront.core.metrics import CART_MUTATIONS
from storefront.domain.models import CartLine, MutationState, NotificationVariant
from storefront.domain.ports import StorefrontError, StorefrontPort, UnauthorizedError
from storefront.services.cart_reducers import (
    apply_optimistic_add,
    apply_quantity_update,
    apply_remove,
    reconcile_line,
)
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.notification_service import NotificationService
from storefront.services.query_cache import QueryCache

logger = logging.getLogger(__name__)

R = TypeVar("R")
CartUpdater = Callable[[list[CartLine] | None], list[CartLine] | None]


class CartMutationService:
    """
    Optimistic cart mutations.

    Each mutation runs the same cycle against the cart cache entry:
    cancel in-flight cart fetch -> snapshot -> optimistic functional write ->
    mark pending -> request -> reconcile (success) or restore snapshot
    (failure). The pending marker is released exactly once in every outcome.
    Mutations are never retried and different mutations are not serialized.
    """

    def __init__(
        self,
        storefront: StorefrontPort,
        cache: QueryCache,
        cart: CartService,
        catalog: CatalogService,
        notifier: NotificationService,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self._storefront = storefront
        self._cache = cache
        self._cart = cart
        self._catalog = catalog
        self._notifier = notifier
        self._on_unauthorized = on_unauthorized
        self._pending: Counter[str] = Counter()
        self._in_flight = 0
        self.last_outcome: MutationState = MutationState.IDLE

    @property
    def state(self) -> MutationState:
        return MutationState.PENDING if self._in_flight else MutationState.IDLE

    @property
    def pending_product_ids(self) -> list[str]:
        return sorted(self._pending)

    def is_pending(self, product_id: str) -> bool:
        return product_id in self._pending

    async def add_to_cart(self, product_id: str, quantity: int = 1) -> CartLine:
        product = self._catalog.find_product(product_id)

        def optimistic(current: list[CartLine] | None) -> list[CartLine] | None:
            known_line = any(line.product_id == product_id for line in current or [])
            if product is None and not known_line:
                # Nothing to synthesize a line from; wait for the server
                return current
            return apply_optimistic_add(current, product_id, quantity, product)

        return await self._mutate(
            "add",
            pending_id=product_id,
            optimistic=optimistic,
            request=lambda: self._storefront.add_to_cart(product_id, quantity),
            reconcile=reconcile_line,
            success=("Added to cart", "Product added to your cart successfully."),
            failure_message="Failed to add item to cart.",
        )

    async def update_quantity(self, line_id: str, quantity: int) -> CartLine:
        return await self._mutate(
            "update",
            pending_id=self._product_of(line_id),
            optimistic=lambda current: apply_quantity_update(current, line_id, quantity),
            request=lambda: self._storefront.update_cart_line(line_id, quantity),
            reconcile=reconcile_line,
            success=("Updated", "Quantity updated successfully"),
            failure_message="Failed to update quantity. Please try again.",
        )

    async def remove_line(self, line_id: str) -> None:
        line = self._line(line_id)
        name = line.product.name if line and line.product else "Item"
        await self._mutate(
            "remove",
            pending_id=self._product_of(line_id),
            optimistic=lambda current: apply_remove(current, line_id),
            request=lambda: self._storefront.remove_cart_line(line_id),
            reconcile=None,
            success=("Removed", f"{name} removed from cart"),
            failure_message="Failed to remove item. Please try again.",
        )

    async def clear_cart(self) -> None:
        count = len(self._cache.get_data(self._cart.key) or [])
        await self._mutate(
            "clear",
            pending_id=None,
            optimistic=lambda current: [],
            request=self._storefront.clear_cart,
            reconcile=None,
            success=("Cart Cleared", f"{count} items removed from cart"),
            failure_message="Failed to clear cart. Please try again.",
        )

    # ------------------------------------------------------------------
    # Gemeinsamer Mutations-Zyklus
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        kind: str,
        *,
        pending_id: str | None,
        optimistic: CartUpdater,
        request: Callable[[], Awaitable[R]],
        reconcile: Callable[[list[CartLine] | None, Any], list[CartLine]] | None,
        success: tuple[str, str],
        failure_message: str,
    ) -> R:
        key = self._cart.key
        await self._cache.cancel(key)
        snapshot = self._cache.snapshot(key)
        self._cache.set_data(key, optimistic)

        if pending_id is not None:
            self._pending[pending_id] += 1
        self._in_flight += 1
        try:
            result = await request()
        except Exception as e:
            self._cache.restore(key, snapshot)
            self._settle_failure(kind, e, failure_message)
            raise
        else:
            if reconcile is not None:
                self._cache.set_data(key, lambda current: reconcile(current, result))
            CART_MUTATIONS.labels(kind=kind, outcome="success").inc()
            self.last_outcome = MutationState.SETTLED_SUCCESS
            self._notifier.notify(*success)
            return result
        finally:
            self._in_flight -= 1
            if pending_id is not None:
                self._pending[pending_id] -= 1
                if self._pending[pending_id] <= 0:
                    del self._pending[pending_id]

    def _settle_failure(self, kind: str, error: Exception, failure_message: str) -> None:
        CART_MUTATIONS.labels(kind=kind, outcome="rollback").inc()
        self.last_outcome = MutationState.SETTLED_FAILURE

        if isinstance(error, UnauthorizedError):
            logger.info("Cart %s rejected: storefront session expired", kind)
            self._notifier.notify(
                "Unauthorized",
                "You are logged out. Logging in again...",
                NotificationVariant.DESTRUCTIVE,
            )
            if self._on_unauthorized is not None:
                self._on_unauthorized()
            return

        if isinstance(error, StorefrontError):
            logger.warning("Cart %s failed, rolled back: %s", kind, error)
        else:
            logger.exception("Cart %s crashed, rolled back", kind)
        self._notifier.notify("Error", failure_message, NotificationVariant.DESTRUCTIVE)

    def _line(self, line_id: str) -> CartLine | None:
        lines: list[CartLine] = self._cache.get_data(self._cart.key) or []
        return next((line for line in lines if line.id == line_id), None)

    def _product_of(self, line_id: str) -> str:
        line = self._line(line_id)
        return line.product_id if line else line_id
