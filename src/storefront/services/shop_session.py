# src/storefront/services/shop_session.py
from __future__ import annotations

import asyncio
import logging
import uuid

import httpx

from storefront.adapters.storefront_http import StorefrontHttpAdapter
from storefront.core.config import Settings
from storefront.domain.models import (
    CartLine,
    FilterSet,
    Product,
    QueryResult,
    SessionCreate,
    SessionState,
    TenantContext,
)
from storefront.domain.ports import StorefrontPort
from storefront.services.cart_mutations import CartMutationService
from storefront.services.cart_service import CartService
from storefront.services.catalog_service import CatalogService
from storefront.services.debouncer import Debouncer
from storefront.services.filter_state import FilterStateHolder
from storefront.services.notification_service import NotificationService
from storefront.services.query_cache import QueryCache

logger = logging.getLogger(__name__)


class ShopSession:
    """
    One shop page instance: owns its filters, debouncer, pending markers and
    toasts, while catalog and cart data live in the shared query cache.

    Filter edits flow FilterStateHolder -> Debouncer -> catalog fetch.
    """

    def __init__(
        self,
        session_id: str,
        tenant: TenantContext,
        storefront: StorefrontPort,
        cache: QueryCache,
        settings: Settings,
        notifier: NotificationService | None = None,
        initial_filters: FilterSet | None = None,
    ) -> None:
        self.session_id = session_id
        self.tenant = tenant
        self._settings = settings
        self.notifications = notifier or NotificationService(history=settings.notification_history)

        self.catalog = CatalogService(
            storefront,
            cache,
            tenant,
            stale_seconds=settings.catalog_stale_seconds,
            retries=settings.catalog_retries,
            categories_stale_seconds=settings.categories_stale_seconds,
        )
        self.cart = CartService(
            storefront,
            cache,
            tenant,
            stale_seconds=settings.cart_stale_seconds,
            retries=settings.cart_retries,
        )
        self.mutations = CartMutationService(
            storefront,
            cache,
            cart=self.cart,
            catalog=self.catalog,
            notifier=self.notifications,
            on_unauthorized=self._schedule_login_redirect,
        )

        self._debouncer: Debouncer[FilterSet] = Debouncer(
            settings.debounce_seconds, self._on_filters_settled
        )
        self.filters = FilterStateHolder(initial_filters, on_change=self._debouncer.push)
        self.debounced_filters = self.filters.current

        self.redirect_to: str | None = None
        self._redirect_handle: asyncio.TimerHandle | None = None
        self._closed = False

    async def start(self) -> None:
        """Initial load, like a page mount: catalog for the initial filters plus the cart."""
        await asyncio.gather(
            self.catalog.fetch_products(self.debounced_filters),
            self.cart.fetch_cart(),
        )

    async def products(self) -> QueryResult[list[Product]]:
        return await self.catalog.fetch_products(self.debounced_filters)

    async def refresh_products(self) -> QueryResult[list[Product]]:
        self.catalog.invalidate_products()
        return await self.catalog.refetch_products(self.debounced_filters)

    async def cart_lines(self) -> QueryResult[list[CartLine]]:
        return await self.cart.fetch_cart()

    async def on_reconnect(self) -> QueryResult[list[CartLine]]:
        # Cart only, the catalog keeps its freshness window
        return await self.cart.refetch_cart()

    async def settle_filters(self) -> None:
        """Waits until debounced catalog fetches triggered so far have finished."""
        await self._debouncer.drain()

    def close(self) -> None:
        """Unmount: stops future filter emissions and the pending login redirect.
        In-flight requests keep running and still land in the shared cache."""
        self._closed = True
        self._debouncer.close()
        if self._redirect_handle is not None:
            self._redirect_handle.cancel()
            self._redirect_handle = None

    def state(self) -> SessionState:
        return SessionState(
            session_id=self.session_id,
            tenant_id=self.tenant.tenant_id,
            user_id=self.tenant.user_id,
            filters=self.filters.current,
            debounced_filters=self.debounced_filters,
            pending_product_ids=self.mutations.pending_product_ids,
            mutation_state=self.mutations.state,
            last_mutation_outcome=self.mutations.last_outcome,
            cart_item_count=self.cart.item_count(),
            redirect_to=self.redirect_to,
            unread_notifications=len(self.notifications),
        )

    async def _on_filters_settled(self, filters: FilterSet) -> None:
        self.debounced_filters = filters
        logger.debug("Session %s: filters settled %s", self.session_id, filters.query_params())
        await self.catalog.fetch_products(filters)

    def _schedule_login_redirect(self) -> None:
        if self._closed or self._redirect_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._redirect_handle = loop.call_later(
            self._settings.unauthorized_redirect_delay_seconds, self._redirect_to_login
        )

    def _redirect_to_login(self) -> None:
        self._redirect_handle = None
        self.redirect_to = self._settings.login_path
        logger.info("Session %s: storefront session expired, redirecting to login", self.session_id)


class ShopSessionFactory:
    """Builds sessions on top of the process-wide HTTP client and query cache."""

    def __init__(
        self, http_client: httpx.AsyncClient, cache: QueryCache, settings: Settings
    ) -> None:
        self._http_client = http_client
        self._cache = cache
        self._settings = settings

    def create(self, tenant_id: str, payload: SessionCreate) -> ShopSession:
        tenant = TenantContext(
            tenant_id=tenant_id, user_id=payload.user_id, auth_token=payload.auth_token
        )
        adapter = StorefrontHttpAdapter(
            http_client=self._http_client,
            base_url=self._settings.storefront_base_url,
            tenant=tenant,
            timeout=self._settings.storefront_timeout_seconds,
        )
        notifier = NotificationService(
            history=self._settings.notification_history,
            http_client=self._http_client if self._settings.webhook_enabled else None,
            webhook_url=self._settings.webhook_url,
        )
        return ShopSession(
            session_id=uuid.uuid4().hex,
            tenant=tenant,
            storefront=adapter,
            cache=self._cache,
            settings=self._settings,
            notifier=notifier,
            initial_filters=payload.filters,
        )
