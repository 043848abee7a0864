from __future__ import annotations

from storefront.domain.models import CartLine, QueryResult, TenantContext
from storefront.domain.ports import StorefrontPort
from storefront.services.query_cache import QueryCache, QueryKey


class CartService:
    """
    Cart query of one tenant/user. The cache entry behind `key` is the single
    source of truth that CartMutationService rewrites optimistically.
    """

    def __init__(
        self,
        storefront: StorefrontPort,
        cache: QueryCache,
        tenant: TenantContext,
        stale_seconds: float,
        retries: int,
    ) -> None:
        self._storefront = storefront
        self._cache = cache
        self._tenant = tenant
        self._stale_seconds = stale_seconds
        self._retries = retries

    @property
    def key(self) -> QueryKey:
        return ("cart", self._tenant.tenant_id, self._tenant.user_id)

    async def fetch_cart(self) -> QueryResult[list[CartLine]]:
        return await self._cache.fetch(
            self.key,
            self._storefront.fetch_cart,
            stale_seconds=self._stale_seconds,
            retries=self._retries,
        )

    async def refetch_cart(self) -> QueryResult[list[CartLine]]:
        return await self._cache.refetch(
            self.key,
            self._storefront.fetch_cart,
            stale_seconds=self._stale_seconds,
            retries=self._retries,
        )

    def item_count(self) -> int:
        lines: list[CartLine] = self._cache.get_data(self.key) or []
        return sum(line.quantity for line in lines)
