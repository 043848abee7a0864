from __future__ import annotations

from storefront.domain.models import Category, FilterSet, Product, QueryResult, TenantContext
from storefront.domain.ports import StorefrontPort
from storefront.services.query_cache import QueryCache, QueryKey


class CatalogService:
    """Catalog queries of one tenant, served through the shared query cache."""

    def __init__(
        self,
        storefront: StorefrontPort,
        cache: QueryCache,
        tenant: TenantContext,
        stale_seconds: float,
        retries: int,
        categories_stale_seconds: float | None = None,
    ) -> None:
        self._storefront = storefront
        self._cache = cache
        self._tenant = tenant
        self._stale_seconds = stale_seconds
        self._retries = retries
        self._categories_stale_seconds = (
            stale_seconds if categories_stale_seconds is None else categories_stale_seconds
        )

    def products_key(self, filters: FilterSet) -> QueryKey:
        return ("products", self._tenant.tenant_id, filters.cache_key())

    @property
    def categories_key(self) -> QueryKey:
        return ("categories", self._tenant.tenant_id)

    async def fetch_products(self, filters: FilterSet) -> QueryResult[list[Product]]:
        return await self._cache.fetch(
            self.products_key(filters),
            lambda: self._storefront.fetch_products(filters),
            stale_seconds=self._stale_seconds,
            retries=self._retries,
        )

    async def refetch_products(self, filters: FilterSet) -> QueryResult[list[Product]]:
        return await self._cache.refetch(
            self.products_key(filters),
            lambda: self._storefront.fetch_products(filters),
            stale_seconds=self._stale_seconds,
            retries=self._retries,
        )

    def invalidate_products(self) -> int:
        """Marks every cached catalog page of this tenant stale."""
        return self._cache.invalidate(("products", self._tenant.tenant_id))

    def find_product(self, product_id: str) -> Product | None:
        """Looks the product up in every cached catalog page of this tenant."""
        for _, products in self._cache.entries(("products", self._tenant.tenant_id)):
            for product in products:
                if product.id == product_id:
                    return product
        return None

    async def fetch_categories(self) -> QueryResult[list[Category]]:
        return await self._cache.fetch(
            self.categories_key,
            self._storefront.fetch_categories,
            stale_seconds=self._categories_stale_seconds,
            retries=self._retries,
        )
