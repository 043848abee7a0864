# src/storefront/adapters/storefront_http.py
from __future__ import annotations

import logging
import time
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from storefront.core.metrics import EXTERNAL_API_COUNT, EXTERNAL_API_DURATION
from storefront.domain.models import CartLine, Category, FilterSet, Product, TenantContext
from storefront.domain.ports import (
    StorefrontApiError,
    StorefrontPort,
    StorefrontTransportError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class StorefrontHttpAdapter(StorefrontPort):
    """
    Adapter für die Storefront REST API.

    Kanonisches Antwortformat für Listen ist ein nacktes JSON-Array; ein
    `{"data": [...]}`-Envelope wird als API-Fehler behandelt.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        tenant: TenantContext,
        timeout: float = 10.0,
    ) -> None:
        self._client = http_client
        self._base_url = base_url.rstrip("/")
        self._tenant = tenant
        self._timeout = timeout

    async def fetch_products(self, filters: FilterSet) -> list[Product]:
        response = await self._request("GET", "/api/products", params=filters.query_params())
        return self._parse_list("/api/products", response, Product)

    async def fetch_categories(self) -> list[Category]:
        response = await self._request("GET", "/api/categories")
        return self._parse_list("/api/categories", response, Category)

    async def fetch_cart(self) -> list[CartLine]:
        response = await self._request("GET", "/api/cart")
        return self._parse_list("/api/cart", response, CartLine)

    async def add_to_cart(self, product_id: str, quantity: int) -> CartLine:
        response = await self._request(
            "POST",
            "/api/cart",
            json={
                "productId": product_id,
                "quantity": quantity,
                "tenantId": self._tenant.tenant_id,
            },
        )
        return self._parse_one("/api/cart", response, CartLine)

    async def update_cart_line(self, line_id: str, quantity: int) -> CartLine:
        path = f"/api/cart/{line_id}"
        response = await self._request(
            "PATCH", path, endpoint="/api/cart/{id}", json={"quantity": quantity}
        )
        return self._parse_one(path, response, CartLine)

    async def remove_cart_line(self, line_id: str) -> None:
        await self._request("DELETE", f"/api/cart/{line_id}", endpoint="/api/cart/{id}")

    async def clear_cart(self) -> None:
        await self._request("DELETE", "/api/cart")

    # ------------------------------------------------------------------
    # Private HTTP/Parsing-Logik
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "X-Tenant-Id": self._tenant.tenant_id}
        if self._tenant.auth_token:
            headers["Authorization"] = f"Bearer {self._tenant.auth_token}"
        return headers

    async def _request(
        self, method: str, path: str, endpoint: str | None = None, **kwargs: Any
    ) -> httpx.Response:
        # Metrics label: route template, not the concrete path
        endpoint = endpoint or path
        started = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                f"{self._base_url}{path}",
                headers=self._headers(),
                timeout=self._timeout,
                **kwargs,
            )
        except httpx.RequestError as e:
            EXTERNAL_API_COUNT.labels(endpoint=endpoint, status="error").inc()
            raise StorefrontTransportError(path, f"Connection error: {e}") from e
        finally:
            EXTERNAL_API_DURATION.labels(endpoint=endpoint).observe(time.perf_counter() - started)

        EXTERNAL_API_COUNT.labels(endpoint=endpoint, status=str(response.status_code)).inc()

        if response.status_code == 401:
            raise UnauthorizedError(path)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StorefrontApiError(path, response.status_code, response.text or str(e)) from e
        return response

    @staticmethod
    def _json(path: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            # e.g. an HTML fallback page with status 200
            raise StorefrontApiError(path, response.status_code, "invalid JSON body") from e

    @classmethod
    def _parse_list(cls, path: str, response: httpx.Response, model: type[M]) -> list[M]:
        payload = cls._json(path, response)
        if not isinstance(payload, list):
            raise StorefrontApiError(
                path, response.status_code, "expected a JSON array response body"
            )

        items = []
        for raw in payload:
            try:
                items.append(model.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed %s item from %s", model.__name__, path)
        return items

    @classmethod
    def _parse_one(cls, path: str, response: httpx.Response, model: type[M]) -> M:
        payload = cls._json(path, response)
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise StorefrontApiError(path, response.status_code, f"malformed body: {e}") from e
