# tests/conftest.py
import json
from collections.abc import Generator

import httpx
import pytest
from fastapi.testclient import TestClient

import storefront.api.dependencies as _deps
from storefront.api.dependencies import get_http_client
from storefront.core.config import Settings, get_settings
from storefront.core.rate_limit import limiter
from storefront.main import app

PRODUCTS = [
    {
        "id": "P1",
        "sku": "WIN-PRO-1",
        "name": "Windows 11 Pro Key",
        "price": "10.00",
        "region": "EU",
        "platform": "Windows",
        "stockCount": 12,
        "categoryId": "os",
    },
    {
        "id": "P2",
        "sku": "KB-MAP-2",
        "name": "Keyboard Mapper License",
        "price": "25.50",
        "region": "GLOBAL",
        "platform": "macOS",
        "stockCount": 3,
        "categoryId": "tools",
    },
]


class FakeStorefront:
    """In-memory storefront backend, served to the gateway via httpx.MockTransport."""

    def __init__(self) -> None:
        self.products = [dict(p) for p in PRODUCTS]
        self.categories = [{"id": "os", "name": "Operating Systems"}]
        self.cart: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.fail_status: int | None = None
        self._next_line = 1

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, text="storefront unavailable")

        path = request.url.path
        if request.method == "GET" and path == "/api/products":
            search = request.url.params.get("search", "").lower()
            return httpx.Response(
                200, json=[p for p in self.products if search in p["name"].lower()]
            )
        if request.method == "GET" and path == "/api/categories":
            return httpx.Response(200, json=self.categories)
        if request.method == "GET" and path == "/api/cart":
            return httpx.Response(200, json=self.cart)
        if request.method == "POST" and path == "/api/cart":
            return httpx.Response(200, json=self._add(json.loads(request.content)))
        if request.method == "DELETE" and path == "/api/cart":
            self.cart.clear()
            return httpx.Response(204)
        if path.startswith("/api/cart/"):
            line_id = path.rsplit("/", 1)[-1]
            line = next((item for item in self.cart if item["id"] == line_id), None)
            if line is None:
                return httpx.Response(404, text="cart line not found")
            if request.method == "PATCH":
                line["quantity"] = json.loads(request.content)["quantity"]
                return httpx.Response(200, json=line)
            if request.method == "DELETE":
                self.cart.remove(line)
                return httpx.Response(204)
        return httpx.Response(404, text="not found")

    def _add(self, body: dict) -> dict:
        for line in self.cart:
            if line["productId"] == body["productId"]:
                line["quantity"] += body["quantity"]
                return line
        product = next(p for p in self.products if p["id"] == body["productId"])
        line = {
            "id": f"line-{self._next_line}",
            "productId": body["productId"],
            "quantity": body["quantity"],
            "product": product,
        }
        self._next_line += 1
        self.cart.append(line)
        return line


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        api_keys={"test-key-eur": "eur", "test-key-km": "km"},
        storefront_base_url="http://storefront.test",
        debounce_ms=20,
        catalog_retries=0,
        cart_retries=0,
        retry_delay_seconds=0,
        unauthorized_redirect_delay_seconds=0,
    )


@pytest.fixture
def storefront_backend() -> FakeStorefront:
    return FakeStorefront()


@pytest.fixture
def client(
    test_settings: Settings, storefront_backend: FakeStorefront
) -> Generator[TestClient, None, None]:
    # Fresh cache and session singletons per test: both hold asyncio state
    # bound to the event loop of the previous TestClient.
    _deps._query_cache = None
    _deps._session_repository = None
    limiter.reset()
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(storefront_backend.handler))
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_http_client] = lambda: http_client
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
        _deps._query_cache = None
        _deps._session_repository = None


@pytest.fixture
def eur_headers() -> dict[str, str]:
    return {"X-API-Key": "test-key-eur"}


@pytest.fixture
def session_id(client: TestClient, eur_headers: dict[str, str]) -> str:
    response = client.post("/api/v1/sessions/", json={"userId": "user-1"}, headers=eur_headers)
    assert response.status_code == 201
    return response.json()["sessionId"]
