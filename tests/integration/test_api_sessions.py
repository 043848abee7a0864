# tests/integration/test_api_sessions.py
from fastapi.testclient import TestClient

from conftest import FakeStorefront

BASE = "/api/v1/sessions"


def test_create_session_loads_catalog_and_cart(
    client: TestClient, eur_headers: dict[str, str], storefront_backend: FakeStorefront
) -> None:
    response = client.post(
        f"{BASE}/",
        json={"userId": "user-1", "authToken": "tok-1", "filters": {"region": "EU"}},
        headers=eur_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["tenantId"] == "eur"
    assert body["userId"] == "user-1"
    assert body["filters"]["region"] == "EU"
    assert body["debouncedFilters"]["region"] == "EU"
    assert body["pendingProductIds"] == []
    assert body["mutationState"] == "idle"
    assert body["cartItemCount"] == 0
    assert "authToken" not in body

    products_call = storefront_backend.requests_to("GET", "/api/products")[0]
    assert products_call.url.params["region"] == "EU"
    assert products_call.headers["Authorization"] == "Bearer tok-1"
    assert products_call.headers["X-Tenant-Id"] == "eur"
    assert len(storefront_backend.requests_to("GET", "/api/cart")) == 1


def test_unknown_api_key_is_rejected(client: TestClient) -> None:
    response = client.post(f"{BASE}/", json={"userId": "user-1"}, headers={"X-API-Key": "nope"})

    assert response.status_code == 401


def test_sessions_are_tenant_scoped(client: TestClient, session_id: str) -> None:
    response = client.get(f"{BASE}/{session_id}", headers={"X-API-Key": "test-key-km"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Session not found."


def test_close_session(
    client: TestClient, eur_headers: dict[str, str], session_id: str
) -> None:
    assert client.get(f"{BASE}/{session_id}", headers=eur_headers).status_code == 200

    response = client.delete(f"{BASE}/{session_id}", headers=eur_headers)

    assert response.status_code == 204
    assert client.get(f"{BASE}/{session_id}", headers=eur_headers).status_code == 404


def test_reconnect_refetches_cart(
    client: TestClient,
    eur_headers: dict[str, str],
    session_id: str,
    storefront_backend: FakeStorefront,
) -> None:
    storefront_backend.cart.append({"id": "line-77", "productId": "P2", "quantity": 2})

    response = client.post(f"{BASE}/{session_id}/reconnect", headers=eur_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert [line["id"] for line in body["data"]] == ["line-77"]
    # Catalog is not refreshed on reconnect
    assert len(storefront_backend.requests_to("GET", "/api/products")) == 1


def test_failed_reconnect_keeps_last_cart(
    client: TestClient,
    eur_headers: dict[str, str],
    session_id: str,
    storefront_backend: FakeStorefront,
) -> None:
    storefront_backend.fail_status = 500

    response = client.post(f"{BASE}/{session_id}/reconnect", headers=eur_headers)

    body = response.json()
    assert response.status_code == 200
    assert body["status"] == "error"
    assert body["errorStatus"] == 500
    assert body["data"] == []


def test_notifications_are_drained(
    client: TestClient, eur_headers: dict[str, str], session_id: str
) -> None:
    client.post(
        f"{BASE}/{session_id}/cart/items", json={"productId": "P1"}, headers=eur_headers
    )

    first = client.get(f"{BASE}/{session_id}/notifications", headers=eur_headers)
    second = client.get(f"{BASE}/{session_id}/notifications", headers=eur_headers)

    assert [n["title"] for n in first.json()] == ["Added to cart"]
    assert first.json()[0]["variant"] == "default"
    assert second.json() == []


def test_health_and_metrics(client: TestClient, session_id: str) -> None:
    assert client.get("/healthz").json()["status"] == "ok"
    assert client.get("/readyz").json() == {"status": "ready"}

    metrics = client.get("/metrics").text
    assert "storefront_requests_total" in metrics
    assert "query_cache_misses_total" in metrics
