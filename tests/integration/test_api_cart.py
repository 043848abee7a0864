# tests/integration/test_api_cart.py
import json
import time

from fastapi.testclient import TestClient

from conftest import FakeStorefront

BASE = "/api/v1/sessions"


def _cart(client: TestClient, session_id: str, headers: dict) -> list[dict]:
    return client.get(f"{BASE}/{session_id}/cart/", headers=headers).json()["data"]


def test_add_to_cart_and_increment(
    client: TestClient,
    eur_headers: dict[str, str],
    session_id: str,
    storefront_backend: FakeStorefront,
) -> None:
    response = client.post(
        f"{BASE}/{session_id}/cart/items",
        json={"productId": "P1", "quantity": 2},
        headers=eur_headers,
    )

    assert response.status_code == 201
    line = response.json()
    assert line["id"] == "line-1"
    assert line["productId"] == "P1"
    assert line["quantity"] == 2

    client.post(f"{BASE}/{session_id}/cart/items", json={"productId": "P1"}, headers=eur_headers)

    cart = _cart(client, session_id, eur_headers)
    assert [(l["id"], l["quantity"]) for l in cart] == [("line-1", 3)]
    assert cart[0]["product"]["name"] == "Windows 11 Pro Key"

    body = json.loads(storefront_backend.requests_to("POST", "/api/cart")[0].content)
    assert body == {"productId": "P1", "quantity": 2, "tenantId": "eur"}

    state = client.get(f"{BASE}/{session_id}", headers=eur_headers).json()
    assert state["cartItemCount"] == 3
    assert state["pendingProductIds"] == []
    assert state["lastMutationOutcome"] == "settled_success"


def test_update_and_remove_line(
    client: TestClient, eur_headers: dict[str, str], session_id: str
) -> None:
    client.post(f"{BASE}/{session_id}/cart/items", json={"productId": "P2"}, headers=eur_headers)

    response = client.patch(
        f"{BASE}/{session_id}/cart/items/line-1", json={"quantity": 5}, headers=eur_headers
    )
    assert response.status_code == 200
    assert response.json()["quantity"] == 5
    assert _cart(client, session_id, eur_headers)[0]["quantity"] == 5

    response = client.delete(f"{BASE}/{session_id}/cart/items/line-1", headers=eur_headers)
    assert response.status_code == 204
    assert _cart(client, session_id, eur_headers) == []


def test_clear_cart(
    client: TestClient, eur_headers: dict[str, str], session_id: str
) -> None:
    for product_id in ("P1", "P2"):
        client.post(
            f"{BASE}/{session_id}/cart/items", json={"productId": product_id}, headers=eur_headers
        )
    client.get(f"{BASE}/{session_id}/notifications", headers=eur_headers)

    response = client.delete(f"{BASE}/{session_id}/cart/", headers=eur_headers)

    assert response.status_code == 204
    assert _cart(client, session_id, eur_headers) == []
    toasts = client.get(f"{BASE}/{session_id}/notifications", headers=eur_headers).json()
    assert toasts[-1]["message"] == "2 items removed from cart"


def test_failed_add_rolls_back(
    client: TestClient,
    eur_headers: dict[str, str],
    session_id: str,
    storefront_backend: FakeStorefront,
) -> None:
    storefront_backend.fail_status = 500

    response = client.post(
        f"{BASE}/{session_id}/cart/items", json={"productId": "P1"}, headers=eur_headers
    )

    assert response.status_code == 502
    storefront_backend.fail_status = None
    assert _cart(client, session_id, eur_headers) == []
    state = client.get(f"{BASE}/{session_id}", headers=eur_headers).json()
    assert state["pendingProductIds"] == []
    assert state["lastMutationOutcome"] == "settled_failure"
    toasts = client.get(f"{BASE}/{session_id}/notifications", headers=eur_headers).json()
    assert toasts[-1] == {
        "title": "Error",
        "message": "Failed to add item to cart.",
        "variant": "destructive",
        "createdAt": toasts[-1]["createdAt"],
    }


def test_expired_storefront_session_redirects_to_login(
    client: TestClient,
    eur_headers: dict[str, str],
    session_id: str,
    storefront_backend: FakeStorefront,
) -> None:
    storefront_backend.fail_status = 401

    response = client.post(
        f"{BASE}/{session_id}/cart/items", json={"productId": "P1"}, headers=eur_headers
    )
    time.sleep(0.05)

    assert response.status_code == 401
    state = client.get(f"{BASE}/{session_id}", headers=eur_headers).json()
    assert state["redirectTo"] == "/auth"
    toasts = client.get(f"{BASE}/{session_id}/notifications", headers=eur_headers).json()
    assert toasts[-1]["title"] == "Unauthorized"


def test_invalid_quantity_is_rejected(
    client: TestClient, eur_headers: dict[str, str], session_id: str
) -> None:
    response = client.post(
        f"{BASE}/{session_id}/cart/items",
        json={"productId": "P1", "quantity": 0},
        headers=eur_headers,
    )

    assert response.status_code == 422


def test_unknown_session(client: TestClient, eur_headers: dict[str, str]) -> None:
    response = client.get(f"{BASE}/does-not-exist/cart/", headers=eur_headers)

    assert response.status_code == 404
