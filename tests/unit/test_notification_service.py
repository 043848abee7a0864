# tests/unit/test_notification_service.py
import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from storefront.domain.models import NotificationVariant
from storefront.services.notification_service import NotificationService


def test_history_is_bounded_and_drained_once() -> None:
    service = NotificationService(history=2)

    service.notify("Added to cart", "one")
    service.notify("Added to cart", "two")
    service.notify("Added to cart", "three")

    assert len(service) == 2
    assert [n.message for n in service.drain()] == ["two", "three"]
    assert service.drain() == []


@pytest.mark.asyncio  # type: ignore[misc]
async def test_destructive_toast_is_forwarded_to_webhook() -> None:
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    service = NotificationService(http_client=mock_client, webhook_url="https://ntfy.sh/shop")

    service.notify("Success", "ignored")
    service.notify("Error", "Failed to add item to cart.", NotificationVariant.DESTRUCTIVE)
    await asyncio.sleep(0)

    mock_client.post.assert_awaited_once()
    args, kwargs = mock_client.post.call_args
    assert args[0] == "https://ntfy.sh/shop"
    assert kwargs["content"] == "Failed to add item to cart."
    assert kwargs["headers"] == {"Title": "Error"}


@pytest.mark.asyncio  # type: ignore[misc]
async def test_webhook_failure_is_logged_and_toast_kept(caplog: pytest.LogCaptureFixture) -> None:
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    mock_client.post.side_effect = httpx.ConnectError("unreachable")
    service = NotificationService(http_client=mock_client, webhook_url="https://ntfy.sh/shop")

    service.notify("Unauthorized", "You are logged out.", NotificationVariant.DESTRUCTIVE)
    await asyncio.sleep(0)

    assert "Failed to forward notification" in caplog.text
    assert len(service) == 1


def test_no_webhook_without_client() -> None:
    service = NotificationService(webhook_url="https://ntfy.sh/shop")

    toast = service.notify("Error", "boom", NotificationVariant.DESTRUCTIVE)

    assert toast.variant == NotificationVariant.DESTRUCTIVE
    assert len(service) == 1


@pytest.mark.asyncio  # type: ignore[misc]
async def test_no_webhook_without_url() -> None:
    mock_client = AsyncMock(spec=httpx.AsyncClient)
    service = NotificationService(http_client=mock_client, webhook_url="")

    service.notify("Error", "boom", NotificationVariant.DESTRUCTIVE)
    await asyncio.sleep(0)

    mock_client.post.assert_not_awaited()
    assert len(service) == 1
