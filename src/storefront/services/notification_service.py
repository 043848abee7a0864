from __future__ import annotations

import asyncio
import logging
from collections import deque

import httpx

from storefront.domain.models import Notification, NotificationVariant

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Toast notifications of one shop session, kept in a bounded history until
    the client drains them. Destructive toasts can additionally be forwarded
    to an ntfy-style webhook.
    """

    def __init__(
        self,
        history: int = 50,
        http_client: httpx.AsyncClient | None = None,
        webhook_url: str | None = None,
    ) -> None:
        self._toasts: deque[Notification] = deque(maxlen=history)
        self._http_client = http_client
        self._webhook_url = webhook_url
        self._tasks: set[asyncio.Task[None]] = set()

    def notify(
        self,
        title: str,
        message: str,
        variant: NotificationVariant = NotificationVariant.DEFAULT,
    ) -> Notification:
        toast = Notification(title=title, message=message, variant=variant)
        self._toasts.append(toast)
        if variant is NotificationVariant.DESTRUCTIVE:
            self._forward(toast)
        return toast

    def drain(self) -> list[Notification]:
        toasts = list(self._toasts)
        self._toasts.clear()
        return toasts

    def __len__(self) -> int:
        return len(self._toasts)

    def _forward(self, toast: Notification) -> None:
        if self._http_client is None or not self._webhook_url:
            return
        # Fire and forget
        task = asyncio.create_task(self._perform_send(self._http_client, self._webhook_url, toast))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _perform_send(
        client: httpx.AsyncClient, url: str, toast: Notification
    ) -> None:
        try:
            await client.post(
                url,
                content=toast.message,
                headers={"Title": toast.title},
                timeout=10.0,
            )
        except httpx.HTTPError:
            logger.exception("Failed to forward notification to %s", url)
