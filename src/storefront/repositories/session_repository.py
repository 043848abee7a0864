# src/storefront/repositories/session_repository.py
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storefront.services.shop_session import ShopSession

logger = logging.getLogger(__name__)


class SessionRepository:
    """
    In-memory storage for live shop sessions, isolated by tenant_id.

    Sessions are ephemeral like the page instances they stand for: nothing
    survives a process restart. Sessions nobody looked up for longer than
    `idle_seconds` are closed and dropped, like unmounted pages.
    """

    def __init__(self, idle_seconds: float = 1800) -> None:
        self._idle_seconds = idle_seconds
        self._sessions: dict[tuple[str, str], ShopSession] = {}
        self._last_accessed: dict[tuple[str, str], float] = {}

    def save(self, session: ShopSession) -> None:
        now = time.time()
        self.evict_idle(now)
        key = (session.tenant.tenant_id, session.session_id)
        self._sessions[key] = session
        self._last_accessed[key] = now

    def find(self, tenant_id: str, session_id: str) -> ShopSession | None:
        now = time.time()
        self.evict_idle(now)
        key = (tenant_id, session_id)
        session = self._sessions.get(key)
        if session is not None:
            self._last_accessed[key] = now
        return session

    def delete(self, tenant_id: str, session_id: str) -> ShopSession | None:
        self._last_accessed.pop((tenant_id, session_id), None)
        return self._sessions.pop((tenant_id, session_id), None)

    def all(self) -> list[ShopSession]:
        return list(self._sessions.values())

    def evict_idle(self, now: float | None = None) -> list[ShopSession]:
        now = time.time() if now is None else now
        expired = [
            key
            for key, accessed in self._last_accessed.items()
            if (now - accessed) > self._idle_seconds
        ]
        evicted = []
        for key in expired:
            del self._last_accessed[key]
            session = self._sessions.pop(key)
            session.close()
            evicted.append(session)
        if evicted:
            logger.debug("Evicted %d idle shop sessions", len(evicted))
        return evicted

    def __len__(self) -> int:
        return len(self._sessions)
