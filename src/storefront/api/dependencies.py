from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, status

from storefront.core.config import Settings, get_settings
from storefront.core.security import TenantDep
from storefront.repositories.session_repository import SessionRepository
from storefront.services.export_service import ExportService
from storefront.services.query_cache import QueryCache
from storefront.services.shop_session import ShopSession, ShopSessionFactory


# Shared HTTP Client (Connection Pooling)
@lru_cache
def get_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(headers={"User-Agent": "StorefrontSync/1.0"})


# Singleton Query Cache, shared by all sessions of the process
_query_cache: QueryCache | None = None


def get_query_cache(settings: Settings = Depends(get_settings)) -> QueryCache:
    global _query_cache
    if _query_cache is None:
        _query_cache = QueryCache(
            gc_seconds=settings.cache_gc_seconds,
            retry_delay_seconds=settings.retry_delay_seconds,
            retry_delay_max_seconds=settings.retry_delay_max_seconds,
        )
    return _query_cache


# Singleton Session Repository
_session_repository: SessionRepository | None = None


def get_session_repository(settings: Settings = Depends(get_settings)) -> SessionRepository:
    global _session_repository
    if _session_repository is None:
        _session_repository = SessionRepository(idle_seconds=settings.session_idle_seconds)
    return _session_repository


def get_session_factory(
    client: httpx.AsyncClient = Depends(get_http_client),
    cache: QueryCache = Depends(get_query_cache),
    settings: Settings = Depends(get_settings),
) -> ShopSessionFactory:
    return ShopSessionFactory(http_client=client, cache=cache, settings=settings)


def get_shop_session(
    session_id: str,
    tenant_id: TenantDep,
    repository: SessionRepository = Depends(get_session_repository),
) -> ShopSession:
    session = repository.find(tenant_id, session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
    return session


def get_export_service() -> ExportService:
    return ExportService()


SessionDep = Annotated[ShopSession, Depends(get_shop_session)]
SessionRepositoryDep = Annotated[SessionRepository, Depends(get_session_repository)]
SessionFactoryDep = Annotated[ShopSessionFactory, Depends(get_session_factory)]
ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]
