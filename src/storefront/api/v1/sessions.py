from fastapi import APIRouter, Request, status

from storefront.api.dependencies import SessionDep, SessionFactoryDep, SessionRepositoryDep
from storefront.core.rate_limit import SESSION_CREATE_LIMIT, limiter
from storefront.core.security import TenantDep
from storefront.domain.models import (
    CartLine,
    Notification,
    QueryResult,
    SessionCreate,
    SessionState,
)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.post("/", response_model=SessionState, status_code=status.HTTP_201_CREATED)
@limiter.limit(SESSION_CREATE_LIMIT)
async def create_session(
    request: Request,
    payload: SessionCreate,
    tenant_id: TenantDep,
    factory: SessionFactoryDep,
    repository: SessionRepositoryDep,
) -> SessionState:
    """
    Opens a shop session (one page instance) and loads catalog and cart.
    Storefront failures during the initial load show up in the query results,
    not as an error of this call.
    """
    session = factory.create(tenant_id, payload)
    repository.save(session)
    await session.start()
    return session.state()


@router.get("/{session_id}", response_model=SessionState)
async def get_session(session: SessionDep) -> SessionState:
    return session.state()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session: SessionDep, repository: SessionRepositoryDep) -> None:
    session.close()
    repository.delete(session.tenant.tenant_id, session.session_id)


@router.post("/{session_id}/reconnect", response_model=QueryResult[list[CartLine]])
async def reconnect(session: SessionDep) -> QueryResult[list[CartLine]]:
    """Network came back: refetch the cart (the catalog is left alone)."""
    return await session.on_reconnect()


@router.get("/{session_id}/notifications", response_model=list[Notification])
async def drain_notifications(session: SessionDep) -> list[Notification]:
    return session.notifications.drain()
