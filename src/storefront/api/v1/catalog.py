from fastapi import APIRouter, HTTPException, status
from fastapi.responses import StreamingResponse

from storefront.api.dependencies import ExportServiceDep, SessionDep
from storefront.domain.models import (
    Category,
    FilterSet,
    FilterUpdate,
    Product,
    QueryResult,
    SessionState,
)

router = APIRouter(prefix="/sessions/{session_id}", tags=["Catalog"])


@router.put("/filters", response_model=SessionState)
async def replace_filters(session: SessionDep, payload: FilterSet) -> SessionState:
    """
    Ersetzt das komplette FilterSet. Der Katalog wird erst nach Ablauf des
    Debounce-Fensters neu geladen.
    """
    session.filters.set(payload)
    return session.state()


@router.patch("/filters", response_model=SessionState)
async def update_filters(session: SessionDep, payload: FilterUpdate) -> SessionState:
    session.filters.update(**payload.changes())
    return session.state()


@router.get("/products", response_model=QueryResult[list[Product]])
async def list_products(session: SessionDep) -> QueryResult[list[Product]]:
    """Catalog for the debounced filters. Check `status`: loading, error or success."""
    return await session.products()


@router.post("/products/refresh", response_model=QueryResult[list[Product]])
async def refresh_products(session: SessionDep) -> QueryResult[list[Product]]:
    """Reloads the visible catalog page and marks the other cached pages stale."""
    return await session.refresh_products()


@router.get("/products/export")
async def export_products(
    session: SessionDep, export_service: ExportServiceDep
) -> StreamingResponse:
    result = await session.products()
    if result.data is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=result.error or "Catalog not available.",
        )
    return StreamingResponse(
        export_service.generate_csv(result.data),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="products.csv"'},
    )


@router.get("/categories", response_model=QueryResult[list[Category]])
async def list_categories(session: SessionDep) -> QueryResult[list[Category]]:
    return await session.catalog.fetch_categories()
