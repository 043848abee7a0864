from typing import NoReturn

from fastapi import APIRouter, HTTPException, status

from storefront.api.dependencies import SessionDep
from storefront.domain.models import AddToCartRequest, CartLine, QuantityUpdate, QueryResult
from storefront.domain.ports import StorefrontError, UnauthorizedError

router = APIRouter(prefix="/sessions/{session_id}/cart", tags=["Cart"])


def _raise_http(error: StorefrontError) -> NoReturn:
    if isinstance(error, UnauthorizedError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(error))
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))


@router.get("/", response_model=QueryResult[list[CartLine]])
async def get_cart(session: SessionDep) -> QueryResult[list[CartLine]]:
    return await session.cart_lines()


@router.post("/items", response_model=CartLine, status_code=status.HTTP_201_CREATED)
async def add_to_cart(session: SessionDep, payload: AddToCartRequest) -> CartLine:
    """
    Optimistic add: the cart cache is updated before the storefront answers
    and rolled back if the storefront rejects the request.
    """
    try:
        return await session.mutations.add_to_cart(payload.product_id, payload.quantity)
    except StorefrontError as e:
        _raise_http(e)


@router.patch("/items/{line_id}", response_model=CartLine)
async def update_cart_line(session: SessionDep, line_id: str, payload: QuantityUpdate) -> CartLine:
    try:
        return await session.mutations.update_quantity(line_id, payload.quantity)
    except StorefrontError as e:
        _raise_http(e)


@router.delete("/items/{line_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_cart_line(session: SessionDep, line_id: str) -> None:
    try:
        await session.mutations.remove_line(line_id)
    except StorefrontError as e:
        _raise_http(e)


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(session: SessionDep) -> None:
    try:
        await session.mutations.clear_cart()
    except StorefrontError as e:
        _raise_http(e)
