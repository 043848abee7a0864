# src/storefront/api/v1/router.py
from fastapi import APIRouter

from storefront.api.v1 import cart, catalog, sessions

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(sessions.router)
api_router.include_router(catalog.router)
api_router.include_router(cart.router)
