# src/storefront/core/security.py
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from storefront.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=True)


async def get_tenant_id(
    api_key: str = Security(_API_KEY_HEADER),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Resolves the storefront tenant (e.g. "eur") that owns the gateway API key.
    Unknown keys are rejected with HTTP 401.
    """
    tenant_id = settings.api_keys.get(api_key)
    if tenant_id is None:
        logger.warning("Rejected request with unknown API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key.",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    return tenant_id


TenantDep = Annotated[str, Security(get_tenant_id)]
