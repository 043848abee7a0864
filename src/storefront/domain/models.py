# src/storefront/domain/models.py
from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Storefront wire format is camelCase; Python attributes stay snake_case.
_WIRE_CONFIG = {"alias_generator": to_camel, "populate_by_name": True}

TEMP_ID_PREFIX = "temp-"

# ---------------------------------------------------------------------------
# Tenant / Auth Context
# ---------------------------------------------------------------------------


class TenantContext(BaseModel):
    """
    Read-only tenant/auth context, injected explicitly into every component
    that needs it instead of being looked up globally.
    """

    tenant_id: str = Field(description="Storefront partition, e.g. 'eur'")
    user_id: str
    auth_token: str | None = Field(default=None, repr=False, exclude=True)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class FilterSet(BaseModel):
    """
    User-chosen catalog filters. Empty string means "no constraint".
    Values are passed to the storefront uninterpreted (no client-side validation).
    """

    search: str = ""
    region: str = ""
    platform: str = ""
    price_min: str = ""
    price_max: str = ""
    stock_level: str = ""
    date_added: str = ""
    sku: str = ""

    model_config = {"frozen": True, **_WIRE_CONFIG}

    def merge(self, **changes: str) -> FilterSet:
        """Shallow merge: returns a new FilterSet with the given fields replaced."""
        return self.model_copy(update=changes)

    def query_params(self) -> dict[str, str]:
        return {k: v for k, v in self.model_dump(by_alias=True).items() if v}

    def cache_key(self) -> str:
        return self.model_dump_json()


class FilterUpdate(BaseModel):
    search: str | None = None
    region: str | None = None
    platform: str | None = None
    price_min: str | None = None
    price_max: str | None = None
    stock_level: str | None = None
    date_added: str | None = None
    sku: str | None = None

    model_config = _WIRE_CONFIG

    def changes(self) -> dict[str, str]:
        return self.model_dump(exclude_none=True)


class Product(BaseModel):
    """Server-owned catalog record. Never mutated client-side."""

    id: str
    sku: str | None = None
    name: str
    description: str | None = None
    price: Decimal
    region: str | None = None
    platform: str | None = None
    stock_count: int = 0
    image_url: str | None = None
    category_id: str | None = None

    model_config = {"frozen": True, **_WIRE_CONFIG}


class Category(BaseModel):
    id: str
    name: str
    parent_id: str | None = None

    model_config = {"frozen": True, **_WIRE_CONFIG}


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


class CartLine(BaseModel):
    id: str = Field(description="Durable server id, or 'temp-...' while optimistic")
    product_id: str
    quantity: int = Field(gt=0)
    # Denormalisierter Produkt-Snapshot
    product: Product | None = None

    model_config = {"frozen": True, **_WIRE_CONFIG}

    @property
    def is_pending(self) -> bool:
        return self.id.startswith(TEMP_ID_PREFIX)


class MutationState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    SETTLED_SUCCESS = "settled_success"
    SETTLED_FAILURE = "settled_failure"


# ---------------------------------------------------------------------------
# Query Cache View
# ---------------------------------------------------------------------------


class QueryStatus(StrEnum):
    LOADING = "loading"
    ERROR = "error"
    SUCCESS = "success"


class QueryResult(BaseModel, Generic[T]):
    """
    Snapshot of one query cache entry. `data` and `error` can both be set:
    a failed refetch keeps the last successful data visible.
    """

    data: T | None = None
    error: str | None = None
    error_status: int | None = None
    is_fetching: bool = False
    is_stale: bool = False
    updated_at: datetime | None = None

    model_config = _WIRE_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> QueryStatus:
        if self.error is not None:
            return QueryStatus.ERROR
        if self.data is None:
            return QueryStatus.LOADING
        return QueryStatus.SUCCESS

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_loading(self) -> bool:
        return self.data is None and self.is_fetching


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationVariant(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    title: str
    message: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = _WIRE_CONFIG


# ---------------------------------------------------------------------------
# API Request/Response Schemas
# ---------------------------------------------------------------------------


class SessionCreate(BaseModel):
    user_id: str = Field(min_length=1)
    auth_token: str | None = Field(default=None, description="Forwarded to the storefront")
    filters: FilterSet = Field(default_factory=FilterSet)

    model_config = _WIRE_CONFIG


class SessionState(BaseModel):
    session_id: str
    tenant_id: str
    user_id: str
    filters: FilterSet
    debounced_filters: FilterSet
    pending_product_ids: list[str]
    mutation_state: MutationState
    last_mutation_outcome: MutationState = MutationState.IDLE
    cart_item_count: int = 0
    redirect_to: str | None = None
    unread_notifications: int = 0

    model_config = _WIRE_CONFIG


class AddToCartRequest(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)

    model_config = _WIRE_CONFIG


class QuantityUpdate(BaseModel):
    quantity: int = Field(ge=1)

    model_config = _WIRE_CONFIG
