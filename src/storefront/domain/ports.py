# src/storefront/domain/ports.py
from abc import ABC, abstractmethod

from storefront.domain.models import CartLine, Category, FilterSet, Product


class StorefrontPort(ABC):
    """
    Abstrakte Schnittstelle zum Storefront-Backend (REST).
    Die Sync-Logik kennt ausschließlich dieses Interface; jeder Aufruf ist
    bereits an einen Tenant und Benutzer gebunden.
    """

    @abstractmethod
    async def fetch_products(self, filters: FilterSet) -> list[Product]:
        """
        Lädt die Produktliste für die übergebenen Filter.

        Raises:
            StorefrontTransportError: Netzwerkfehler.
            StorefrontApiError: Nicht-2xx Antwort oder unerwartetes Format.
        """
        ...

    @abstractmethod
    async def fetch_categories(self) -> list[Category]:
        ...

    @abstractmethod
    async def fetch_cart(self) -> list[CartLine]:
        ...

    @abstractmethod
    async def add_to_cart(self, product_id: str, quantity: int) -> CartLine:
        """Returns the created or updated server-confirmed cart line."""
        ...

    @abstractmethod
    async def update_cart_line(self, line_id: str, quantity: int) -> CartLine:
        ...

    @abstractmethod
    async def remove_cart_line(self, line_id: str) -> None:
        ...

    @abstractmethod
    async def clear_cart(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Custom Domain Exceptions
# ---------------------------------------------------------------------------


class StorefrontError(Exception):
    """Base class for every failure talking to the storefront backend."""

    def __init__(self, endpoint: str, detail: str):
        super().__init__(f"Storefront error on '{endpoint}': {detail}")
        self.endpoint = endpoint
        self.detail = detail

    @property
    def status_code(self) -> int | None:
        return None


class StorefrontTransportError(StorefrontError):
    """Network/transport failure, no HTTP response received."""


class StorefrontApiError(StorefrontError):
    def __init__(self, endpoint: str, status_code: int, detail: str):
        super().__init__(endpoint, f"HTTP {status_code}: {detail}")
        self._status_code = status_code

    @property
    def status_code(self) -> int:
        return self._status_code


class UnauthorizedError(StorefrontApiError):
    """Session expired or missing at the storefront (HTTP 401)."""

    def __init__(self, endpoint: str, detail: str = "Unauthorized"):
        super().__init__(endpoint, 401, detail)
