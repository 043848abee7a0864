from __future__ import annotations

from collections.abc import Callable

from storefront.domain.models import FilterSet


class FilterStateHolder:
    """
    Holds the current FilterSet of one shop session.
    Every change is handed to `on_change` (normally the debouncer).
    """

    def __init__(
        self,
        initial: FilterSet | None = None,
        on_change: Callable[[FilterSet], None] | None = None,
    ) -> None:
        self._filters = initial or FilterSet()
        self._on_change = on_change

    @property
    def current(self) -> FilterSet:
        return self._filters

    def set(self, filters: FilterSet) -> FilterSet:
        """Replaces the whole FilterSet."""
        self._filters = filters
        if self._on_change is not None:
            self._on_change(filters)
        return filters

    def update(self, **changes: str) -> FilterSet:
        return self.set(self._filters.merge(**changes))

    def reset(self) -> FilterSet:
        return self.set(FilterSet())
