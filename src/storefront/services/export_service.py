# src/storefront/services/export_service.py
from __future__ import annotations

import csv
import io
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storefront.domain.models import Product

_HEADER = [
    "sku",
    "name",
    "region",
    "platform",
    "price",
    "stock_count",
    "category_id",
]


class ExportService:
    def generate_csv(self, products: list[Product]) -> Iterator[str]:
        """
        Generiert CSV-Daten für eine Produktliste (aktuelle Katalogansicht).
        Gibt einen Iterator zurück, der Zeile für Zeile als String liefert.
        """
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow(_HEADER)
        yield self._flush(output)

        for product in products:
            writer.writerow(
                [
                    product.sku or "",
                    product.name,
                    product.region or "",
                    product.platform or "",
                    str(product.price),
                    str(product.stock_count),
                    product.category_id or "",
                ]
            )
            yield self._flush(output)

    @staticmethod
    def _flush(output: io.StringIO) -> str:
        chunk = output.getvalue()
        output.seek(0)
        output.truncate(0)
        return chunk
