# src/storefront/services/cart_reducers.py
"""
Pure cart reducers for optimistic updates.

Every function takes the current cart (or None when it was never loaded) and
returns a new list. Inputs are never mutated, so a snapshot taken before an
optimistic write stays valid for rollback.
"""
from __future__ import annotations

import uuid

from storefront.domain.models import TEMP_ID_PREFIX, CartLine, Product


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def apply_optimistic_add(
    current: list[CartLine] | None,
    product_id: str,
    quantity: int,
    product: Product | None,
    temp_id: str | None = None,
) -> list[CartLine]:
    """
    Increments the existing line of `product_id`, otherwise appends a
    temporary line carrying the product snapshot. Keeps at most one line per
    product, temporary or confirmed.
    """
    lines = list(current or [])
    for i, line in enumerate(lines):
        if line.product_id == product_id:
            lines[i] = line.model_copy(update={"quantity": line.quantity + quantity})
            return lines

    lines.append(
        CartLine(
            id=temp_id or new_temp_id(),
            product_id=product_id,
            quantity=quantity,
            product=product,
        )
    )
    return lines


def reconcile_line(current: list[CartLine] | None, confirmed: CartLine) -> list[CartLine]:
    """
    Replaces all lines of the confirmed product (the temporary one included)
    with the server-confirmed line, at the position of the first of them.
    """
    lines: list[CartLine] = []
    placed = False
    for line in current or []:
        if line.product_id != confirmed.product_id:
            lines.append(line)
        elif not placed:
            lines.append(_with_snapshot(confirmed, line.product))
            placed = True
    if not placed:
        lines.append(confirmed)
    return lines


def apply_quantity_update(
    current: list[CartLine] | None, line_id: str, quantity: int
) -> list[CartLine]:
    return [
        line.model_copy(update={"quantity": quantity}) if line.id == line_id else line
        for line in current or []
    ]


def apply_remove(current: list[CartLine] | None, line_id: str) -> list[CartLine]:
    return [line for line in current or [] if line.id != line_id]


def _with_snapshot(confirmed: CartLine, fallback: Product | None) -> CartLine:
    # Server responses do not always embed the product
    if confirmed.product is None and fallback is not None:
        return confirmed.model_copy(update={"product": fallback})
    return confirmed
