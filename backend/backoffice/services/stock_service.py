# Overview: Stock ledger; the only code allowed to change Variant.quantity_on_hand.

"""
Stock Ledger Invariants (authoritative)

- Variant.quantity_on_hand is never negative.
- Only this module writes quantity_on_hand; new variants start at 0 and
  receive their opening stock through receive_stock().
- Callers run these functions inside services.concurrency.run_atomic; nothing
  here commits, so a failure anywhere in the unit of work undoes every
  adjustment made so far.
- reserve_stock validates every line before decrementing any of them.
- Variant rows are locked in ascending id order so two orders touching the
  same variants cannot deadlock each other.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import OrderItem, Variant
from .concurrency import lock_for_update


@dataclass(frozen=True)
class StockLine:
    variant_id: int
    quantity: int


def _quantities_by_variant(lines: Iterable) -> dict[int, int]:
    """Sum quantities per variant, keyed in ascending variant id (lock) order."""
    totals: dict[int, int] = {}
    for line in lines:
        totals[line.variant_id] = totals.get(line.variant_id, 0) + line.quantity
    return {variant_id: totals[variant_id] for variant_id in sorted(totals)}


def _load_variant_locked(variant_id: int) -> Variant:
    variant = lock_for_update(db.session.query(Variant).filter_by(id=variant_id)).first()
    if variant is None:
        raise NotFoundError("Variant not found", details={"variant_id": variant_id})
    return variant


def reserve_stock(lines: Iterable) -> dict[int, Variant]:
    """
    Decrement on-hand stock for every line, all or nothing.

    lines: objects with variant_id and quantity. Two lines for the same
    variant are checked against stock together.

    Returns the locked variants keyed by id so the caller can read prices.
    Raises NotFoundError for an unknown variant and InsufficientStockError
    if any variant is short; in both cases no quantity has been changed.
    """
    requested = _quantities_by_variant(lines)

    variants: dict[int, Variant] = {}
    shortages = []
    for variant_id, qty in requested.items():
        variant = _load_variant_locked(variant_id)
        variants[variant_id] = variant
        if qty > variant.quantity_on_hand:
            shortages.append({
                "variant_id": variant_id,
                "requested_quantity": qty,
                "on_hand": variant.quantity_on_hand,
            })

    if shortages:
        first = shortages[0]
        raise InsufficientStockError(
            first["variant_id"],
            available=first["on_hand"],
            requested=first["requested_quantity"],
            details={"items": shortages},
        )

    for variant_id, qty in requested.items():
        variants[variant_id].quantity_on_hand -= qty

    db.session.flush()
    return variants


def restock_variants(lines: Iterable) -> None:
    """Add quantities back to on-hand stock (order edits, deletes, returns)."""
    for variant_id, qty in _quantities_by_variant(lines).items():
        variant = _load_variant_locked(variant_id)
        variant.quantity_on_hand += qty
    db.session.flush()


def release_order_stock(order_id: int) -> list[OrderItem]:
    """
    Give back the stock held by an order's current items.

    Returns the items that were released so the caller can delete them
    without reading them again.
    """
    items = db.session.query(OrderItem).filter_by(order_id=order_id).all()
    restock_variants(items)
    return items


def receive_stock(variant_id: int, quantity: int) -> None:
    """Book incoming units (opening stock, deliveries) onto a variant."""
    if quantity < 0:
        raise ValidationError("quantity must be >= 0", details={"variant_id": variant_id})
    if quantity:
        restock_variants([StockLine(variant_id=variant_id, quantity=quantity)])
