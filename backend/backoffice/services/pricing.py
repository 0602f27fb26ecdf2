# Overview: Pure order-total arithmetic (integer cents, no database access).

"""
Delivery is never charged as a fee line: delivery_fee_cents is always 0.
When an order qualifies for free delivery and staff waive the charge, the
waived amount is booked as delivery_saving_cents, a second discount
component next to the manual discount.
"""

from __future__ import annotations

from dataclasses import dataclass

DELIVERY_FEE_CENTS = 0
DEFAULT_FREE_DELIVERY_MIN_QTY = 3


@dataclass(frozen=True)
class OrderTotals:
    subtotal_cents: int
    manual_discount_cents: int
    delivery_saving_cents: int
    discount_cents: int
    delivery_fee_cents: int
    total_cents: int

    def as_columns(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "manual_discount_cents": self.manual_discount_cents,
            "delivery_saving_cents": self.delivery_saving_cents,
            "discount_cents": self.discount_cents,
            "delivery_fee_cents": self.delivery_fee_cents,
            "total_cents": self.total_cents,
        }


def compute_totals(subtotal_cents: int, manual_discount_cents: int, delivery_saving_cents: int) -> OrderTotals:
    """total = max(0, subtotal - (manual_discount + delivery_saving) + 0)"""
    discount = manual_discount_cents + delivery_saving_cents
    total = max(0, subtotal_cents - discount + DELIVERY_FEE_CENTS)
    return OrderTotals(
        subtotal_cents=subtotal_cents,
        manual_discount_cents=manual_discount_cents,
        delivery_saving_cents=delivery_saving_cents,
        discount_cents=discount,
        delivery_fee_cents=DELIVERY_FEE_CENTS,
        total_cents=total,
    )


def is_free_delivery_eligible(total_quantity: int, threshold: int = DEFAULT_FREE_DELIVERY_MIN_QTY) -> bool:
    return total_quantity >= threshold


def compute_delivery_saving(
    total_quantity: int,
    delivery_charge_cents: int,
    waive: bool,
    threshold: int = DEFAULT_FREE_DELIVERY_MIN_QTY,
) -> int:
    """Waived delivery charge, or 0 when not waived or the order is too small."""
    if not waive or not is_free_delivery_eligible(total_quantity, threshold):
        return 0
    return max(0, delivery_charge_cents)


def lines_subtotal_cents(lines) -> int:
    return sum(line.quantity * line.unit_price_cents for line in lines)
