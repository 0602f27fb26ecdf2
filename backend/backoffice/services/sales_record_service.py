# Overview: Derives revenue rows (sales table) from order lines.

"""
Revenue recognition: an order contributes sales rows only while it is Paid
or Completed. The rows are never edited in place; every order change deletes
them and, if the status still recognizes revenue, rebuilds them from the
order's current lines. Reporting reads this table; nothing else writes it.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from ..extensions import db
from ..models import PaymentStatus, SalesRecord

REVENUE_STATUSES = frozenset({PaymentStatus.PAID.value, PaymentStatus.COMPLETED.value})


def status_value(status) -> str:
    """Accept a PaymentStatus member or its string value."""
    return status.value if isinstance(status, PaymentStatus) else str(status)


def should_record_sales(status: str) -> bool:
    return status_value(status) in REVENUE_STATUSES


def delete_sales_records(order_id: int) -> None:
    for record in db.session.query(SalesRecord).filter_by(order_id=order_id).all():
        db.session.delete(record)
    db.session.flush()


def regenerate_sales_records(
    order_id: int,
    status: str,
    sale_date: datetime,
    items: Iterable,
) -> list[SalesRecord]:
    """
    Replace the order's sales rows.

    Always clears existing rows first, so calling it with a non-revenue
    status removes rows left over from an earlier Paid/Completed state.
    items: objects with variant_id, quantity, unit_price_cents.
    """
    delete_sales_records(order_id)

    if not should_record_sales(status):
        return []

    records = []
    for item in items:
        record = SalesRecord(
            order_id=order_id,
            variant_id=item.variant_id,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            payment_method="Order",
            payment_status=status_value(status),
            sale_date=sale_date,
        )
        db.session.add(record)
        records.append(record)

    db.session.flush()
    return records
