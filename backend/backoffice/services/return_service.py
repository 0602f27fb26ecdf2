"""
Sales Return Service

A return puts units back on the shelf against an existing order. It goes
through the stock ledger like every other stock change and is atomic: the
return header, its lines and the restock commit together.

The order itself, its lines and its sales rows are not modified.
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import NotFoundError
from ..extensions import db
from ..models import Order, SalesReturn, SalesReturnItem
from ..validation import ReturnInput, parse_return_payload
from .concurrency import run_atomic
from .stock_service import restock_variants


def create_sales_return(payload) -> SalesReturn:
    """
    Record a return and restock the returned variants.

    payload: {"order_id", "reason", "items": [{"variant_id", "quantity"}]}
    """
    data = payload if isinstance(payload, ReturnInput) else parse_return_payload(payload)

    def _op():
        order = db.session.get(Order, data.order_id)
        if order is None:
            raise NotFoundError("Invalid order_id (order not found)", details={"order_id": data.order_id})

        sales_return = SalesReturn(order_id=order.id, reason=data.reason)
        db.session.add(sales_return)
        db.session.flush()

        for line in data.lines:
            db.session.add(SalesReturnItem(
                return_id=sales_return.id,
                variant_id=line.variant_id,
                quantity=line.quantity,
            ))

        restock_variants(data.lines)
        return sales_return

    return run_atomic(_op)


def list_recent_returns(limit: int = 10) -> list[dict]:
    rows = (
        db.session.query(SalesReturn, func.count(SalesReturnItem.id))
        .outerjoin(SalesReturnItem, SalesReturnItem.return_id == SalesReturn.id)
        .group_by(SalesReturn.id)
        .order_by(SalesReturn.created_at.desc(), SalesReturn.id.desc())
        .limit(limit)
        .all()
    )

    result = []
    for sales_return, item_count in rows:
        data = sales_return.to_dict()
        data["item_count"] = int(item_count)
        result.append(data)
    return result
