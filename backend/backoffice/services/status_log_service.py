# Overview: Append-only audit trail of order payment-status transitions.

from __future__ import annotations

from ..extensions import db
from ..models import OrderStatusLog
from backoffice.time_utils import utcnow


def append_status_log(
    order_id: int,
    old_status: str | None,
    new_status: str,
    changed_by: str | None = None,
) -> OrderStatusLog:
    """
    Record one status transition.

    Written in the caller's unit of work: a rolled-back order change leaves
    no log entry behind. Same-status transitions are logged too.
    """
    entry = OrderStatusLog(
        order_id=order_id,
        old_status=old_status,
        new_status=new_status,
        changed_at=utcnow(),
        changed_by=(changed_by or "").strip() or None,
    )
    db.session.add(entry)
    db.session.flush()
    return entry
