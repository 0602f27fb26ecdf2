"""
Order Service - order lifecycle over the stock ledger

Every mutation below is a single unit of work (concurrency.run_atomic):
stock, order header, order items, sales rows and the status log either all
change or none of them do. Validation happens before the unit of work opens.

Status changes are free-form: any PaymentStatus may follow any other.

KNOWN GAP: update_order() applies payload.payment_status and rebuilds sales
rows for it, but does not write a status log entry. Only
update_order_status() logs transitions. Kept as-is pending a product
decision.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Order, OrderItem, Variant
from ..validation import OrderInput, parse_order_payload, parse_status
from backoffice.time_utils import range_bounds
from .concurrency import lock_for_update, run_atomic
from .customer_service import upsert_customer
from .pricing import compute_totals, lines_subtotal_cents
from .sales_record_service import delete_sales_records, regenerate_sales_records
from .status_log_service import append_status_log
from .stock_service import release_order_stock, reserve_stock


def _parse(payload) -> OrderInput:
    if isinstance(payload, OrderInput):
        return payload
    return parse_order_payload(
        payload,
        free_delivery_min_qty=current_app.config.get("FREE_DELIVERY_MIN_QTY", 3),
    )


def _get_order_locked(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def _reserve_and_build_items(order_id: int, data: OrderInput) -> list[OrderItem]:
    """Reserve stock for the payload lines and insert them as OrderItems."""
    variants = reserve_stock(data.lines)

    items = []
    for line in data.lines:
        unit_price = line.unit_price_cents
        if unit_price is None:
            unit_price = variants[line.variant_id].effective_price_cents
        item = OrderItem(
            order_id=order_id,
            variant_id=line.variant_id,
            quantity=line.quantity,
            unit_price_cents=unit_price,
            line_total_cents=unit_price * line.quantity,
        )
        db.session.add(item)
        items.append(item)

    db.session.flush()
    return items


def _apply_header(order: Order, data: OrderInput, customer_id: int | None, items: list[OrderItem]) -> None:
    subtotal = data.subtotal_cents
    if subtotal is None:
        subtotal = lines_subtotal_cents(items)
    totals = compute_totals(subtotal, data.manual_discount_cents, data.delivery_saving_cents)

    order.customer_name = data.customer.name
    order.customer_phone = data.customer.phone
    order.address = data.customer.address
    order.customer_id = customer_id
    order.payment_status = data.payment_status
    order.order_date = data.order_date
    for column, value in totals.as_columns().items():
        setattr(order, column, value)


def _delete_items(items: list[OrderItem]) -> None:
    for item in items:
        db.session.delete(item)
    db.session.flush()


def create_order(payload, changed_by: str | None = None) -> Order:
    """
    Create an order, reserving stock for its lines.

    Fails with InsufficientStockError / NotFoundError without leaving any
    trace (no order, no customer, no stock change).
    """
    data = _parse(payload)

    def _op():
        customer_id = upsert_customer(data.customer.name, data.customer.phone, data.customer.address)

        order = Order(payment_status=data.payment_status, order_date=data.order_date)
        db.session.add(order)
        db.session.flush()

        items = _reserve_and_build_items(order.id, data)
        _apply_header(order, data, customer_id, items)
        db.session.flush()

        regenerate_sales_records(order.id, order.payment_status, order.order_date, items)
        append_status_log(order.id, None, order.payment_status, changed_by)
        return order

    return run_atomic(_op)


def update_order_status(order_id: int, new_status, changed_by: str | None = None) -> Order:
    """
    Change only the payment status.

    Stock is untouched. Sales rows are rebuilt from the stored items for the
    new status, and the transition is logged even when the status is unchanged.
    """
    status = parse_status(new_status)

    def _op():
        order = _get_order_locked(order_id)
        old_status = order.payment_status
        order.payment_status = status
        db.session.flush()

        items = db.session.query(OrderItem).filter_by(order_id=order.id).all()
        regenerate_sales_records(order.id, status, order.order_date, items)
        append_status_log(order.id, old_status, status, changed_by)
        return order

    return run_atomic(_op)


def update_order(order_id: int, payload) -> Order:
    """
    Replace an order's customer, status, date, lines and totals.

    Old lines are released back to stock before the new ones are reserved,
    so re-saving an order with the same lines never trips the stock check.
    All or nothing: a failed reservation also undoes the release.
    """
    data = _parse(payload)

    def _op():
        order = _get_order_locked(order_id)

        old_items = release_order_stock(order.id)
        _delete_items(old_items)
        delete_sales_records(order.id)

        customer_id = upsert_customer(data.customer.name, data.customer.phone, data.customer.address)

        items = _reserve_and_build_items(order.id, data)
        _apply_header(order, data, customer_id, items)
        db.session.flush()

        regenerate_sales_records(order.id, order.payment_status, order.order_date, items)
        return order

    return run_atomic(_op)


def delete_order(order_id: int) -> None:
    """
    Delete an order and give its stock back.

    Status log entries for the order are kept as history.
    """
    def _op():
        order = _get_order_locked(order_id)

        items = release_order_stock(order.id)
        _delete_items(items)
        delete_sales_records(order.id)

        db.session.delete(order)
        db.session.flush()

    run_atomic(_op)


def get_order(order_id: int) -> tuple[Order, list[OrderItem]]:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})

    items = (
        db.session.query(OrderItem)
        .filter_by(order_id=order_id)
        .order_by(OrderItem.id)
        .all()
    )
    return order, items


def list_recent_orders(limit: int = 20, range_name: str = "all", now: datetime | None = None) -> list[dict]:
    """
    Most recent orders first, each with its line count and total unit cost.

    range_name: today | yesterday | last7 | last30 | all
    """
    try:
        date_from, date_to = range_bounds(range_name, now)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"allowed": ["today", "yesterday", "last7", "last30", "all"]})

    q = db.session.query(Order)
    if date_from is not None:
        q = q.filter(Order.order_date >= date_from)
    if date_to is not None:
        q = q.filter(Order.order_date < date_to)
    orders = q.order_by(Order.order_date.desc(), Order.id.desc()).limit(limit).all()

    if not orders:
        return []

    order_ids = [o.id for o in orders]
    line_counts = dict(
        db.session.query(OrderItem.order_id, func.count(OrderItem.id))
        .filter(OrderItem.order_id.in_(order_ids))
        .group_by(OrderItem.order_id)
        .all()
    )

    total_costs: dict[int, int] = {}
    rows = (
        db.session.query(OrderItem.order_id, OrderItem.quantity, Variant)
        .join(Variant, Variant.id == OrderItem.variant_id)
        .filter(OrderItem.order_id.in_(order_ids))
        .all()
    )
    for oid, qty, variant in rows:
        total_costs[oid] = total_costs.get(oid, 0) + qty * variant.effective_cost_cents

    result = []
    for order in orders:
        data = order.to_dict()
        data["line_count"] = int(line_counts.get(order.id, 0))
        data["total_cost_cents"] = total_costs.get(order.id, 0)
        result.append(data)
    return result
