from __future__ import annotations

from enum import Enum

from ..extensions import db
from backoffice.time_utils import to_utc_z, utcnow


class PaymentStatus(str, Enum):
    """
    Order payment status.

    No transition table: staff may move an order from any status to any
    other (manual corrections are routine). Canceled and Completed are
    terminal by convention only.
    """
    PENDING = "Pending"
    PAID = "Paid"
    PARTIAL = "Partial"
    COMPLETED = "Completed"
    CANCELED = "Canceled"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


class Order(db.Model):
    """
    Order header (aggregate root).

    Totals are stored denormalized in cents:
    - discount_cents = manual_discount_cents + delivery_saving_cents
    - delivery_fee_cents is always 0; a waived delivery charge is booked as
      delivery_saving_cents instead
    - total_cents = max(0, subtotal_cents - discount_cents + delivery_fee_cents)
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_order_date", "order_date"),
        db.Index("ix_orders_status_date", "payment_status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Customer snapshot as typed on the order; customer_id links the directory entry
    customer_name = db.Column(db.String(200), nullable=True)
    customer_phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    payment_status = db.Column(db.String(16), nullable=False, default=PaymentStatus.PENDING.value)
    order_date = db.Column(db.DateTime, nullable=False, default=utcnow)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    manual_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_saving_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    delivery_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "address": self.address,
            "customer_id": self.customer_id,
            "payment_status": self.payment_status,
            "order_date": to_utc_z(self.order_date),
            "subtotal_cents": self.subtotal_cents,
            "manual_discount_cents": self.manual_discount_cents,
            "delivery_saving_cents": self.delivery_saving_cents,
            "discount_cents": self.discount_cents,
            "delivery_fee_cents": self.delivery_fee_cents,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """Line on an order. unit_price_cents is frozen at order time."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    variant = db.relationship("Variant")

    def to_dict(self) -> dict:
        variant = self.variant
        product = variant.product if variant else None
        return {
            "id": self.id,
            "order_id": self.order_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "unit_cost_cents": variant.effective_cost_cents if variant else None,
            "current_stock": variant.quantity_on_hand if variant else None,
            "product_id": product.id if product else None,
            "product_name": product.name if product else None,
            "size": variant.size if variant else None,
            "color": variant.color if variant else None,
        }


class SalesRecord(db.Model):
    """
    Recognized revenue row derived from an order line.

    Exists only while the order is Paid or Completed, and then mirrors the
    order's current items exactly. Rebuilt wholesale on every order change.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(50), nullable=False, default="Order")
    payment_status = db.Column(db.String(16), nullable=False)
    sale_date = db.Column(db.DateTime, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "sale_date": to_utc_z(self.sale_date),
        }


class OrderStatusLog(db.Model):
    """
    Append-only audit trail of payment status transitions.

    IMMUTABLE: rows are never updated or deleted. order_id is deliberately
    not a foreign key so entries outlive a deleted order.
    """
    __tablename__ = "order_status_logs"
    __table_args__ = (
        db.Index("ix_order_status_logs_order_changed", "order_id", "changed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, nullable=False, index=True)
    old_status = db.Column(db.String(16), nullable=True)
    new_status = db.Column(db.String(16), nullable=False, index=True)
    changed_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    changed_by = db.Column(db.String(100), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "changed_at": to_utc_z(self.changed_at),
            "changed_by": self.changed_by,
        }
