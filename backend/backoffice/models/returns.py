from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class SalesReturn(db.Model):
    """
    Customer return against an existing order.

    Returned units go straight back on the shelf; the order and its sales
    rows are left as they were.
    """
    __tablename__ = "sales_returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    reason = db.Column(db.String(500), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }


class SalesReturnItem(db.Model):
    __tablename__ = "sales_return_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sales_return_items_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("sales_returns.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    sales_return = db.relationship("SalesReturn", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
        }
