from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Product(db.Model):
    """
    Catalog product (e.g. a shirt design).

    Prices live here as defaults; a Variant may override them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(200), nullable=False)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "created_at": to_utc_z(self.created_at),
        }


class Variant(db.Model):
    """
    A (product, size, color) stock-keeping unit.

    quantity_on_hand is mutated only by services/stock_service.py and can
    never go negative (enforced by a check constraint as well).
    """
    __tablename__ = "variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "size", "color", name="uq_variants_product_size_color"),
        db.CheckConstraint("quantity_on_hand >= 0", name="ck_variants_qty_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    size = db.Column(db.String(32), nullable=True)
    color = db.Column(db.String(64), nullable=True)

    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)

    # NULL means "use the product's price"
    selling_price_cents = db.Column(db.Integer, nullable=True)
    cost_price_cents = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("variants", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def effective_price_cents(self) -> int:
        if self.selling_price_cents is not None:
            return self.selling_price_cents
        return self.product.price_cents if self.product else 0

    @property
    def effective_cost_cents(self) -> int:
        if self.cost_price_cents is not None:
            return self.cost_price_cents
        if self.product and self.product.cost_price_cents is not None:
            return self.product.cost_price_cents
        return 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "size": self.size,
            "color": self.color,
            "quantity_on_hand": self.quantity_on_hand,
            "selling_price_cents": self.effective_price_cents,
            "cost_price_cents": self.effective_cost_cents,
            "version_id": self.version_id,
        }
