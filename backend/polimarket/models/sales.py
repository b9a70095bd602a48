from __future__ import annotations

from ..extensions import db
from polimarket.time_utils import to_utc_z


SALE_PROCESSED = "PROCESSED"
SALE_CANCELLED = "CANCELLED"


class Sale(db.Model):
    """
    Sale header.

    LIFECYCLE: PROCESSED -> CANCELLED. A sale row is written only after
    every line's stock exit has been applied, so there is no persisted
    pending state. Rows are never deleted.

    All amounts in cents. At creation total_cents == subtotal_cents + tax_cents;
    afterwards discounts reduce total_cents and accumulate in discount_cents.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_seller_sold_at", "seller_code", "sold_at"),
        db.Index("ix_sales_customer_sold_at", "customer_id", "sold_at"),
    )

    id = db.Column(db.String(36), primary_key=True)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    customer_id = db.Column(db.String(50), db.ForeignKey("customers.id"), nullable=False)
    seller_code = db.Column(db.String(20), db.ForeignKey("sellers.code"), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_PROCESSED, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "SaleLine",
        backref="sale",
        order_by="SaleLine.line_number",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "sold_at": to_utc_z(self.sold_at),
            "customer_id": self.customer_id,
            "seller_code": self.seller_code,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancel_reason": self.cancel_reason,
            "created_by": self.created_by,
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """Individual line items on a sale. Immutable once written."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "line_number", name="uq_sale_lines_sale_line_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.String(50), db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    # EXIT movement that took this line's stock
    movement_id = db.Column(db.Integer, db.ForeignKey("inventory_movements.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "line_number": self.line_number,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
            "movement_id": self.movement_id,
        }
