from __future__ import annotations

from ..extensions import db
from polimarket.time_utils import to_utc_z


MOVEMENT_ENTRY = "ENTRY"
MOVEMENT_EXIT = "EXIT"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_KINDS = (MOVEMENT_ENTRY, MOVEMENT_EXIT, MOVEMENT_ADJUSTMENT)


class Product(db.Model):
    """
    Product master data plus its current stock counter.

    STOCK OWNERSHIP:
    stock_quantity is written ONLY by inventory_service.apply_movement, through a
    conditional UPDATE keyed on (id, version_id). Never assign it from anywhere
    else: every change must produce exactly one InventoryMovement, so that
    the movement log reconciles to the counter at all times.

    min_stock / max_stock are informational thresholds used for alerts.
    Exceeding max_stock is never an error.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_active_name", "is_active", "name"),
    )

    id = db.Column(db.String(50), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(128), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=10)
    max_stock = db.Column(db.Integer, nullable=False, default=1000)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id!r} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price_cents": self.price_cents,
            "stock_quantity": self.stock_quantity,
            "min_stock": self.min_stock,
            "max_stock": self.max_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Immutable record of one stock change.

    quantity is the signed delta actually applied (EXIT rows are negative),
    so SUM(quantity) over a product's movements plus its opening stock equals
    the current stock_quantity.

    idempotency_key makes a movement safe to re-issue: the unique constraint
    guarantees a given key is applied at most once (used by cancellations
    and saga compensations so retries never double-restore stock).
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.UniqueConstraint("idempotency_key", name="uq_inventory_movements_idempotency_key"),
        db.Index("ix_inventory_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.String(50), db.ForeignKey("products.id"), nullable=False, index=True)

    kind = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    stock_before = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=False)

    # Free-form document reference (a sale id, a purchase order, ...). Not a
    # foreign key: a saga may reference a sale that was never persisted.
    reference_document = db.Column(db.String(64), nullable=True, index=True)
    idempotency_key = db.Column(db.String(128), nullable=True)

    actor = db.Column(db.String(64), nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "kind": self.kind,
            "quantity": self.quantity,
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
            "reason": self.reason,
            "reference_document": self.reference_document,
            "actor": self.actor,
            "occurred_at": to_utc_z(self.occurred_at),
        }
