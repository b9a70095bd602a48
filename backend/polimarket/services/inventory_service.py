# Overview: Inventory ledger; the only writer of product stock and its movement log.

# backend/polimarket/services/inventory_service.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, InventoryMovement
from ..models.inventory import MOVEMENT_ENTRY, MOVEMENT_EXIT, MOVEMENT_ADJUSTMENT, MOVEMENT_KINDS
from ..errors import DomainError, ProductNotFound, InsufficientStock
from ..validation import ValidationError, MAX_QUANTITY
from polimarket.time_utils import utcnow, to_utc_z
from .concurrency import lock_for_update, begin_write, run_with_retry

logger = logging.getLogger(__name__)

"""
PoliMarket Inventory Invariants (authoritative)

Stock model:
- Product.stock_quantity is the current count; it is never negative
  (enforced here and by a CHECK constraint).
- Every change to stock_quantity produces exactly one InventoryMovement in
  the same DB transaction, with stock_before/stock_after snapshots.
- Therefore: stock_quantity == opening stock + SUM(movement.quantity).

Serialization:
- apply_movement() is the only writer. It reads the row, then issues
  UPDATE ... WHERE id = :id AND version_id = :seen (AND stock_quantity >= :qty
  for exits). Zero affected rows means another writer got there first; the
  whole read-modify-write is retried with a fresh read.
- On SQLite the transaction is opened with BEGIN IMMEDIATE; elsewhere the
  read uses SELECT ... FOR UPDATE. Different products never contend.

Movement kinds:
- EXIT: fails with InsufficientStock when quantity > stock; stock unchanged.
- ENTRY: always succeeds; exceeding max_stock only sets the overstock flag.
- ADJUSTMENT: sets stock to an absolute count (physical count correction).

Availability:
- There is no reservation scheme, so available stock == current stock.
"""

ALERT_OUT_OF_STOCK = "OUT_OF_STOCK"
ALERT_LOW_STOCK = "LOW_STOCK"
ALERT_OVERSTOCK = "OVERSTOCK"

_MOVEMENT_TYPE_ALIASES = {
    "entry": MOVEMENT_ENTRY,
    "exit": MOVEMENT_EXIT,
    "adjustment": MOVEMENT_ADJUSTMENT,
}


@dataclass(frozen=True)
class Availability:
    product_id: str
    product_name: str
    current_stock: int
    available_stock: int
    reserved_stock: int
    available_for_sale: bool
    status: str
    checked_at: datetime

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "current_stock": self.current_stock,
            "available_stock": self.available_stock,
            "reserved_stock": self.reserved_stock,
            "available_for_sale": self.available_for_sale,
            "status": self.status,
            "checked_at": to_utc_z(self.checked_at),
        }


@dataclass(frozen=True)
class MovementResult:
    movement_id: int
    product_id: str
    kind: str
    quantity: int
    stock_before: int
    stock_after: int
    overstock: bool = False
    replayed: bool = False

    def to_dict(self) -> dict:
        return {
            "movement_id": self.movement_id,
            "product_id": self.product_id,
            "kind": self.kind,
            "quantity": self.quantity,
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
            "overstock": self.overstock,
        }


@dataclass(frozen=True)
class StockAlert:
    product_id: str
    product_name: str
    kind: str
    current_stock: int
    min_stock: int
    max_stock: int
    message: str

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "kind": self.kind,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "max_stock": self.max_stock,
            "message": self.message,
        }


def _get_product(product_id: str, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    # Always refresh: another request may have moved stock since this
    # session last loaded the row.
    product = query.populate_existing().first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


def _availability(product: Product, requested_qty: int) -> Availability:
    stock = product.stock_quantity
    if not product.is_active:
        available, status = False, "INACTIVE"
    elif stock > 0 and stock >= requested_qty:
        available, status = True, "AVAILABLE"
    elif stock <= 0:
        available, status = False, "OUT_OF_STOCK"
    else:
        available, status = False, "INSUFFICIENT_STOCK"

    return Availability(
        product_id=product.id,
        product_name=product.name,
        current_stock=stock,
        available_stock=stock,
        reserved_stock=0,
        available_for_sale=available,
        status=status,
        checked_at=utcnow(),
    )


def check_availability(product_id: str, requested_qty: int) -> Availability:
    """Read-only stock check for a requested quantity."""
    if requested_qty < 0:
        raise ValidationError("requested quantity cannot be negative")
    return _availability(_get_product(product_id), requested_qty)


def get_current_stock(product_id: str) -> Availability:
    return _availability(_get_product(product_id), 1)


def _movement_result(movement: InventoryMovement, *, overstock: bool = False, replayed: bool = False) -> MovementResult:
    return MovementResult(
        movement_id=movement.id,
        product_id=movement.product_id,
        kind=movement.kind,
        quantity=movement.quantity,
        stock_before=movement.stock_before,
        stock_after=movement.stock_after,
        overstock=overstock,
        replayed=replayed,
    )


def apply_movement(
    *,
    product_id: str,
    kind: str,
    quantity: int,
    reason: str,
    actor: str,
    reference_document: str | None = None,
    idempotency_key: str | None = None,
    occurred_at: datetime | None = None,
) -> MovementResult:
    """
    Atomically change a product's stock and append the matching movement.

    quantity is always non-negative: units to add (ENTRY), units to remove
    (EXIT) or the new absolute count (ADJUSTMENT).

    With an idempotency_key, re-issuing the same movement returns the
    original result (replayed=True) without touching stock again.

    Commits on success. Raises ProductNotFound / InsufficientStock with the
    session rolled back and stock unchanged.
    """
    if kind not in MOVEMENT_KINDS:
        raise ValidationError(f"invalid movement kind: {kind}")
    if quantity < 0:
        raise ValidationError("quantity cannot be negative")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity must be at most {MAX_QUANTITY}")
    if kind != MOVEMENT_ADJUSTMENT and quantity == 0:
        raise ValidationError("quantity must be positive")
    if not reason:
        raise ValidationError("reason is required")
    if not actor:
        raise ValidationError("actor is required")

    def _op() -> MovementResult:
        begin_write()

        if idempotency_key:
            existing = (
                db.session.query(InventoryMovement)
                .filter_by(idempotency_key=idempotency_key)
                .first()
            )
            if existing is not None:
                replay = _movement_result(existing, replayed=True)
                db.session.rollback()
                return replay

        product = _get_product(product_id, lock=True)
        stock_before = product.stock_quantity
        seen_version = product.version_id

        stmt = update(Product).where(
            Product.id == product_id,
            Product.version_id == seen_version,
        )

        if kind == MOVEMENT_EXIT:
            if quantity > stock_before:
                raise InsufficientStock([{
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "available_stock": stock_before,
                }])
            delta = -quantity
            stmt = stmt.where(Product.stock_quantity >= quantity).values(
                stock_quantity=Product.stock_quantity - quantity,
            )
        elif kind == MOVEMENT_ENTRY:
            delta = quantity
            stmt = stmt.values(stock_quantity=Product.stock_quantity + quantity)
        else:
            delta = quantity - stock_before
            stmt = stmt.values(stock_quantity=quantity)

        stmt = stmt.values(version_id=Product.version_id + 1, updated_at=utcnow())
        result = db.session.execute(stmt, execution_options={"synchronize_session": False})
        if result.rowcount != 1:
            raise StaleDataError(f"Concurrent stock update on product {product_id}")

        stock_after = stock_before + delta
        movement = InventoryMovement(
            product_id=product_id,
            kind=kind,
            quantity=delta,
            stock_before=stock_before,
            stock_after=stock_after,
            reason=reason,
            reference_document=reference_document,
            idempotency_key=idempotency_key,
            actor=actor,
            occurred_at=occurred_at or utcnow(),
        )
        db.session.add(movement)
        db.session.flush()

        overstock = stock_after > product.max_stock
        movement_result = _movement_result(movement, overstock=overstock)
        db.session.commit()
        return movement_result

    attempts = current_app.config.get("STOCK_UPDATE_ATTEMPTS", 5)
    retry_on = (IntegrityError,) if idempotency_key else ()
    try:
        movement_result = run_with_retry(_op, attempts=attempts, backoff_base=0.02, retry_on=retry_on)
    except DomainError:
        db.session.rollback()
        raise

    if movement_result.replayed:
        logger.info("Movement %s replayed for key %s", movement_result.movement_id, idempotency_key)
    elif movement_result.overstock:
        logger.warning(
            "Product %s above maximum stock after %s: %d units",
            product_id, kind, movement_result.stock_after,
        )
    else:
        logger.debug(
            "Product %s %s %d: %d -> %d",
            product_id, kind, quantity, movement_result.stock_before, movement_result.stock_after,
        )
    return movement_result


def update_stock(
    *,
    product_id: str,
    movement_type: str,
    quantity: int,
    reason: str,
    actor: str,
    reference_document: str | None = None,
) -> MovementResult:
    """API-facing stock update. movement_type is entry/exit/adjustment (any case)."""
    kind = _MOVEMENT_TYPE_ALIASES.get((movement_type or "").strip().lower())
    if kind is None:
        raise ValidationError("movement_type must be one of: entry, exit, adjustment")
    return apply_movement(
        product_id=product_id,
        kind=kind,
        quantity=quantity,
        reason=reason,
        actor=actor,
        reference_document=reference_document,
    )


def adjust_stock(*, product_id: str, new_stock: int, reason: str, actor: str) -> MovementResult:
    """Correct stock to a physical count; recorded as one ADJUSTMENT movement."""
    return apply_movement(
        product_id=product_id,
        kind=MOVEMENT_ADJUSTMENT,
        quantity=new_stock,
        reason=reason,
        actor=actor,
    )


def get_movement_history(
    product_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[InventoryMovement]:
    """
    Movements for a product, newest first. start/end are inclusive.

    Each call runs a fresh query; there is no cursor state.
    """
    _get_product(product_id)

    q = db.session.query(InventoryMovement).filter(InventoryMovement.product_id == product_id)
    if start is not None:
        q = q.filter(InventoryMovement.occurred_at >= start)
    if end is not None:
        q = q.filter(InventoryMovement.occurred_at <= end)

    return q.order_by(
        InventoryMovement.occurred_at.desc(),
        InventoryMovement.id.desc(),
    ).all()


def generate_alerts() -> list[StockAlert]:
    """
    Compare every active product's stock to its thresholds, right now.

    Nothing is persisted; alerts are recomputed on every call.
    """
    alerts = []
    products = (
        db.session.query(Product)
        .filter_by(is_active=True)
        .order_by(Product.id.asc())
        .populate_existing()
        .all()
    )
    for product in products:
        stock = product.stock_quantity
        if stock <= 0:
            kind = ALERT_OUT_OF_STOCK
            message = f"Product {product.id} is out of stock"
        elif stock <= product.min_stock:
            kind = ALERT_LOW_STOCK
            message = f"Low stock for product {product.id}: {stock} units (minimum {product.min_stock})"
        elif stock > product.max_stock:
            kind = ALERT_OVERSTOCK
            message = f"Overstock for product {product.id}: {stock} units (maximum {product.max_stock})"
        else:
            continue

        alerts.append(StockAlert(
            product_id=product.id,
            product_name=product.name,
            kind=kind,
            current_stock=stock,
            min_stock=product.min_stock,
            max_stock=product.max_stock,
            message=message,
        ))
    return alerts
