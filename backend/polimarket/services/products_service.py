# Overview: Product catalogue maintenance; stock itself is owned by inventory_service.

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..models.inventory import MOVEMENT_ENTRY
from ..errors import ProductNotFound, ProductAlreadyExists
from ..validation import ValidationError
from polimarket.time_utils import utcnow
from .concurrency import run_with_retry
from .inventory_service import apply_movement

logger = logging.getLogger(__name__)

OPENING_STOCK_REASON = "Opening stock"


def get_product(product_id: str) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).populate_existing().first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


def list_products(*, active_only: bool = True) -> list[Product]:
    q = db.session.query(Product)
    if active_only:
        q = q.filter_by(is_active=True)
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def list_low_stock_products() -> list[Product]:
    """Active products at or below their minimum stock, emptiest first."""
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock_quantity <= Product.min_stock)
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .populate_existing()
        .all()
    )


def create_product(
    *,
    product_id: str,
    name: str,
    actor: str,
    category: str | None = None,
    price_cents: int | None = None,
    min_stock: int = 10,
    max_stock: int = 1000,
    initial_stock: int = 0,
) -> Product:
    """
    Add a product to the catalogue.

    The row is always created with zero stock. A positive initial_stock is
    booked afterwards as an ENTRY movement, so the movement log accounts for
    every unit the product ever held.
    """
    if min_stock < 0 or max_stock < 0:
        raise ValidationError("stock thresholds cannot be negative")
    if min_stock > max_stock:
        raise ValidationError("min_stock cannot exceed max_stock")
    if initial_stock < 0:
        raise ValidationError("initial_stock cannot be negative")

    if db.session.get(Product, product_id) is not None:
        raise ProductAlreadyExists(product_id)

    product = Product(
        id=product_id,
        name=name,
        category=category,
        price_cents=price_cents,
        stock_quantity=0,
        min_stock=min_stock,
        max_stock=max_stock,
        is_active=True,
    )
    db.session.add(product)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ProductAlreadyExists(product_id)

    if initial_stock > 0:
        apply_movement(
            product_id=product_id,
            kind=MOVEMENT_ENTRY,
            quantity=initial_stock,
            reason=OPENING_STOCK_REASON,
            actor=actor,
            idempotency_key=f"opening:{product_id}",
        )

    logger.info("Product %s created by %s with %d opening units", product_id, actor, initial_stock)
    return get_product(product_id)


def update_product_price(product_id: str, price_cents: int) -> Product:
    """Change the list price. Past sales keep the unit price they were sold at."""
    if price_cents < 1:
        raise ValidationError("price_cents must be positive")

    def _op():
        product = get_product(product_id)
        product.price_cents = price_cents
        product.updated_at = utcnow()
        db.session.commit()
        return product

    product = run_with_retry(_op)
    logger.info("Price of product %s set to %d cents", product_id, price_cents)
    return product
