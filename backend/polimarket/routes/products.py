# backend/polimarket/routes/products.py
"""
Product catalogue routes.

Stock is never set here directly: a new product's initial_stock is booked
as an opening ENTRY movement, and later changes go through /api/inventory.
"""
from flask import Blueprint, request, current_app

from ..errors import DomainError
from ..services import products_service
from ..validation import (
    ValidationError,
    clean_string,
    coerce_int,
    MAX_PRICE_CENTS,
    MAX_QUANTITY,
)


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.post("/")
def create_product_route():
    """
    Body: {"id", "name", "actor", "category"?, "price_cents"?,
           "min_stock"?, "max_stock"?, "initial_stock"?}
    """
    payload = request.get_json(silent=True) or {}
    try:
        product_id = clean_string(payload.get("id"), "id", max_length=50)
        name = clean_string(payload.get("name"), "name", max_length=255)
        actor = clean_string(payload.get("actor"), "actor", max_length=64)
        category = clean_string(payload.get("category"), "category", max_length=128, required=False)

        price_cents = None
        if payload.get("price_cents") is not None:
            price_cents = coerce_int(payload.get("price_cents"), "price_cents", minimum=1, maximum=MAX_PRICE_CENTS)

        product = products_service.create_product(
            product_id=product_id,
            name=name,
            actor=actor,
            category=category,
            price_cents=price_cents,
            min_stock=coerce_int(payload.get("min_stock", 10), "min_stock", minimum=0, maximum=MAX_QUANTITY),
            max_stock=coerce_int(payload.get("max_stock", 1000), "max_stock", minimum=0, maximum=MAX_QUANTITY),
            initial_stock=coerce_int(
                payload.get("initial_stock", 0), "initial_stock", minimum=0, maximum=MAX_QUANTITY
            ),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return {"product": product.to_dict()}, 201


@products_bp.get("/")
def list_products_route():
    include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true")
    try:
        products = products_service.list_products(active_only=not include_inactive)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return {"error": "Internal server error"}, 500

    return {"count": len(products), "products": [p.to_dict() for p in products]}, 200


@products_bp.get("/low-stock")
def low_stock_route():
    try:
        products = products_service.list_low_stock_products()
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return {"error": "Internal server error"}, 500

    return {"count": len(products), "products": [p.to_dict() for p in products]}, 200


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        product = products_service.get_product(product_id)
    except DomainError as e:
        return e.to_dict(), e.status_code
    return {"product": product.to_dict()}, 200


@products_bp.put("/<product_id>/price")
def update_price_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        price_cents = coerce_int(payload.get("price_cents"), "price_cents", minimum=1, maximum=MAX_PRICE_CENTS)
        product = products_service.update_product_price(product_id, price_cents)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update price for %s", product_id)
        return {"error": "Internal server error"}, 500

    return {"product": product.to_dict()}, 200
