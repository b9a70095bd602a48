# backend/polimarket/routes/inventory.py
"""
Inventory ledger routes.

Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- start/end filtering on movement history is inclusive.
"""
from flask import Blueprint, request, current_app

from ..errors import DomainError
from ..services import inventory_service
from ..validation import (
    ValidationError,
    clean_string,
    coerce_int,
    parse_optional_datetime,
    MAX_QUANTITY,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.post("/check-availability")
def check_availability_route():
    payload = request.get_json(silent=True) or {}
    try:
        product_id = clean_string(payload.get("product_id"), "product_id", max_length=50)
        quantity = coerce_int(payload.get("quantity"), "quantity", minimum=1, maximum=MAX_QUANTITY)
        availability = inventory_service.check_availability(product_id, quantity)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return e.to_dict(), e.status_code

    return {"availability": availability.to_dict()}, 200


@inventory_bp.get("/stock/<product_id>")
def get_current_stock_route(product_id: str):
    try:
        availability = inventory_service.get_current_stock(product_id)
    except DomainError as e:
        return e.to_dict(), e.status_code
    return {"availability": availability.to_dict()}, 200


@inventory_bp.put("/stock")
def update_stock_route():
    """
    Apply one stock movement.

    Body: {"product_id", "movement_type": entry|exit|adjustment, "quantity",
           "reason", "actor", "reference_document"?}
    """
    payload = request.get_json(silent=True) or {}
    try:
        product_id = clean_string(payload.get("product_id"), "product_id", max_length=50)
        movement_type = clean_string(payload.get("movement_type"), "movement_type", max_length=16)
        quantity = coerce_int(payload.get("quantity"), "quantity", minimum=0, maximum=MAX_QUANTITY)
        reason = clean_string(payload.get("reason"), "reason", max_length=255)
        actor = clean_string(payload.get("actor"), "actor", max_length=64)
        reference_document = clean_string(
            payload.get("reference_document"), "reference_document", max_length=64, required=False
        )

        result = inventory_service.update_stock(
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            actor=actor,
            reference_document=reference_document,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update stock")
        return {"error": "Internal server error"}, 500

    return {"movement": result.to_dict()}, 200


@inventory_bp.post("/adjust")
def adjust_stock_route():
    """Correct stock to a physical count."""
    payload = request.get_json(silent=True) or {}
    try:
        product_id = clean_string(payload.get("product_id"), "product_id", max_length=50)
        new_stock = coerce_int(payload.get("new_stock"), "new_stock", minimum=0, maximum=MAX_QUANTITY)
        reason = clean_string(payload.get("reason"), "reason", max_length=255)
        actor = clean_string(payload.get("actor"), "actor", max_length=64)

        result = inventory_service.adjust_stock(
            product_id=product_id,
            new_stock=new_stock,
            reason=reason,
            actor=actor,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return {"movement": result.to_dict()}, 200


@inventory_bp.get("/movements/<product_id>")
def get_movements_route(product_id: str):
    try:
        start = parse_optional_datetime(request.args.get("start"), "start")
        end = parse_optional_datetime(request.args.get("end"), "end", end_of_day=True)
        movements = inventory_service.get_movement_history(product_id, start, end)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except DomainError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load movement history for %s", product_id)
        return {"error": "Internal server error"}, 500

    return {
        "product_id": product_id,
        "movements": [m.to_dict() for m in movements],
    }, 200


@inventory_bp.get("/alerts")
def alerts_route():
    try:
        alerts = inventory_service.generate_alerts()
    except Exception:
        current_app.logger.exception("Failed to generate stock alerts")
        return {"error": "Internal server error"}, 500

    return {"count": len(alerts), "alerts": [a.to_dict() for a in alerts]}, 200
