# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/polimarket/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import DomainError
from ..services import sales_service
from ..validation import (
    ValidationError,
    clean_string,
    coerce_int,
    parse_line_items,
    parse_optional_datetime,
    MAX_NOTES_LENGTH,
)


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("/")
def process_sale_route():
    """
    Process a sale: authorize seller, check stock, price, commit.

    Body: {"customer_id", "seller_code", "lines": [...], "notes"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        customer_id = clean_string(data.get("customer_id"), "customer_id", max_length=50)
        seller_code = clean_string(data.get("seller_code"), "seller_code", max_length=20)
        lines = parse_line_items(data.get("lines"))
        notes = clean_string(data.get("notes"), "notes", max_length=MAX_NOTES_LENGTH, required=False)

        sale = sales_service.process_sale(
            customer_id=customer_id,
            seller_code=seller_code,
            lines=lines,
            notes=notes,
        )
        return jsonify(sales_service.receipt_for(sale).to_dict()), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/calculate-total")
def calculate_total_route():
    """Preview a sale total without committing anything."""
    data = request.get_json(silent=True) or {}
    try:
        lines = parse_line_items(data.get("lines"))
        totals = sales_service.calculate_sale_total(lines)
        return jsonify(totals.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@sales_bp.get("/<sale_id>")
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale_by_id(sale_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


@sales_bp.get("/by-seller/<seller_code>")
def get_sales_by_seller_route(seller_code: str):
    """Sales for a seller, newest first. Optional ?start=&end= ISO-8601 bounds; a bare-date end covers that whole day."""
    try:
        start = parse_optional_datetime(request.args.get("start"), "start")
        end = parse_optional_datetime(request.args.get("end"), "end", end_of_day=True)
        sales = sales_service.get_sales_by_seller(seller_code, start, end)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales for seller %s", seller_code)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "seller_code": seller_code,
        "count": len(sales),
        "sales": [sale.to_dict() for sale in sales],
    }), 200


@sales_bp.put("/<sale_id>/discount")
def apply_discount_route(sale_id: str):
    data = request.get_json(silent=True) or {}
    try:
        amount_cents = coerce_int(data.get("amount_cents"), "amount_cents", minimum=1)
        reason = clean_string(data.get("reason"), "reason", max_length=200)

        sale = sales_service.apply_discount(sale_id, amount_cents, reason)
        return jsonify({"sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to apply discount")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<sale_id>/cancel")
def cancel_sale_route(sale_id: str):
    """
    Cancel a processed sale and return its stock.

    Safe to retry after a CANCELLATION_INCOMPLETE error.
    """
    data = request.get_json(silent=True) or {}
    try:
        reason = clean_string(data.get("reason"), "reason", max_length=200)

        sale = sales_service.cancel_sale(sale_id, reason)
        return jsonify({"cancelled": True, "sale": sale.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500
