# backend/polimarket/routes/customers.py
"""Customer registration and purchase history routes"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import DomainError
from ..services import customer_service, sales_service
from ..validation import ValidationError, clean_string, parse_optional_datetime


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("/")
def create_customer_route():
    """Body: {"id", "name", "email"?, "phone"?, "address"?, "customer_type"?}"""
    data = request.get_json(silent=True) or {}
    try:
        customer_type = clean_string(data.get("customer_type"), "customer_type", max_length=32, required=False)

        customer = customer_service.create_customer(
            customer_id=clean_string(data.get("id"), "id", max_length=50),
            name=clean_string(data.get("name"), "name", max_length=255),
            email=clean_string(data.get("email"), "email", max_length=255, required=False),
            phone=clean_string(data.get("phone"), "phone", max_length=32, required=False),
            address=clean_string(data.get("address"), "address", max_length=255, required=False),
            customer_type=(customer_type or "REGULAR").upper(),
        )
        return jsonify({"customer": customer.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>")
def get_customer_route(customer_id: str):
    try:
        customer = customer_service.get_customer(customer_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.get("/<customer_id>/sales")
def get_customer_sales_route(customer_id: str):
    """Purchase history, newest first. Optional ?start=&end=; a bare-date end covers that whole day."""
    try:
        customer_service.get_customer(customer_id)
        start = parse_optional_datetime(request.args.get("start"), "start")
        end = parse_optional_datetime(request.args.get("end"), "end", end_of_day=True)
        sales = sales_service.get_sales_by_customer(customer_id, start, end)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales for customer %s", customer_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "customer_id": customer_id,
        "count": len(sales),
        "sales": [sale.to_dict() for sale in sales],
    }), 200
