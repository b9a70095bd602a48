# Overview: Flask API routes for seller authorization and HR approval.

# backend/polimarket/routes/authorization.py
"""
Seller authorization routes.

The validate endpoint is the HTTP face of the authorization oracle: it always
answers 200 with {"authorized": bool, "reason": str}, even for unknown sellers.
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import DomainError
from ..services import authorization_service
from ..validation import ValidationError, clean_string, coerce_bool, coerce_int


authorization_bp = Blueprint("authorization", __name__, url_prefix="/api/authorization")


@authorization_bp.post("/authorize")
def authorize_seller_route():
    """
    HR approval of a new seller.

    Body: {"code", "hr_employee_id", "name", "territory"?, "commission_rate_bps"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        seller = authorization_service.authorize_seller(
            code=clean_string(data.get("code"), "code", max_length=20),
            hr_employee_id=clean_string(data.get("hr_employee_id"), "hr_employee_id", max_length=20),
            name=clean_string(data.get("name"), "name", max_length=255),
            territory=clean_string(data.get("territory"), "territory", max_length=128, required=False),
            commission_rate_bps=coerce_int(
                data.get("commission_rate_bps", 0), "commission_rate_bps", minimum=0, maximum=10_000
            ),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to authorize seller")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"seller": seller.to_dict()}), 201


@authorization_bp.get("/validate/<seller_code>")
def validate_seller_route(seller_code: str):
    check = authorization_service.check_authorized(seller_code)
    return jsonify(check.to_dict()), 200


@authorization_bp.get("/sellers")
def list_authorized_sellers_route():
    sellers = authorization_service.list_authorized_sellers()
    return jsonify({"sellers": [s.to_dict() for s in sellers]}), 200


@authorization_bp.get("/pending-sellers")
def list_pending_sellers_route():
    sellers = authorization_service.list_pending_sellers()
    return jsonify({"sellers": [s.to_dict() for s in sellers]}), 200


@authorization_bp.get("/sellers/<seller_code>")
def get_seller_route(seller_code: str):
    try:
        seller = authorization_service.get_seller(seller_code)
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify({"seller": seller.to_dict()}), 200


@authorization_bp.put("/sellers/<seller_code>/authorization")
def update_authorization_route(seller_code: str):
    """Body: {"authorized": bool, "hr_employee_id"}"""
    data = request.get_json(silent=True) or {}
    try:
        seller = authorization_service.update_authorization_status(
            seller_code,
            coerce_bool(data.get("authorized"), "authorized"),
            clean_string(data.get("hr_employee_id"), "hr_employee_id", max_length=20),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update seller authorization")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"seller": seller.to_dict()}), 200


@authorization_bp.get("/hr-employees/<hr_employee_id>/validate")
def validate_hr_employee_route(hr_employee_id: str):
    valid = authorization_service.validate_hr_employee(hr_employee_id)
    return jsonify({"hr_employee_id": hr_employee_id, "valid": valid}), 200
