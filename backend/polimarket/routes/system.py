# backend/polimarket/routes/system.py
"""
System health endpoint.

Reports database connectivity plus a few counters useful when checking a
fresh deployment (were products and sellers seeded?).
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Seller, Sale
from polimarket.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "sellers": db.session.query(Seller).count(),
            "sales": db.session.query(Sale).count(),
        }
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "error": "database unavailable"}

    elapsed_ms = (time.time() - start_time) * 1000
    return {
        "status": "healthy",
        "latency_ms": round(elapsed_ms, 2),
        "details": details,
    }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
        "config": {"sales_tax_rate_bps": current_app.config["SALES_TAX_RATE_BPS"]},
    }
    return response, 200 if healthy else 503
