# Overview: Seller authorization oracle and HR approval/revocation workflow.

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Seller, HREmployee
from ..errors import HREmployeeInvalid, SellerNotFound, SellerAlreadyExists
from polimarket.time_utils import utcnow
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)

"""
Seller authorization invariants (authoritative)

- A seller may sell only while the record exists, is_active is true and
  is_authorized is true, evaluated at the moment of the check.
- check_authorized() is read-only and fails closed: missing records,
  inactive or unauthorized sellers and lookup errors all answer
  authorized=False with a reason. It never raises; "not authorized" is an
  expected answer, not a fault.
- Only an active HR employee may approve, revoke or deactivate a seller.
- Sellers are never deleted.
"""


@dataclass(frozen=True)
class AuthorizationCheck:
    authorized: bool
    reason: str
    seller: Seller | None = None

    def to_dict(self) -> dict:
        return {
            "authorized": self.authorized,
            "reason": self.reason,
            "seller": self.seller.to_dict() if self.seller else None,
        }


def check_authorized(seller_code: str) -> AuthorizationCheck:
    """Report whether a seller may sell right now. Never raises."""
    if not seller_code:
        return AuthorizationCheck(False, "Seller code is required")

    try:
        seller = db.session.query(Seller).filter_by(code=seller_code).first()
    except SQLAlchemyError:
        logger.exception("Seller authorization lookup failed for %s", seller_code)
        db.session.rollback()
        return AuthorizationCheck(False, "Authorization could not be verified")

    if seller is None:
        return AuthorizationCheck(False, "Seller not found")
    if not seller.is_active:
        return AuthorizationCheck(False, "Seller is inactive", seller)
    if not seller.is_authorized:
        return AuthorizationCheck(False, "Seller is not authorized", seller)
    return AuthorizationCheck(True, "Seller is authorized and active", seller)


def validate_hr_employee(hr_employee_id: str) -> bool:
    if not hr_employee_id:
        return False
    employee = db.session.query(HREmployee).filter_by(id=hr_employee_id).first()
    return employee is not None and employee.is_active


def _require_hr_employee(hr_employee_id: str) -> None:
    if not validate_hr_employee(hr_employee_id):
        raise HREmployeeInvalid(hr_employee_id)


def get_seller(seller_code: str) -> Seller:
    seller = db.session.query(Seller).filter_by(code=seller_code).first()
    if seller is None:
        raise SellerNotFound(seller_code)
    return seller


def _create_seller(
    *,
    code: str,
    name: str,
    territory: str | None,
    commission_rate_bps: int,
    authorized_by_hr_id: str | None,
) -> Seller:
    if db.session.query(Seller).filter_by(code=code).first() is not None:
        raise SellerAlreadyExists(code)

    seller = Seller(
        code=code,
        name=name,
        territory=territory,
        commission_rate_bps=commission_rate_bps,
        is_authorized=authorized_by_hr_id is not None,
        authorized_at=utcnow() if authorized_by_hr_id else None,
        authorized_by_hr_id=authorized_by_hr_id,
        is_active=True,
    )
    db.session.add(seller)
    db.session.commit()
    return seller


def authorize_seller(
    *,
    code: str,
    hr_employee_id: str,
    name: str,
    territory: str | None = None,
    commission_rate_bps: int = 0,
) -> Seller:
    """HR approval of a brand-new seller. The seller can sell immediately."""
    _require_hr_employee(hr_employee_id)
    seller = _create_seller(
        code=code,
        name=name,
        territory=territory,
        commission_rate_bps=commission_rate_bps,
        authorized_by_hr_id=hr_employee_id,
    )
    logger.info("Seller %s authorized by %s", code, hr_employee_id)
    return seller


def register_pending_seller(
    *,
    code: str,
    name: str,
    territory: str | None = None,
    commission_rate_bps: int = 0,
) -> Seller:
    """Create a seller that awaits HR approval."""
    return _create_seller(
        code=code,
        name=name,
        territory=territory,
        commission_rate_bps=commission_rate_bps,
        authorized_by_hr_id=None,
    )


def update_authorization_status(seller_code: str, authorized: bool, hr_employee_id: str) -> Seller:
    """Approve or revoke an existing seller."""
    _require_hr_employee(hr_employee_id)

    def _op():
        seller = get_seller(seller_code)
        seller.is_authorized = authorized
        seller.authorized_by_hr_id = hr_employee_id
        seller.authorized_at = utcnow()
        seller.updated_at = utcnow()
        db.session.commit()
        return seller

    seller = run_with_retry(_op)
    logger.info(
        "Seller %s %s by %s",
        seller_code,
        "authorized" if authorized else "revoked",
        hr_employee_id,
    )
    return seller


def deactivate_seller(seller_code: str, hr_employee_id: str) -> Seller:
    _require_hr_employee(hr_employee_id)

    def _op():
        seller = get_seller(seller_code)
        seller.is_active = False
        seller.updated_at = utcnow()
        db.session.commit()
        return seller

    return run_with_retry(_op)


def list_authorized_sellers() -> list[Seller]:
    return (
        db.session.query(Seller)
        .filter_by(is_active=True, is_authorized=True)
        .order_by(Seller.code.asc())
        .all()
    )


def list_pending_sellers() -> list[Seller]:
    return (
        db.session.query(Seller)
        .filter_by(is_active=True, is_authorized=False)
        .order_by(Seller.code.asc())
        .all()
    )
