# Overview: Customer registration and lookups consumed by the sales core.

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Customer
from ..errors import CustomerNotFound, CustomerAlreadyExists
from ..validation import ValidationError

logger = logging.getLogger(__name__)

CUSTOMER_TYPES = ("REGULAR", "RETAIL", "WHOLESALE", "CORPORATE", "VIP")


def get_customer_by_id(customer_id: str) -> Customer | None:
    if not customer_id:
        return None
    return db.session.query(Customer).filter_by(id=customer_id).first()


def get_customer(customer_id: str) -> Customer:
    customer = get_customer_by_id(customer_id)
    if customer is None:
        raise CustomerNotFound(customer_id)
    return customer


def create_customer(
    *,
    customer_id: str,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    customer_type: str = "REGULAR",
) -> Customer:
    if customer_type not in CUSTOMER_TYPES:
        raise ValidationError(f"customer_type must be one of: {', '.join(CUSTOMER_TYPES)}")
    if get_customer_by_id(customer_id) is not None:
        raise CustomerAlreadyExists(customer_id)

    customer = Customer(
        id=customer_id,
        name=name,
        email=email,
        phone=phone,
        address=address,
        customer_type=customer_type,
        is_active=True,
    )
    db.session.add(customer)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise CustomerAlreadyExists(customer_id)

    logger.info("Customer %s registered (%s)", customer_id, customer_type)
    return customer
