"""Customer registration and lookup tests."""

import pytest

from polimarket.errors import CustomerNotFound, CustomerAlreadyExists
from polimarket.services import customer_service
from polimarket.validation import ValidationError


def test_create_and_get(db_session):
    customer_service.create_customer(
        customer_id="C010",
        name="Tienda Don Pepe",
        email="donpepe@gmail.com",
        customer_type="RETAIL",
    )

    customer = customer_service.get_customer("C010")
    assert customer.name == "Tienda Don Pepe"
    assert customer.customer_type == "RETAIL"
    assert customer.is_active is True


def test_duplicate_rejected(customer):
    with pytest.raises(CustomerAlreadyExists) as exc:
        customer_service.create_customer(customer_id="C001", name="Again")
    assert exc.value.status_code == 409
    assert customer_service.get_customer("C001").name == customer.name


def test_unknown_type_rejected(db_session):
    with pytest.raises(ValidationError):
        customer_service.create_customer(customer_id="C010", name="X", customer_type="GOLD")
    assert customer_service.get_customer_by_id("C010") is None


def test_get_missing_customer(db_session):
    with pytest.raises(CustomerNotFound):
        customer_service.get_customer("C999")
    assert customer_service.get_customer_by_id("") is None
