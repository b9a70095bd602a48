"""
Pytest fixtures for PoliMarket backend tests.

Provides an in-memory application, a per-test clean database, and domain
fixtures (HR staff, sellers, customer, stocked products).
"""

import pytest

from polimarket import create_app
from polimarket.extensions import db
from polimarket.models import HREmployee, Seller, Customer, Product
from polimarket.models.inventory import MOVEMENT_ENTRY
from polimarket.services import inventory_service
from polimarket.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SALES_TAX_RATE_BPS': 1900,
        'LOG_LEVEL': 'DEBUG',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def hr_employee(db_session):
    employee = HREmployee(
        id="HR001",
        name="Ana García Rodríguez",
        position="Gerente de Recursos Humanos",
        department="Recursos Humanos",
        email="ana.garcia@polimarket.com",
        is_active=True,
    )
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture(scope='function')
def seller(db_session, hr_employee):
    """Authorized, active seller V001."""
    seller = Seller(
        code="V001",
        name="Juan Carlos Pérez",
        territory="Bogotá Norte",
        commission_rate_bps=550,
        is_authorized=True,
        authorized_at=utcnow(),
        authorized_by_hr_id=hr_employee.id,
        is_active=True,
    )
    db_session.add(seller)
    db_session.commit()
    return seller


@pytest.fixture(scope='function')
def pending_seller(db_session):
    """Seller V006: exists and is active, but was never authorized."""
    seller = Seller(
        code="V006",
        name="Claudia Patricia Jiménez",
        territory="Cartagena Bolívar",
        commission_rate_bps=570,
        is_authorized=False,
        is_active=True,
    )
    db_session.add(seller)
    db_session.commit()
    return seller


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        id="C001",
        name="Supermercados La Economía S.A.S",
        email="compras@laeconomia.com",
        customer_type="CORPORATE",
        is_active=True,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory: create a product with its opening stock.

    Opening stock goes through an ENTRY movement so the movement log
    reconciles with stock_quantity from the start.
    """
    def _make(product_id, stock, *, min_stock=2, max_stock=1000, price_cents=1000, is_active=True):
        product = Product(
            id=product_id,
            name=f"Product {product_id}",
            category="Test",
            price_cents=price_cents,
            stock_quantity=0,
            min_stock=min_stock,
            max_stock=max_stock,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        if stock:
            inventory_service.apply_movement(
                product_id=product_id,
                kind=MOVEMENT_ENTRY,
                quantity=stock,
                reason="Opening stock",
                actor="test",
            )
        return product

    return _make


def stock_of(product_id: str) -> int:
    """Current stock read straight from the database."""
    return inventory_service.get_current_stock(product_id).current_stock


def line(product_id: str, quantity: int, unit_price_cents: int = 1000, discount_cents: int = 0):
    from polimarket.services.pricing_service import LineItem
    return LineItem(
        product_id=product_id,
        quantity=quantity,
        unit_price_cents=unit_price_cents,
        discount_cents=discount_cents,
    )
