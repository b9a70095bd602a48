"""
Concurrency tests against a file-backed SQLite database.

Each worker thread runs in its own application context, so each has its own
session and connection; the in-memory database used elsewhere cannot show
lost updates because every session shares a single connection.
"""

import threading

import pytest

from polimarket import create_app
from polimarket.errors import InsufficientStock
from polimarket.extensions import db
from polimarket.models import HREmployee, Seller, Customer, Product, Sale, InventoryMovement
from polimarket.models.inventory import MOVEMENT_ENTRY, MOVEMENT_EXIT
from polimarket.services import inventory_service, sales_service
from polimarket.services.pricing_service import LineItem
from polimarket.time_utils import utcnow


@pytest.fixture
def race_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {"connect_args": {"check_same_thread": False, "timeout": 30}},
        'STOCK_UPDATE_ATTEMPTS': 10,
    })
    with app.app_context():
        db.create_all()
        db.session.add(HREmployee(id="HR001", name="Ana García Rodríguez", is_active=True))
        db.session.add(Customer(id="C001", name="Tienda Don Pepe", is_active=True))
        for code in ("V001", "V002"):
            db.session.add(Seller(
                code=code,
                name=f"Seller {code}",
                is_authorized=True,
                authorized_at=utcnow(),
                authorized_by_hr_id="HR001",
                is_active=True,
            ))
        db.session.add(Product(id="LAST", name="Last unit", price_cents=1000, stock_quantity=0))
        db.session.add(Product(id="BULK", name="Bulk item", price_cents=100, stock_quantity=0))
        db.session.commit()
        inventory_service.apply_movement(
            product_id="LAST", kind=MOVEMENT_ENTRY, quantity=1, reason="Opening stock", actor="test",
        )
        inventory_service.apply_movement(
            product_id="BULK", kind=MOVEMENT_ENTRY, quantity=50, reason="Opening stock", actor="test",
        )

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def run_concurrently(app, workers):
    """Start every worker at once; return (results, errors) in worker order."""
    barrier = threading.Barrier(len(workers))
    results = [None] * len(workers)
    errors = [None] * len(workers)

    def runner(index, work):
        with app.app_context():
            barrier.wait()
            try:
                results[index] = work()
            except Exception as exc:
                errors[index] = exc
            finally:
                db.session.remove()

    threads = [threading.Thread(target=runner, args=(i, w)) for i, w in enumerate(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return results, errors


def test_last_unit_is_sold_exactly_once(race_app):
    def buy(seller_code):
        def work():
            sale = sales_service.process_sale(
                customer_id="C001",
                seller_code=seller_code,
                lines=[LineItem("LAST", 1, 1000)],
            )
            return sale.id
        return work

    results, errors = run_concurrently(race_app, [buy("V001"), buy("V002")])

    successes = [r for r in results if r is not None]
    failures = [e for e in errors if e is not None]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStock)
    assert failures[0].product_ids == ["LAST"]

    with race_app.app_context():
        product = db.session.get(Product, "LAST")
        assert product.stock_quantity == 0
        assert db.session.query(Sale).count() == 1
        exits = db.session.query(InventoryMovement).filter_by(product_id="LAST", kind=MOVEMENT_EXIT).count()
        assert exits == 1


def test_parallel_exits_never_lose_updates(race_app):
    def take_two():
        return inventory_service.apply_movement(
            product_id="BULK", kind=MOVEMENT_EXIT, quantity=2, reason="Sale", actor="test",
        )

    results, errors = run_concurrently(race_app, [take_two for _ in range(8)])

    assert errors == [None] * 8
    befores = sorted(r.stock_before for r in results)
    assert befores == [36, 38, 40, 42, 44, 46, 48, 50]

    with race_app.app_context():
        assert db.session.get(Product, "BULK").stock_quantity == 34
        movements = db.session.query(InventoryMovement).filter_by(product_id="BULK").all()
        assert sum(m.quantity for m in movements) == 34
