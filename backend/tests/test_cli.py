"""CLI command tests (seed, alerts, seller listing)."""

from sqlalchemy import func

from polimarket.extensions import db
from polimarket.models import HREmployee, Seller, Customer, Product, InventoryMovement


def test_seed_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0, result.output
    assert "DONE Seed complete" in result.output

    assert db.session.query(HREmployee).count() == 5
    assert db.session.query(Seller).count() == 9
    assert db.session.query(Customer).count() == 5
    assert db.session.query(Product).count() == 8

    p001 = db.session.get(Product, "P001")
    assert p001.stock_quantity == 150
    assert (p001.min_stock, p001.max_stock) == (20, 500)

    movements = db.session.query(func.count(InventoryMovement.id)).scalar()
    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0, result.output
    assert db.session.query(Product).count() == 8
    assert db.session.query(func.count(InventoryMovement.id)).scalar() == movements
    assert db.session.get(Product, "P001").stock_quantity == 150


def test_seeded_sellers(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "seed"])

    result = runner.invoke(args=["sellers", "list"])
    assert result.exit_code == 0
    assert "V001" in result.output
    assert "DEMO" in result.output
    assert "V006" not in result.output

    result = runner.invoke(args=["sellers", "list", "--pending"])
    assert [line.split()[0] for line in result.output.strip().splitlines()] == ["V006", "V007", "V008"]


def test_inventory_alerts_command(app, db_session, make_product):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["inventory", "alerts"])
    assert "No stock alerts" in result.output

    make_product("P", 1, min_stock=5)
    result = runner.invoke(args=["inventory", "alerts"])
    assert "LOW_STOCK" in result.output
