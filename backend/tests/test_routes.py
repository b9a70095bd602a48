"""
HTTP API tests.

Verifies status codes and payload shapes for the sales, inventory,
product, customer, authorization and health endpoints.
"""

import pytest

from polimarket.services import inventory_service, sales_service
from polimarket.time_utils import utcnow
from polimarket.validation import MAX_QUANTITY

from conftest import stock_of


def sale_payload(*lines, seller_code="V001", customer_id="C001", **extra):
    payload = {
        "customer_id": customer_id,
        "seller_code": seller_code,
        "lines": [
            {"product_id": pid, "quantity": qty, "unit_price_cents": price}
            for pid, qty, price in lines
        ],
    }
    payload.update(extra)
    return payload


@pytest.fixture
def stocked(seller, customer, make_product):
    make_product("P001", 10)
    make_product("P002", 1)


class TestHealth:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["config"]["sales_tax_rate_bps"] == 1900


class TestSalesRoutes:

    def test_process_sale(self, client, stocked):
        resp = client.post("/api/sales/", json=sale_payload(("P001", 5, 3500)))
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["status"] == "PROCESSED"
        assert data["total_cents"] == 20825
        assert data["processed_at"].endswith("Z")
        assert stock_of("P001") == 5

    def test_unauthorized_seller_is_403(self, client, stocked, pending_seller):
        resp = client.post("/api/sales/", json=sale_payload(("P001", 1, 3500), seller_code="V006"))
        assert resp.status_code == 403
        data = resp.get_json()
        assert data["code"] == "SELLER_NOT_AUTHORIZED"
        assert data["details"]["seller_code"] == "V006"

    def test_insufficient_stock_is_409_and_names_products(self, client, stocked):
        resp = client.post("/api/sales/", json=sale_payload(("P001", 1, 3500), ("P002", 2, 8900)))
        assert resp.status_code == 409
        data = resp.get_json()
        assert data["code"] == "INSUFFICIENT_STOCK"
        assert data["details"]["product_ids"] == ["P002"]
        assert stock_of("P001") == 10

    def test_unknown_customer_is_404(self, client, stocked):
        resp = client.post("/api/sales/", json=sale_payload(("P001", 1, 3500), customer_id="C999"))
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "CUSTOMER_NOT_FOUND"

    @pytest.mark.parametrize(
        "lines",
        [
            [],
            "P001",
            [{"product_id": "P001", "quantity": 0, "unit_price_cents": 100}],
            [{"product_id": "P001", "quantity": 2.5, "unit_price_cents": 100}],
            [{"product_id": "P001", "quantity": 1, "unit_price_cents": "1e3"}],
            [{"quantity": 1, "unit_price_cents": 100}],
        ],
    )
    def test_invalid_lines_are_400(self, client, stocked, lines):
        resp = client.post("/api/sales/", json={"customer_id": "C001", "seller_code": "V001", "lines": lines})
        assert resp.status_code == 400
        assert stock_of("P001") == 10

    def test_calculate_total(self, client, db_session):
        resp = client.post(
            "/api/sales/calculate-total",
            json={"lines": [{"product_id": "P001", "quantity": 2, "unit_price_cents": 3500}]},
        )
        assert resp.status_code == 200
        assert resp.get_json() == {
            "subtotal_cents": 7000,
            "tax_rate_bps": 1900,
            "tax_cents": 1330,
            "total_cents": 8330,
        }

    def test_get_sale(self, client, stocked):
        sale_id = client.post("/api/sales/", json=sale_payload(("P001", 2, 3500))).get_json()["sale_id"]
        resp = client.get(f"/api/sales/{sale_id}")
        assert resp.status_code == 200
        sale = resp.get_json()["sale"]
        assert sale["id"] == sale_id
        assert len(sale["lines"]) == 1
        assert sale["lines"][0]["quantity"] == 2

    def test_get_missing_sale_is_404(self, client, db_session):
        resp = client.get("/api/sales/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "SALE_NOT_FOUND"

    def test_sales_by_seller(self, client, stocked):
        client.post("/api/sales/", json=sale_payload(("P001", 1, 3500)))
        resp = client.get("/api/sales/by-seller/V001")
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 1

    def test_sales_by_seller_bad_date_is_400(self, client, db_session):
        resp = client.get("/api/sales/by-seller/V001?start=yesterday")
        assert resp.status_code == 400

    def test_sales_by_seller_date_only_end_covers_that_day(self, client, stocked):
        client.post("/api/sales/", json=sale_payload(("P001", 1, 3500)))
        today = utcnow().date().isoformat()

        resp = client.get(f"/api/sales/by-seller/V001?start={today}&end={today}")
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 1

    def test_sales_by_seller_unexpected_error_is_500(self, client, db_session, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(sales_service, "get_sales_by_seller", broken)
        resp = client.get("/api/sales/by-seller/V001")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}

    def test_quantity_above_limit_is_400(self, client, stocked):
        resp = client.post("/api/sales/", json=sale_payload(("P001", MAX_QUANTITY + 1, 3500)))
        assert resp.status_code == 400
        assert "quantity" in resp.get_json()["error"]
        assert stock_of("P001") == 10

    def test_discount(self, client, stocked):
        created = client.post("/api/sales/", json=sale_payload(("P001", 1, 10000))).get_json()
        resp = client.put(
            f"/api/sales/{created['sale_id']}/discount",
            json={"amount_cents": 900, "reason": "Promo"},
        )
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["total_cents"] == created["total_cents"] - 900

    def test_cancel_then_cancel_again(self, client, stocked):
        sale_id = client.post("/api/sales/", json=sale_payload(("P001", 4, 3500))).get_json()["sale_id"]
        assert stock_of("P001") == 6

        resp = client.post(f"/api/sales/{sale_id}/cancel", json={"reason": "customer return"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["cancelled"] is True
        assert data["sale"]["status"] == "CANCELLED"
        assert stock_of("P001") == 10

        resp = client.post(f"/api/sales/{sale_id}/cancel", json={"reason": "customer return"})
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "ALREADY_CANCELLED"
        assert stock_of("P001") == 10

    def test_cancel_requires_reason(self, client, stocked):
        sale_id = client.post("/api/sales/", json=sale_payload(("P001", 1, 3500))).get_json()["sale_id"]
        resp = client.post(f"/api/sales/{sale_id}/cancel", json={})
        assert resp.status_code == 400


class TestInventoryRoutes:

    def test_check_availability(self, client, stocked):
        resp = client.post("/api/inventory/check-availability", json={"product_id": "P001", "quantity": 5})
        assert resp.status_code == 200
        availability = resp.get_json()["availability"]
        assert availability["available_for_sale"] is True
        assert availability["available_stock"] == 10

    def test_current_stock_unknown_product(self, client, db_session):
        resp = client.get("/api/inventory/stock/NOPE")
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "PRODUCT_NOT_FOUND"

    def test_update_stock(self, client, stocked):
        resp = client.put("/api/inventory/stock", json={
            "product_id": "P001",
            "movement_type": "entry",
            "quantity": 15,
            "reason": "Purchase order",
            "actor": "warehouse",
            "reference_document": "OC-1",
        })
        assert resp.status_code == 200
        movement = resp.get_json()["movement"]
        assert (movement["stock_before"], movement["stock_after"]) == (10, 25)

    def test_update_stock_exit_beyond_stock_is_409(self, client, stocked):
        resp = client.put("/api/inventory/stock", json={
            "product_id": "P002",
            "movement_type": "exit",
            "quantity": 2,
            "reason": "Damaged",
            "actor": "warehouse",
        })
        assert resp.status_code == 409
        assert stock_of("P002") == 1

    def test_adjust(self, client, stocked):
        resp = client.post("/api/inventory/adjust", json={
            "product_id": "P001", "new_stock": 7, "reason": "Physical count", "actor": "warehouse",
        })
        assert resp.status_code == 200
        assert stock_of("P001") == 7

    def test_movements(self, client, stocked):
        client.post("/api/sales/", json=sale_payload(("P001", 2, 3500)))
        resp = client.get("/api/inventory/movements/P001")
        assert resp.status_code == 200
        kinds = [m["kind"] for m in resp.get_json()["movements"]]
        assert kinds == ["EXIT", "ENTRY"]

    def test_alerts(self, client, stocked):
        resp = client.get("/api/inventory/alerts")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["count"] == 1
        assert data["alerts"][0]["product_id"] == "P002"
        assert data["alerts"][0]["kind"] == "LOW_STOCK"

    def test_alerts_unexpected_error_is_500(self, client, db_session, monkeypatch):
        def broken():
            raise RuntimeError("connection reset")

        monkeypatch.setattr(inventory_service, "generate_alerts", broken)
        resp = client.get("/api/inventory/alerts")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}

    def test_movements_date_only_end_covers_that_day(self, client, stocked):
        today = utcnow().date().isoformat()
        resp = client.get(f"/api/inventory/movements/P001?end={today}")
        assert resp.status_code == 200
        assert len(resp.get_json()["movements"]) == 1

    @pytest.mark.parametrize(
        "method, url, body",
        [
            ("post", "/api/inventory/check-availability", {"product_id": "P001", "quantity": MAX_QUANTITY + 1}),
            ("put", "/api/inventory/stock", {
                "product_id": "P001", "movement_type": "entry", "quantity": MAX_QUANTITY + 1,
                "reason": "Purchase order", "actor": "warehouse",
            }),
            ("post", "/api/inventory/adjust", {
                "product_id": "P001", "new_stock": MAX_QUANTITY + 1, "reason": "Count", "actor": "warehouse",
            }),
        ],
    )
    def test_quantity_above_limit_is_400(self, client, stocked, method, url, body):
        resp = getattr(client, method)(url, json=body)
        assert resp.status_code == 400
        assert stock_of("P001") == 10


class TestAuthorizationRoutes:

    def test_validate_authorized(self, client, seller):
        resp = client.get("/api/authorization/validate/V001")
        assert resp.status_code == 200
        assert resp.get_json()["authorized"] is True

    def test_validate_unknown_is_not_an_error(self, client, db_session):
        resp = client.get("/api/authorization/validate/GHOST")
        assert resp.status_code == 200
        assert resp.get_json()["authorized"] is False

    def test_authorize_new_seller(self, client, hr_employee):
        resp = client.post("/api/authorization/authorize", json={
            "code": "V010",
            "hr_employee_id": "HR001",
            "name": "Nuevo Vendedor",
            "commission_rate_bps": 550,
        })
        assert resp.status_code == 201
        assert resp.get_json()["seller"]["is_authorized"] is True

    def test_authorize_with_invalid_hr_is_403(self, client, db_session):
        resp = client.post("/api/authorization/authorize", json={
            "code": "V010", "hr_employee_id": "HR999", "name": "X",
        })
        assert resp.status_code == 403
        assert resp.get_json()["code"] == "HR_EMPLOYEE_INVALID"

    def test_revoke(self, client, seller):
        resp = client.put(
            "/api/authorization/sellers/V001/authorization",
            json={"authorized": False, "hr_employee_id": "HR001"},
        )
        assert resp.status_code == 200
        assert client.get("/api/authorization/validate/V001").get_json()["authorized"] is False

    def test_lists(self, client, seller, pending_seller):
        authorized = client.get("/api/authorization/sellers").get_json()["sellers"]
        pending = client.get("/api/authorization/pending-sellers").get_json()["sellers"]
        assert [s["code"] for s in authorized] == ["V001"]
        assert [s["code"] for s in pending] == ["V006"]

    def test_get_missing_seller_is_404(self, client, db_session):
        assert client.get("/api/authorization/sellers/NOPE").status_code == 404

    def test_validate_hr_employee(self, client, hr_employee):
        resp = client.get("/api/authorization/hr-employees/HR001/validate")
        assert resp.get_json()["valid"] is True


class TestProductRoutes:

    def test_create_product_with_opening_stock(self, client, db_session):
        resp = client.post("/api/products/", json={
            "id": "P100",
            "name": "Coca Cola 2L",
            "category": "Bebidas",
            "price_cents": 680000,
            "min_stock": 30,
            "max_stock": 400,
            "initial_stock": 200,
            "actor": "catalogue",
        })
        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["stock_quantity"] == 200

        movements = client.get("/api/inventory/movements/P100").get_json()["movements"]
        assert [(m["kind"], m["quantity"]) for m in movements] == [("ENTRY", 200)]

    def test_duplicate_product_is_409(self, client, stocked):
        resp = client.post("/api/products/", json={"id": "P001", "name": "Again", "actor": "catalogue"})
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "PRODUCT_ALREADY_EXISTS"
        assert stock_of("P001") == 10

    def test_create_requires_actor(self, client, db_session):
        resp = client.post("/api/products/", json={"id": "P100", "name": "X"})
        assert resp.status_code == 400

    def test_get_and_list(self, client, stocked):
        assert client.get("/api/products/P001").get_json()["product"]["stock_quantity"] == 10
        assert client.get("/api/products/NOPE").status_code == 404

        data = client.get("/api/products/").get_json()
        assert data["count"] == 2

    def test_low_stock(self, client, stocked):
        data = client.get("/api/products/low-stock").get_json()
        assert [p["id"] for p in data["products"]] == ["P002"]

    def test_update_price(self, client, stocked):
        resp = client.put("/api/products/P001/price", json={"price_cents": 4000})
        assert resp.status_code == 200
        assert resp.get_json()["product"]["price_cents"] == 4000

        resp = client.put("/api/products/P001/price", json={"price_cents": "40.00"})
        assert resp.status_code == 400


class TestCustomerRoutes:

    def test_create_and_get(self, client, db_session):
        resp = client.post("/api/customers/", json={
            "id": "C010", "name": "Tienda Don Pepe", "customer_type": "retail",
        })
        assert resp.status_code == 201
        assert resp.get_json()["customer"]["customer_type"] == "RETAIL"

        resp = client.get("/api/customers/C010")
        assert resp.status_code == 200
        assert resp.get_json()["customer"]["name"] == "Tienda Don Pepe"

    def test_duplicate_customer_is_409(self, client, customer):
        resp = client.post("/api/customers/", json={"id": "C001", "name": "Again"})
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "CUSTOMER_ALREADY_EXISTS"

    def test_missing_customer_is_404(self, client, db_session):
        assert client.get("/api/customers/C999").status_code == 404
        assert client.get("/api/customers/C999/sales").status_code == 404

    def test_purchase_history(self, client, stocked):
        client.post("/api/sales/", json=sale_payload(("P001", 1, 3500)))
        today = utcnow().date().isoformat()

        resp = client.get(f"/api/customers/C001/sales?end={today}")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["count"] == 1
        assert data["sales"][0]["customer_id"] == "C001"
