"""
HTTP surface tests.

Covers the actor header, the status code each error maps to, and the JSON
shapes returned by the sale, refund, stock, product and accounting routes.
"""

import pytest

from posbackend.extensions import db
from posbackend.services import catalog_service, inventory_service, ledger_service, sales_service

from conftest import ACTOR_ID, actor_headers, entry_count, sale_count


def _sale_body(product_id, quantity=2, amount="25.00"):
    return {
        "items": [{"product_id": product_id, "quantity": quantity}],
        "payments": [{"method": "CASH", "amount": amount}],
    }


def test_health(client, db_session):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


@pytest.mark.parametrize("header", [None, "", "abc", "0", "-4"])
def test_actor_header_required(client, product_p, header):
    headers = {} if header is None else {"X-Actor-Id": header}
    response = client.post("/api/sales", json=_sale_body(product_p.id), headers=headers)

    assert response.status_code == 401
    assert response.get_json()["code"] == "UNAUTHENTICATED"


def test_process_sale_route(client, product_p):
    product_id = product_p.id
    response = client.post("/api/sales", json=_sale_body(product_id), headers=actor_headers())

    assert response.status_code == 201
    sale = response.get_json()["sale"]
    assert sale["status"] == "completed"
    assert sale["subtotal"] == "20.00"
    assert sale["tax"] == "2.00"
    assert sale["total"] == "22.00"
    assert sale["change_due"] == "3.00"
    assert sale["employee_id"] == ACTOR_ID
    assert sale["lines"][0]["unit_price_cents"] == 1000
    assert sale["payments"][0]["method"] == "CASH"

    db.session.expire_all()
    assert inventory_service.get_quantity(product_id) == 3


def test_get_sale_route(client, product_p):
    created = client.post("/api/sales", json=_sale_body(product_p.id), headers=actor_headers())
    sale_id = created.get_json()["sale"]["id"]

    response = client.get(f"/api/sales/{sale_id}", headers=actor_headers())
    assert response.status_code == 200
    assert response.get_json()["sale"]["document_number"] == created.get_json()["sale"]["document_number"]

    missing = client.get("/api/sales/999", headers=actor_headers())
    assert missing.status_code == 404
    assert missing.get_json()["code"] == "NOT_FOUND"


def test_insufficient_stock_route(client, product_p):
    response = client.post(
        "/api/sales",
        json=_sale_body(product_p.id, quantity=6, amount="100.00"),
        headers=actor_headers(),
    )

    assert response.status_code == 409
    body = response.get_json()
    assert body["code"] == "INSUFFICIENT_STOCK"
    assert body["details"]["requested"] == 6
    assert body["details"]["available"] == 5

    db.session.expire_all()
    assert sale_count() == 0


def test_insufficient_payment_route(client, product_p):
    response = client.post(
        "/api/sales",
        json=_sale_body(product_p.id, amount="21.99"),
        headers=actor_headers(),
    )

    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "INSUFFICIENT_PAYMENT"


@pytest.mark.parametrize("body", [
    {},
    {"items": [], "payments": [{"method": "CASH", "amount": 1}]},
    {"items": [{"product_id": 1, "quantity": 1.5}], "payments": [{"method": "CASH", "amount": 1}]},
    {"items": 5, "payments": [{"method": "CASH", "amount": 1}]},
    {"items": [{"product_id": 1, "quantity": 1}], "payments": {"method": "CASH", "amount": 1}},
])
def test_invalid_sale_body(client, db_session, body):
    response = client.post("/api/sales", json=body, headers=actor_headers())
    assert response.status_code == 400
    assert response.get_json()["code"] == "VALIDATION_ERROR"


def test_unknown_product_route(client, db_session):
    response = client.post("/api/sales", json=_sale_body(404), headers=actor_headers())
    assert response.status_code == 400
    assert response.get_json()["code"] == "PRODUCT_UNAVAILABLE"


def test_refund_routes(client, product_p):
    product_id = product_p.id
    sale_id = client.post(
        "/api/sales", json=_sale_body(product_id), headers=actor_headers()
    ).get_json()["sale"]["id"]

    no_reason = client.post(f"/api/sales/{sale_id}/refund", json={}, headers=actor_headers())
    assert no_reason.status_code == 400

    refunded = client.post(
        f"/api/sales/{sale_id}/refund", json={"reason": "damaged"}, headers=actor_headers()
    )
    assert refunded.status_code == 200
    assert refunded.get_json()["sale"]["status"] == "refunded"

    again = client.post(
        f"/api/sales/{sale_id}/refund", json={"reason": "damaged"}, headers=actor_headers()
    )
    assert again.status_code == 409
    assert again.get_json()["code"] == "ALREADY_REFUNDED"

    missing = client.post("/api/sales/999/refund", json={"reason": "x"}, headers=actor_headers())
    assert missing.status_code == 404

    db.session.expire_all()
    assert inventory_service.get_quantity(product_id) == 5
    assert entry_count() == 2


def test_stock_adjustment_route(client, product_p):
    record_id = product_p.inventory.id

    response = client.put(
        f"/api/inventory/{record_id}/stock",
        json={"quantity": 3, "adjustment_type": "add", "reason": "delivery"},
        headers=actor_headers(),
    )
    assert response.status_code == 200
    assert response.get_json()["inventory"]["quantity"] == 8

    negative = client.put(
        f"/api/inventory/{record_id}/stock",
        json={"quantity": -20, "adjustment_type": "add"},
        headers=actor_headers(),
    )
    assert negative.status_code == 400

    missing_type = client.put(
        f"/api/inventory/{record_id}/stock", json={"quantity": 1}, headers=actor_headers()
    )
    assert missing_type.status_code == 400

    missing_record = client.put(
        "/api/inventory/999/stock",
        json={"quantity": 1, "adjustment_type": "set"},
        headers=actor_headers(),
    )
    assert missing_record.status_code == 404


def test_product_routes(client, db_session):
    created = client.post(
        "/api/products",
        json={"sku": "R-001", "name": "Product R", "price_cents": 499, "initial_quantity": 2},
        headers=actor_headers(),
    )
    assert created.status_code == 201
    body = created.get_json()
    product_id = body["product"]["id"]
    assert body["product"]["price"] == "4.99"
    assert body["inventory"]["quantity"] == 2

    duplicate = client.post(
        "/api/products",
        json={"sku": "R-001", "name": "Again", "price_cents": 1},
        headers=actor_headers(),
    )
    assert duplicate.status_code == 409
    assert duplicate.get_json()["code"] == "CONFLICT"

    updated = client.patch(
        f"/api/products/{product_id}", json={"price_cents": "599"}, headers=actor_headers()
    )
    assert updated.status_code == 200
    assert updated.get_json()["product"]["price_cents"] == 599

    deleted = client.delete(f"/api/products/{product_id}", headers=actor_headers())
    assert deleted.status_code == 200
    assert deleted.get_json()["product"]["is_active"] is False

    fetched = client.get(f"/api/products/{product_id}", headers=actor_headers())
    assert fetched.status_code == 200
    assert fetched.get_json()["product"]["is_active"] is False

    sale = client.post("/api/sales", json=_sale_body(product_id, quantity=1), headers=actor_headers())
    assert sale.status_code == 400
    assert sale.get_json()["code"] == "PRODUCT_UNAVAILABLE"


def test_manual_accounting_entry_route(client, db_session):
    response = client.post(
        "/api/accounting",
        json={
            "type": "Expense",
            "category": "rent",
            "amount_cents": 150000,
            "description": "October rent",
            "reference_id": 10,
        },
        headers=actor_headers(),
    )
    assert response.status_code == 201
    entry = response.get_json()["entry"]
    assert entry["entry_type"] == "expense"
    assert entry["amount"] == "1500.00"
    assert entry["recorded_by_id"] == ACTOR_ID

    sale_type = client.post(
        "/api/accounting",
        json={
            "type": "sale",
            "category": "revenue",
            "amount_cents": 1,
            "description": "forged",
            "reference_id": 1,
        },
        headers=actor_headers(),
    )
    assert sale_type.status_code == 400

    incomplete = client.post("/api/accounting", json={"type": "expense"}, headers=actor_headers())
    assert incomplete.status_code == 400


def test_back_dated_accounting_entry(client, db_session):
    response = client.post(
        "/api/accounting",
        json={
            "type": "expense",
            "category": "utilities",
            "amount_cents": 8000,
            "description": "September power bill",
            "reference_id": 3,
            "date": "2024-09-30",
        },
        headers=actor_headers(),
    )
    assert response.status_code == 201
    assert response.get_json()["entry"]["entry_date"] == "2024-09-30T00:00:00Z"

    entry = ledger_service.entries_for_reference("expense", 3)[0]
    assert entry.entry_date.year == 2024


@pytest.mark.parametrize("date", ["yesterday", "2024-13-01", 20240930])
def test_invalid_accounting_date(client, db_session, date):
    response = client.post(
        "/api/accounting",
        json={
            "type": "expense",
            "category": "rent",
            "amount_cents": 1,
            "description": "x",
            "reference_id": 1,
            "date": date,
        },
        headers=actor_headers(),
    )
    assert response.status_code == 400
    assert entry_count() == 0


def test_non_string_product_name_route(client, product_p):
    response = client.patch(
        f"/api/products/{product_p.id}", json={"name": 5}, headers=actor_headers()
    )
    assert response.status_code == 400
    assert response.get_json()["code"] == "VALIDATION_ERROR"


def test_read_routes_report_unexpected_errors(client, db_session, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(sales_service, "get_sale", _boom)
    monkeypatch.setattr(catalog_service, "get_product", _boom)

    sale = client.get("/api/sales/1", headers=actor_headers())
    assert sale.status_code == 500
    assert sale.get_json() == {"error": "Internal server error"}

    product = client.get("/api/products/1", headers=actor_headers())
    assert product.status_code == 500
    assert product.get_json() == {"error": "Internal server error"}
