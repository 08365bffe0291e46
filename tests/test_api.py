"""
HTTP surface: envelope, status mapping, exports.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from pharmaledger.api.deps import get_db, get_ledger, get_today
from pharmaledger.main import app
from pharmaledger.services.ledger import LedgerEngine

from conftest import TODAY

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def client(session_factory, ledger):
    def _db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _purchase(client, pid, actor, quantity=10, unit_cost="12.00", **extra):
    body = {"product_id": pid, "quantity": quantity, "unit_cost": unit_cost, "actor_id": actor}
    body.update(extra)
    return client.post("/api/ledger/purchases", json=body)


def _sale(client, pid, actor, quantity=1, unit_price="20.00"):
    return client.post(
        "/api/ledger/sales",
        json={"product_id": pid, "quantity": quantity, "unit_price": unit_price, "actor_id": actor},
    )


# ══════════════════════════════════════════════════════════════
# WRITES
# ══════════════════════════════════════════════════════════════

def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "version" in r.json()


def test_purchase_then_sale(client, actor, supplier, make_product):
    pid = make_product()

    r = _purchase(client, pid, actor, supplier_id=supplier)
    assert r.status_code == 201
    body = r.json()
    assert body["ok"] is True
    assert body["data"]["quantity_after"] == 10
    assert body["data"]["total"] == 120.0

    r = _sale(client, pid, actor, quantity=5)
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["total"] == 100.0
    assert data["profit"] == 40.0
    assert data["quantity_after"] == 5
    assert data["alert_state"] == "low_stock"


def test_insufficient_stock_is_409(client, actor, make_product):
    pid = make_product()
    _purchase(client, pid, actor, quantity=5)

    r = _sale(client, pid, actor, quantity=100)

    assert r.status_code == 409
    body = r.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "INSUFFICIENT_STOCK"
    assert body["error"]["details"] == {"product_id": pid, "requested": 100, "on_hand": 5}


def test_zero_quantity_is_422(client, actor, make_product):
    pid = make_product()
    r = _purchase(client, pid, actor, quantity=0)
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "INVALID_INPUT"


def test_malformed_body_is_422(client, actor, make_product):
    pid = make_product()
    r = _purchase(client, pid, actor, quantity="lots")
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "INVALID_INPUT"


def test_unknown_product_is_404(client, actor):
    r = _sale(client, 9999, actor)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_busy_is_503_with_retry_after(client, session_factory, clock, locks, actor, make_product):
    pid = make_product()
    impatient = LedgerEngine(session_factory, locks=locks, lock_timeout=0.05, clock=clock)
    app.dependency_overrides[get_ledger] = lambda: impatient
    with locks.hold(pid, timeout=1):
        r = _purchase(client, pid, actor)
    assert r.status_code == 503
    assert r.headers["Retry-After"] == "1"
    assert r.json()["error"]["code"] == "BUSY"


# ══════════════════════════════════════════════════════════════
# READS
# ══════════════════════════════════════════════════════════════

def test_product_snapshot_and_by_code(client, actor, make_product):
    pid = make_product(code="LOR10")
    _purchase(client, pid, actor, quantity=3)

    r = client.get(f"/api/ledger/products/{pid}")
    assert r.status_code == 200
    assert r.json()["data"]["quantity"] == 3

    r = client.get("/api/ledger/products/by-code/LOR10")
    assert r.json()["data"]["id"] == pid

    assert client.get("/api/ledger/products/by-code/NOPE").status_code == 404


def test_product_alert(client, actor, make_product):
    pid = make_product(expiry_date=TODAY + timedelta(days=5))
    _purchase(client, pid, actor, quantity=50)

    r = client.get(f"/api/ledger/products/{pid}/alert")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["alert_state"] == "expiring_soon"
    assert data["as_of"] == TODAY.isoformat()

    assert client.get("/api/ledger/products/4040/alert").status_code == 404


def test_product_history(client, actor, make_product):
    pid = make_product()
    _purchase(client, pid, actor, quantity=4)
    _sale(client, pid, actor, quantity=1)

    r = client.get(f"/api/ledger/products/{pid}/history")
    body = r.json()
    assert [e["quantity_change"] for e in body["data"]] == [4, -1]
    assert body["meta"] == {"product_id": pid, "quantity": 3, "ledger_seq": 2}


def test_list_sales_by_date(client, actor, make_product):
    pid = make_product()
    _purchase(client, pid, actor, quantity=4)
    _sale(client, pid, actor)
    _sale(client, pid, actor)

    day = TODAY.isoformat()
    r = client.get(f"/api/ledger/sales?date_from={day}&date_to={day}")
    assert r.json()["meta"]["count"] == 2

    nextday = (TODAY + timedelta(days=1)).isoformat()
    r = client.get(f"/api/ledger/sales?date_from={nextday}")
    assert r.json()["meta"]["count"] == 0

    r = client.get(f"/api/ledger/purchases?product_id={pid}")
    assert r.json()["meta"]["count"] == 1


def test_exports_are_xlsx(client, actor, make_product):
    pid = make_product()
    _purchase(client, pid, actor, quantity=4)
    _sale(client, pid, actor)

    for path in ("/api/ledger/sales/export", "/api/ledger/purchases/export"):
        r = client.get(path)
        assert r.status_code == 200
        assert r.headers["content-type"] == XLSX
        # xlsx is a zip container
        assert r.content[:2] == b"PK"


# ══════════════════════════════════════════════════════════════
# DASHBOARD
# ══════════════════════════════════════════════════════════════

def test_dashboard_summary_for_explicit_period(client, actor, make_product):
    pid = make_product(purchase_cost="12.00")
    _purchase(client, pid, actor, quantity=20)
    _sale(client, pid, actor, quantity=5)

    day = TODAY.isoformat()
    r = client.get(f"/api/dashboard/summary?date_from={day}&date_to={day}")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total_sales"] == 100.0
    assert data["net_profit"] == 40.0
    assert data["total_purchases"] == 240.0


def test_dashboard_alerts(client, make_product):
    make_product()
    r = client.get("/api/dashboard/alerts")
    assert r.json()["data"]["counts"]["low_stock"] == 1


def test_top_products_limit_is_validated(client):
    r = client.get("/api/dashboard/top-products?limit=0")
    assert r.status_code == 422


# ══════════════════════════════════════════════════════════════
# INPUT RANGES
# ══════════════════════════════════════════════════════════════

def test_oversized_quantity_is_422_not_500(client, actor, make_product, read_quantity):
    pid = make_product()
    r = _purchase(client, pid, actor, quantity=2**63)
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "INVALID_INPUT"
    assert read_quantity(pid) == 0


def test_oversized_product_filter_is_422(client):
    assert client.get(f"/api/ledger/sales?product_id={2**63}").status_code == 422
