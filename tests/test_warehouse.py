"""Warehouses, locations, products and stock movements."""
from decimal import Decimal

import pytest
from fastapi import HTTPException

from app.models import Account, FinTransaction, ProductStock, StockMovement
from app.schemas.warehouse import InboundIn, WriteOffIn
from app.services import stock as stock_service


@pytest.fixture
def site(client, manager_headers):
    r = client.post("/api/warehouses", json={"name": "Main", "code": "main-1"}, headers=manager_headers)
    assert r.status_code == 201, r.text
    wh = r.json()["data"]
    locs = []
    for code in ("A-01", "A-02"):
        r = client.post(f"/api/warehouses/{wh['id']}/locations", json={"code": code, "zone": "A"},
                        headers=manager_headers)
        assert r.status_code == 201, r.text
        locs.append(r.json()["data"]["id"])
    r = client.post(
        "/api/products",
        json={"sku": "MUG-1", "barcode": "4600000000017", "name": "Mug", "unit_cost": 4, "unit_price": 9},
        headers=manager_headers,
    )
    assert r.status_code == 201, r.text
    return {"warehouse": wh["id"], "a1": locs[0], "a2": locs[1], "product": r.json()["data"]["id"]}


def _receive(client, headers, site, qty, location="a1", **extra):
    body = {"product_id": site["product"], "to_location_id": site[location], "quantity": qty, **extra}
    r = client.post("/api/stock-movements", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def _stock(db, product_id, location_id):
    db.expire_all()
    return (
        db.query(ProductStock)
        .filter(ProductStock.product_id == product_id, ProductStock.location_id == location_id)
        .first()
    )


class TestWarehouses:
    def test_code_is_normalised_and_unique(self, client, manager_headers, site):
        r = client.get(f"/api/warehouses/{site['warehouse']}", headers=manager_headers)
        data = r.json()["data"]
        assert data["code"] == "MAIN-1"
        assert [loc["code"] for loc in data["locations"]] == ["A-01", "A-02"]
        assert data["locations_count"] == 2

        r = client.post("/api/warehouses", json={"name": "Other", "code": "MAIN-1"}, headers=manager_headers)
        assert r.status_code == 409

    def test_location_code_unique_per_warehouse(self, client, manager_headers, site):
        r = client.post(f"/api/warehouses/{site['warehouse']}/locations", json={"code": "a-01"},
                        headers=manager_headers)
        assert r.status_code == 409

        other = client.post("/api/warehouses", json={"name": "Returns", "code": "RET", "type": "RETURNS"},
                            headers=manager_headers).json()["data"]
        r = client.post(f"/api/warehouses/{other['id']}/locations", json={"code": "A-01"},
                        headers=manager_headers)
        assert r.status_code == 201

    def test_location_holding_stock_cannot_be_deleted(self, client, manager_headers, site):
        _receive(client, manager_headers, site, 5)
        r = client.delete(f"/api/warehouses/locations/{site['a1']}", headers=manager_headers)
        assert r.status_code == 409
        r = client.delete(f"/api/warehouses/locations/{site['a2']}", headers=manager_headers)
        assert r.status_code == 200

    def test_gates(self, client, analyst_headers, manager_headers, site):
        assert client.get("/api/warehouses", headers=analyst_headers).status_code == 200
        r = client.post("/api/warehouses", json={"name": "X", "code": "X"}, headers=analyst_headers)
        assert r.status_code == 403
        r = client.delete(f"/api/warehouses/{site['warehouse']}", headers=manager_headers)
        assert r.status_code == 403

    def test_admin_deletes_empty_warehouse(self, client, admin_headers, site):
        r = client.delete(f"/api/warehouses/{site['warehouse']}", headers=admin_headers)
        assert r.status_code == 200
        assert client.get(f"/api/warehouses/{site['warehouse']}", headers=admin_headers).status_code == 404


class TestProducts:
    def test_duplicate_sku_and_barcode(self, client, manager_headers, site):
        r = client.post("/api/products", json={"sku": "MUG-1", "name": "Copy"}, headers=manager_headers)
        assert r.status_code == 409
        r = client.post("/api/products", json={"sku": "MUG-2", "barcode": "4600000000017", "name": "Copy"},
                        headers=manager_headers)
        assert r.status_code == 409

    def test_search(self, client, manager_headers, site):
        client.post("/api/products", json={"sku": "BOX-9", "name": "Carton"}, headers=manager_headers)
        r = client.get("/api/products", params={"search": "mug"}, headers=manager_headers)
        assert [p["sku"] for p in r.json()["data"]] == ["MUG-1"]
        assert r.json()["meta"]["total"] == 1

    def test_lookup_by_barcode_lists_available_stock(self, client, manager_headers, site):
        _receive(client, manager_headers, site, 3)
        r = client.get("/api/products/lookup/4600000000017", headers=manager_headers)
        assert r.status_code == 200
        data = r.json()["data"]
        assert data["product"]["sku"] == "MUG-1"
        assert [(s["location_id"], s["available_qty"]) for s in data["stocks"]] == [(site["a1"], 3)]

        assert client.get("/api/products/lookup/NOPE", headers=manager_headers).status_code == 404

    def test_detail_carries_totals_and_movements(self, client, manager_headers, site):
        _receive(client, manager_headers, site, 4)
        _receive(client, manager_headers, site, 6, location="a2")
        r = client.get(f"/api/products/{site['product']}", headers=manager_headers)
        data = r.json()["data"]
        assert data["total_quantity"] == 10
        assert data["total_available"] == 10
        assert data["unit_cost"] == 4
        assert len(data["stocks"]) == 2
        assert [m["quantity"] for m in data["recent_movements"]] == [6, 4]

    def test_product_with_movements_cannot_be_deleted(self, client, admin_headers, manager_headers, site):
        _receive(client, manager_headers, site, 1)
        r = client.delete(f"/api/products/{site['product']}", headers=admin_headers)
        assert r.status_code == 409


class TestMovements:
    def test_receive_marks_location_occupied(self, client, db, manager_headers, site):
        m = _receive(client, manager_headers, site, 12, batch_number="B-7")
        assert m["movement_type"] == "INBOUND"
        assert m["batch_number"] == "B-7"
        assert m["to_location"]["warehouse"]["code"] == "MAIN-1"

        s = _stock(db, site["product"], site["a1"])
        assert (s.quantity, s.reserved_qty, s.available_qty) == (12, 0, 12)
        loc = client.get(f"/api/warehouses/locations/{site['a1']}", headers=manager_headers).json()["data"]
        assert loc["status"] == "OCCUPIED"

    def test_transfer_moves_stock_and_frees_source(self, client, db, manager_headers, site):
        _receive(client, manager_headers, site, 5)
        r = client.post(
            "/api/stock-movements/transfer",
            json={"product_id": site["product"], "from_location_id": site["a1"],
                  "to_location_id": site["a2"], "quantity": 5},
            headers=manager_headers,
        )
        assert r.status_code == 201, r.text
        assert _stock(db, site["product"], site["a1"]).quantity == 0
        assert _stock(db, site["product"], site["a2"]).quantity == 5

        a1 = client.get(f"/api/warehouses/locations/{site['a1']}", headers=manager_headers).json()["data"]
        assert a1["status"] == "FREE"

    def test_transfer_cannot_exceed_available(self, client, db, manager_headers, site):
        _receive(client, manager_headers, site, 5)
        row = _stock(db, site["product"], site["a1"])
        row.reserved_qty, row.available_qty = 3, 2
        db.commit()

        r = client.post(
            "/api/stock-movements/transfer",
            json={"product_id": site["product"], "from_location_id": site["a1"],
                  "to_location_id": site["a2"], "quantity": 3},
            headers=manager_headers,
        )
        assert r.status_code == 400
        assert _stock(db, site["product"], site["a1"]).quantity == 5
        assert _stock(db, site["product"], site["a2"]) is None

    def test_transfer_to_same_location_is_rejected(self, client, manager_headers, site):
        _receive(client, manager_headers, site, 5)
        r = client.post(
            "/api/stock-movements/transfer",
            json={"product_id": site["product"], "from_location_id": site["a1"],
                  "to_location_id": site["a1"], "quantity": 1},
            headers=manager_headers,
        )
        assert r.status_code == 400

    def test_blocked_location_stays_blocked(self, client, manager_headers, site):
        client.put(f"/api/warehouses/locations/{site['a1']}", json={"status": "BLOCKED"}, headers=manager_headers)
        _receive(client, manager_headers, site, 2)
        loc = client.get(f"/api/warehouses/locations/{site['a1']}", headers=manager_headers).json()["data"]
        assert loc["status"] == "BLOCKED"

    def test_adjust_records_signed_difference(self, client, db, manager_headers, site):
        _receive(client, manager_headers, site, 10)
        r = client.post(
            f"/api/products/{site['product']}/adjust",
            json={"location_id": site["a1"], "quantity": 7, "reason": "Recount"},
            headers=manager_headers,
        )
        assert r.status_code == 200, r.text
        assert r.json()["data"]["movement_type"] == "ADJUSTMENT"
        assert r.json()["data"]["quantity"] == -3
        assert _stock(db, site["product"], site["a1"]).available_qty == 7

    def test_adjust_below_reserved_is_rejected(self, client, db, manager_headers, site):
        _receive(client, manager_headers, site, 10)
        row = _stock(db, site["product"], site["a1"])
        row.reserved_qty, row.available_qty = 4, 6
        db.commit()
        r = client.post(
            f"/api/products/{site['product']}/adjust",
            json={"location_id": site["a1"], "quantity": 3, "reason": "Recount"},
            headers=manager_headers,
        )
        assert r.status_code == 400

    def test_analyst_cannot_move_stock(self, client, analyst_headers, site):
        r = client.post(
            "/api/stock-movements",
            json={"product_id": site["product"], "to_location_id": site["a1"], "quantity": 1},
            headers=analyst_headers,
        )
        assert r.status_code == 403

    def test_stats_and_filters(self, client, manager_headers, site):
        _receive(client, manager_headers, site, 5)
        _receive(client, manager_headers, site, 2, location="a2", movement_type="RETURN")

        r = client.get("/api/stock-movements/stats", headers=manager_headers)
        by_type = {row["movement_type"]: row for row in r.json()["data"]["by_type"]}
        assert by_type["INBOUND"] == {"movement_type": "INBOUND", "count": 1, "quantity": 5}
        assert by_type["RETURN"]["quantity"] == 2
        assert r.json()["data"]["today_count"] == 2

        r = client.get(f"/api/stock-movements/location/{site['a2']}", headers=manager_headers)
        assert [m["movement_type"] for m in r.json()["data"]] == ["RETURN"]
        r = client.get("/api/stock-movements", params={"movement_type": "inbound"}, headers=manager_headers)
        assert len(r.json()["data"]) == 1


class TestWriteOff:
    def test_write_off_posts_loss_to_ledger(self, client, db, manager_headers, site, accounts):
        _receive(client, manager_headers, site, 10)
        r = client.post(
            "/api/stock-movements/write-off",
            json={"product_id": site["product"], "location_id": site["a1"], "quantity": 3, "reason": "Broken"},
            headers=manager_headers,
        )
        assert r.status_code == 201, r.text
        movement = r.json()["data"]
        assert movement["movement_type"] == "WRITE_OFF"
        assert movement["fin_transaction_id"] is not None

        db.expire_all()
        tx = db.get(FinTransaction, movement["fin_transaction_id"])
        assert tx.amount == Decimal("12.00")
        balances = {a.code: a.balance for a in db.query(Account).all()}
        assert balances["91.2"] == Decimal("12.00")
        assert balances["41"] == Decimal("-12.00")
        assert _stock(db, site["product"], site["a1"]).quantity == 7

    def test_write_off_may_consume_reserved_units(self, db, client, manager_headers, site, accounts):
        _receive(client, manager_headers, site, 4)
        row = _stock(db, site["product"], site["a1"])
        row.reserved_qty, row.available_qty = 3, 1
        db.commit()

        stock_service.write_off(db, WriteOffIn(product_id=site["product"], location_id=site["a1"],
                                               quantity=2, reason="Expired"))

        row = _stock(db, site["product"], site["a1"])
        assert (row.quantity, row.reserved_qty, row.available_qty) == (2, 2, 0)

    def test_write_off_without_accounts_still_moves_stock(self, db, client, manager_headers, site):
        _receive(client, manager_headers, site, 4)
        m = stock_service.write_off(db, WriteOffIn(product_id=site["product"], location_id=site["a1"],
                                                   quantity=1, reason="Lost"))
        assert m.fin_transaction_id is None
        assert _stock(db, site["product"], site["a1"]).quantity == 3

    def test_failed_posting_leaves_stock_untouched(self, db, client, manager_headers, site, accounts, monkeypatch):
        _receive(client, manager_headers, site, 4)

        def _fail(*args, **kwargs):
            raise RuntimeError("posting failed")
        monkeypatch.setattr(stock_service.ledger, "add_posting", _fail)

        with pytest.raises(RuntimeError):
            stock_service.write_off(db, WriteOffIn(product_id=site["product"], location_id=site["a1"],
                                                   quantity=2, reason="Broken"))

        assert _stock(db, site["product"], site["a1"]).quantity == 4
        assert db.query(StockMovement).filter(StockMovement.movement_type == "WRITE_OFF").count() == 0

    def test_missing_location_and_short_stock(self, db, client, manager_headers, site):
        _receive(client, manager_headers, site, 1)
        with pytest.raises(HTTPException) as exc:
            stock_service.receive(db, InboundIn(product_id=site["product"], to_location_id=999, quantity=1))
        assert exc.value.status_code == 404
        with pytest.raises(HTTPException) as exc:
            stock_service.write_off(db, WriteOffIn(product_id=site["product"], location_id=site["a1"],
                                                   quantity=5, reason="Lost"))
        assert exc.value.status_code == 400
