"""Warehouse task lifecycle and the stock it moves."""
from datetime import date

import pytest

from app.models import ProductStock, StockMovement, WarehouseTask
from app.services.warehouse_tasks import generate_task_number


@pytest.fixture
def site(client, manager_headers):
    wh = client.post("/api/warehouses", json={"name": "Main", "code": "MAIN"},
                     headers=manager_headers).json()["data"]
    locs = [
        client.post(f"/api/warehouses/{wh['id']}/locations", json={"code": code},
                    headers=manager_headers).json()["data"]["id"]
        for code in ("DOCK", "A-01")
    ]
    product = client.post("/api/products", json={"sku": "TEE-M", "name": "T-shirt M"},
                          headers=manager_headers).json()["data"]
    return {"warehouse": wh["id"], "dock": locs[0], "shelf": locs[1], "product": product["id"]}


def _task(client, headers, site, type_, items):
    r = client.post(
        "/api/warehouse-tasks",
        json={"warehouse_id": site["warehouse"], "type": type_, "items": items},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


def _complete(client, headers, task, index=0, **body):
    item_id = task["items"][index]["id"]
    return client.post(f"/api/warehouse-tasks/{task['id']}/items/{item_id}/complete", json=body, headers=headers)


def _qty(db, product_id, location_id):
    db.expire_all()
    row = (
        db.query(ProductStock)
        .filter(ProductStock.product_id == product_id, ProductStock.location_id == location_id)
        .first()
    )
    return row.quantity if row else 0


class TestTaskNumbers:
    def test_sequential_per_day(self, db, client, manager_headers, site):
        assert generate_task_number(db, date(2026, 3, 1)) == "WT-20260301-0001"
        db.add(WarehouseTask(task_number="WT-20260301-0007", warehouse_id=site["warehouse"], type="PICKING"))
        db.commit()
        assert generate_task_number(db, date(2026, 3, 1)) == "WT-20260301-0008"
        assert generate_task_number(db, date(2026, 3, 2)) == "WT-20260302-0001"


class TestLifecycle:
    def test_receiving_then_putaway(self, client, db, manager_headers, site):
        receiving = _task(client, manager_headers, site, "RECEIVING",
                          [{"product_id": site["product"], "expected_qty": 20, "to_location_id": site["dock"]}])
        assert receiving["status"] == "NEW"
        assert receiving["task_number"].startswith("WT-")

        r = _complete(client, manager_headers, receiving, actual_qty=18)
        assert r.status_code == 200, r.text
        data = r.json()["data"]
        assert data["status"] == "COMPLETED"
        assert data["completed_at"] is not None
        assert [(m["movement_type"], m["quantity"]) for m in data["movements"]] == [("INBOUND", 18)]
        assert _qty(db, site["product"], site["dock"]) == 18

        putaway = _task(client, manager_headers, site, "TRANSFER", [{
            "product_id": site["product"], "expected_qty": 18,
            "from_location_id": site["dock"], "to_location_id": site["shelf"],
        }])
        r = _complete(client, manager_headers, putaway)
        assert r.status_code == 200, r.text
        assert _qty(db, site["product"], site["dock"]) == 0
        assert _qty(db, site["product"], site["shelf"]) == 18

    def test_task_completes_after_last_item(self, client, manager_headers, site):
        task = _task(client, manager_headers, site, "RECEIVING", [
            {"product_id": site["product"], "expected_qty": 1, "to_location_id": site["dock"]},
            {"product_id": site["product"], "expected_qty": 2, "to_location_id": site["dock"]},
        ])
        first = _complete(client, manager_headers, task, 0).json()["data"]
        assert first["status"] == "IN_PROGRESS"
        assert first["started_at"] is not None
        last = _complete(client, manager_headers, task, 1).json()["data"]
        assert last["status"] == "COMPLETED"

    def test_item_cannot_complete_twice(self, client, manager_headers, site):
        task = _task(client, manager_headers, site, "RECEIVING", [
            {"product_id": site["product"], "expected_qty": 1, "to_location_id": site["dock"]},
            {"product_id": site["product"], "expected_qty": 1, "to_location_id": site["dock"]},
        ])
        assert _complete(client, manager_headers, task).status_code == 200
        assert _complete(client, manager_headers, task).status_code == 400

    def test_shipping_needs_stock(self, client, db, manager_headers, site):
        task = _task(client, manager_headers, site, "SHIPPING",
                     [{"product_id": site["product"], "expected_qty": 5, "from_location_id": site["shelf"]}])
        r = _complete(client, manager_headers, task)
        assert r.status_code == 400

        db.expire_all()
        item = db.get(WarehouseTask, task["id"]).items[0]
        assert item.is_completed is False
        assert db.query(StockMovement).count() == 0

    def test_inventory_count_replaces_quantity(self, client, db, manager_headers, site):
        client.post("/api/stock-movements", json={"product_id": site["product"], "to_location_id": site["shelf"],
                                                  "quantity": 10}, headers=manager_headers)
        task = _task(client, manager_headers, site, "INVENTORY",
                     [{"product_id": site["product"], "expected_qty": 10, "from_location_id": site["shelf"]}])
        data = _complete(client, manager_headers, task, actual_qty=8).json()["data"]
        assert [(m["movement_type"], m["quantity"]) for m in data["movements"]] == [("ADJUSTMENT", -2)]
        assert _qty(db, site["product"], site["shelf"]) == 8


class TestStartCancelDelete:
    def test_start_assigns_current_user(self, client, users, analyst_headers, manager_headers, site):
        task = _task(client, manager_headers, site, "PICKING", [])
        r = client.post(f"/api/warehouse-tasks/{task['id']}/start", headers=analyst_headers)
        assert r.status_code == 200
        assert r.json()["data"]["assigned_to_id"] == users["ANALYST"].id
        assert r.json()["data"]["status"] == "IN_PROGRESS"

        r = client.post(f"/api/warehouse-tasks/{task['id']}/start", headers=analyst_headers)
        assert r.status_code == 400

    def test_cancel_keeps_reason_and_blocks_items(self, client, manager_headers, site):
        task = _task(client, manager_headers, site, "RECEIVING",
                     [{"product_id": site["product"], "expected_qty": 1, "to_location_id": site["dock"]}])
        r = client.post(f"/api/warehouse-tasks/{task['id']}/cancel", json={"reason": "Supplier late"},
                        headers=manager_headers)
        assert r.json()["data"]["status"] == "CANCELLED"
        assert r.json()["data"]["notes"] == "Cancelled: Supplier late"
        assert _complete(client, manager_headers, task).status_code == 400

    def test_completed_task_cannot_be_cancelled(self, client, manager_headers, site):
        task = _task(client, manager_headers, site, "RECEIVING",
                     [{"product_id": site["product"], "expected_qty": 1, "to_location_id": site["dock"]}])
        _complete(client, manager_headers, task)
        r = client.post(f"/api/warehouse-tasks/{task['id']}/cancel", json={}, headers=manager_headers)
        assert r.status_code == 400

    def test_only_admin_deletes(self, client, db, admin_headers, manager_headers, site):
        task = _task(client, manager_headers, site, "RECEIVING",
                     [{"product_id": site["product"], "expected_qty": 3, "to_location_id": site["dock"]}])
        _complete(client, manager_headers, task)

        assert client.delete(f"/api/warehouse-tasks/{task['id']}", headers=manager_headers).status_code == 403
        assert client.delete(f"/api/warehouse-tasks/{task['id']}", headers=admin_headers).status_code == 200

        db.expire_all()
        movement = db.query(StockMovement).one()
        assert movement.task_id is None
        assert client.get(f"/api/warehouse-tasks/{task['id']}", headers=admin_headers).status_code == 404

    def test_filters(self, client, manager_headers, site):
        _task(client, manager_headers, site, "PICKING", [])
        _task(client, manager_headers, site, "RECEIVING", [])
        r = client.get("/api/warehouse-tasks", params={"type": "picking"}, headers=manager_headers)
        assert [t["type"] for t in r.json()["data"]] == ["PICKING"]
