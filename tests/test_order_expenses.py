"""Order expense ledger API: batch operations, templates and price drift."""
from tests.helpers import create_order, create_vendor_service, get_order


def _expenses(client, headers, order_id):
    r = client.get(f"/api/order-expenses/order/{order_id}", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]


class TestExpenseCrud:
    def test_missing_order_is_404(self, client, manager_headers, users):
        r = client.post("/api/order-expenses/order/999", json={"quantity": 1}, headers=manager_headers)
        assert r.status_code == 404
        assert r.json() == {"success": False, "error": "Order not found"}

    def test_missing_expense_is_404(self, client, manager_headers, users):
        assert client.put("/api/order-expenses/999", json={}, headers=manager_headers).status_code == 404
        assert client.delete("/api/order-expenses/999", headers=manager_headers).status_code == 404

    def test_defaults(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.post(f"/api/order-expenses/order/{order['id']}", json={}, headers=manager_headers)
        assert r.status_code == 201, r.text
        e = r.json()["data"]
        assert e["category"] == "OTHER"
        assert e["unit"] == "PIECE"
        assert e["description"] == "Expense"
        assert e["quantity"] == 1
        assert e["total_amount"] == 0
        assert e["is_price_locked"] is False
        assert e["price_locked_at"] is None

    def test_service_price_is_default_and_snapshot(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        svc = create_vendor_service(client, manager_headers, price=12.5)

        r = client.post(
            f"/api/order-expenses/order/{order['id']}",
            json={"vendor_service_id": svc["id"], "quantity": 4},
            headers=manager_headers,
        )
        e = r.json()["data"]
        assert e["unit_price"] == 12.5
        assert e["original_price"] == 12.5
        assert e["total_amount"] == 50
        assert e["vendor_id"] == svc["vendor_id"]

        # explicit price wins, snapshot still records the service price
        r = client.post(
            f"/api/order-expenses/order/{order['id']}",
            json={"vendor_service_id": svc["id"], "quantity": 1, "unit_price": 10},
            headers=manager_headers,
        )
        e = r.json()["data"]
        assert e["unit_price"] == 10
        assert e["original_price"] == 12.5

    def test_rebinding_service_takes_new_snapshot(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        first = create_vendor_service(client, manager_headers, price=10)
        second = create_vendor_service(client, manager_headers, price=14, name="Bubble wrap")
        r = client.post(f"/api/order-expenses/order/{order['id']}",
                        json={"vendor_service_id": first["id"], "quantity": 2}, headers=manager_headers)
        expense_id = r.json()["data"]["id"]

        r = client.put(f"/api/order-expenses/{expense_id}",
                       json={"vendor_service_id": second["id"]}, headers=manager_headers)
        assert r.status_code == 200, r.text
        e = r.json()["data"]
        assert e["vendor_service_id"] == second["id"]
        assert e["original_price"] == 14
        assert e["unit_price"] == 14
        assert e["total_amount"] == 28
        assert get_order(client, manager_headers, order["id"])["estimated_cost"] == 28

        # explicit price on rebind is kept, snapshot still follows the service
        r = client.put(f"/api/order-expenses/{expense_id}",
                       json={"vendor_service_id": first["id"], "unit_price": 9}, headers=manager_headers)
        e = r.json()["data"]
        assert e["original_price"] == 10
        assert e["unit_price"] == 9

    def test_rebinding_to_missing_service_is_404(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.post(f"/api/order-expenses/order/{order['id']}", json={"unit_price": 5}, headers=manager_headers)
        expense_id = r.json()["data"]["id"]
        r = client.put(f"/api/order-expenses/{expense_id}", json={"vendor_service_id": 999},
                       headers=manager_headers)
        assert r.status_code == 404

    def test_lock_timestamp_only_set_on_transition(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.post(f"/api/order-expenses/order/{order['id']}", json={"unit_price": 5}, headers=manager_headers)
        expense_id = r.json()["data"]["id"]

        r = client.put(f"/api/order-expenses/{expense_id}", json={"is_price_locked": True}, headers=manager_headers)
        locked_at = r.json()["data"]["price_locked_at"]
        assert locked_at is not None

        r = client.put(f"/api/order-expenses/{expense_id}",
                       json={"is_price_locked": True, "notes": "again"}, headers=manager_headers)
        assert r.json()["data"]["price_locked_at"] == locked_at

    def test_list_summary(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        for body in (
            {"category": "PACKAGING", "quantity": 2, "unit_price": 10},
            {"category": "LABOR", "quantity": 1, "unit_price": 30},
            {"category": "PACKAGING", "quantity": 1, "unit_price": 5},
        ):
            client.post(f"/api/order-expenses/order/{order['id']}", json=body, headers=manager_headers)

        data = _expenses(client, manager_headers, order["id"])
        assert [e["category"] for e in data["expenses"]] == ["LABOR", "PACKAGING", "PACKAGING"]
        summary = data["summary"]
        assert summary["count"] == 3
        assert summary["total_planned"] == 55
        assert summary["total_actual"] == 55
        groups = {g["category"]: g for g in summary["by_category"]}
        assert groups["PACKAGING"]["count"] == 2
        assert groups["PACKAGING"]["planned"] == 25
        assert groups["LABOR"]["label"] == "Labor"

    def test_categories(self, client, analyst_headers):
        r = client.get("/api/order-expenses/categories", headers=analyst_headers)
        values = [c["value"] for c in r.json()["data"]]
        assert values == ["PACKAGING", "LABOR", "RENT", "LOGISTICS", "MATERIALS", "OTHER"]


class TestBatchOperations:
    def test_bulk_create(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.post(
            f"/api/order-expenses/order/{order['id']}/bulk",
            json={"expenses": [
                {"description": "Tape", "quantity": 2, "unit_price": 3},
                {"description": "Labels", "quantity": 10, "unit_price": 1, "planned_amount": 99},
            ]},
            headers=manager_headers,
        )
        assert r.status_code == 201, r.text
        body = r.json()
        assert body["meta"]["count"] == 2
        assert [e["planned_amount"] for e in body["data"]] == [6, 10]
        assert get_order(client, manager_headers, order["id"])["estimated_cost"] == 16

    def test_bulk_empty_is_400(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.post(f"/api/order-expenses/order/{order['id']}/bulk",
                        json={"expenses": []}, headers=manager_headers)
        assert r.status_code == 400

    def test_clone_repulls_current_price(self, client, manager_headers, sample_client):
        svc = create_vendor_service(client, manager_headers, price=10)
        source = create_order(client, manager_headers, sample_client.id)
        target = create_order(client, manager_headers, sample_client.id)

        client.post(f"/api/order-expenses/order/{source['id']}",
                    json={"vendor_service_id": svc["id"], "quantity": 3}, headers=manager_headers)
        client.post(f"/api/order-expenses/order/{source['id']}",
                    json={"description": "Manual", "quantity": 1, "unit_price": 7}, headers=manager_headers)
        client.put(f"/api/vendor-services/{svc['id']}", json={"price": 11}, headers=manager_headers)

        r = client.post(f"/api/order-expenses/order/{target['id']}/clone/{source['id']}", headers=manager_headers)
        assert r.status_code == 201, r.text
        cloned = sorted(r.json()["data"], key=lambda e: e["id"])
        assert cloned[0]["unit_price"] == 11
        assert cloned[0]["original_price"] == 11
        assert cloned[0]["total_amount"] == 33
        assert cloned[1]["unit_price"] == 7
        assert all(e["status"] == "PLANNED" for e in cloned)
        assert get_order(client, manager_headers, target["id"])["estimated_cost"] == 40

    def test_clone_from_empty_source_is_404(self, client, manager_headers, sample_client):
        source = create_order(client, manager_headers, sample_client.id)
        target = create_order(client, manager_headers, sample_client.id)
        r = client.post(f"/api/order-expenses/order/{target['id']}/clone/{source['id']}", headers=manager_headers)
        assert r.status_code == 404

    def test_clone_to_missing_target_is_404(self, client, manager_headers, sample_client):
        source = create_order(client, manager_headers, sample_client.id)
        client.post(f"/api/order-expenses/order/{source['id']}", json={"unit_price": 1}, headers=manager_headers)
        r = client.post(f"/api/order-expenses/order/999/clone/{source['id']}", headers=manager_headers)
        assert r.status_code == 404


class TestTemplates:
    def _template(self, client, headers, items, name="Standard parcel"):
        r = client.post("/api/expense-templates", json={"name": name, "items": items}, headers=headers)
        assert r.status_code == 201, r.text
        return r.json()["data"]

    def test_apply_three_plain_items(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        tpl = self._template(client, manager_headers, [
            {"description": "Box", "category": "PACKAGING", "default_quantity": 1, "default_price": 20},
            {"description": "Picking", "category": "LABOR", "default_quantity": 2, "default_price": 15},
            {"description": "Courier", "category": "LOGISTICS", "default_quantity": 1, "default_price": 100},
        ])

        r = client.post(f"/api/order-expenses/order/{order['id']}/apply-template/{tpl['id']}",
                        headers=manager_headers)
        assert r.status_code == 201, r.text
        rows = r.json()["data"]
        assert len(rows) == 3
        assert {e["status"] for e in rows} == {"PLANNED"}
        assert [e["description"] for e in rows] == ["Box", "Picking", "Courier"]
        assert get_order(client, manager_headers, order["id"])["estimated_cost"] == 150

    def test_apply_with_formulas(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id, items=[
            {"sku": "A", "name": "A", "quantity": 2, "weight": 1.5},
            {"sku": "B", "name": "B", "quantity": 1, "weight": 2},
        ])
        svc = create_vendor_service(client, manager_headers, price=8)
        tpl = self._template(client, manager_headers, [
            {"description": "Per row", "quantity_formula": "itemsCount * 2", "default_price": 1},
            {"description": "Per 10kg", "quantity_formula": "totalWeight / 10", "vendor_service_id": svc["id"]},
            {"description": "Broken", "quantity_formula": "__import__('os')", "default_quantity": 3},
        ])

        r = client.post(f"/api/order-expenses/order/{order['id']}/apply-template/{tpl['id']}",
                        headers=manager_headers)
        rows = r.json()["data"]
        assert [e["quantity"] for e in rows] == [4, 1, 3]
        assert rows[1]["unit_price"] == 8
        assert rows[1]["original_price"] == 8
        assert rows[1]["vendor_id"] == svc["vendor_id"]

    def test_apply_oversized_formula_uses_default(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        tpl = self._template(client, manager_headers, [
            {"description": "Runaway", "quantity_formula": "1e30", "default_quantity": 2, "default_price": 5},
        ])

        r = client.post(f"/api/order-expenses/order/{order['id']}/apply-template/{tpl['id']}",
                        headers=manager_headers)
        assert r.status_code == 201, r.text
        row = r.json()["data"][0]
        assert row["quantity"] == 2
        assert row["total_amount"] == 10
        assert get_order(client, manager_headers, order["id"])["estimated_cost"] == 10

    def test_apply_missing_template_is_404(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.post(f"/api/order-expenses/order/{order['id']}/apply-template/42", headers=manager_headers)
        assert r.status_code == 404

    def test_update_replaces_items_and_duplicate(self, client, manager_headers, users):
        tpl = self._template(client, manager_headers, [{"description": "Old"}])
        r = client.put(f"/api/expense-templates/{tpl['id']}",
                       json={"items": [{"description": "New 1"}, {"description": "New 2"}]},
                       headers=manager_headers)
        assert [i["description"] for i in r.json()["data"]["items"]] == ["New 1", "New 2"]

        r = client.post(f"/api/expense-templates/{tpl['id']}/duplicate", headers=manager_headers)
        assert r.status_code == 201
        dup = r.json()["data"]
        assert dup["name"] == "Standard parcel (copy)"
        assert len(dup["items"]) == 2

    def test_duplicate_name_conflicts(self, client, manager_headers, users):
        self._template(client, manager_headers, [], name="Same")
        r = client.post("/api/expense-templates", json={"name": "Same"}, headers=manager_headers)
        assert r.status_code == 409


class TestPriceChanges:
    def test_detects_drift_on_unlocked_lines(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        svc = create_vendor_service(client, manager_headers, price=10)
        r = client.post(f"/api/order-expenses/order/{order['id']}",
                        json={"vendor_service_id": svc["id"], "quantity": 5}, headers=manager_headers)
        expense_id = r.json()["data"]["id"]

        r = client.put(f"/api/vendor-services/{svc['id']}", json={"price": 12}, headers=manager_headers)
        history = r.json()["data"]["price_history"]
        assert len(history) == 1
        assert history[0]["old_price"] == 10
        assert history[0]["new_price"] == 12

        data = client.get(f"/api/order-expenses/order/{order['id']}/price-changes",
                          headers=manager_headers).json()["data"]
        assert data["summary"] == {"count": 1, "total_impact": 10}
        change = data["changes"][0]
        assert change["expense_id"] == expense_id
        assert change["original_price"] == 10
        assert change["current_price"] == 12
        assert change["difference"] == 2
        assert change["difference_percent"] == 20
        assert change["potential_impact"] == 10

        client.put(f"/api/order-expenses/{expense_id}", json={"is_price_locked": True}, headers=manager_headers)
        data = client.get(f"/api/order-expenses/order/{order['id']}/price-changes",
                          headers=manager_headers).json()["data"]
        assert data["changes"] == []

    def test_same_price_update_keeps_history_empty(self, client, manager_headers, users):
        svc = create_vendor_service(client, manager_headers, price=10)
        r = client.put(f"/api/vendor-services/{svc['id']}", json={"price": 10, "notes": "checked"},
                       headers=manager_headers)
        assert r.json()["data"]["price_history"] == []
