"""P&L views and report exports."""
import csv
import io

from openpyxl import load_workbook

from tests.helpers import create_order, create_vendor_service


def _order_with_operations(client, headers, client_id):
    order = create_order(client, headers, client_id, items=[
        {"sku": "W-1", "name": "Widget", "quantity": 4, "weight": 0.5},
    ])
    svc = create_vendor_service(client, headers, price=25, type="PACKING")

    r = client.post("/api/cost-operations", json={
        "order_id": order["id"], "vendor_service_id": svc["id"], "quantity": 4,
    }, headers=headers)
    assert r.status_code == 201, r.text
    op = r.json()["data"]
    assert op["unit_price"] == 25
    assert op["calculated_amount"] == 100
    assert op["actual_amount"] == 100

    r = client.post("/api/income-operations", json={
        "order_id": order["id"], "invoice_amount": 1000, "paid_amount": 600,
    }, headers=headers)
    assert r.status_code == 201, r.text
    return order, svc


class TestOrderPnl:
    def test_by_order_number(self, client, manager_headers, sample_client):
        order, _ = _order_with_operations(client, manager_headers, sample_client.id)

        r = client.get(f"/api/reports/order/{order['order_number']}/pnl", headers=manager_headers)
        assert r.status_code == 200, r.text
        data = r.json()["data"]

        assert data["order"]["id"] == order["id"]
        assert data["order"]["client"] == "Acme Retail"
        assert data["income"]["total"] == 600
        assert data["income"]["invoiced"] == 1000
        assert data["costs"]["total"] == 100
        assert data["costs"]["by_type"]["PACKING"]["amount"] == 100
        assert data["costs"]["details"][0]["vendor"] == "PackCo"
        assert data["pnl"] == {"revenue": 600, "cost": 100, "profit": 500, "margin_percent": 83.33}

        unit = data["unit_economics"]
        assert unit["total_items"] == 4
        assert unit["revenue_per_item"] == 150
        assert unit["cost_per_item"] == 25
        assert unit["profit_per_item"] == 125

    def test_by_id_and_missing(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.get(f"/api/reports/order/{order['id']}/pnl", headers=manager_headers)
        data = r.json()["data"]
        assert data["pnl"]["margin_percent"] == 0
        assert data["unit_economics"]["revenue_per_item"] == 0

        r = client.get("/api/reports/order/ORD-000000-NOPE/pnl", headers=manager_headers)
        assert r.status_code == 404

    def test_later_price_change_keeps_snapshot(self, client, manager_headers, sample_client):
        order, svc = _order_with_operations(client, manager_headers, sample_client.id)
        client.put(f"/api/vendor-services/{svc['id']}", json={"price": 40}, headers=manager_headers)

        data = client.get(f"/api/reports/order/{order['id']}/pnl", headers=manager_headers).json()["data"]
        assert data["costs"]["details"][0]["unit_price"] == 25
        assert data["costs"]["total"] == 100

    def test_payment_moves_income(self, client, manager_headers, sample_client):
        order = create_order(client, manager_headers, sample_client.id)
        r = client.post("/api/income-operations", json={"order_id": order["id"], "invoice_amount": 500},
                        headers=manager_headers)
        op = r.json()["data"]
        assert op["paid_amount"] == 0
        assert op["client_id"] == sample_client.id

        r = client.post(f"/api/income-operations/{op['id']}/payment", json={"amount": 200},
                        headers=manager_headers)
        assert r.json()["data"]["paid_amount"] == 200
        r = client.post(f"/api/income-operations/{op['id']}/payment", json={"amount": 300},
                        headers=manager_headers)
        assert r.json()["data"]["paid_amount"] == 500

        data = client.get(f"/api/reports/order/{order['id']}/pnl", headers=manager_headers).json()["data"]
        assert data["income"]["total"] == 500
        o = client.get(f"/api/orders/{order['id']}", headers=manager_headers).json()["data"]
        assert o["total_income"] == 500


class TestOrdersReport:
    def test_rows_and_summary(self, client, manager_headers, analyst_headers, sample_client):
        _order_with_operations(client, manager_headers, sample_client.id)
        second = create_order(client, manager_headers, sample_client.id, total_income=200)
        client.post(f"/api/order-expenses/order/{second['id']}", json={"unit_price": 50}, headers=manager_headers)

        r = client.get("/api/reports/orders", headers=analyst_headers)
        assert r.status_code == 200, r.text
        data = r.json()["data"]

        rows = {row["id"]: row for row in data["orders"]}
        first = rows[next(i for i in rows if i != second["id"])]
        assert first["packing_cost"] == 100
        assert first["revenue"] == 600
        assert first["items_count"] == 4
        assert first["total_weight"] == 2
        assert rows[second["id"]]["total_cost"] == 50
        assert rows[second["id"]]["margin_percent"] == 75

        summary = data["summary"]
        assert summary["total_orders"] == 2
        assert summary["total_revenue"] == 800
        assert summary["average_margin"] == 87.5

    def test_status_filter(self, client, manager_headers, sample_client):
        create_order(client, manager_headers, sample_client.id)
        create_order(client, manager_headers, sample_client.id, status="SHIPPED")
        r = client.get("/api/reports/orders", params={"status": "shipped"}, headers=manager_headers)
        assert [o["status"] for o in r.json()["data"]["orders"]] == ["SHIPPED"]

    def test_xlsx_export(self, client, manager_headers, sample_client):
        order, _ = _order_with_operations(client, manager_headers, sample_client.id)
        r = client.get("/api/reports/orders", params={"format": "xlsx"}, headers=manager_headers)
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/vnd.openxmlformats")
        assert "orders-report.xlsx" in r.headers["content-disposition"]

        ws = load_workbook(io.BytesIO(r.content)).active
        assert ws.cell(row=1, column=1).value == "Order number"
        assert ws.cell(row=1, column=1).font.bold
        assert ws.cell(row=2, column=1).value == order["order_number"]
        assert ws.max_row == 2

    def test_csv_export(self, client, manager_headers, sample_client):
        _order_with_operations(client, manager_headers, sample_client.id)
        r = client.get("/api/reports/orders", params={"format": "csv"}, headers=manager_headers)
        assert r.status_code == 200
        assert r.content.startswith(b"\xef\xbb\xbf")

        rows = list(csv.reader(io.StringIO(r.content.decode("utf-8-sig"))))
        assert rows[0][:3] == ["Order number", "Order date", "Status"]
        assert len(rows) == 2

    def test_unknown_format_is_422(self, client, manager_headers, users):
        r = client.get("/api/reports/orders", params={"format": "pdf"}, headers=manager_headers)
        assert r.status_code == 422
        assert r.json()["success"] is False


class TestClientsAndVendorsReports:
    def test_clients_excludes_cancelled(self, client, manager_headers, sample_client):
        create_order(client, manager_headers, sample_client.id, total_income=300)
        create_order(client, manager_headers, sample_client.id, total_income=999, status="CANCELLED")
        create_order(client, manager_headers, sample_client.id, total_income=999, status="RETURNED")

        r = client.get("/api/reports/clients", headers=manager_headers)
        body = r.json()
        row = body["data"][0]
        assert row["orders_count"] == 1
        assert row["revenue"] == 300
        assert row["margin_percent"] == 100
        assert body["meta"]["total_clients"] == 1
        assert body["meta"]["total_revenue"] == 300

    def test_clients_csv(self, client, manager_headers, sample_client):
        r = client.get("/api/reports/clients", params={"format": "csv"}, headers=manager_headers)
        rows = list(csv.reader(io.StringIO(r.content.decode("utf-8-sig"))))
        assert rows[0][1] == "Name"
        assert rows[1][1] == "Acme Retail"
        assert rows[1][5] == "YES"

    def test_vendors_report(self, client, manager_headers, analyst_headers, sample_client):
        _order_with_operations(client, manager_headers, sample_client.id)

        assert client.get("/api/reports/vendors", headers=manager_headers).status_code == 403
        r = client.get("/api/reports/vendors", headers=analyst_headers)
        assert r.status_code == 200
        body = r.json()
        assert body["data"][0]["name"] == "PackCo"
        assert body["data"][0]["total_spent"] == 100
        assert body["data"][0]["operations_count"] == 1
        assert body["meta"]["total_spent"] == 100
