"""Small API helpers shared by the test modules."""


def create_order(client, headers, client_id, *, items=None, total_income=None, status=None):
    body = {"client_id": client_id, "items": items or []}
    if total_income is not None:
        body["total_income"] = total_income
    if status is not None:
        body["status"] = status
    r = client.post("/api/orders", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def get_order(client, headers, ref):
    r = client.get(f"/api/orders/{ref}", headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]


def create_vendor_service(client, headers, *, price, type="PACKING", unit="PIECE", name="Box packing"):
    r = client.post("/api/vendors", json={"name": "PackCo"}, headers=headers)
    assert r.status_code == 201, r.text
    vendor_id = r.json()["data"]["id"]
    r = client.post(
        "/api/vendor-services",
        json={"vendor_id": vendor_id, "name": name, "type": type, "unit": unit, "price": price},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]
