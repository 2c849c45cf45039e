"""HTTP status-code contract and end-to-end flows through the routers."""

from modules.production_orders.models import ProductionOrder


def create_customer_order(client, *lines):
    payload = {"items": [{"item_type": "PRODUCT", "item_id": item_id, "quantity": qty} for item_id, qty in lines]}
    resp = client.post("/customer-orders", json=payload)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_create_customer_order(client):
    data = create_customer_order(client, (100, 2))
    assert data["order_number"] == "ORD-0001"
    assert data["status"] == "PENDING"
    assert data["workstation_id"] == 7
    assert data["items"][0]["quantity"] == 2


def test_empty_customer_order_is_rejected(client):
    resp = client.post("/customer-orders", json={"items": []})
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"


def test_unknown_order_is_404(client):
    for path in ("/customer-orders/99", "/warehouse-orders/99", "/production-orders/99", "/supply-orders/99"):
        resp = client.get(path)
        assert resp.status_code == 404, path
        assert resp.json()["code"] == "not_found"


def test_confirm_twice_is_400(client):
    order = create_customer_order(client, (100, 5))
    assert client.post(f"/customer-orders/{order['id']}/confirm").status_code == 200
    resp = client.post(f"/customer-orders/{order['id']}/confirm")
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_state"


def test_missing_source_is_500(client, db):
    orphan = ProductionOrder(order_number="PO-09999", status="COMPLETED", priority="NORMAL")
    db.add(orphan)
    db.commit()

    resp = client.post(f"/production-orders/{orphan.id}/submit")

    assert resp.status_code == 500
    assert resp.json()["code"] == "configuration_invariant"


def test_direct_fulfillment_flow(client, ledger):
    ledger.set(7, "PRODUCT", 100, 2)
    order = create_customer_order(client, (100, 2))

    confirmed = client.post(f"/customer-orders/{order['id']}/confirm").json()
    assert confirmed["trigger_scenario"] == "DIRECT_FULFILLMENT"
    scenario = client.get(f"/customer-orders/{order['id']}/scenario").json()
    assert scenario == {"order_id": order["id"], "scenario": "DIRECT_FULFILLMENT"}

    fulfilled = client.post(f"/customer-orders/{order['id']}/fulfill")
    assert fulfilled.status_code == 200
    assert fulfilled.json()["status"] == "COMPLETED"


def test_fulfill_without_stock_is_400(client, ledger):
    ledger.set(7, "PRODUCT", 100, 2)
    order = create_customer_order(client, (100, 2))
    client.post(f"/customer-orders/{order['id']}/confirm")
    ledger.set(7, "PRODUCT", 100, 0)

    resp = client.post(f"/customer-orders/{order['id']}/fulfill")

    assert resp.status_code == 400
    assert resp.json()["code"] == "insufficient_stock"


def test_production_flow_through_the_api(client, ledger):
    order = create_customer_order(client, (100, 1))
    client.post(f"/customer-orders/{order['id']}/confirm")
    [warehouse] = client.get("/warehouse-orders", params={"customer_order_id": order["id"]}).json()
    assert client.post(f"/warehouse-orders/{warehouse['id']}/confirm").json()["trigger_scenario"] == "PRODUCTION_REQUIRED"

    production = client.post(f"/warehouse-orders/{warehouse['id']}/production-order", json={"priority": "HIGH"}).json()
    assert production["priority"] == "HIGH"
    assert production["source_warehouse_order_id"] == warehouse["id"]
    again = client.post(f"/warehouse-orders/{warehouse['id']}/production-order")
    assert again.json()["id"] == production["id"]

    assert client.post(f"/production-orders/{production['id']}/confirm").status_code == 200
    assert client.post(f"/production-orders/{production['id']}/schedule").json()["status"] == "SCHEDULED"
    dispatch = client.post(f"/production-orders/{production['id']}/dispatch").json()
    control_ids = list(dispatch["control_orders"].values())
    assert len(control_ids) == 1

    client.post(f"/control-orders/{control_ids[0]}/dispatch")
    workstation_orders = client.get("/workstation-orders", params={"control_order_id": control_ids[0]}).json()
    assert [o["kind"] for o in workstation_orders] == ["GEAR_ASSEMBLY", "GEAR_ASSEMBLY"]

    results = []
    for ws_order in workstation_orders:
        assert client.post(f"/workstation-orders/{ws_order['id']}/start").status_code == 200
        resp = client.post(f"/workstation-orders/{ws_order['id']}/complete")
        assert resp.status_code == 200
        results.append(resp.json())

    assert results[-1]["control_order_completed"]
    assert results[-1]["production_order_completed"]
    assert results[-1]["submission"]["ok"]
    assert sorted(c[:4] for c in ledger.credits) == [(8, "MODULE", 11, 1), (8, "MODULE", 12, 2)]

    progress = client.get(f"/production-orders/{production['id']}/progress").json()
    assert progress == {"total": 1, "completed": 1, "percent": 100.0, "is_complete": True, "degraded": False}
    assert client.get(f"/warehouse-orders/{warehouse['id']}").json()["status"] == "CONFIRMED"


def test_workstation_start_after_completion_is_400(client, ledger):
    order = create_customer_order(client, (100, 5))
    client.post(f"/customer-orders/{order['id']}/confirm")
    [production] = client.get("/production-orders", params={"source_customer_order_id": order["id"]}).json()
    client.post(f"/production-orders/{production['id']}/confirm")
    client.post(f"/production-orders/{production['id']}/schedule")
    dispatch = client.post(f"/production-orders/{production['id']}/dispatch").json()
    control_id = list(dispatch["control_orders"].values())[0]
    client.post(f"/control-orders/{control_id}/dispatch")
    ws_order = client.get("/workstation-orders", params={"control_order_id": control_id}).json()[0]
    client.post(f"/workstation-orders/{ws_order['id']}/start")
    client.post(f"/workstation-orders/{ws_order['id']}/complete")

    resp = client.post(f"/workstation-orders/{ws_order['id']}/start")

    assert resp.status_code == 400


def test_warehouse_status_override_is_audited(client):
    order = create_customer_order(client, (100, 1))
    client.post(f"/customer-orders/{order['id']}/confirm")
    [warehouse] = client.get("/warehouse-orders").json()

    resp = client.patch(
        f"/warehouse-orders/{warehouse['id']}/status", json={"status": "PROCESSING", "reason": "manual pick"}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "PROCESSING"

    bad = client.patch(f"/warehouse-orders/{warehouse['id']}/status", json={"status": "SHIPPED", "reason": "x"})
    assert bad.status_code == 422

    events = client.get(f"/audit/warehouse/{warehouse['id']}").json()
    assert "STATUS_OVERRIDE" in [e["event_type"] for e in events]


def test_supply_order_api(client, ledger):
    created = client.post(
        "/supply-orders", json={"requesting_workstation_id": 4, "items": [{"part_id": 501, "quantity": 3}]}
    )
    assert created.status_code == 200
    supply = created.json()
    assert supply["order_number"] == "SO-00001"

    report = client.post(f"/supply-orders/{supply['id']}/fulfill").json()
    assert report["ok"]
    assert client.get(f"/supply-orders/{supply['id']}").json()["status"] == "FULFILLED"
    resp = client.post(f"/supply-orders/{supply['id']}/reject", json={"reason": "late"})
    assert resp.status_code == 400


def test_orchestration_progress_and_report(client):
    order = create_customer_order(client, (100, 5))
    client.post(f"/customer-orders/{order['id']}/confirm")
    [production] = client.get("/production-orders").json()
    client.post(f"/production-orders/{production['id']}/confirm")
    client.post(f"/production-orders/{production['id']}/schedule")
    client.post(f"/production-orders/{production['id']}/dispatch")

    progress = client.get(f"/orchestration/progress/production/{production['id']}").json()
    assert progress["progress"]["total"] == 1
    assert progress["progress"]["completed"] == 0

    report = client.get(f"/reports/production-orders/{production['id']}").json()
    assert report["header"]["order_number"] == "PO-00001"
    assert len(report["control_orders"]) == 1

    excel = client.get(f"/reports/production-orders/{production['id']}/excel")
    assert excel.status_code == 200
    assert excel.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )


def test_unknown_audit_order_type_is_rejected(client):
    assert client.get("/audit/invoice/1").status_code == 422
