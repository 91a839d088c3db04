"""End-to-end flows through the HTTP API."""


def _recipe(client, **fields):
    payload = {"name": "Classic Chips", "type": "CHIPS", "cook_time_minutes": 5}
    payload.update(fields)
    response = client.post("/processing/recipes", json=payload)
    assert response.status_code == 200
    return response.json()


def test_processing_floor_lifecycle(client, clock):
    recipe = _recipe(client)
    batch = client.post("/batches", json={"source_farm": "Highland Farm", "net_weight_kg": 0.5}).json()

    response = client.post(f"/processing/batches/{batch['id']}/start", json={"recipe_id": recipe["id"]})
    assert response.status_code == 200
    assert response.json()["status"] == "PROCESSING"

    clock.tick(90)
    card = client.get("/processing/floor").json()["batches"][0]
    assert card["stage"] == "DRAIN"
    assert card["time_left_seconds"] == 90
    assert card["label"] == "DRAINING / AIR DRY"

    client.post(f"/processing/batches/{batch['id']}/speed-up")
    bad = client.post(f"/processing/batches/{batch['id']}/complete", json={"good_weight_kg": 0.2})
    assert bad.status_code == 400

    no_reason = client.post(
        f"/processing/batches/{batch['id']}/complete",
        json={"good_weight_kg": 0.4, "wastage_weight_kg": 0.1},
    )
    assert no_reason.status_code == 400
    assert no_reason.json()["detail"] == "A wastage reason is required"

    done = client.post(
        f"/processing/batches/{batch['id']}/complete",
        json={"good_weight_kg": 0.4, "wastage_weight_kg": 0.1, "wastage_reason": "Discoloration"},
    )
    assert done.status_code == 200
    assert done.json()["status"] == "DRYING_COMPLETE"
    assert client.get("/processing/floor").json()["batches"] == []


def test_unknown_batch_is_404(client):
    _recipe(client)
    recipe_id = client.get("/processing/recipes").json()[0]["id"]
    response = client.post("/processing/batches/batch-missing/start", json={"recipe_id": recipe_id})
    assert response.status_code == 404


def test_recipe_crud(client):
    recipe = _recipe(client)
    duplicate = client.post("/processing/recipes", json={"name": "classic chips"})
    assert duplicate.status_code == 400

    updated = client.put(f"/processing/recipes/{recipe['id']}", json={"temperature": 170}).json()
    assert updated["temperature"] == 170
    assert updated["name"] == "Classic Chips"

    assert client.delete(f"/processing/recipes/{recipe['id']}").status_code == 200
    assert client.delete(f"/processing/recipes/{recipe['id']}").status_code == 404

    _recipe(client, name="A")
    _recipe(client, name="B")
    cleared = client.delete("/processing/recipes").json()
    assert cleared["deleted"] == 2
    assert client.post("/processing/recipes/deduplicate").json()["removed"] == 0


def test_procurement_and_dashboard(client):
    supplier = client.post("/finance/suppliers", json={
        "name": "PackCo", "item_name": "Vacuum Pouch", "pack_size": 100, "unit_cost": 45,
    }).json()
    dashboard = client.get("/finance/dashboard").json()
    item = dashboard["inventory"][0]
    assert dashboard["suppliers"][0]["id"] == supplier["id"]

    order = client.post("/finance/purchase-orders", json={"item_id": item["id"], "packages": 2}).json()
    assert order["total_cost"] == 90.0
    received = client.post(f"/finance/purchase-orders/{order['id']}/qc", json={"passed": True}).json()
    assert received["status"] == "RECEIVED"

    client.post("/batches", json={"source_farm": "Highland Farm", "net_weight_kg": 10})
    dashboard = client.get("/finance/dashboard").json()
    summary = dashboard["summary"]
    assert summary["packaging_procurement"] == 90.0
    assert summary["raw_material_cost"] == 80.0
    assert summary["cash_flow_expenses"] == 170.0
    assert summary["net_profit"] == -170.0
    assert dashboard["inventory"][0]["quantity"] == 200
    assert [s["label"] for s in dashboard["cost_breakdown"]] == ["Raw Materials", "Packaging"]
    assert dashboard["labor_rate"] == 12.5

    cost_id = dashboard["daily_costs"][0]["id"]
    edited = client.put(f"/finance/daily-costs/{cost_id}", json={"raw_material_cost": 70.0, "labor_cost": 5.0})
    assert edited.json()["total_cost"] == 75.0
    assert client.put("/finance/daily-costs/cost-missing", json={}).status_code == 404

    assert client.delete(f"/finance/suppliers/{supplier['id']}").status_code == 200
    assert client.get("/finance/dashboard").json()["suppliers"] == []


def test_complaint_resolution(client):
    client.post("/finance/suppliers", json={"name": "TinWorks", "item_name": "Tin", "item_subtype": "TIN", "pack_size": 20})
    item = client.get("/finance/dashboard").json()["inventory"][0]
    order = client.post("/finance/purchase-orders", json={"item_id": item["id"]}).json()

    assert client.post(f"/finance/purchase-orders/{order['id']}/qc", json={"passed": False}).status_code == 400
    client.post(f"/finance/purchase-orders/{order['id']}/qc", json={"passed": False, "complaint_reason": "Dented"})
    resolved = client.post(
        f"/finance/purchase-orders/{order['id']}/resolve", json={"resolution": "Replacement Received"}
    ).json()
    assert resolved["status"] == "RESOLVED"
    assert client.get("/finance/dashboard").json()["inventory"][0]["quantity"] == 20


def test_sales_and_invoice(client):
    customer = client.post("/finance/customers", json={"name": "Corner Cafe", "email": "cafe@example.com"}).json()
    client.post("/finished-goods", json={"recipe_name": "Chips", "packaging_type": "POUCH", "quantity": 5})

    too_many = client.post("/finance/sales", json={
        "customer_id": customer["id"], "product_key": "Chips|POUCH", "quantity": 6,
    })
    assert too_many.status_code == 400
    assert too_many.json()["detail"] == "Insufficient stock. Available: 5"

    sale = client.post("/finance/sales", json={
        "customer_id": customer["id"], "product_key": "Chips|POUCH", "quantity": 2,
        "unit_price": 16.5, "payment_method": "CREDIT_CARD",
    }).json()
    assert sale["status"] == "INVOICED"
    assert sale["total_amount"] == 33.0

    delivered = client.post(f"/finance/sales/{sale['id']}/deliver").json()
    assert delivered["status"] == "DELIVERED"

    invoice = client.get(f"/finance/sales/{sale['id']}/invoice").json()
    assert invoice["customer_email"] == "cafe@example.com"
    assert invoice["lines"][0]["line_total"] == 33.0
    assert client.get("/finance/sales/sale-missing/invoice").status_code == 404

    dashboard = client.get("/finance/dashboard").json()
    assert dashboard["summary"]["sales_revenue"] == 33.0
    assert dashboard["available_goods"][0]["total_qty"] == 3


def test_rates(client):
    assert client.put("/finance/rates/labor", json={"rate": 15}).json() == {"labor_rate": 15.0}
    assert client.put("/finance/rates/raw-material", json={"rate": -2}).status_code == 422
    assert client.get("/finance/dashboard").json()["labor_rate"] == 15.0


def test_reset_database_needs_sql_backend(client):
    assert client.post("/reset-database").status_code == 400
