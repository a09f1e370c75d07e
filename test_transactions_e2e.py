# test_transactions_e2e.py
import pytest

def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type","").startswith("application/json") else r.text

def _product(client, base_url, headers, name):
    r = client.get(f"{base_url}/products", headers=headers, params={"active_only": True})
    return next(p for p in jprint("GET /products", r) if p["name"] == name)

def test_seeded_catalogue(client, base_url, cashier_headers):
    r = client.get(f"{base_url}/products", headers=cashier_headers)
    names = {p["name"]: p["price"] for p in jprint("GET /products", r)}
    assert names["Café expresso"] == 15
    assert names["Jus d'orange"] == 20
    assert len(names) >= 5

def test_fixed_prices_ignore_client_amount(client, base_url, cashier_headers):
    r = client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "entry", "paymentMethod": "cash", "amount": 999, "date": "2024-01-10T09:00:00",
    })
    tx = jprint("POST /transactions (entry)", r)
    assert r.status_code == 201
    assert tx["amount"] == 25
    assert tx["stockWarnings"] == []

    r = client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "subscription", "paymentMethod": "card", "amount": 1,
        "clientName": "Salma", "date": "2024-01-31T09:00:00",
    })
    tx = jprint("POST /transactions (subscription)", r)
    assert tx["amount"] == 300
    # one month later, clamped to the end of February
    assert tx["subscriptionEndDate"].startswith("2024-02-29")

def test_cafe_total_is_sum_of_lines(client, base_url, cashier_headers):
    expresso = _product(client, base_url, cashier_headers, "Café expresso")
    eau = _product(client, base_url, cashier_headers, "Eau minérale")
    r = client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "cafe", "paymentMethod": "cash", "amount": 5, "date": "2024-01-11T10:00:00",
        "items": [
            {"productId": expresso["id"], "quantity": 2},
            {"productId": eau["id"], "name": "Sidi Ali", "price": 12, "quantity": 1},
        ],
    })
    tx = jprint("POST /transactions (cafe)", r)
    assert tx["amount"] == 2 * 15 + 12
    assert tx["items"][0]["name"] == "Café expresso"
    assert tx["items"][1]["name"] == "Sidi Ali"

@pytest.mark.parametrize("payload, field", [
    ({"type": "subscription", "paymentMethod": "cash"}, "clientName"),
    ({"type": "subscription", "paymentMethod": "cash", "clientName": "   "}, "clientName"),
    ({"type": "cafe", "paymentMethod": "cash", "items": []}, "items"),
    ({"type": "cafe", "paymentMethod": "cash", "items": [{"productId": 999999, "quantity": 1}]}, "items"),
    ({"type": "room_rental", "paymentMethod": "cash"}, "amount"),
    ({"type": "room_rental", "paymentMethod": "cash", "amount": -10}, "amount"),
])
def test_business_rule_violations_are_400(client, base_url, cashier_headers, payload, field):
    r = client.post(f"{base_url}/transactions", headers=cashier_headers, json=payload)
    assert r.status_code == 400, r.text
    assert r.json()["field"] == field

def test_schema_violations_are_422(client, base_url, cashier_headers):
    r = client.post(f"{base_url}/transactions", headers=cashier_headers, json={"type": "bogus", "paymentMethod": "cash"})
    assert r.status_code == 422
    r = client.post(f"{base_url}/transactions", headers=cashier_headers, json={"type": "entry", "paymentMethod": "cheque"})
    assert r.status_code == 422

def test_cafe_item_quantity_must_be_positive(client, base_url, cashier_headers):
    the = _product(client, base_url, cashier_headers, "Thé à la menthe")
    r = client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "cafe", "paymentMethod": "cash", "items": [{"productId": the["id"], "quantity": 0}],
    })
    assert r.status_code == 400

def test_queries_by_date_and_type(client, base_url, cashier_headers):
    for hour in (8, 23):
        jprint("POST /transactions", client.post(f"{base_url}/transactions", headers=cashier_headers, json={
            "type": "entry", "paymentMethod": "cash", "date": f"2024-01-12T{hour:02d}:30:00",
        }))
    r = client.get(f"{base_url}/transactions/byDate", headers=cashier_headers,
                   params={"startDate": "2024-01-12", "endDate": "2024-01-12"})
    rows = jprint("GET /transactions/byDate", r)
    assert len(rows) == 2
    assert all(t["date"].startswith("2024-01-12") for t in rows)

    r = client.get(f"{base_url}/transactions/byType/entry", headers=cashier_headers)
    assert all(t["type"] == "entry" for t in jprint("GET /transactions/byType", r))

    r = client.get(f"{base_url}/transactions/byType/bogus", headers=cashier_headers)
    assert r.status_code == 422

    r = client.get(f"{base_url}/transactions", headers=cashier_headers, params={"limit": 1})
    assert len(jprint("GET /transactions?limit", r)) == 1

def test_edit_and_delete_need_super_admin(client, base_url, cashier_headers, admin_headers, auth_headers):
    tx = jprint("POST /transactions", client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "entry", "paymentMethod": "cash", "date": "2024-01-13T09:00:00",
    }))
    for h in (cashier_headers, admin_headers):
        r = client.patch(f"{base_url}/transactions/{tx['id']}", headers=h, json={"notes": "x"})
        assert r.status_code == 403
        r = client.delete(f"{base_url}/transactions/{tx['id']}", headers=h)
        assert r.status_code == 403

    # switching to a subscription re-prices it
    r = client.patch(f"{base_url}/transactions/{tx['id']}", headers=auth_headers, json={
        "type": "subscription", "clientName": "Youssef",
    })
    edited = jprint("PATCH /transactions/{id}", r)
    assert edited["amount"] == 300
    assert edited["subscriptionEndDate"].startswith("2024-02-13")

    r = client.delete(f"{base_url}/transactions/{tx['id']}", headers=auth_headers)
    jprint("DELETE /transactions/{id}", r)
    r = client.get(f"{base_url}/transactions/{tx['id']}", headers=auth_headers)
    assert r.status_code == 404

def test_requires_token(client, base_url):
    r = client.get(f"{base_url}/transactions")
    assert r.status_code == 401
    r = client.get(f"{base_url}/transactions", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401

def test_patch_with_null_keeps_required_fields(client, base_url, cashier_headers, auth_headers):
    tx = jprint("POST /transactions", client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "entry", "paymentMethod": "card", "date": "2024-01-14T09:00:00",
    }))
    r = client.patch(f"{base_url}/transactions/{tx['id']}", headers=auth_headers,
                     json={"date": None, "type": None, "paymentMethod": None, "notes": "retard"})
    edited = jprint("PATCH /transactions/{id} (nulls)", r)
    assert edited["date"] == tx["date"]
    assert edited["type"] == "entry"
    assert edited["paymentMethod"] == "card"
    assert edited["amount"] == 25
    assert edited["notes"] == "retard"

def test_subscription_end_follows_business_calendar(db, monkeypatch):
    from datetime import date, datetime
    from zoneinfo import ZoneInfo

    from caisse.config import settings
    from caisse.services.transactions import record_transaction
    from caisse.util.dates import local_day

    monkeypatch.setattr(settings, "APP_TZ", "Europe/Paris")
    # 1 March 00:30 in Paris is still 29 February in UTC
    tx, _ = record_transaction(db, {
        "type": "subscription", "payment_method": "cash", "client_name": "Nadia",
        "date": datetime(2024, 3, 1, 0, 30, tzinfo=ZoneInfo("Europe/Paris")),
    }, None)
    assert local_day(tx.date) == date(2024, 3, 1)
    assert local_day(tx.subscription_end_date) == date(2024, 4, 1)
