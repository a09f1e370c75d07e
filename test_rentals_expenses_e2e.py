# test_rentals_expenses_e2e.py
def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type","").startswith("application/json") else r.text

def _daily(client, base_url, headers, day):
    return jprint("GET /stats/daily", client.get(f"{base_url}/stats/daily", headers=headers, params={"date": day}))

def _rental(day, **kw):
    body = {
        "roomType": "salle_reunion", "price": 400, "clientName": "Atlas Dev",
        "clientContact": "0600000000", "date": f"{day}T00:00:00",
        "startTime": f"{day}T09:00:00", "endTime": f"{day}T12:00:00", "paymentMethod": "card",
    }
    body.update(kw)
    return body

def test_room_rental_lifecycle(client, base_url, cashier_headers):
    day = "2024-05-10"
    r = client.post(f"{base_url}/room-rentals", headers=cashier_headers, json=_rental(day))
    rental = jprint("POST /room-rentals", r)
    assert r.status_code == 201
    assert rental["transactionId"]

    tx = jprint("GET /transactions/{id}", client.get(
        f"{base_url}/transactions/{rental['transactionId']}", headers=cashier_headers))
    assert tx["type"] == "room_rental"
    assert tx["amount"] == 400
    s = _daily(client, base_url, cashier_headers, day)
    assert s["roomRentalsRevenue"] == 400 and s["roomRentalsCount"] == 1

    r = client.patch(f"{base_url}/room-rentals/{rental['id']}", headers=cashier_headers, json={"price": 250})
    assert jprint("PATCH /room-rentals/{id}", r)["price"] == 250
    assert _daily(client, base_url, cashier_headers, day)["roomRentalsRevenue"] == 250

    jprint("DELETE /room-rentals/{id}", client.delete(f"{base_url}/room-rentals/{rental['id']}", headers=cashier_headers))
    rows = jprint("GET /room-rentals", client.get(f"{base_url}/room-rentals", headers=cashier_headers))
    assert rental["id"] not in [x["id"] for x in rows]
    r = client.get(f"{base_url}/transactions/{rental['transactionId']}", headers=cashier_headers)
    assert r.status_code == 404
    assert _daily(client, base_url, cashier_headers, day)["roomRentalsCount"] == 0

def test_room_rental_validation(client, base_url, cashier_headers):
    r = client.post(f"{base_url}/room-rentals", headers=cashier_headers,
                    json=_rental("2024-05-11", endTime="2024-05-11T08:00:00"))
    assert r.status_code == 400
    assert r.json()["field"] == "endTime"
    r = client.post(f"{base_url}/room-rentals", headers=cashier_headers, json=_rental("2024-05-11", clientName=" "))
    assert r.status_code == 400
    r = client.post(f"{base_url}/room-rentals", headers=cashier_headers, json=_rental("2024-05-11", roomType="cave"))
    assert r.status_code == 422

def test_deleting_rental_transaction_removes_rental(client, base_url, cashier_headers, auth_headers):
    rental = jprint("POST /room-rentals", client.post(
        f"{base_url}/room-rentals", headers=cashier_headers, json=_rental("2024-05-12", roomType="petite", price=80)))
    jprint("DELETE /transactions/{id}", client.delete(
        f"{base_url}/transactions/{rental['transactionId']}", headers=auth_headers))
    r = client.get(f"{base_url}/room-rentals/{rental['id']}", headers=cashier_headers)
    assert r.status_code == 404

def test_expenses_are_admin_only(client, base_url, cashier_headers, admin_headers):
    body = {"amount": 100, "category": "wifi", "paymentMethod": "card", "date": "2024-06-02T10:00:00"}
    r = client.post(f"{base_url}/expenses", headers=cashier_headers, json=body)
    assert r.status_code == 403
    r = client.post(f"{base_url}/expenses", headers=admin_headers, json={**body, "category": "gifts"})
    assert r.status_code == 422

def test_net_revenue_and_profit(client, base_url, cashier_headers, admin_headers):
    day = "2024-06-03"
    period = {"startDate": day, "endDate": day}

    jprint("POST /transactions", client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "subscription", "paymentMethod": "cash", "clientName": "Omar", "date": f"{day}T10:00:00"}))
    for category, amount in (("rent", 200), ("electricity", 40.5)):
        jprint("POST /expenses", client.post(f"{base_url}/expenses", headers=admin_headers, json={
            "amount": amount, "category": category, "paymentMethod": "cash", "date": f"{day}T15:00:00"}))
    junk = jprint("POST /expenses", client.post(f"{base_url}/expenses", headers=admin_headers, json={
        "amount": 999, "category": "other", "paymentMethod": "cash", "date": f"{day}T16:00:00"}))
    jprint("DELETE /expenses/{id}", client.delete(f"{base_url}/expenses/{junk['id']}", headers=admin_headers))

    rows = jprint("GET /expenses/byDate", client.get(f"{base_url}/expenses/byDate", headers=cashier_headers, params=period))
    assert sorted(e["amount"] for e in rows) == [40.5, 200]
    rows = jprint("GET /expenses/byCategory", client.get(f"{base_url}/expenses/byCategory/rent", headers=cashier_headers))
    assert any(e["amount"] == 200 for e in rows)

    rep = jprint("GET /stats/net-revenue", client.get(f"{base_url}/stats/net-revenue", headers=cashier_headers, params=period))
    assert rep["totalRevenue"] == 300
    assert rep["totalExpenses"] == 240.5
    assert rep["netRevenue"] == 59.5
    assert rep["expenseBreakdown"] == {"rent": 200, "electricity": 40.5}

    r = client.get(f"{base_url}/stats/net-profit", headers=cashier_headers, params=period)
    assert r.status_code == 403
    r = client.get(f"{base_url}/stats/net-profit", headers=admin_headers)
    assert r.status_code == 400
    rep = jprint("GET /stats/net-profit", client.get(f"{base_url}/stats/net-profit", headers=admin_headers, params=period))
    assert rep["revenue"]["subscriptions"] == 300
    assert rep["costs"]["expenses"] == 240.5
    assert rep["netProfit"] == 59.5

    rows = jprint("GET /stats/net-profit/monthly", client.get(
        f"{base_url}/stats/net-profit/monthly", headers=admin_headers, params={"startDate": "2024-05-15", "endDate": day}))
    assert [m["month"] for m in rows] == ["2024-05", "2024-06"]
    assert rows[1]["monthName"] == "juin 2024"

    rows = jprint("GET /stats/net-profit/daily", client.get(
        f"{base_url}/stats/net-profit/daily", headers=admin_headers, params={"startDate": "2024-06-02", "endDate": day}))
    assert len(rows) == 2
    assert rows[1]["netProfit"] == 59.5

def test_rental_transaction_stays_paired(client, base_url, cashier_headers, auth_headers):
    day = "2024-05-13"
    rental = jprint("POST /room-rentals", client.post(
        f"{base_url}/room-rentals", headers=cashier_headers, json=_rental(day, roomType="grande", price=200)))
    tx_url = f"{base_url}/transactions/{rental['transactionId']}"

    for body in ({"type": "entry"}, {"amount": 10}, {"date": "2024-05-14T10:00:00"}, {"paymentMethod": "cash"}):
        r = client.patch(tx_url, headers=auth_headers, json=body)
        assert r.status_code == 400, r.text
        assert "/api/room-rentals" in r.json()["detail"]

    # fields the rental does not own can still be edited
    jprint("PATCH /transactions/{id} (notes)", client.patch(tx_url, headers=auth_headers, json={"notes": "facture envoyée"}))

    tx = jprint("GET /transactions/{id}", client.get(tx_url, headers=cashier_headers))
    assert tx["type"] == "room_rental" and tx["amount"] == 200
    s = _daily(client, base_url, cashier_headers, day)
    assert s["roomRentalsRevenue"] == 200 and s["roomRentalsCount"] == 1
    assert s["entriesCount"] == 0

    # editing the rental keeps its transaction in step
    jprint("PATCH /room-rentals/{id}", client.patch(
        f"{base_url}/room-rentals/{rental['id']}", headers=cashier_headers, json={"price": 180, "paymentMethod": "cash"}))
    tx = jprint("GET /transactions/{id}", client.get(tx_url, headers=cashier_headers))
    assert tx["type"] == "room_rental"
    assert tx["amount"] == 180 and tx["paymentMethod"] == "cash"
    assert _daily(client, base_url, cashier_headers, day)["roomRentalsRevenue"] == 180
