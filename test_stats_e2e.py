# test_stats_e2e.py
from datetime import date, datetime

from caisse.models.core import Transaction, TransactionType, PaymentMethod
from caisse.services import daily_stats
from caisse.util.dates import to_utc

def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type","").startswith("application/json") else r.text

BUCKETS = ("entriesRevenue", "subscriptionsRevenue", "cafeRevenue", "roomRentalsRevenue")

def _daily(client, base_url, headers, day):
    return jprint("GET /stats/daily", client.get(f"{base_url}/stats/daily", headers=headers, params={"date": day}))

def test_empty_day_is_all_zero(client, base_url, cashier_headers):
    s = _daily(client, base_url, cashier_headers, "2019-06-01")
    assert s["totalRevenue"] == 0
    assert s["entriesCount"] == 0
    assert s["date"] == "2019-06-01"

def test_stats_follow_every_write(client, base_url, cashier_headers, auth_headers):
    day = "2024-02-05"
    post = lambda body: jprint("POST /transactions", client.post(
        f"{base_url}/transactions", headers=cashier_headers, json={"date": f"{day}T10:00:00", **body}))

    post({"type": "entry", "paymentMethod": "cash"})
    post({"type": "entry", "paymentMethod": "card"})
    post({"type": "subscription", "paymentMethod": "cash", "clientName": "Nadia"})
    tx = post({"type": "room_rental", "paymentMethod": "mobile_transfer", "amount": 150})

    s = _daily(client, base_url, cashier_headers, day)
    assert s["entriesRevenue"] == 50 and s["entriesCount"] == 2
    assert s["subscriptionsRevenue"] == 300 and s["subscriptionsCount"] == 1
    assert s["roomRentalsRevenue"] == 150 and s["roomRentalsCount"] == 1
    assert s["totalRevenue"] == 500
    assert s["totalRevenue"] == sum(s[k] for k in BUCKETS)

    # moving a transaction to another day updates both days
    r = client.patch(f"{base_url}/transactions/{tx['id']}", headers=auth_headers, json={"date": "2024-02-06T09:00:00"})
    jprint("PATCH /transactions/{id}", r)
    assert _daily(client, base_url, cashier_headers, day)["totalRevenue"] == 350
    assert _daily(client, base_url, cashier_headers, "2024-02-06")["roomRentalsRevenue"] == 150

    r = client.delete(f"{base_url}/transactions/{tx['id']}", headers=auth_headers)
    jprint("DELETE /transactions/{id}", r)
    assert _daily(client, base_url, cashier_headers, "2024-02-06")["totalRevenue"] == 0

def test_close_day_is_idempotent(client, base_url, cashier_headers):
    day = "2024-02-07"
    jprint("POST /transactions", client.post(f"{base_url}/transactions", headers=cashier_headers, json={
        "type": "entry", "paymentMethod": "cash", "date": f"{day}T10:00:00"}))

    first = jprint("POST /close-day", client.post(f"{base_url}/close-day", headers=cashier_headers, params={"date": day}))
    second = jprint("POST /close-day", client.post(f"{base_url}/close-day", headers=cashier_headers, params={"date": day}))
    assert first["message"] == "Journée fermée avec succès"
    assert first["nextDay"] == "2024-02-08"
    assert first["stats"] == second["stats"]
    assert second["stats"]["entriesCount"] == 1

def test_range_and_type_projection(client, base_url, cashier_headers):
    for d in ("2024-03-01", "2024-03-03"):
        jprint("POST /transactions", client.post(f"{base_url}/transactions", headers=cashier_headers, json={
            "type": "entry", "paymentMethod": "cash", "date": f"{d}T12:00:00"}))
    params = {"startDate": "2024-03-01", "endDate": "2024-03-03"}
    rows = jprint("GET /stats/range", client.get(f"{base_url}/stats/range", headers=cashier_headers, params=params))
    assert [r["date"] for r in rows] == ["2024-03-01", "2024-03-03"]

    rows = jprint("GET /stats/range?type", client.get(
        f"{base_url}/stats/range", headers=cashier_headers, params={**params, "type": "entry"}))
    assert rows == [
        {"date": "2024-03-01", "revenue": 25, "count": 1},
        {"date": "2024-03-03", "revenue": 25, "count": 1},
    ]

    r = client.get(f"{base_url}/stats/range", headers=cashier_headers,
                   params={"startDate": "2024-03-03", "endDate": "2024-03-01"})
    assert r.status_code == 400

def test_calendar_is_zero_filled(client, base_url, cashier_headers):
    rows = jprint("GET /stats/calendar", client.get(
        f"{base_url}/stats/calendar", headers=cashier_headers, params={"year": 2024, "month": 2}))
    assert len(rows) == 29
    assert rows[0]["date"] == "2024-02-01"

def test_rebuild_recovers_from_out_of_band_rows(client, base_url, admin_headers, cashier_headers, db):
    # a transaction written straight to the database has no stats yet
    db.add(Transaction(date=to_utc(datetime(2024, 4, 2, 11)), type=TransactionType.ENTRY,
                       amount=25, payment_method=PaymentMethod.CASH))
    db.commit()
    assert _daily(client, base_url, cashier_headers, "2024-04-02")["totalRevenue"] == 0

    r = client.post(f"{base_url}/stats/rebuild", headers=cashier_headers,
                    params={"startDate": "2024-04-01", "endDate": "2024-04-03"})
    assert r.status_code == 403
    r = client.post(f"{base_url}/stats/rebuild", headers=admin_headers,
                    params={"startDate": "2024-04-01", "endDate": "2024-04-03"})
    assert jprint("POST /stats/rebuild", r)["rebuilt"] == 3
    assert _daily(client, base_url, cashier_headers, "2024-04-02")["totalRevenue"] == 25

def test_recompute_twice_gives_same_row(db):
    a = daily_stats.recompute_daily_stats(db, date(2024, 2, 5))
    first = {k: getattr(a, k) for k in ("total_revenue", "entries_count", "room_rentals_count")}
    b = daily_stats.recompute_daily_stats(db, date(2024, 2, 5))
    assert a.id == b.id
    assert {k: getattr(b, k) for k in first} == first

def test_recompute_updates_row_inserted_concurrently(db, monkeypatch):
    from caisse.db import SessionLocal
    from caisse.models.core import DailyStats

    day = date(2018, 3, 7)
    other = SessionLocal()
    try:
        other.add(DailyStats(**{**daily_stats.empty_stats(day), "total_revenue": 99}))
        other.commit()
    finally:
        other.close()

    class _NotYetVisible:
        def filter(self, *a):
            return self

        def first(self):
            return None

    # the first lookup misses the row, as it would before the other insert commits
    real_query, seen = db.query, []
    def query(*entities):
        if len(entities) == 1 and entities[0] is DailyStats and not seen:
            seen.append(True)
            return _NotYetVisible()
        return real_query(*entities)
    monkeypatch.setattr(db, "query", query)

    row = daily_stats.recompute_daily_stats(db, day)
    assert seen
    assert float(row.total_revenue) == 0
    rows = real_query(DailyStats).filter(DailyStats.date == day).all()
    assert [r.id for r in rows] == [row.id]
