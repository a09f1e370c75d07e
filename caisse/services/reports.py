from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from caisse.models.core import Expense, Inventory, Transaction, TransactionType
from caisse.services.daily_stats import stats_in_range
from caisse.services.pricing import _money
from caisse.util.dates import day_bounds, iter_days, iter_months, month_bounds

MONTHS_FR = ["janvier", "février", "mars", "avril", "mai", "juin", "juillet", "août", "septembre",
             "octobre", "novembre", "décembre"]


def expenses_in_range(db: Session, start: date, end: date) -> list[Expense]:
    lo, hi = day_bounds(start, end)
    return (
        db.query(Expense)
        .filter(Expense.deleted_at.is_(None), Expense.date >= lo, Expense.date < hi)
        .order_by(Expense.date.desc())
        .all()
    )


def net_revenue(db: Session, start: date, end: date) -> dict:
    """Revenue from the daily rollups minus the expenses of the period."""
    total_revenue = sum((Decimal(str(r.total_revenue or 0)) for r in stats_in_range(db, start, end)), Decimal("0"))
    breakdown: dict[str, Decimal] = {}
    for e in expenses_in_range(db, start, end):
        breakdown[e.category.value] = breakdown.get(e.category.value, Decimal("0")) + Decimal(str(e.amount))
    total_expenses = sum(breakdown.values(), Decimal("0"))
    return {
        "startDate": start,
        "endDate": end,
        "totalRevenue": _money(total_revenue),
        "totalExpenses": _money(total_expenses),
        "netRevenue": _money(total_revenue - total_expenses),
        "expenseBreakdown": {k: _money(v) for k, v in breakdown.items()},
    }


def _profit(db: Session, start: date, end: date, purchase_prices: dict[int, Decimal]) -> dict:
    lo, hi = day_bounds(start, end)
    revenue = {t: Decimal("0") for t in TransactionType}
    rows = (
        db.query(Transaction.type, func.coalesce(func.sum(Transaction.amount), 0))
        .filter(Transaction.date >= lo, Transaction.date < hi)
        .group_by(Transaction.type)
        .all()
    )
    for tx_type, amount in rows:
        revenue[tx_type] = Decimal(str(amount))

    # cost of goods sold: purchase price of stocked products sold in cafe orders
    cafe_cost = Decimal("0")
    cafe_orders = (
        db.query(Transaction.items)
        .filter(Transaction.type == TransactionType.CAFE, Transaction.date >= lo, Transaction.date < hi)
        .all()
    )
    for (items,) in cafe_orders:
        for it in items or []:
            price = purchase_prices.get(it.get("productId"))
            if price:
                cafe_cost += price * Decimal(str(it.get("quantity") or 0))

    expenses = sum((Decimal(str(e.amount)) for e in expenses_in_range(db, start, end)), Decimal("0"))
    total = sum(revenue.values(), Decimal("0"))
    gross = total - cafe_cost
    return {
        "revenue": {
            "entries": _money(revenue[TransactionType.ENTRY]),
            "subscriptions": _money(revenue[TransactionType.SUBSCRIPTION]),
            "cafe": _money(revenue[TransactionType.CAFE]),
            "roomRentals": _money(revenue[TransactionType.ROOM_RENTAL]),
            "total": _money(total),
        },
        "costs": {
            "cafeProducts": _money(cafe_cost),
            "expenses": _money(expenses),
            "total": _money(cafe_cost + expenses),
        },
        "grossProfit": _money(gross),
        "netProfit": _money(gross - expenses),
    }


def _purchase_prices(db: Session) -> dict[int, Decimal]:
    return {
        inv.product_id: Decimal(str(inv.purchase_price))
        for inv in db.query(Inventory).filter(Inventory.purchase_price.isnot(None)).all()
    }


def net_profit(db: Session, start: date, end: date) -> dict:
    return {"startDate": start, "endDate": end, **_profit(db, start, end, _purchase_prices(db))}


def net_profit_daily(db: Session, start: date, end: date) -> list[dict]:
    prices = _purchase_prices(db)
    return [{"date": d, **_profit(db, d, d, prices)} for d in iter_days(start, end)]


def net_profit_monthly(db: Session, start: date, end: date) -> list[dict]:
    prices = _purchase_prices(db)
    out = []
    for m in iter_months(start, end):
        first, last = month_bounds(m)
        out.append({
            "month": first.strftime("%Y-%m"),
            "monthName": f"{MONTHS_FR[first.month - 1]} {first.year}",
            "startDate": first,
            "endDate": last,
            **_profit(db, first, last, prices),
        })
    return out
