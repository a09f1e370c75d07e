import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caisse.models.core import DailyStats, Transaction, TransactionType
from caisse.services.pricing import _money
from caisse.util.dates import day_bounds, iter_days

log = logging.getLogger(__name__)

# transaction type -> (revenue column, count column) on DailyStats
BUCKETS: dict[TransactionType, tuple[str, str]] = {
    TransactionType.ENTRY: ("entries_revenue", "entries_count"),
    TransactionType.SUBSCRIPTION: ("subscriptions_revenue", "subscriptions_count"),
    TransactionType.CAFE: ("cafe_revenue", "cafe_orders_count"),
    TransactionType.ROOM_RENTAL: ("room_rentals_revenue", "room_rentals_count"),
}


def aggregate_day(db: Session, day: date) -> dict:
    """Sum the transactions dated on ``day`` per type. Read-only."""
    start, end = day_bounds(day)
    rows = (
        db.query(Transaction.type, func.count(Transaction.id), func.coalesce(func.sum(Transaction.amount), 0))
        .filter(Transaction.date >= start, Transaction.date < end)
        .group_by(Transaction.type)
        .all()
    )
    totals = {"date": day, "total_revenue": 0.0}
    for rev_col, cnt_col in BUCKETS.values():
        totals[rev_col] = 0.0
        totals[cnt_col] = 0
    total = Decimal("0")
    for tx_type, count, revenue in rows:
        rev_col, cnt_col = BUCKETS[tx_type]
        totals[rev_col] = _money(revenue)
        totals[cnt_col] = int(count)
        total += Decimal(str(revenue))
    totals["total_revenue"] = _money(total)
    return totals


def recompute_daily_stats(db: Session, day: date) -> DailyStats:
    """Rebuild the DailyStats row of ``day`` from its transactions.

    The row is a pure function of the transaction set for the day, so calling
    this any number of times yields the same values. The caller commits.
    """
    payload = aggregate_day(db, day)
    row = db.query(DailyStats).filter(DailyStats.date == day).first()
    if not row:
        try:
            with db.begin_nested():
                row = DailyStats(**payload)
                db.add(row)
        except IntegrityError:
            # another request inserted the day first; overwrite its values
            log.info("daily stats for %s created concurrently, updating", day)
            row = db.query(DailyStats).filter(DailyStats.date == day).one()
    for k, v in payload.items():
        setattr(row, k, v)
    db.flush()
    log.debug("daily stats for %s: total=%s", day, payload["total_revenue"])
    return row


def recompute_days(db: Session, *days: date) -> None:
    for d in sorted({d for d in days if d is not None}):
        recompute_daily_stats(db, d)


def rebuild_range(db: Session, start: date, end: date) -> int:
    n = 0
    for d in iter_days(start, end):
        recompute_daily_stats(db, d)
        n += 1
    log.info("rebuilt daily stats for %d day(s) from %s to %s", n, start, end)
    return n


def empty_stats(day: date) -> dict:
    out = {"date": day, "total_revenue": 0.0}
    for rev_col, cnt_col in BUCKETS.values():
        out[rev_col] = 0.0
        out[cnt_col] = 0
    return out


def get_daily_stats(db: Session, day: date) -> DailyStats | dict:
    row = db.query(DailyStats).filter(DailyStats.date == day).first()
    return row if row else empty_stats(day)


def stats_in_range(db: Session, start: date, end: date) -> list[DailyStats]:
    return (
        db.query(DailyStats)
        .filter(DailyStats.date >= start, DailyStats.date <= end)
        .order_by(DailyStats.date.asc())
        .all()
    )


def project(row, tx_type: TransactionType) -> dict:
    """Reduce a stats row (model or dict) to {date, revenue, count} for one type."""
    rev_col, cnt_col = BUCKETS[tx_type]
    get = row.get if isinstance(row, dict) else (lambda k: getattr(row, k))
    return {"date": get("date"), "revenue": float(get(rev_col) or 0), "count": int(get(cnt_col) or 0)}


def calendar_month(db: Session, start: date, end: date) -> list:
    """Every day between start and end, zero-filled where no row exists."""
    by_day = {r.date: r for r in stats_in_range(db, start, end)}
    return [by_day.get(d) or empty_stats(d) for d in iter_days(start, end)]
