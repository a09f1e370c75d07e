from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Union
from datetime import date, timedelta

from caisse.db import get_db
from caisse.deps import require_admin, require_user
from caisse.models.core import TransactionType
from caisse.schemas.stats import DailyStatsOut, TypeRevenueOut, CloseDayOut
from caisse.schemas.transactions import TransactionTypeLiteral
from caisse.services import daily_stats, reports
from caisse.util.dates import month_bounds, today

router = APIRouter(prefix="/api", tags=["stats"])


def _range(start: date | None, end: date | None, required: bool = False) -> tuple[date, date]:
    if start is None or end is None:
        if required:
            raise HTTPException(400, detail="Both startDate and endDate are required")
        return month_bounds(today())
    if end < start:
        raise HTTPException(400, detail="endDate is before startDate")
    return start, end


@router.get("/stats/daily", response_model=DailyStatsOut)
def get_daily(day: date | None = Query(None, alias="date"), db: Session = Depends(get_db), sub: int = Depends(require_user)):
    return daily_stats.get_daily_stats(db, day or today())


@router.get("/stats/range", response_model=Union[List[TypeRevenueOut], List[DailyStatsOut]])
def get_range(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    tx_type: TransactionTypeLiteral | None = Query(None, alias="type"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    """
    DailyStats rows between startDate and endDate (default: current month),
    oldest first. With ``type`` each row is reduced to {date, revenue, count}
    for that transaction type.
    """
    start, end = _range(start_date, end_date)
    rows = daily_stats.stats_in_range(db, start, end)
    if tx_type:
        return [TypeRevenueOut(**daily_stats.project(r, TransactionType(tx_type))) for r in rows]
    return [DailyStatsOut.model_validate(r) for r in rows]


@router.get("/stats/calendar", response_model=List[DailyStatsOut])
def get_calendar(
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    ref = today()
    start, end = month_bounds(date(year or ref.year, month or ref.month, 1))
    return [DailyStatsOut.model_validate(r) for r in daily_stats.calendar_month(db, start, end)]


@router.post("/close-day", response_model=CloseDayOut)
def close_day(day: date | None = Query(None, alias="date"), db: Session = Depends(get_db), sub: int = Depends(require_user)):
    day = day or today()
    row = daily_stats.recompute_daily_stats(db, day)
    db.commit()
    db.refresh(row)
    return CloseDayOut(
        message="Journée fermée avec succès",
        date=day,
        next_day=day + timedelta(days=1),
        stats=DailyStatsOut.model_validate(row),
    )


@router.post("/stats/rebuild")
def rebuild(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_admin),
):
    start, end = _range(start_date, end_date, required=True)
    n = daily_stats.rebuild_range(db, start, end)
    db.commit()
    return {"rebuilt": n}


@router.get("/stats/net-revenue")
def net_revenue(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_user),
):
    start, end = _range(start_date, end_date)
    return reports.net_revenue(db, start, end)


@router.get("/stats/net-profit")
def net_profit(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_admin),
):
    start, end = _range(start_date, end_date, required=True)
    return reports.net_profit(db, start, end)


@router.get("/stats/net-profit/daily")
def net_profit_daily(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_admin),
):
    start, end = _range(start_date, end_date, required=True)
    return reports.net_profit_daily(db, start, end)


@router.get("/stats/net-profit/monthly")
def net_profit_monthly(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    sub: int = Depends(require_admin),
):
    start, end = _range(start_date, end_date, required=True)
    return reports.net_profit_monthly(db, start, end)
