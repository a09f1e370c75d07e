import datetime as dt
from typing import Optional

from caisse.schemas.common import OutModel

class DailyStatsOut(OutModel):
    id: Optional[int] = None
    date: dt.date
    total_revenue: float
    entries_revenue: float
    entries_count: int
    subscriptions_revenue: float
    subscriptions_count: int
    cafe_revenue: float
    cafe_orders_count: int
    room_rentals_revenue: float
    room_rentals_count: int

class TypeRevenueOut(OutModel):
    date: dt.date
    revenue: float
    count: int

class CloseDayOut(OutModel):
    message: str
    date: dt.date
    next_day: dt.date
    stats: DailyStatsOut
