import datetime as dt
from typing import Dict, Iterable, List

from zipforecast.models import DailyForecast, FeedPoint

MAX_FORECAST_DAYS = 5


def aggregate(feed: Iterable[FeedPoint], days: int = MAX_FORECAST_DAYS) -> List[DailyForecast]:
    """Collapse 3-hour feed points into one summary per calendar day.

    The day is the timestamp's own date component (no timezone conversion).
    Description and icon come from the first point of each day in feed order.
    """
    by_date: Dict[dt.date, List[FeedPoint]] = {}
    for point in feed:
        by_date.setdefault(point.timestamp.date(), []).append(point)

    daily = [
        DailyForecast(
            date=day,
            temp_min=min(p.temp_min for p in points),
            temp_max=max(p.temp_max for p in points),
            description=points[0].description,
            icon=points[0].icon,
        )
        for day, points in sorted(by_date.items())
    ]
    return daily[:days]
