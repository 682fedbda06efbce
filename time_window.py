"""
RollCall – Symbolic period → concrete inclusive date range.

Pure and clock-injected: the same (period, now) always gives the same range.
Weeks run Monday through Sunday.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Union

from dateutil.relativedelta import relativedelta

from models import DEFAULT_PERIOD, PERIODS, DateRange

Clock = Callable[[], datetime]


def normalize_period(period: str) -> str:
    """Map any token to a supported one; unknown tokens become this_month."""
    token = (period or "").strip().lower()
    return token if token in PERIODS else DEFAULT_PERIOD


def _month_bounds(day: date, delta_months: int = 0) -> tuple[date, date]:
    """Return the (start, end) bounds of the month ``delta_months`` away from ``day``."""
    start = day.replace(day=1) + relativedelta(months=delta_months)
    end = (start + relativedelta(months=1)) - timedelta(days=1)
    return start, end


def resolve(period: str, now: Union[datetime, date]) -> DateRange:
    token = normalize_period(period)
    today = now.date() if isinstance(now, datetime) else now

    if token == "today":
        start, end = today, today
    elif token == "this_week":
        start = today - timedelta(days=today.weekday())
        end = start + timedelta(days=6)
    elif token == "last_month":
        start, end = _month_bounds(today, delta_months=-1)
    elif token == "this_year":
        start = date(today.year, 1, 1)
        end = start + relativedelta(years=1) - timedelta(days=1)
    else:  # this_month
        start, end = _month_bounds(today)

    return DateRange(start=start, end=end, period=token)
