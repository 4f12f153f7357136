from datetime import datetime, timezone, date
from typing import Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def usage_day(now: Optional[datetime] = None) -> date:
    """Calendar day (UTC) that usage counters are keyed on"""
    return (now or utcnow()).astimezone(timezone.utc).date()


def month_window(day: date) -> Tuple[date, date]:
    """First day of the month containing ``day`` and first day of the next month"""
    start = date(day.year, day.month, 1)
    if day.month == 12:
        end = date(day.year + 1, 1, 1)
    else:
        end = date(day.year, day.month + 1, 1)
    return start, end
