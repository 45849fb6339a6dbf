"""Date manipulation utilities"""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> float:
    """Elapsed minutes between two timestamps, rounded to 2 decimals"""
    return round((end - start).total_seconds() / 60, 2)


def current_year() -> int:
    return date.today().year
