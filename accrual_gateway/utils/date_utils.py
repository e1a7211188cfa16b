"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Timezone-aware current time in UTC"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on round-trip)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_days(start: datetime, days: int) -> datetime:
    """End of a plan that starts at `start` and runs for `days` days"""
    return start + timedelta(days=days)


def accrual_day(moment: datetime) -> date:
    """Calendar day (UTC) an accrual at `moment` belongs to"""
    return ensure_utc(moment).date()


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the epoch, used to stamp transaction ids"""
    return int(ensure_utc(moment).timestamp() * 1000)
