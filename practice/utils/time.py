from datetime import date, datetime, timezone as dt_tz

from django.utils import timezone


def utcnow() -> datetime:
    return timezone.now()


def practice_date(dt_utc: datetime) -> date:
    # Daily quotas roll over at UTC midnight
    return dt_utc.astimezone(dt_tz.utc).date()


def elapsed_ms(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds() * 1000))
