from datetime import datetime, timezone as dt_timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


def to_utc_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize any datetime to UTC-naive (tzinfo=None) for consistent storage/comparison.
    - Aware datetimes are converted to UTC and tzinfo is stripped
    - Naive datetimes are returned as-is (assumed UTC)
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(dt_timezone.utc).replace(tzinfo=None)


def to_utc_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize any datetime to UTC-aware (tzinfo=UTC) for APIs needing tz-aware values.
    - Aware datetimes are converted to UTC
    - Naive datetimes are assumed UTC and tz attached
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=dt_timezone.utc)
    return dt.astimezone(dt_timezone.utc)


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return to_utc_aware(dt).isoformat()


def utc_now_naive() -> datetime:
    """Current UTC time without tzinfo, for DateTime columns."""
    return to_utc_naive(utc_now())
