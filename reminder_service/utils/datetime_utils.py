from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

# Every timestamp column of the service and of the mapped domain tables holds
# naive UTC datetimes.


def naive_utc_now() -> datetime:
    """Current UTC time without tzinfo, the form stored in every table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Naive input is assumed to be UTC already and is returned unchanged.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def from_naive_utc(dt: datetime, zone: ZoneInfo = ZoneInfo("UTC")) -> datetime:
    """
    Attach UTC to a stored naive datetime and convert it to `zone`.

    Raises:
        ValueError: if `dt` already carries tzinfo
    """
    if dt.tzinfo is not None:
        raise ValueError("Input datetime must be naive (no timezone info)")
    return dt.replace(tzinfo=timezone.utc).astimezone(zone)


def local_date(dt: datetime, zone_name: str) -> date:
    """Calendar date of `dt` as seen in the named timezone."""
    return from_naive_utc(to_naive_utc(dt), ZoneInfo(zone_name)).date()


def local_hour(dt: datetime, zone_name: str) -> int:
    return from_naive_utc(to_naive_utc(dt), ZoneInfo(zone_name)).hour


def whole_days_between(later: datetime, earlier: datetime) -> int:
    """Number of complete 24h periods from `earlier` to `later` (floored)."""
    return (to_naive_utc(later) - to_naive_utc(earlier)) // timedelta(days=1)
