"""Date helpers. Everything is naive UTC, the way pymongo hands it back."""
from datetime import date, datetime, time, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def date_to_datetime(value: date, at: time = time(0, 0)) -> datetime:
    """Mongo only stores datetimes, so calendar days are kept at a fixed time."""
    return datetime.combine(value, at)


def isoformat(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()
