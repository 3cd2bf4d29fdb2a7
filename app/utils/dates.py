from datetime import datetime, timezone
from typing import Optional


def to_naive_utc(value: datetime) -> datetime:
    """Normalise aware datetimes to naive UTC so they compare with stored values."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime string; return None when unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None
    return to_naive_utc(parsed)
