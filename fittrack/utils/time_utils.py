from datetime import datetime, date
from typing import Optional, Union


def utc_now_ms() -> datetime:
    """Naive UTC now, truncated to the millisecond precision both stores keep."""
    return truncate_ms(datetime.utcnow())


def truncate_ms(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def parse_datetime(value: Union[str, datetime, date, None]) -> Optional[datetime]:
    """Parse ISO strings (with or without a trailing Z) into naive UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    return truncate_ms(parsed)


def isoformat(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat(timespec="milliseconds") + "Z"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
