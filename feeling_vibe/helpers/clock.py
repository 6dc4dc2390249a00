from datetime import datetime, timezone
from typing import Callable, Optional, Union
import logging

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: datetime) -> datetime:
    """BSON dates carry no zone, so everything written to Mongo is naive UTC"""
    return ensure_utc(value).replace(tzinfo=None)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(datetime.fromisoformat(str(value).replace('Z', '+00:00')))
    except ValueError:
        logger.debug(f"Could not parse datetime: {value}")
        return None
