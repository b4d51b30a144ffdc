"""Calendar helpers anchored to the studio's timezone."""

from datetime import date, datetime, timedelta
import re
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

from ..core.config import settings
from ..core.exceptions import InvalidDateException

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def studio_now() -> datetime:
    return datetime.now(ZoneInfo(settings.studio_timezone))


def studio_today() -> date:
    """Today's date in the studio's timezone."""
    return studio_now().date()


def parse_calendar_date(value: Any) -> date:
    """
    Parse a strict ``YYYY-MM-DD`` value into a date.

    Raises:
        InvalidDateException: For anything else, including datetimes
    """
    if isinstance(value, datetime):
        raise InvalidDateException(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_ONLY_REGEX.match(value.strip()):
        raise InvalidDateException(value)
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidDateException(value) from exc


def upcoming_dates(days: Optional[int] = None, start: Optional[date] = None) -> List[date]:
    """``days`` consecutive dates beginning with ``start`` (today by default)."""
    first = start or studio_today()
    count = settings.booking_horizon_days if days is None else days
    return [first + timedelta(days=offset) for offset in range(count)]
