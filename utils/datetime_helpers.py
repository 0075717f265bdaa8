"""
Datetime helper utilities to ensure consistent timezone handling across the ledger.

All ledger timestamps are stored as ISO-8601 strings carrying the local offset
of the configured zone (e.g. 2024-05-01T10:00:00+09:00). Month filters rely on
the stored text starting with YYYY-MM, so every timestamp written to the store
must go through format_timestamp().
"""

from datetime import datetime, tzinfo
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)

DUE_DISPLAY_FORMAT = "%a %d/%m"
DAY_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"


class LedgerClock:
    """Callable source of 'now' in the configured zone; tests pass their own"""

    def __init__(self, tz: tzinfo, now_func: Optional[Callable[[], datetime]] = None):
        self.tz = tz
        self._now_func = now_func

    def __call__(self) -> datetime:
        if self._now_func is not None:
            return self._now_func().astimezone(self.tz)
        return datetime.now(self.tz)


def format_timestamp(dt: datetime) -> str:
    """
    Format a zone-aware datetime as a second-precision ISO-8601 string.

    Example:
        >>> format_timestamp(datetime(2024, 5, 1, 10, 0, tzinfo=ZoneInfo("Asia/Seoul")))
        '2024-05-01T10:00:00+09:00'
    """
    return dt.replace(microsecond=0).isoformat()


def parse_timestamp(value: Optional[str], tz: tzinfo) -> Optional[datetime]:
    """
    Parse a stored timestamp into the configured zone.

    Returns None for blank or unparseable values. Naive values are assumed to
    already be in the configured zone.
    """
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).strip())
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value!r}")
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def format_due(dt: datetime) -> str:
    """Short day label used in replies, e.g. 'Wed 15/05'"""
    return dt.strftime(DUE_DISPLAY_FORMAT)


def month_key(dt: datetime) -> str:
    return dt.strftime(MONTH_FORMAT)


def same_local_day(a: datetime, b: datetime, tz: tzinfo) -> bool:
    """True when both instants fall on the same calendar day in tz"""
    return a.astimezone(tz).strftime(DAY_FORMAT) == b.astimezone(tz).strftime(DAY_FORMAT)
