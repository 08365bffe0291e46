# pharmaledger/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date, timezone
from zoneinfo import ZoneInfo

from pharmaledger.core.config import settings

LOCAL_TZ = ZoneInfo(settings.APP_TIMEZONE)


def utcnow() -> datetime:
    """
    Returns a *naive* datetime in UTC.
    DateTime columns are naive, so commit timestamps are stored without tzinfo.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def now_local() -> datetime:
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def today_local() -> date:
    return now_local().date()
