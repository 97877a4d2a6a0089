"""Timezone helpers shared by the analytics and API key services."""

import datetime
from zoneinfo import ZoneInfo

from blogpress.core.config import settings


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """
    Normalize a timestamp read back from the database to aware UTC.

    SQLite returns naive datetimes; everything is written in UTC,
    so a naive value is UTC by construction.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.ANALYTICS_TIMEZONE)


def local_midnight(now: datetime.datetime) -> datetime.datetime:
    """Start of the local calendar day containing `now`, as aware UTC."""
    local = now.astimezone(local_zone())
    midnight = datetime.datetime.combine(local.date(), datetime.time(), tzinfo=local.tzinfo)
    return midnight.astimezone(datetime.timezone.utc)
