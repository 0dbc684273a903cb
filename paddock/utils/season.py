from datetime import date, datetime, time, timezone
from typing import Optional

from paddock.core.config import settings


def current_season() -> int:
    """The season the app is working on.

    Always the calendar year unless pinned via SEASON. The calendar for the
    next season is published before it starts, and users need to see those
    races in January and February.
    """
    if settings.season:
        return int(settings.season)
    return utcnow().year


def utcnow() -> datetime:
    # Naive UTC, matching how race dates/times are stored
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def race_start(race_date: date, race_time: Optional[time]) -> datetime:
    return datetime.combine(race_date, race_time or time(12, 0))
