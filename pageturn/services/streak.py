# pageturn/services/streak.py
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pageturn.settings.config import settings

DateLike = Union[date, str]

ONE_DAY = timedelta(days=1)


def ledger_today(tz_name: Optional[str] = None) -> date:
    """Current calendar date in the ledger's time zone (LEDGER_TZ)."""
    tz_name = tz_name or settings.LEDGER_TZ or "UTC"
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo("UTC")
    return datetime.now(tz).date()


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def compute_streak(dates: Iterable[DateLike], today: Optional[date] = None) -> int:
    """
    Number of consecutive calendar days, ending today or yesterday, present in `dates`.

    `dates` is treated as a set (duplicates and order do not matter). Dates
    after `today` are ignored. If the most recent date is older than
    yesterday the chain is broken and the result is 0.
    """
    today = today or ledger_today()
    days = sorted({d for d in map(_as_date, dates) if d <= today}, reverse=True)
    if not days or days[0] < today - ONE_DAY:
        return 0

    streak = 1
    for prev, cur in zip(days, days[1:]):
        if prev - cur != ONE_DAY:
            break
        streak += 1
    return streak


def add_reading_date(dates: Optional[Iterable[DateLike]], day: date, cap: Optional[int] = None) -> list[str]:
    """Return the date set with `day` added, most recent first, trimmed to `cap` entries."""
    cap = cap if cap is not None else settings.READING_DATES_CAP
    merged = {_as_date(d) for d in (dates or [])}
    merged.add(day)
    ordered = sorted(merged, reverse=True)[:cap]
    return [d.isoformat() for d in ordered]
