"""
Calendar-day policy.

Every day key in the system (assignment, completion, skip, streak walk,
history window) is derived through a single Clock so the whole app agrees on
where midnight falls. Default policy is the server-local calendar day;
DAY_TIMEZONE pins it to an explicit IANA zone instead.

Instants are always handled as tz-aware UTC datetimes.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Normalize to aware UTC. Naive values (e.g. read back from SQLite) are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Clock:
    def __init__(self, tz_name: Optional[str] = None, now_fn: Callable[[], datetime] = utc_now):
        self._tz: Optional[tzinfo] = ZoneInfo(tz_name) if tz_name else None
        self._now_fn = now_fn

    @property
    def tz_label(self) -> str:
        return str(self._tz) if self._tz else "server-local"

    def now(self) -> datetime:
        return as_utc(self._now_fn())

    def today(self, instant: Optional[datetime] = None) -> date:
        """Calendar day containing `instant` (default: now) under the configured policy."""
        moment = as_utc(instant) if instant is not None else self.now()
        # astimezone(None) converts to the server's local zone
        return moment.astimezone(self._tz).date()

    def days_ago(self, days: int, *, from_day: Optional[date] = None) -> date:
        return (from_day or self.today()) - timedelta(days=days)


class FrozenClock(Clock):
    """Clock pinned to a settable instant (tests, backfills)."""

    def __init__(self, at: datetime, tz_name: Optional[str] = "UTC"):
        self._at = as_utc(at)
        super().__init__(tz_name, now_fn=lambda: self._at)

    def set(self, at: datetime) -> None:
        self._at = as_utc(at)

    def advance(self, **delta) -> datetime:
        self._at = self._at + timedelta(**delta)
        return self._at
