from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock:
    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


class FrozenClock(Clock):
    def __init__(self, now: Optional[datetime] = None) -> None:
        self._now = now or datetime.now(tz=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
