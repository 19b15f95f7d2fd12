from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClockReading:
    hour: int
    minute: int
    second: int = 0

    @classmethod
    def from_datetime(cls, dt: datetime) -> "ClockReading":
        return cls(hour=dt.hour, minute=dt.minute, second=dt.second)


def now_in_tz(tzinfo=None) -> datetime:
    if tzinfo:
        return datetime.now(tzinfo)
    return datetime.now().astimezone()


def read_clock(tzinfo=None, now: Optional[datetime] = None) -> ClockReading:
    """Current local wall-clock reading; ``now`` overrides the host clock."""
    if now is None:
        now = now_in_tz(tzinfo)
    elif tzinfo and now.tzinfo:
        now = now.astimezone(tzinfo)
    return ClockReading.from_datetime(now)


def format_clock(reading: ClockReading, with_seconds: bool = True) -> str:
    if with_seconds:
        return f"{reading.hour:02d}:{reading.minute:02d}:{reading.second:02d}"
    return f"{reading.hour:02d}:{reading.minute:02d}"

