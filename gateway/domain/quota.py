"""Quota window arithmetic."""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo


class WindowType(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"


# Check order; the first exhausted window denies the request
WINDOW_ORDER = (WindowType.MINUTE, WindowType.HOUR, WindowType.DAY)


@dataclass(frozen=True)
class RateCeilings:
    """Per-token request ceilings. 0 means unlimited for that window."""

    per_minute: int = 0
    per_hour: int = 0
    per_day: int = 0

    @classmethod
    def from_token(cls, token) -> "RateCeilings":
        return cls(
            per_minute=token.rate_limit_per_minute or 0,
            per_hour=token.rate_limit_per_hour or 0,
            per_day=token.rate_limit_per_day or 0,
        )

    def for_window(self, window_type: WindowType) -> int:
        return {
            WindowType.MINUTE: self.per_minute,
            WindowType.HOUR: self.per_hour,
            WindowType.DAY: self.per_day,
        }[window_type]


@dataclass(frozen=True)
class Window:
    """Bounds of one counter row, both in UTC."""

    window_type: WindowType
    start: datetime
    end: datetime


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    window: WindowType | None = None
    retry_after: int | None = None

    @classmethod
    def allow(cls) -> "QuotaDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, window: Window, now: datetime) -> "QuotaDecision":
        return cls(allowed=False, window=window.window_type, retry_after=seconds_until(window.end, now))


def window_bounds(window_type: WindowType, now: datetime, day_tz: tzinfo) -> Window:
    """Truncate ``now`` to the window granularity.

    Minute and hour windows are truncated in UTC. Day windows start at
    midnight in ``day_tz`` and are converted back to UTC for storage.
    """
    now = now.astimezone(timezone.utc)
    if window_type is WindowType.MINUTE:
        start = now.replace(second=0, microsecond=0)
        return Window(window_type, start, start + timedelta(minutes=1))
    if window_type is WindowType.HOUR:
        start = now.replace(minute=0, second=0, microsecond=0)
        return Window(window_type, start, start + timedelta(hours=1))

    local = now.astimezone(day_tz)
    start_local = datetime(local.year, local.month, local.day, tzinfo=day_tz)
    next_day = local.date() + timedelta(days=1)
    end_local = datetime(next_day.year, next_day.month, next_day.day, tzinfo=day_tz)
    return Window(window_type, start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc))


def active_windows(ceilings: RateCeilings, now: datetime, day_tz: tzinfo) -> list[tuple[Window, int]]:
    """Windows with a nonzero ceiling, in check order."""
    return [
        (window_bounds(window_type, now, day_tz), ceilings.for_window(window_type))
        for window_type in WINDOW_ORDER
        if ceilings.for_window(window_type) > 0
    ]


def seconds_until(end: datetime, now: datetime) -> int:
    return max(1, math.ceil((end - now).total_seconds()))


def day_timezone(name: str) -> tzinfo:
    """Reference timezone for day windows."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)
