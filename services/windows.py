"""Time windows for dashboard charts: preset resolution and granularity choice."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from .dates import normalize_date

PRESET_DAYS: Dict[str, int] = {
    "1w": 7,
    "1m": 30,
    "3m": 90,
    "6m": 180,
    "1y": 365,
}
CUSTOM_PRESET = "custom"
TIME_RANGE_CHOICES = [*PRESET_DAYS, CUSTOM_PRESET]

MONTH_SPAN_THRESHOLD = 400
WEEK_SPAN_THRESHOLD = 45


class RangeResolutionError(ValueError):
    """Raised when filter state cannot be turned into a time window."""


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive span of calendar days; ``end`` covers its whole day."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise RangeResolutionError(
                f"Window start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @property
    def span_days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def start_instant(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def end_instant(self) -> datetime:
        return datetime.combine(self.end, time.max)

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "spanDays": self.span_days,
        }


def resolve_window(
    preset: str,
    now: date,
    custom_start: Any = None,
    custom_end: Any = None,
) -> TimeWindow:
    """Turn a time-range selection into a :class:`TimeWindow`.

    Presets end on ``now`` and cover exactly their number of calendar days.
    A custom range needs both bounds; a half-filled date picker is rejected
    rather than guessed at.
    """

    if preset == CUSTOM_PRESET:
        start = normalize_date(custom_start)
        end = normalize_date(custom_end)
        if start is None or end is None:
            raise RangeResolutionError("Custom range requires both a start and an end date")
        if start > end:
            raise RangeResolutionError("Custom range start must not be after its end")
        return TimeWindow(start=start, end=end)

    if preset not in PRESET_DAYS:
        raise RangeResolutionError(
            f"Invalid time range '{preset}'; expected one of {TIME_RANGE_CHOICES}"
        )
    days = PRESET_DAYS[preset]
    return TimeWindow(start=now - timedelta(days=days - 1), end=now)


def select_granularity(window: TimeWindow, override: Optional[Granularity] = None) -> Granularity:
    if override is not None:
        return override
    span = window.span_days
    if span > MONTH_SPAN_THRESHOLD:
        return Granularity.MONTH
    if span > WEEK_SPAN_THRESHOLD:
        return Granularity.WEEK
    return Granularity.DAY
