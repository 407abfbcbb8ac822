"""Bucket construction for chart series.

A window is cut into contiguous, non-overlapping buckets at the chosen
granularity.  Every bucket carries its boundary dates so callers can derive
their own labels, plus the stock English/Thai labels the dashboard shows.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List

from .dates import THAI_MONTH_ABBREVIATIONS, THAI_MONTH_NAMES, to_buddhist_year
from .windows import Granularity, TimeWindow

WEEKDAY_ABBREVIATIONS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_ABBREVIATIONS = [
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
]
MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]
LABEL_LOCALES = ["en", "th"]
WEEK_LENGTH_DAYS = 7


@dataclass
class Bucket:
    key: str
    label: str
    short_label: str
    start: date
    end: date
    counts: Counter = field(default_factory=Counter)
    amounts: Dict[str, float] = field(default_factory=dict)

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "shortLabel": self.short_label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "counts": dict(self.counts),
            "amounts": {name: round(value, 2) for name, value in self.amounts.items()},
        }


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def _short_month(value: date, locale: str) -> str:
    if locale == "th":
        return THAI_MONTH_ABBREVIATIONS[value.month - 1]
    return MONTH_ABBREVIATIONS[value.month - 1]


def _display_year(value: date, locale: str) -> int:
    return to_buddhist_year(value.year) if locale == "th" else value.year


def _day_labels(day: date, locale: str) -> Dict[str, str]:
    short = f"{day.day} {WEEKDAY_ABBREVIATIONS[day.weekday()]}"
    if locale == "th":
        label = f"{day.day} {THAI_MONTH_NAMES[day.month - 1]} {_display_year(day, locale)}"
    else:
        label = f"{WEEKDAY_ABBREVIATIONS[day.weekday()]} {day.day} {MONTH_ABBREVIATIONS[day.month - 1]} {day.year}"
    return {"label": label, "short_label": short}


def _week_labels(start: date, end: date, locale: str) -> Dict[str, str]:
    short = f"{start.day} {_short_month(start, locale)}"
    label = f"{short} - {end.day} {_short_month(end, locale)} {_display_year(end, locale)}"
    return {"label": label, "short_label": short}


def _month_labels(month_start: date, locale: str) -> Dict[str, str]:
    year = _display_year(month_start, locale)
    short = f"{_short_month(month_start, locale)} {str(year)[-2:]}"
    if locale == "th":
        label = f"{_short_month(month_start, locale)} พ.ศ. {year}"
    else:
        label = f"{MONTH_NAMES[month_start.month - 1]} {year}"
    return {"label": label, "short_label": short}


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _next_month(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def build_buckets(window: TimeWindow, granularity: Granularity, locale: str = "en") -> List[Bucket]:
    """Return empty buckets covering ``window`` in ascending order.

    Week buckets run in seven-day steps from ``window.start`` with the last one
    cut at ``window.end``.  Month buckets are labelled for the whole calendar
    month but their boundaries are clipped to the window, so the union of all
    buckets is exactly the window at every granularity.
    """

    if window.start > window.end:
        raise ValueError("Cannot build buckets for a window that ends before it starts")

    buckets: List[Bucket] = []
    if granularity == Granularity.DAY:
        current = window.start
        while current <= window.end:
            buckets.append(
                Bucket(key=current.isoformat(), start=current, end=current, **_day_labels(current, locale))
            )
            current += timedelta(days=1)
    elif granularity == Granularity.WEEK:
        current = window.start
        while current <= window.end:
            week_end = min(current + timedelta(days=WEEK_LENGTH_DAYS - 1), window.end)
            buckets.append(
                Bucket(
                    key=current.isoformat(),
                    start=current,
                    end=week_end,
                    **_week_labels(current, week_end, locale),
                )
            )
            current = week_end + timedelta(days=1)
    elif granularity == Granularity.MONTH:
        month_start = window.start.replace(day=1)
        while month_start <= window.end:
            following = _next_month(month_start)
            buckets.append(
                Bucket(
                    key=month_start.strftime("%Y-%m"),
                    start=max(month_start, window.start),
                    end=min(following - timedelta(days=1), window.end),
                    **_month_labels(month_start, locale),
                )
            )
            month_start = following
    else:
        raise ValueError(f"Unsupported granularity '{granularity}'")
    return buckets


def bucket_index(window: TimeWindow, granularity: Granularity, value: date) -> int:
    """Position of the bucket holding ``value``; ``value`` must lie inside ``window``."""

    if granularity == Granularity.DAY:
        return (value - window.start).days
    if granularity == Granularity.WEEK:
        return (value - window.start).days // WEEK_LENGTH_DAYS
    if granularity == Granularity.MONTH:
        return (value.year - window.start.year) * 12 + (value.month - window.start.month)
    raise ValueError(f"Unsupported granularity '{granularity}'")
