"""Tolerant calendar-date normalisation for spreadsheet-sourced records."""

from __future__ import annotations

import re
from datetime import date, datetime, tzinfo
from typing import Any, Callable, List, Optional

from dateutil.parser import parse as dateutil_parse

DAY_FIRST_PATTERN = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{4})(?:[\sT,].*)?$")
ISO_DATE_PATTERN = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\s*$")
YEAR_PATTERN = re.compile(r"\d{4}")

# Fixed fallback so partial strings ("March 2024") never pick up today's day.
_PARSE_DEFAULT = datetime(2000, 1, 1)

THAI_MONTH_ABBREVIATIONS = [
    "ม.ค.",
    "ก.พ.",
    "มี.ค.",
    "เม.ย.",
    "พ.ค.",
    "มิ.ย.",
    "ก.ค.",
    "ส.ค.",
    "ก.ย.",
    "ต.ค.",
    "พ.ย.",
    "ธ.ค.",
]
THAI_MONTH_NAMES = [
    "มกราคม",
    "กุมภาพันธ์",
    "มีนาคม",
    "เมษายน",
    "พฤษภาคม",
    "มิถุนายน",
    "กรกฎาคม",
    "สิงหาคม",
    "กันยายน",
    "ตุลาคม",
    "พฤศจิกายน",
    "ธันวาคม",
]
THAI_MONTH_MAP = {name: index for index, name in enumerate(THAI_MONTH_ABBREVIATIONS, start=1)}
BUDDHIST_ERA_OFFSET = 543


class _NoMatch(Exception):
    """Signals that a strategy does not recognise the input at all."""


# ---------------------------------------------------------------------------
# Parser strategies
# ---------------------------------------------------------------------------


def _parse_day_first(text: str, tz: Optional[tzinfo]) -> Optional[date]:
    match = DAY_FIRST_PATTERN.match(text)
    if not match:
        raise _NoMatch
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_iso_date(text: str, tz: Optional[tzinfo]) -> Optional[date]:
    match = ISO_DATE_PATTERN.match(text)
    if not match:
        raise _NoMatch
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_generic(text: str, tz: Optional[tzinfo]) -> Optional[date]:
    # Bare tokens like "12" or "May" would otherwise land in the default year.
    if not YEAR_PATTERN.search(text):
        return None
    try:
        parsed = dateutil_parse(text, default=_PARSE_DEFAULT)
    except (TypeError, ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None and tz is not None:
        parsed = parsed.astimezone(tz)
    return parsed.date()


DateParser = Callable[[str, Optional[tzinfo]], Optional[date]]

# Ordered by priority; the first strategy that recognises the input decides.
DATE_PARSERS: List[DateParser] = [_parse_day_first, _parse_iso_date, _parse_generic]


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def normalize_date(raw: Any, tz: Optional[tzinfo] = None) -> Optional[date]:
    """Return the calendar date encoded by ``raw`` or ``None``.

    ``DD/MM/YYYY`` strings are read day-first, ``YYYY-MM-DD`` strings as local
    calendar dates and anything else is handed to :mod:`dateutil`.  Aware
    timestamps are converted to ``tz`` before the date is taken so an activity
    logged at 23:30 local time lands on the local day.  Nothing here raises for
    malformed input.
    """

    if raw in (None, ""):
        return None
    if isinstance(raw, datetime):
        if raw.tzinfo is not None and tz is not None:
            raw = raw.astimezone(tz)
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = str(raw).strip()
    if not text:
        return None
    for parser in DATE_PARSERS:
        try:
            return parser(text, tz)
        except _NoMatch:
            continue
    return None


def format_day_first(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def parse_thai_month_year(month: Any, year: Any) -> Optional[date]:
    """Date a monthly sales row (Thai month abbreviation, Buddhist year) to the 15th."""

    month_index = THAI_MONTH_MAP.get(str(month or "").strip())
    if month_index is None:
        return None
    try:
        buddhist_year = int(str(year).strip())
    except (TypeError, ValueError):
        return None
    try:
        return date(buddhist_year - BUDDHIST_ERA_OFFSET, month_index, 15)
    except ValueError:
        return None


def to_buddhist_year(gregorian_year: int) -> int:
    return gregorian_year + BUDDHIST_ERA_OFFSET
