"""Week-over-week headline numbers for the business dashboard."""

from __future__ import annotations

from datetime import date, timedelta, tzinfo
from typing import Any, Dict, Iterable, Mapping, Optional

from .categories import (
    PRODUCT_DREASE,
    PRODUCT_EASE_POS,
    is_activity_demo,
    is_completed_demo,
    is_valid_lead,
    product_family,
    record_text,
)
from .dates import normalize_date
from .windows import TimeWindow


def calendar_week(day: date) -> TimeWindow:
    """Monday-to-Sunday week containing ``day``."""

    start = day - timedelta(days=day.weekday())
    return TimeWindow(start=start, end=start + timedelta(days=6))


def week_over_week_percent(current: int, previous: int) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100.0, 2)
    return 100.0 if current > 0 else 0.0


def _count_in(window: TimeWindow, days: Iterable[Optional[date]]) -> int:
    return sum(1 for day in days if day is not None and window.contains(day))


def build_scorecards(
    leads: Iterable[Mapping[str, Any]],
    demos: Iterable[Mapping[str, Any]],
    activities: Iterable[Mapping[str, Any]],
    *,
    now: date,
    tz: Optional[tzinfo] = None,
) -> Dict[str, Any]:
    current_week = calendar_week(now)
    previous_week = calendar_week(current_week.start - timedelta(days=7))

    valid_leads = [
        (normalize_date(lead.get("date"), tz), product_family(record_text(lead, "product")))
        for lead in leads
        if is_valid_lead(lead)
    ]
    demo_days = [
        normalize_date(demo.get("date"), tz)
        for demo in demos
        if is_completed_demo(record_text(demo, "demoStatus", "demo_status"))
    ]
    demo_days.extend(
        normalize_date(activity.get("createdAt") or activity.get("created_at"), tz)
        for activity in activities
        if is_activity_demo(activity)
    )

    current_leads = [family for day, family in valid_leads if day is not None and current_week.contains(day)]
    previous_leads = _count_in(previous_week, (day for day, _ in valid_leads))
    current_demos = _count_in(current_week, demo_days)
    previous_demos = _count_in(previous_week, demo_days)

    return {
        "currentWeek": current_week.to_dict(),
        "previousWeek": previous_week.to_dict(),
        "leads": {
            "current": len(current_leads),
            "previous": previous_leads,
            "weekOverWeekPercent": week_over_week_percent(len(current_leads), previous_leads),
            "drease": sum(1 for family in current_leads if family == PRODUCT_DREASE),
            "ease": sum(1 for family in current_leads if family == PRODUCT_EASE_POS),
        },
        "demos": {
            "current": current_demos,
            "previous": previous_demos,
            "weekOverWeekPercent": week_over_week_percent(current_demos, previous_demos),
        },
    }
