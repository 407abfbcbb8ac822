import pathlib
import sys
from datetime import date

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services.scorecards import build_scorecards, calendar_week, week_over_week_percent

NOW = date(2026, 10, 18)


def test_calendar_week_runs_monday_to_sunday():
    week = calendar_week(NOW)
    assert week.start == date(2026, 10, 12)
    assert week.end == date(2026, 10, 18)
    assert calendar_week(date(2026, 10, 12)) == week


def test_week_over_week_percent():
    assert week_over_week_percent(3, 4) == -25.0
    assert week_over_week_percent(2, 0) == 100.0
    assert week_over_week_percent(0, 0) == 0.0


def test_build_scorecards_counts_valid_leads_and_completed_demos():
    leads = [
        {"date": "12/10/2026", "customerName": "Clinic A", "product": "Dr.Ease"},
        {"date": "18/10/2026", "customerName": "Shop B", "product": "Ease POS"},
        {"date": "14/10/2026", "customerName": "Test user", "product": "Dr.Ease"},
        {"date": "14/10/2026", "customerName": "Clinic X", "leadType": "Spam", "product": "Dr"},
        {"date": "15/10/2026", "customerName": "", "product": "Dr.Ease"},
        {"date": "06/10/2026", "customerName": "Clinic C", "product": "Dr.Ease"},
        {"date": "not a date", "customerName": "Clinic D"},
    ]
    demos = [
        {"date": "13/10/2026", "demoStatus": "Demo แล้ว"},
        {"date": "13/10/2026", "demoStatus": "ปฏิเสธ"},
    ]
    activities = [{"activityType": "Demo", "createdAt": "2026-10-16"}]

    result = build_scorecards(leads, demos, activities, now=NOW)

    assert result["currentWeek"]["start"] == "2026-10-12"
    assert result["previousWeek"]["start"] == "2026-10-05"
    assert result["leads"] == {
        "current": 2,
        "previous": 1,
        "weekOverWeekPercent": 100.0,
        "drease": 1,
        "ease": 1,
    }
    assert result["demos"] == {"current": 2, "previous": 0, "weekOverWeekPercent": 100.0}


def test_build_scorecards_with_no_data():
    result = build_scorecards([], [], [], now=NOW)
    assert result["leads"]["current"] == 0
    assert result["demos"]["weekOverWeekPercent"] == 0.0
