import pathlib
import sys
from datetime import date, timedelta

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from services.buckets import bucket_index, build_buckets
from services.windows import Granularity, TimeWindow


def assert_contiguous_cover(buckets, window):
    assert buckets[0].start == window.start
    assert buckets[-1].end == window.end
    for previous, following in zip(buckets, buckets[1:]):
        assert following.start == previous.end + timedelta(days=1)
    for bucket in buckets:
        assert bucket.start <= bucket.end


@pytest.mark.parametrize(
    "window, granularity",
    [
        (TimeWindow(date(2026, 10, 12), date(2026, 10, 18)), Granularity.DAY),
        (TimeWindow(date(2026, 1, 1), date(2026, 3, 1)), Granularity.WEEK),
        (TimeWindow(date(2026, 1, 1), date(2026, 1, 14)), Granularity.WEEK),
        (TimeWindow(date(2024, 11, 20), date(2026, 4, 2)), Granularity.MONTH),
        (TimeWindow(date(2024, 2, 29), date(2024, 2, 29)), Granularity.MONTH),
    ],
)
def test_buckets_cover_window_without_gaps_or_overlaps(window, granularity):
    assert_contiguous_cover(build_buckets(window, granularity), window)


def test_day_buckets_and_labels():
    window = TimeWindow(date(2026, 10, 12), date(2026, 10, 18))
    buckets = build_buckets(window, Granularity.DAY)
    assert len(buckets) == 7
    wednesday = buckets[2]
    assert wednesday.start == date(2026, 10, 14)
    assert wednesday.short_label == "14 Wed"
    assert wednesday.label == "Wed 14 Oct 2026"
    assert all(not bucket.counts for bucket in buckets)


def test_final_week_is_truncated_to_window_end():
    window = TimeWindow(date(2026, 1, 1), date(2026, 3, 1))
    buckets = build_buckets(window, Granularity.WEEK)
    assert len(buckets) == 9
    assert buckets[0].short_label == "1 Jan"
    assert buckets[0].label == "1 Jan - 7 Jan 2026"
    assert buckets[-1].start == date(2026, 2, 26)
    assert buckets[-1].end == date(2026, 3, 1)


def test_month_buckets_one_per_calendar_month_touched():
    window = TimeWindow(date(2024, 11, 20), date(2026, 4, 2))
    buckets = build_buckets(window, Granularity.MONTH)
    assert len(buckets) == 18
    assert buckets[0].key == "2024-11"
    assert buckets[0].short_label == "Nov 24"
    assert buckets[0].label == "November 2024"
    assert buckets[0].start == date(2024, 11, 20)
    assert buckets[0].end == date(2024, 11, 30)
    assert buckets[-1].key == "2026-04"
    assert buckets[-1].end == date(2026, 4, 2)


def test_thai_labels_use_buddhist_era():
    window = TimeWindow(date(2026, 10, 1), date(2026, 10, 18))
    month = build_buckets(window, Granularity.MONTH, locale="th")[0]
    assert month.short_label == "ต.ค. 69"
    assert month.label == "ต.ค. พ.ศ. 2569"
    day = build_buckets(window, Granularity.DAY, locale="th")[-1]
    assert day.label == "18 ตุลาคม 2569"


def test_bucket_index_matches_bucket_boundaries():
    window = TimeWindow(date(2024, 11, 20), date(2026, 4, 2))
    for granularity in Granularity:
        buckets = build_buckets(window, granularity)
        day = window.start
        while day <= window.end:
            assert buckets[bucket_index(window, granularity, day)].contains(day)
            day += timedelta(days=17)


def test_bucket_to_dict_is_json_ready():
    window = TimeWindow(date(2026, 10, 18), date(2026, 10, 18))
    bucket = build_buckets(window, Granularity.DAY)[0]
    bucket.counts["leads"] += 2
    payload = bucket.to_dict()
    assert payload["start"] == "2026-10-18"
    assert payload["shortLabel"] == "18 Sun"
    assert payload["counts"] == {"leads": 2}
    assert payload["amounts"] == {}
