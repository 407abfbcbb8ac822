"""Record classification and single-pass folding of records into buckets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set

from .buckets import Bucket, bucket_index, build_buckets
from .windows import Granularity, TimeWindow, select_granularity

LOGGER = logging.getLogger(__name__)

DateExtractor = Callable[[Mapping[str, Any]], Optional[date]]
Categorizer = Callable[[Mapping[str, Any]], Set[str]]
Measure = Callable[[Mapping[str, Any]], float]


@dataclass(frozen=True)
class Classification:
    bucket_index: int
    day: date
    categories: FrozenSet[str]


@dataclass
class EventSource:
    """One feed of raw records plus how to date, categorise and weigh them.

    Without a ``measure`` each record adds one to its categories' counts;
    with one, the measured value is added to the bucket's amounts instead.
    A ``month_level`` feed only knows the month of each record, so any record
    from a month the window touches is counted in that month's bucket.
    """

    name: str
    records: Iterable[Mapping[str, Any]]
    event_date: DateExtractor
    categorize: Categorizer
    measure: Optional[Measure] = None
    month_level: bool = False


@dataclass
class AggregationStats:
    included: int = 0
    excluded: int = 0


def classify(
    event: Mapping[str, Any],
    window: TimeWindow,
    granularity: Granularity,
    *,
    event_date: DateExtractor,
    categorize: Categorizer,
    month_level: bool = False,
) -> Optional[Classification]:
    """Locate the bucket for ``event`` or return ``None`` when it is excluded.

    Undated and out-of-window records are excluded outright.  Category
    membership, active filters included, is decided by ``categorize`` and may
    legitimately come back empty.
    """

    day = event_date(event)
    if day is None:
        return None
    if month_level:
        month = day.replace(day=1)
        if not window.start.replace(day=1) <= month <= window.end.replace(day=1):
            return None
        day = max(window.start, min(day, window.end))
    elif not window.contains(day):
        return None
    return Classification(
        bucket_index=bucket_index(window, granularity, day),
        day=day,
        categories=frozenset(categorize(event)),
    )


def aggregate_sources(
    sources: Sequence[EventSource],
    window: TimeWindow,
    *,
    granularity: Optional[Granularity] = None,
    locale: str = "en",
) -> List[Bucket]:
    resolved = select_granularity(window, granularity)
    buckets = build_buckets(window, resolved, locale=locale)
    stats = AggregationStats()

    for source in sources:
        for event in source.records:
            classification = classify(
                event,
                window,
                resolved,
                event_date=source.event_date,
                categorize=source.categorize,
                month_level=source.month_level,
            )
            if classification is None:
                stats.excluded += 1
                continue
            if not 0 <= classification.bucket_index < len(buckets):
                raise ValueError(
                    f"{source.name} record dated {classification.day.isoformat()} maps to "
                    f"bucket {classification.bucket_index} of {len(buckets)}"
                )
            bucket = buckets[classification.bucket_index]
            stats.included += 1
            if source.measure is None:
                for category in classification.categories:
                    bucket.counts[category] += 1
            else:
                value = source.measure(event)
                for category in classification.categories:
                    bucket.amounts[category] = bucket.amounts.get(category, 0.0) + value

    LOGGER.debug(
        "Aggregated %s..%s by %s into %d buckets: %d included, %d undated or outside the window",
        window.start.isoformat(),
        window.end.isoformat(),
        resolved.value,
        len(buckets),
        stats.included,
        stats.excluded,
    )
    return buckets


def aggregate(
    events: Iterable[Mapping[str, Any]],
    window: TimeWindow,
    *,
    event_date: DateExtractor,
    categorize: Categorizer,
    granularity: Optional[Granularity] = None,
    locale: str = "en",
) -> List[Bucket]:
    """Count ``events`` per bucket and category over ``window``."""

    source = EventSource(name="events", records=events, event_date=event_date, categorize=categorize)
    return aggregate_sources([source], window, granularity=granularity, locale=locale)


def series_totals(buckets: Iterable[Bucket]) -> dict:
    counts: dict = {}
    amounts: dict = {}
    for bucket in buckets:
        for category, value in bucket.counts.items():
            counts[category] = counts.get(category, 0) + value
        for category, value in bucket.amounts.items():
            amounts[category] = round(amounts.get(category, 0.0) + value, 2)
    return {"counts": counts, "amounts": amounts}
