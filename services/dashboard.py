"""Metric registry powering the business dashboard charts."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Any, Callable, Dict, List, Mapping, Optional

from .aggregation import EventSource, aggregate_sources, series_totals
from .buckets import LABEL_LOCALES
from .categories import (
    DEMO_CATEGORIES,
    LEAD_CATEGORIES,
    SALES_CATEGORIES,
    DashboardFilters,
    activity_demo_categories,
    demo_categories,
    lead_categories,
    record_text,
    sale_categories,
)
from .dates import normalize_date, parse_thai_month_year
from .windows import Granularity, resolve_window, select_granularity

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------


def _records(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)):
        return []
    return [entry for entry in value if isinstance(entry, Mapping)]


def record_amount(record: Mapping[str, Any]) -> float:
    value = record.get("amount")
    if value in (None, ""):
        return 0.0
    try:
        amount = float(str(value).replace(",", ""))
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount


@dataclass
class DashboardDataset:
    """In-memory snapshot of the feeds the dashboard charts are built from."""

    leads: List[Mapping[str, Any]] = field(default_factory=list)
    demos: List[Mapping[str, Any]] = field(default_factory=list)
    activities: List[Mapping[str, Any]] = field(default_factory=list)
    sales: List[Mapping[str, Any]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "DashboardDataset":
        data = payload or {}
        return cls(
            leads=_records(data.get("leads")),
            demos=_records(data.get("demos")),
            activities=_records(data.get("activities")),
            sales=_records(data.get("sales")),
        )


SourceBuilder = Callable[[DashboardDataset, DashboardFilters, Optional[tzinfo]], List[EventSource]]


@dataclass
class MetricDefinition:
    id: str
    name: str
    description: str
    categories: List[str]
    source_builder: SourceBuilder
    granularity: Optional[Granularity] = None
    tags: List[str] = field(default_factory=list)

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "categories": self.categories,
            "granularity": self.granularity.value if self.granularity else "adaptive",
            "tags": self.tags,
        }


# ---------------------------------------------------------------------------
# Source builders
# ---------------------------------------------------------------------------


def _lead_sources(
    dataset: DashboardDataset, filters: DashboardFilters, tz: Optional[tzinfo]
) -> List[EventSource]:
    return [
        EventSource(
            name="leads",
            records=dataset.leads,
            event_date=lambda lead: normalize_date(lead.get("date"), tz),
            categorize=lambda lead: lead_categories(lead, filters),
        )
    ]


def _demo_sources(
    dataset: DashboardDataset, filters: DashboardFilters, tz: Optional[tzinfo]
) -> List[EventSource]:
    return [
        EventSource(
            name="demos",
            records=dataset.demos,
            event_date=lambda demo: normalize_date(demo.get("date"), tz),
            categorize=lambda demo: demo_categories(demo, filters),
        ),
        EventSource(
            name="activities",
            records=dataset.activities,
            event_date=lambda activity: normalize_date(
                activity.get("createdAt") or activity.get("created_at"), tz
            ),
            categorize=lambda activity: activity_demo_categories(activity, filters),
        ),
    ]


def _sales_sources(
    dataset: DashboardDataset, filters: DashboardFilters, tz: Optional[tzinfo]
) -> List[EventSource]:
    return [
        EventSource(
            name="sales",
            records=dataset.sales,
            event_date=lambda sale: parse_thai_month_year(
                record_text(sale, "month"), record_text(sale, "year")
            ),
            categorize=lambda sale: sale_categories(sale, filters),
            measure=record_amount,
            month_level=True,
        )
    ]


# ---------------------------------------------------------------------------
# Dashboard engine
# ---------------------------------------------------------------------------


class DashboardEngine:
    def __init__(self) -> None:
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def list_metric_definitions(self) -> List[Dict[str, Any]]:
        return [definition.describe() for definition in self._definitions.values()]

    def register(self, definition: MetricDefinition) -> None:
        self._definitions[definition.id] = definition

    def _register_default_metrics(self) -> None:
        self.register(
            MetricDefinition(
                id="leads",
                name="Leads",
                description="New leads per period, split by product family.",
                categories=list(LEAD_CATEGORIES),
                source_builder=_lead_sources,
                tags=["leads", "product"],
            )
        )
        self.register(
            MetricDefinition(
                id="demos",
                name="Demos",
                description="Completed demos from the master sheet and CRM activities.",
                categories=list(DEMO_CATEGORIES),
                source_builder=_demo_sources,
                tags=["demos", "salesperson"],
            )
        )
        self.register(
            MetricDefinition(
                id="sales",
                name="New Sales",
                description="Monthly closed revenue by salesperson.",
                categories=list(SALES_CATEGORIES),
                source_builder=_sales_sources,
                granularity=Granularity.MONTH,
                tags=["sales", "revenue"],
            )
        )

    def run_series(
        self,
        metric_id: str,
        dataset: DashboardDataset,
        filters: DashboardFilters,
        *,
        now: date,
        tz: Optional[tzinfo] = None,
        locale: str = "en",
    ) -> Dict[str, Any]:
        """Build the chart series for ``metric_id``.

        ``now`` anchors the preset ranges and ``tz`` is only used to bring
        timezone-aware timestamps onto local calendar days.  The result is a
        plain JSON-ready mapping; nothing is cached between calls.
        """

        if metric_id not in self._definitions:
            raise KeyError(f"Unknown dashboard metric '{metric_id}'")
        if locale not in LABEL_LOCALES:
            raise ValueError(f"Invalid label locale '{locale}'; expected one of {LABEL_LOCALES}")
        definition = self._definitions[metric_id]

        window = resolve_window(filters.time_range, now, filters.custom_start, filters.custom_end)
        granularity = select_granularity(window, definition.granularity)
        sources = definition.source_builder(dataset, filters, tz)
        buckets = aggregate_sources(sources, window, granularity=granularity, locale=locale)
        LOGGER.debug("Built %s series with %d buckets", definition.id, len(buckets))

        return {
            "id": definition.id,
            "name": definition.name,
            "asOf": now.isoformat(),
            "window": window.to_dict(),
            "granularity": granularity.value,
            "categories": definition.categories,
            "buckets": [bucket.to_dict() for bucket in buckets],
            "totals": series_totals(buckets),
            "appliedFilters": filters.to_dict(),
        }


_engine_instance: Optional[DashboardEngine] = None


def get_dashboard_engine() -> DashboardEngine:
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = DashboardEngine()
    return _engine_instance
