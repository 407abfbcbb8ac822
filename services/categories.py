"""Closed category predicates and the dashboard filter state.

Each tracked dimension has exactly one classification function so the lead,
demo and sales tallies can never drift apart on what "Dr.Ease" or "Aoey"
means.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Set

from .windows import CUSTOM_PRESET, TIME_RANGE_CHOICES

PRODUCT_DREASE = "Dr.Ease"
PRODUCT_EASE_POS = "Ease POS"
PRODUCT_CHOICES = ["all", PRODUCT_DREASE, PRODUCT_EASE_POS]

SALESPERSON_AOEY = "Aoey"
SALESPERSON_YO = "Yo"
SALESPERSON_CHOICES = ["all", SALESPERSON_AOEY, SALESPERSON_YO]
SALESPERSON_ALIASES = {
    SALESPERSON_AOEY: ("Aoey", "เอย"),
    SALESPERSON_YO: ("Yo", "โย"),
}

SOURCE_SHEET = "sheet"
SOURCE_ACTIVITY = "activity"
SOURCE_CHOICES = ["all", SOURCE_SHEET, SOURCE_ACTIVITY]

DEMO_COMPLETED_MARKER = "Demo แล้ว"
DEMO_ACTIVITY_TYPE = "Demo"

LEAD_CATEGORIES = ["leads", "drease", "ease"]
DEMO_CATEGORIES = ["demos", "demos_aoey", "demos_yo"]
SALES_CATEGORIES = ["sales", "sales_aoey", "sales_yo"]


def record_text(record: Mapping[str, Any], *keys: str) -> str:
    """First non-empty value among ``keys`` as stripped text."""

    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def product_family(product: Optional[str]) -> Optional[str]:
    text = (product or "").strip()
    if "Dr" in text:
        return PRODUCT_DREASE
    if "POS" in text or text == "Ease":
        return PRODUCT_EASE_POS
    return None


def salesperson_key(name: Optional[str]) -> Optional[str]:
    text = name or ""
    for key, aliases in SALESPERSON_ALIASES.items():
        if any(alias in text for alias in aliases):
            return key
    return None


def is_completed_demo(status: Optional[str]) -> bool:
    return DEMO_COMPLETED_MARKER in (status or "")


def is_activity_demo(activity: Mapping[str, Any]) -> bool:
    return record_text(activity, "activityType", "activity_type") == DEMO_ACTIVITY_TYPE


def is_valid_lead(lead: Mapping[str, Any]) -> bool:
    """Leads with a customer name that are neither spam nor test entries."""

    name = record_text(lead, "customerName", "customer_name")
    if not name:
        return False
    lead_type = record_text(lead, "leadType", "lead_type").lower()
    return "spam" not in lead_type and "test" not in name.lower()


# ---------------------------------------------------------------------------
# Filter state
# ---------------------------------------------------------------------------


def _choice(payload: Mapping[str, Any], keys: tuple, label: str, choices: list, default: str) -> str:
    value = default
    for key in keys:
        candidate = payload.get(key)
        if candidate not in (None, ""):
            value = str(candidate)
            break
    if value not in choices:
        raise ValueError(f"Invalid value '{value}' for {label}; expected one of {choices}")
    return value


@dataclass(frozen=True)
class DashboardFilters:
    time_range: str = "1w"
    custom_start: Optional[str] = None
    custom_end: Optional[str] = None
    product: str = "all"
    salesperson: str = "all"
    source: str = "all"

    @classmethod
    def from_payload(
        cls, payload: Optional[Mapping[str, Any]], *, default_time_range: str = "1w"
    ) -> "DashboardFilters":
        if payload is None:
            payload = {}
        elif not isinstance(payload, Mapping):
            raise ValueError("Filters must be an object of filter names to values.")
        data = payload
        time_range = _choice(
            data, ("timeRange", "time_range"), "Time Range", TIME_RANGE_CHOICES, default_time_range
        )
        custom_start = record_text(data, "customStart", "custom_start") or None
        custom_end = record_text(data, "customEnd", "custom_end") or None
        return cls(
            time_range=time_range,
            custom_start=custom_start if time_range == CUSTOM_PRESET else None,
            custom_end=custom_end if time_range == CUSTOM_PRESET else None,
            product=_choice(data, ("product",), "Product", PRODUCT_CHOICES, "all"),
            salesperson=_choice(data, ("salesperson",), "Salesperson", SALESPERSON_CHOICES, "all"),
            source=_choice(data, ("source",), "Data Source", SOURCE_CHOICES, "all"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Category membership per record kind
# ---------------------------------------------------------------------------


def lead_categories(lead: Mapping[str, Any], filters: DashboardFilters) -> Set[str]:
    family = product_family(record_text(lead, "product"))
    if filters.product != "all" and family != filters.product:
        return set()
    categories = {"leads"}
    if family == PRODUCT_DREASE:
        categories.add("drease")
    elif family == PRODUCT_EASE_POS:
        categories.add("ease")
    return categories


def demo_categories(demo: Mapping[str, Any], filters: DashboardFilters) -> Set[str]:
    if filters.source == SOURCE_ACTIVITY:
        return set()
    if not is_completed_demo(record_text(demo, "demoStatus", "demo_status")):
        return set()
    person = salesperson_key(record_text(demo, "salesperson"))
    if filters.salesperson != "all" and person != filters.salesperson:
        return set()
    categories = {"demos"}
    if person == SALESPERSON_AOEY:
        categories.add("demos_aoey")
    elif person == SALESPERSON_YO:
        categories.add("demos_yo")
    return categories


def activity_demo_categories(activity: Mapping[str, Any], filters: DashboardFilters) -> Set[str]:
    # CRM activities carry no salesperson, so a salesperson filter drops them.
    if filters.source == SOURCE_SHEET or filters.salesperson != "all":
        return set()
    if not is_activity_demo(activity):
        return set()
    return {"demos"}


def sale_categories(sale: Mapping[str, Any], filters: DashboardFilters) -> Set[str]:
    person = salesperson_key(record_text(sale, "salesName", "sales_name"))
    if filters.salesperson != "all" and person != filters.salesperson:
        return set()
    categories = {"sales"}
    if person == SALESPERSON_AOEY:
        categories.add("sales_aoey")
    elif person == SALESPERSON_YO:
        categories.add("sales_yo")
    return categories
