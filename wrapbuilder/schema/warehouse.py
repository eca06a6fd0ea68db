"""Warehouse-shaped ads input.

The automatic-import path reads pre-aggregated rows from a data warehouse
instead of uploaded files. This module defines the shape those rows take once
they reach the slide engine, and the monthly highlight labelling the query
layer normally performs.

Rows load from either snake_case or the query layer's camelCase keys.
"""

import math
import re
from dataclasses import dataclass, field, fields, replace

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Monthly highlight labels
HIGHEST_ROAS_MONTH = "HIGHEST_ROAS_MONTH"
BEST_RESULTS_MONTH = "BEST_RESULTS_MONTH"
BEST_CLICK_VOLUME_MONTH = "BEST_CLICK_VOLUME_MONTH"
MOST_EXPENSIVE_MONTH = "MOST_EXPENSIVE_MONTH"
NORMAL_MONTH = "NORMAL_MONTH"


def _num(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0


def _normalize_keys(d: dict) -> dict:
    return {_CAMEL_BOUNDARY.sub("_", str(k)).lower(): v for k, v in (d or {}).items()}


class _Row:
    """Dict loading shared by every warehouse row type.

    Float fields are coerced with zero for missing or non-numeric values;
    other fields are copied as strings.
    """

    @classmethod
    def from_dict(cls, d: dict):
        data = _normalize_keys(d)
        values = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            raw = data[f.name]
            if isinstance(f.default, float):
                values[f.name] = _num(raw)
            elif f.default is None:
                values[f.name] = None if raw is None else _num(raw)
            else:
                values[f.name] = "" if raw is None else str(raw)
        return cls(**values)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ---------------------------------------------------------------------------
# Row types
# ---------------------------------------------------------------------------

@dataclass
class PlatformSummary(_Row):
    impressions: float = 0.0
    clicks: float = 0.0
    spend: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpm: float = 0.0
    roas: float = 0.0
    currency_code: str = ""


@dataclass
class SearchTerm(_Row):
    search_term: str = ""
    clicks: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    weight: float = 0.0


@dataclass
class HourlyStat(_Row):
    day_of_week: float = 0.0  # 0 = Sunday
    hour: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    spend: float = 0.0


@dataclass
class DeviceStat(_Row):
    device: str = ""
    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0


@dataclass
class GoogleMonth(_Row):
    month_start: str = ""
    spend: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    conversions_value: float = 0.0
    roas: float = 0.0
    highlight_label: str = ""


@dataclass
class GoogleCampaign(_Row):
    campaign_id: str = ""
    campaign_name: str = ""
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    spend: float = 0.0
    roas: float = 0.0
    cost_per_result: float = 0.0


@dataclass
class MetaMonth(_Row):
    month_start: str = ""
    spend: float = 0.0
    clicks: float = 0.0
    results: float = 0.0
    highlight_label: str = ""


@dataclass
class MetaBestDay(_Row):
    day_of_week: str = ""
    results: float = 0.0


@dataclass
class MetaCampaignResults(_Row):
    campaign_id: str = ""
    campaign_name: str = ""
    results: float = 0.0
    spend: float = 0.0
    impressions: float = 0.0
    cpr: float | None = None


@dataclass
class MetaCampaignClicks(_Row):
    campaign_id: str = ""
    campaign_name: str = ""
    clicks: float = 0.0


# ---------------------------------------------------------------------------
# Whole warehouse payload
# ---------------------------------------------------------------------------

_COLLECTIONS = {
    "google_search_terms": SearchTerm,
    "google_hourly_stats": HourlyStat,
    "google_device_stats": DeviceStat,
    "google_monthly": GoogleMonth,
    "google_top_campaigns": GoogleCampaign,
    "meta_monthly": MetaMonth,
    "meta_best_day_of_week": MetaBestDay,
    "meta_top_campaigns_by_results": MetaCampaignResults,
    "meta_top_campaigns_by_clicks": MetaCampaignClicks,
    "meta_device_stats": DeviceStat,
}

# Query-layer names for the collections above
_ALIASES = {
    "google_ads_search_terms": "google_search_terms",
    "google_ads_hourly_stats": "google_hourly_stats",
    "google_ads_device_stats": "google_device_stats",
    "google_ads_monthly_performance": "google_monthly",
    "google_ads_top_campaigns": "google_top_campaigns",
    "meta_ads_monthly_performance": "meta_monthly",
    "meta_ads_best_day_of_week": "meta_best_day_of_week",
    "meta_ads_top_campaigns_by_results": "meta_top_campaigns_by_results",
    "meta_ads_top_campaigns_by_clicks": "meta_top_campaigns_by_clicks",
    "meta_ads_device_stats": "meta_device_stats",
    "google_ads_summary": "google_summary",
    "meta_ads_summary": "meta_summary",
}


@dataclass
class WarehouseAdsData:
    """Pre-aggregated rows returned by the warehouse query layer."""
    currency_code: str = ""
    start_date: str = ""
    end_date: str = ""

    total_spend: float = 0.0
    total_impressions: float = 0.0
    total_clicks: float = 0.0
    total_conversions: float = 0.0
    total_revenue: float = 0.0

    google_summary: PlatformSummary | None = None
    meta_summary: PlatformSummary | None = None

    google_search_terms: list[SearchTerm] = field(default_factory=list)
    google_hourly_stats: list[HourlyStat] = field(default_factory=list)
    google_device_stats: list[DeviceStat] = field(default_factory=list)
    google_monthly: list[GoogleMonth] = field(default_factory=list)
    google_top_campaigns: list[GoogleCampaign] = field(default_factory=list)

    meta_monthly: list[MetaMonth] = field(default_factory=list)
    meta_best_day_of_week: list[MetaBestDay] = field(default_factory=list)
    meta_top_campaigns_by_results: list[MetaCampaignResults] = field(default_factory=list)
    meta_top_campaigns_by_clicks: list[MetaCampaignClicks] = field(default_factory=list)
    meta_device_stats: list[DeviceStat] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict | None) -> "WarehouseAdsData":
        data = {}
        for key, value in _normalize_keys(d or {}).items():
            data[_ALIASES.get(key, key)] = value

        date_range = _normalize_keys(data.get("date_range") or {})
        kwargs = {
            "currency_code": str(data.get("currency_code") or ""),
            "start_date": str(data.get("start_date") or date_range.get("start") or ""),
            "end_date": str(data.get("end_date") or date_range.get("end") or ""),
        }
        for name in ("total_spend", "total_impressions", "total_clicks",
                     "total_conversions", "total_revenue"):
            kwargs[name] = _num(data.get(name))
        for name in ("google_summary", "meta_summary"):
            if data.get(name):
                kwargs[name] = PlatformSummary.from_dict(data[name])
        for name, row_cls in _COLLECTIONS.items():
            kwargs[name] = [row_cls.from_dict(r) for r in data.get(name) or []]
        return cls(**kwargs)

    def to_dict(self) -> dict:
        d = {
            "currency_code": self.currency_code,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "total_spend": self.total_spend,
            "total_impressions": self.total_impressions,
            "total_clicks": self.total_clicks,
            "total_conversions": self.total_conversions,
            "total_revenue": self.total_revenue,
            "google_summary": self.google_summary.to_dict() if self.google_summary else None,
            "meta_summary": self.meta_summary.to_dict() if self.meta_summary else None,
        }
        for name in _COLLECTIONS:
            d[name] = [r.to_dict() for r in getattr(self, name)]
        return d


# ---------------------------------------------------------------------------
# Monthly highlight labelling
# ---------------------------------------------------------------------------

def _first_max(rows, key):
    best = None
    for row in rows:
        if best is None or key(row) > key(best):
            best = row
    return best


def _label_months(rows, ranked_labels):
    if not rows or all(r.highlight_label for r in rows):
        return list(rows)
    winners = [(label, _first_max(rows, key)) for label, key in ranked_labels]
    labelled = []
    for row in rows:
        if row.highlight_label:
            labelled.append(row)
            continue
        label = next((lbl for lbl, winner in winners if winner is row), NORMAL_MONTH)
        labelled.append(replace(row, highlight_label=label))
    return labelled


def label_google_months(rows: list[GoogleMonth]) -> list[GoogleMonth]:
    """Fill missing Google monthly highlight labels.

    Priority: highest ROAS, then most clicks, then highest spend; every
    other month is a normal month. Rows that already carry a label keep it.
    """
    return _label_months(rows, [
        (HIGHEST_ROAS_MONTH, lambda r: r.roas),
        (BEST_CLICK_VOLUME_MONTH, lambda r: r.clicks),
        (MOST_EXPENSIVE_MONTH, lambda r: r.spend),
    ])


def label_meta_months(rows: list[MetaMonth]) -> list[MetaMonth]:
    """Fill missing Meta monthly highlight labels (results, clicks, spend)."""
    return _label_months(rows, [
        (BEST_RESULTS_MONTH, lambda r: r.results),
        (BEST_CLICK_VOLUME_MONTH, lambda r: r.clicks),
        (MOST_EXPENSIVE_MONTH, lambda r: r.spend),
    ])
