"""Column resolver - binds canonical metrics to a platform export's headers.

Each platform names the same metric differently across UI versions and
locales ("Amount spent (USD)", "Cost", "Total Spent"). ``COLUMN_MAPPINGS``
lists, per platform and metric, the candidate headers in order of
preference. Resolution is a pure function of the header list:

1. exact, case-insensitive match, in candidate order
2. otherwise substring match in either direction, in candidate order

The confidence of each binding is reported for diagnostics only; it never
changes the numbers an import produces.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from ..schema.models import Platform
from .errors import UnrecognizedFormatError

logger = logging.getLogger(__name__)


class Metric(Enum):
    """Canonical metrics an export column can carry."""
    DATE = "date"
    CAMPAIGN_NAME = "campaign_name"
    AD_NAME = "ad_name"
    AD_FORMAT = "ad_format"
    SPEND = "spend"
    REVENUE = "revenue"
    RESULT_TYPE = "result_type"
    RESULTS = "results"
    RESULT_VALUE = "result_value"
    CONVERSIONS = "conversions"
    IMPRESSIONS = "impressions"
    CLICKS = "clicks"
    CTR = "ctr"
    CPC = "cpc"
    CPM = "cpm"
    COST_PER_RESULT = "cost_per_result"

    @classmethod
    def coerce(cls, key: "Metric | str") -> "Metric":
        """Accept a Metric, its value, or a camelCase key like "resultType"."""
        if isinstance(key, cls):
            return key
        snake = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", str(key)).lower()
        return cls(snake)


class Confidence(Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"


# ---------------------------------------------------------------------------
# Synonym tables
# ---------------------------------------------------------------------------

_GOOGLE_CONVERSIONS = ("Conversions", "Conv.", "All conv.", "conversions")

COLUMN_MAPPINGS: dict[Platform, dict[Metric, tuple[str, ...]]] = {
    Platform.META: {
        Metric.DATE: ("Day", "Date", "Reporting starts", "date"),
        Metric.CAMPAIGN_NAME: ("Campaign name", "Campaign", "campaign_name"),
        Metric.AD_NAME: ("Ad name", "Ad", "ad_name"),
        Metric.AD_FORMAT: ("Ad format", "Format", "Placement"),
        Metric.SPEND: ("Amount spent (USD)", "Amount spent", "Spend", "Cost", "amount_spent"),
        Metric.REVENUE: ("Purchase conversion value", "Conversion value", "Revenue",
                         "Purchases conversion value"),
        Metric.RESULT_TYPE: ("Result Type", "Result type", "result_type", "Objective"),
        Metric.RESULTS: ("Results", "results", "Result"),
        Metric.RESULT_VALUE: ("Result value", "Results ROAS", "Result Value", "result_value"),
        Metric.CONVERSIONS: ("Purchases", "Conversions", "purchases", "conversions"),
        Metric.IMPRESSIONS: ("Impressions", "impressions"),
        Metric.CLICKS: ("Clicks (all)", "Link clicks", "Clicks", "clicks"),
        Metric.CTR: ("CTR (all)", "CTR", "ctr"),
        Metric.CPC: ("CPC (cost per link click)", "CPC (all)", "CPC", "cpc"),
        Metric.CPM: ("CPM (cost per 1,000 impressions)", "CPM", "cpm"),
        Metric.COST_PER_RESULT: ("Cost per result", "Cost per purchase", "cost_per_result"),
    },
    Platform.GOOGLE: {
        Metric.DATE: ("Day", "Date", "date", "Week", "Month"),
        Metric.CAMPAIGN_NAME: ("Campaign", "Campaign name", "campaign"),
        Metric.AD_NAME: ("Ad", "Ad name", "Headline"),
        Metric.AD_FORMAT: ("Ad type", "Format", "Campaign type", "Campaign state"),
        Metric.SPEND: ("Cost", "Spend", "Amount spent", "cost", "Cost (account currency)"),
        Metric.REVENUE: ("Conv. value", "Conversion value", "Revenue", "All conv. value",
                         "Conversion value (account currency)", "View-through conv."),
        Metric.RESULT_TYPE: ("Conversion action", "Goal"),
        Metric.RESULTS: _GOOGLE_CONVERSIONS,
        Metric.RESULT_VALUE: ("Conv. value", "All conv. value", "View-through conv."),
        Metric.CONVERSIONS: _GOOGLE_CONVERSIONS,
        Metric.IMPRESSIONS: ("Impr.", "Impressions", "impressions"),
        Metric.CLICKS: ("Clicks", "clicks"),
        Metric.CTR: ("CTR", "Click-through rate", "ctr"),
        Metric.CPC: ("Avg. CPC", "CPC", "Cost / click", "cpc", "Avg. CPC (account currency)"),
        Metric.CPM: ("Avg. CPM", "CPM", "cpm"),
        Metric.COST_PER_RESULT: ("Cost / conv.", "Cost per conversion", "CPA",
                                 "Cost / conv. (account currency)", "Conv. rate"),
    },
    Platform.TIKTOK: {
        Metric.DATE: ("Date", "Day"),
        Metric.CAMPAIGN_NAME: ("Campaign name", "Campaign"),
        Metric.AD_NAME: ("Ad name", "Ad"),
        Metric.AD_FORMAT: ("Ad format",),
        Metric.SPEND: ("Cost", "Spend", "Total cost"),
        Metric.REVENUE: ("Total purchase value", "Conversion value"),
        Metric.CONVERSIONS: ("Conversions", "Complete payment", "Results"),
        Metric.IMPRESSIONS: ("Impressions",),
        Metric.CLICKS: ("Clicks",),
        Metric.CTR: ("CTR",),
        Metric.CPC: ("CPC",),
        Metric.CPM: ("CPM",),
        Metric.COST_PER_RESULT: ("Cost per result", "CPA"),
    },
    Platform.LINKEDIN: {
        Metric.DATE: ("Start Date", "Date"),
        Metric.CAMPAIGN_NAME: ("Campaign Name", "Campaign"),
        Metric.AD_NAME: ("Ad Name", "Creative"),
        Metric.AD_FORMAT: ("Ad Format",),
        Metric.SPEND: ("Total Spent", "Cost", "Spend"),
        Metric.REVENUE: ("Conversion Value",),
        Metric.CONVERSIONS: ("Conversions", "Leads"),
        Metric.IMPRESSIONS: ("Impressions",),
        Metric.CLICKS: ("Clicks",),
        Metric.CTR: ("CTR",),
        Metric.CPC: ("Avg. CPC", "CPC"),
        Metric.CPM: ("Avg. CPM", "CPM"),
        Metric.COST_PER_RESULT: ("Cost per Lead", "Cost per Conversion"),
    },
    Platform.OTHER: {
        Metric.DATE: ("Date", "Day"),
        Metric.CAMPAIGN_NAME: ("Campaign", "Campaign name"),
        Metric.AD_NAME: ("Ad", "Ad name"),
        Metric.AD_FORMAT: ("Format",),
        Metric.SPEND: ("Spend", "Cost", "Amount"),
        Metric.REVENUE: ("Revenue", "Value"),
        Metric.CONVERSIONS: ("Conversions", "Results", "Leads"),
        Metric.IMPRESSIONS: ("Impressions",),
        Metric.CLICKS: ("Clicks",),
        Metric.CTR: ("CTR",),
        Metric.CPC: ("CPC",),
        Metric.CPM: ("CPM",),
        Metric.COST_PER_RESULT: ("CPA", "CPL"),
    },
}


def candidates(platform: Platform, metric: Metric | str) -> tuple[str, ...]:
    """Candidate headers for a metric on a platform, most preferred first."""
    return COLUMN_MAPPINGS[platform].get(Metric.coerce(metric), ())


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnMatch:
    metric: Metric
    header: str
    confidence: Confidence

    def to_dict(self) -> dict:
        return {"metric": self.metric.value, "header": self.header,
                "confidence": self.confidence.value}


@dataclass
class ColumnResolution:
    """Bindings of every canonical metric for one import."""
    platform: Platform
    matches: dict[Metric, ColumnMatch] = field(default_factory=dict)

    def header(self, metric: Metric | str) -> str | None:
        match = self.matches.get(Metric.coerce(metric))
        return match.header if match else None

    def has(self, metric: Metric | str) -> bool:
        return Metric.coerce(metric) in self.matches

    def diagnostics(self) -> list[dict]:
        """Which header each metric bound to, and how, for display only."""
        rows = []
        for metric in Metric:
            match = self.matches.get(metric)
            rows.append({
                "metric": metric.value,
                "header": match.header if match else None,
                "confidence": match.confidence.value if match else None,
            })
        return rows


def resolve_column(headers: list[str], metric: Metric | str,
                   platform: Platform) -> ColumnMatch | None:
    """Find the export header that carries ``metric`` for ``platform``.

    Exact case-insensitive matches win over substring matches; within each
    pass the candidate list order decides, not the column order in the file.
    Blank headers never match.
    """
    metric = Metric.coerce(metric)
    names = candidates(platform, metric)
    usable = [h for h in headers if h and h.strip()]

    for name in names:
        lower = name.lower()
        for header in usable:
            if header.lower() == lower:
                return ColumnMatch(metric, header, Confidence.EXACT)

    for name in names:
        lower = name.lower()
        for header in usable:
            h = header.lower()
            if lower in h or h in lower:
                return ColumnMatch(metric, header, Confidence.FUZZY)
    return None


def resolve_columns(headers: list[str], platform: Platform) -> ColumnResolution:
    """Resolve every canonical metric against ``headers``."""
    resolution = ColumnResolution(platform=platform)
    for metric in Metric:
        match = resolve_column(headers, metric, platform)
        if match is not None:
            resolution.matches[metric] = match
    logger.debug("Resolved columns for %s: %s", platform.value,
                 {m.value: (c.header, c.confidence.value) for m, c in resolution.matches.items()})
    return resolution


def require_signal(resolution: ColumnResolution) -> None:
    """Reject an import in which neither spend nor impressions resolved."""
    if not resolution.has(Metric.SPEND) and not resolution.has(Metric.IMPRESSIONS):
        raise UnrecognizedFormatError(
            f"Unrecognized format for {resolution.platform.display_name}: "
            "could not find a spend or impressions column."
        )
