"""Cross-channel aggregation.

``aggregate_channels`` reduces the per-platform ``ChannelData`` of a working
set into one ``AggregatedAdsData``: totals, blended ratios, channel and
campaign rankings, and a monthly rollup with best/worst month highlights.

It is a pure function of its input list. The ``AdsWorkspace`` holds the
working set itself (one channel per platform, replaced wholesale on
re-import) and recomputes the aggregate on demand.
"""

import calendar
import logging
import math
from dataclasses import fields, replace
from pathlib import Path

import pandas as pd

from ..schema.loader import load_channels, save_channels
from ..schema.models import (
    AggregatedAdsData,
    CampaignData,
    ChannelData,
    DailyMetrics,
    MonthHighlight,
    MonthlyMetrics,
    Platform,
    ResultsByType,
)
from . import ratios

logger = logging.getLogger(__name__)

BEST_CHANNEL_MIN_SPEND_SHARE = 0.01
EFFICIENT_CAMPAIGN_MIN_SPEND_SHARE = 0.005
TOP_CAMPAIGN_LIMIT = 10

MONTH_SUM_COLUMNS = ["spend", "revenue", "results", "impressions", "clicks"]

# Monthly highlight labels
BEST_ROAS = "best_roas"
WORST_ROAS = "worst_roas"
BEST_CPR = "best_cpr"
WORST_CPR = "worst_cpr"


# ---------------------------------------------------------------------------
# Input sanitizing
# ---------------------------------------------------------------------------

def _clean(value) -> float:
    """Negative, NaN or infinite inputs count as zero."""
    try:
        f = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(f) or f < 0:
        return 0.0
    return f


def _clean_type(r: ResultsByType) -> ResultsByType:
    return replace(r, count=_clean(r.count), value=_clean(r.value), spend=_clean(r.spend))


def _clean_daily(d: DailyMetrics) -> DailyMetrics:
    return replace(d, **{f.name: _clean(getattr(d, f.name))
                         for f in fields(d) if f.name != "date"})


def _clean_campaign(c: CampaignData) -> CampaignData:
    spend, revenue, results = _clean(c.spend), _clean(c.revenue), _clean(c.results)
    impressions, clicks = _clean(c.impressions), _clean(c.clicks)
    return replace(
        c, spend=spend, revenue=revenue, results=results,
        impressions=impressions, clicks=clicks,
        roas=ratios.roas(revenue, spend), cpr=ratios.cpr(spend, results),
        cpm=ratios.cpm(spend, impressions), cpc=ratios.cpc(spend, clicks),
        ctr=ratios.ctr(clicks, impressions),
        results_by_type=[_clean_type(r) for r in c.results_by_type],
    )


def clean_channel(channel: ChannelData) -> ChannelData:
    """Copy of ``channel`` with negative metrics clamped and ratios recomputed."""
    spend, revenue, results = _clean(channel.spend), _clean(channel.revenue), _clean(channel.results)
    impressions, clicks = _clean(channel.impressions), _clean(channel.clicks)
    return replace(
        channel, spend=spend, revenue=revenue, results=results,
        impressions=impressions, clicks=clicks,
        roas=ratios.roas(revenue, spend), cpr=ratios.cpr(spend, results),
        cpm=ratios.cpm(spend, impressions), cpc=ratios.cpc(spend, clicks),
        ctr=ratios.ctr(clicks, impressions),
        campaigns=[_clean_campaign(c) for c in channel.campaigns],
        daily=[_clean_daily(d) for d in channel.daily],
        results_by_type=[_clean_type(r) for r in channel.results_by_type],
    )


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------

def _first_max(items, key):
    """Item with the strictly highest key; the earliest wins ties."""
    best = None
    for item in items:
        if best is None or key(item) > key(best):
            best = item
    return best


def _first_min(items, key):
    best = None
    for item in items:
        if best is None or key(item) < key(best):
            best = item
    return best


def _sum_results_by_type(channels: list[ChannelData]) -> list[ResultsByType]:
    merged: dict = {}
    for channel in channels:
        for r in channel.results_by_type:
            existing = merged.get(r.type)
            if existing is None:
                merged[r.type] = replace(r)
            else:
                merged[r.type] = replace(existing, count=existing.count + r.count,
                                         value=existing.value + r.value,
                                         spend=existing.spend + r.spend)
    return sorted(merged.values(), key=lambda r: r.count, reverse=True)


def rank_channels(channels: list[ChannelData], total_spend: float):
    """Return (top by spend, second by spend, best ROAS) channels.

    Spend ties keep input order. The best ROAS channel must carry at least
    ``BEST_CHANNEL_MIN_SPEND_SHARE`` of total spend. Channels without spend never
    qualify.
    """
    by_spend = sorted(channels, key=lambda c: c.spend, reverse=True)
    top = by_spend[0] if by_spend else None
    second = by_spend[1] if len(by_spend) > 1 else None

    floor = total_spend * BEST_CHANNEL_MIN_SPEND_SHARE
    qualified = [c for c in channels if c.spend > 0 and c.spend >= floor]
    best_roas = _first_max(qualified, key=lambda c: c.roas)
    return top, second, best_roas


def rank_campaigns(channels: list[ChannelData], total_spend: float):
    """Return (top by revenue, top by ROAS) across every channel's campaigns."""
    campaigns = [c for channel in channels for c in channel.campaigns]
    by_revenue = sorted(campaigns, key=lambda c: c.revenue, reverse=True)[:TOP_CAMPAIGN_LIMIT]

    floor = total_spend * EFFICIENT_CAMPAIGN_MIN_SPEND_SHARE
    qualified = [c for c in campaigns if c.spend >= floor]
    by_roas = sorted(qualified, key=lambda c: c.roas, reverse=True)[:TOP_CAMPAIGN_LIMIT]
    return by_revenue, by_roas


# ---------------------------------------------------------------------------
# Monthly rollup
# ---------------------------------------------------------------------------

def month_name(month: str) -> str:
    """Full month name for a YYYY-MM key, or the key itself when unparsable."""
    try:
        return calendar.month_name[int(month[5:7])]
    except (ValueError, IndexError):
        return month


def monthly_rollup(channels: list[ChannelData]) -> list[MonthlyMetrics]:
    """Merge every channel's daily metrics by date, then sum by month."""
    days = [d.to_dict() for channel in channels for d in channel.daily]
    if not days:
        return []
    frame = pd.DataFrame(days, columns=["date"] + MONTH_SUM_COLUMNS)
    by_date = frame.groupby("date", sort=True)[MONTH_SUM_COLUMNS].sum().reset_index()
    by_date["month"] = by_date["date"].str.slice(0, 7)
    by_month = by_date.groupby("month", sort=True)[MONTH_SUM_COLUMNS].sum()

    months = []
    for month, sums in by_month.iterrows():
        spend, revenue, results = float(sums["spend"]), float(sums["revenue"]), float(sums["results"])
        months.append(MonthlyMetrics(
            month=str(month),
            month_name=month_name(str(month)),
            spend=spend,
            revenue=revenue,
            results=results,
            impressions=float(sums["impressions"]),
            clicks=float(sums["clicks"]),
            roas=ratios.roas(revenue, spend),
            cpr=ratios.cpr(spend, results),
        ))
    return months


def _highlight(m: MonthlyMetrics | None) -> MonthHighlight | None:
    if m is None:
        return None
    return MonthHighlight(month=m.month, month_name=m.month_name, roas=m.roas, cpr=m.cpr)


def highlight_months(months: list[MonthlyMetrics]):
    """Pick best/worst months by ROAS and CPR and label them.

    Only months with spend and results are ranked. Returns the labelled
    month list and the four picks in the order best ROAS, best CPR,
    worst ROAS, worst CPR.
    """
    ranked = [m for m in months if m.spend > 0 and m.results > 0]
    best_roas = _first_max(ranked, key=lambda m: m.roas)
    worst_roas = _first_min(ranked, key=lambda m: m.roas)
    best_cpr = _first_min(ranked, key=lambda m: m.cpr)
    worst_cpr = _first_max(ranked, key=lambda m: m.cpr)

    labelled = []
    for m in months:
        labels = [label for label, pick in ((BEST_ROAS, best_roas), (WORST_ROAS, worst_roas),
                                            (BEST_CPR, best_cpr), (WORST_CPR, worst_cpr))
                  if pick is m]
        labelled.append(replace(m, highlights=labels))
    return labelled, best_roas, best_cpr, worst_roas, worst_cpr


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate_channels(channels: list[ChannelData]) -> AggregatedAdsData:
    """Reduce a set of channels into the cross-channel aggregate.

    Never raises for well-formed ChannelData; negative or non-finite inputs
    are clamped to zero first. Calling it twice with the same channels
    gives equal results.
    """
    if not channels:
        return AggregatedAdsData.empty()

    channels = [clean_channel(c) for c in channels]
    total_spend = sum(c.spend for c in channels)
    total_revenue = sum(c.revenue for c in channels)
    total_results = sum(c.results for c in channels)
    total_impressions = sum(c.impressions for c in channels)
    total_clicks = sum(c.clicks for c in channels)

    top, second, best_roas = rank_channels(channels, total_spend)
    by_revenue, by_roas = rank_campaigns(channels, total_spend)
    months, best_month_roas, best_month_cpr, worst_month_roas, worst_month_cpr = \
        highlight_months(monthly_rollup(channels))

    logger.debug("Aggregated %d channels: spend=%.2f revenue=%.2f results=%.0f months=%d",
                 len(channels), total_spend, total_revenue, total_results, len(months))

    return AggregatedAdsData(
        total_spend=total_spend,
        total_revenue=total_revenue,
        total_results=total_results,
        total_impressions=total_impressions,
        total_clicks=total_clicks,
        results_by_type=_sum_results_by_type(channels),
        blended_roas=ratios.roas(total_revenue, total_spend),
        average_cpr=ratios.cpr(total_spend, total_results),
        average_cpm=ratios.cpm(total_spend, total_impressions),
        average_cpc=ratios.cpc(total_spend, total_clicks),
        average_ctr=ratios.ctr(total_clicks, total_impressions),
        channels=channels,
        top_channel_by_spend=top,
        second_channel=second,
        best_roas_channel=best_roas,
        top_campaigns_by_revenue=by_revenue,
        top_campaigns_by_roas=by_roas,
        most_efficient_campaign=by_roas[0] if by_roas else None,
        monthly=months,
        best_month_by_roas=_highlight(best_month_roas),
        best_month_by_cpr=_highlight(best_month_cpr),
        worst_month_by_roas=_highlight(worst_month_roas),
        worst_month_by_cpr=_highlight(worst_month_cpr),
    )


# ---------------------------------------------------------------------------
# Working set
# ---------------------------------------------------------------------------

class AdsWorkspace:
    """The channels a user has imported, at most one per platform."""

    def __init__(self, channels: list[ChannelData] | None = None):
        self._channels: list[ChannelData] = []
        for channel in channels or []:
            self.put_channel(channel)

    @property
    def channels(self) -> list[ChannelData]:
        return list(self._channels)

    @property
    def platforms(self) -> list[Platform]:
        return [c.platform for c in self._channels]

    def get_channel(self, platform: Platform) -> ChannelData | None:
        for channel in self._channels:
            if channel.platform == platform:
                return channel
        return None

    def put_channel(self, channel: ChannelData) -> None:
        """Add a channel, replacing any existing one for the same platform in place."""
        for i, existing in enumerate(self._channels):
            if existing.platform == channel.platform:
                self._channels[i] = channel
                logger.debug("Replaced %s channel", channel.platform.value)
                return
        self._channels.append(channel)

    def remove_channel(self, platform: Platform) -> bool:
        """Drop a platform's channel; returns False when it was not present."""
        before = len(self._channels)
        self._channels = [c for c in self._channels if c.platform != platform]
        return len(self._channels) != before

    def aggregate(self) -> AggregatedAdsData:
        return aggregate_channels(self._channels)

    # YAML persistence

    def save(self, path: str | Path) -> None:
        save_channels(self._channels, path)

    @classmethod
    def load(cls, path: str | Path) -> "AdsWorkspace":
        path = Path(path)
        if not path.exists():
            return cls()
        return cls(load_channels(path))
