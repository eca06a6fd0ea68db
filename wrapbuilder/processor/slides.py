"""Slide derivation engine.

Turns the normalized ads aggregate (local imports, warehouse rows or both)
plus the user's override form into the ordered slide list of a Wrapped
deck. E-commerce and social decks are derived from their forms alone.

Each deck is a table of ``SlideRule``s in narrative order. A rule's
predicate decides whether its slide appears; its builder computes the
payload. Rules are evaluated independently and in table order, so a deck
can only ever skip positions, never reorder them.

Headline figures prefer computed values: a figure from the aggregate (or
warehouse totals) wins whenever it is non-zero, and a manually entered
figure is used only when nothing was computed.
"""

import calendar
import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable

from ..schema.design_system import currency_symbol
from ..schema.forms import (
    AdsFormData,
    EcommFormData,
    SocialFormData,
    parse_form_number,
    parse_monthly_followers,
)
from ..schema.models import (
    AggregatedAdsData,
    CampaignData,
    ChannelData,
    Platform,
    Slide,
    SlideType,
)
from ..schema.warehouse import (
    PlatformSummary,
    WarehouseAdsData,
    label_google_months,
    label_meta_months,
)
from . import ratios

logger = logging.getLogger(__name__)

CAMPAIGN_SLIDE_LIMIT = 4
IMPRESSION_MILESTONES = (
    (100_000, "👁️", "You crossed 100K impressions in {month}"),
    (1_000_000, "🎉", "You hit 1M impressions in {month}"),
)
CHANNEL_COLORS = ("#3b82f6", "#8b5cf6", "#ec4899", "#f59e0b", "#10b981")


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SlideRule:
    """One position in a deck: when it appears and how it is built."""
    slide_type: SlideType
    predicate: Callable[[Any], bool]
    builder: Callable[[Any], Slide]
    platform: Platform | None = None

    @property
    def key(self) -> str:
        """Position key; platform sections are distinguished by platform."""
        if self.platform is not None and self.slide_type == SlideType.PLATFORM_SECTION:
            return f"{self.slide_type.value}:{self.platform.value}"
        return self.slide_type.value


def evaluate_rules(rules: list[SlideRule], ctx) -> list[Slide]:
    """Build every slide whose predicate holds, in table order."""
    slides = []
    for rule in rules:
        if rule.predicate(ctx):
            slides.append(rule.builder(ctx))
        else:
            logger.debug("Skipping %s slide", rule.key)
    return slides


def slide_key(slide: Slide) -> str:
    """Position key of a built slide, matching ``SlideRule.key``."""
    if slide.type == SlideType.PLATFORM_SECTION:
        return f"{slide.type.value}:{slide.payload.get('platform', '')}"
    return slide.type.value


def _any_rule(rules: list[SlideRule]) -> Callable[[Any], bool]:
    return lambda ctx: any(rule.predicate(ctx) for rule in rules)


def _possessive_title(name: str, *parts: str) -> str:
    owner = f"{name}'s" if name else "Your"
    return " ".join(p for p in (owner, *parts) if p)


# ---------------------------------------------------------------------------
# Ads derivation context
# ---------------------------------------------------------------------------

def _pick(*values: float) -> float:
    """First positive value, else 0.0."""
    for value in values:
        if value and value > 0:
            return float(value)
    return 0.0


@dataclass
class HeadlineFigures:
    spend: float = 0.0
    revenue: float = 0.0
    results: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    roas: float = 0.0
    cpr: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    cpm: float = 0.0


def resolve_headline(form: AdsFormData, aggregate: AggregatedAdsData,
                     warehouse: WarehouseAdsData) -> HeadlineFigures:
    """Resolve the deck's headline numbers.

    Base figures come from the local aggregate, then warehouse totals, then
    the form. Ratios are recomputed from the chosen figures; a manual ratio
    is only used when the computed one is zero.
    """
    spend = _pick(aggregate.total_spend, warehouse.total_spend, form.number("total_ad_spend"))
    revenue = _pick(aggregate.total_revenue, warehouse.total_revenue,
                    form.number("revenue_attributed"))
    results = _pick(aggregate.total_results, warehouse.total_conversions,
                    form.number("total_conversions"))
    impressions = _pick(aggregate.total_impressions, warehouse.total_impressions,
                        form.number("total_impressions"))
    clicks = _pick(aggregate.total_clicks, warehouse.total_clicks, form.number("total_clicks"))
    return HeadlineFigures(
        spend=spend,
        revenue=revenue,
        results=results,
        impressions=impressions,
        clicks=clicks,
        roas=ratios.roas(revenue, spend) or max(form.number("blended_roas"), 0.0),
        cpr=ratios.cpr(spend, results) or max(form.number("average_cpa"), 0.0),
        ctr=ratios.ctr(clicks, impressions) or max(form.number("average_ctr"), 0.0),
        cpc=ratios.cpc(spend, clicks) or max(form.number("average_cpc"), 0.0),
        cpm=ratios.cpm(spend, impressions) or max(form.number("average_cpm"), 0.0),
    )


@dataclass
class DerivationContext:
    """Everything an ads slide rule may look at."""
    form: AdsFormData
    aggregate: AggregatedAdsData = field(default_factory=AggregatedAdsData.empty)
    warehouse: WarehouseAdsData = field(default_factory=WarehouseAdsData)

    @cached_property
    def figures(self) -> HeadlineFigures:
        return resolve_headline(self.form, self.aggregate, self.warehouse)

    @property
    def currency(self) -> str:
        return self.form.currency_code or self.warehouse.currency_code

    @property
    def period_label(self) -> str:
        return self.form.period_label

    def money(self, **payload) -> dict:
        payload["currency"] = self.currency
        return payload

    @cached_property
    def milestones(self) -> list[dict]:
        return find_milestones(self.aggregate, self.currency)

    @cached_property
    def optimization(self) -> dict:
        return find_optimization_wins(self.aggregate.channels, self.form)


# ---------------------------------------------------------------------------
# Ads: headline slides
# ---------------------------------------------------------------------------

_INTRO_SUBTITLES = {
    "month": "Your month in paid media performance.",
    "custom": "Your paid media performance for the selected period.",
}


def _ads_intro(ctx: DerivationContext) -> Slide:
    return Slide(
        id="intro",
        type=SlideType.INTRO,
        title=_possessive_title(ctx.form.customer_name, ctx.period_label, "Wrapped"),
        subtitle=_INTRO_SUBTITLES.get(ctx.form.period_type, "Your year in paid media performance."),
    )


def _has_spend_and_revenue(ctx: DerivationContext) -> bool:
    return ctx.figures.spend > 0 and ctx.figures.revenue > 0


def _spend_revenue(ctx: DerivationContext) -> Slide:
    f = ctx.figures
    return Slide(
        id="spend-revenue",
        type=SlideType.AD_SPEND_REVENUE,
        title="Your Ad Investment",
        subtitle="What you spent vs what you earned.",
        payload=ctx.money(spend=f.spend, revenue=f.revenue, roas=f.roas),
    )


def _has_spend_and_results_only(ctx: DerivationContext) -> bool:
    f = ctx.figures
    return f.spend > 0 and f.revenue == 0 and f.results > 0


def _spend_results(ctx: DerivationContext) -> Slide:
    f = ctx.figures
    types = ctx.aggregate.results_by_type
    return Slide(
        id="spend-results",
        type=SlideType.AD_SPEND_RESULTS,
        title="Your Ad Investment",
        subtitle="What you spent and what you generated.",
        payload=ctx.money(
            spend=f.spend,
            results=f.results,
            cpr=f.cpr,
            result_type=types[0].display_name if types else None,
        ),
    )


# ---------------------------------------------------------------------------
# Ads: channels and campaigns
# ---------------------------------------------------------------------------

def _top_channel_name(ctx: DerivationContext) -> str:
    top = ctx.aggregate.top_channel_by_spend
    if top is not None:
        return top.display_name
    return ctx.form.top_channel_by_spend.strip()


def _channel_entry(channel: ChannelData, index: int) -> dict:
    return {
        "name": channel.display_name,
        "platform": channel.platform.value,
        "spend": channel.spend,
        "revenue": channel.revenue,
        "roas": channel.roas,
        "results": channel.results,
        "cpr": channel.cpr,
        "color": CHANNEL_COLORS[index % len(CHANNEL_COLORS)],
    }


def _form_channel_entry(name: str, spend: float, roas: float, index: int) -> dict:
    return {
        "name": name,
        "platform": None,
        "spend": spend,
        "revenue": spend * roas,
        "roas": roas,
        "results": 0.0,
        "cpr": 0.0,
        "color": CHANNEL_COLORS[index % len(CHANNEL_COLORS)],
    }


def _channel_comparison(ctx: DerivationContext) -> Slide:
    agg = ctx.aggregate
    if agg.top_channel_by_spend is not None:
        by_spend = sorted(agg.channels, key=lambda c: c.spend, reverse=True)
        channels = [_channel_entry(c, i) for i, c in enumerate(by_spend)]
        best = agg.best_roas_channel.display_name if agg.best_roas_channel else None
    else:
        form = ctx.form
        channels = [_form_channel_entry(form.top_channel_by_spend, form.number("spend_on_top_channel"),
                                        form.number("top_channel_roas"), 0)]
        if form.second_channel:
            channels.append(_form_channel_entry(form.second_channel,
                                                form.number("spend_on_second_channel"),
                                                form.number("second_channel_roas"), 1))
        best = form.best_roas_channel or None
        if best and best not in (form.top_channel_by_spend, form.second_channel):
            channels.append(_form_channel_entry(best, 0.0,
                                                form.number("best_roas_channel_performance"),
                                                len(channels)))
    return Slide(
        id="channel-comparison",
        type=SlideType.CHANNEL_COMPARISON,
        title="Channel Performance",
        subtitle="Where your ad dollars worked hardest.",
        payload=ctx.money(channels=channels, metric="spend", best_roas_channel=best),
    )


def _campaign_entry(name: str, spend: float, results: float, impressions: float,
                    cpr: float, **extra) -> dict:
    entry = {
        "name": name,
        "spend": spend,
        "results": results,
        "impressions": impressions,
        "cpr": cpr,
        "primary_result_type": None,
        "is_top_performer": False,
        "is_most_efficient": False,
    }
    entry.update(extra)
    return entry


def _aggregate_campaigns(ctx: DerivationContext) -> list[dict]:
    agg = ctx.aggregate
    ranked = sorted(agg.top_campaigns_by_revenue, key=lambda c: c.results,
                    reverse=True)[:CAMPAIGN_SLIDE_LIMIT]
    efficient = agg.most_efficient_campaign
    return [
        _campaign_entry(
            c.name, c.spend, c.results, c.impressions, c.cpr,
            platform=c.platform.value,
            primary_result_type=c.primary_result_type_name,
            is_top_performer=(i == 0),
            is_most_efficient=efficient is not None and c.key == efficient.key,
        )
        for i, c in enumerate(ranked)
    ]


def _warehouse_campaigns(ctx: DerivationContext) -> list[dict]:
    wh = ctx.warehouse
    rows = [
        (c.campaign_name, "google", c.spend, c.conversions, c.impressions, c.cost_per_result)
        for c in wh.google_top_campaigns
    ] + [
        (c.campaign_name, "meta", c.spend, c.results, c.impressions, c.cpr or 0.0)
        for c in wh.meta_top_campaigns_by_results
    ]
    ranked = sorted(rows, key=lambda r: r[3], reverse=True)[:CAMPAIGN_SLIDE_LIMIT]
    return [
        _campaign_entry(
            name, spend, results, impressions,
            (cpr or ratios.cpr(spend, results)) if results > 0 else 0.0,
            platform=platform,
            is_top_performer=(i == 0),
        )
        for i, (name, platform, spend, results, impressions, cpr) in enumerate(ranked)
    ]


def _form_campaigns(ctx: DerivationContext) -> list[dict]:
    form = ctx.form
    campaigns = [_campaign_entry(
        form.top_campaign1_name, form.number("top_campaign1_spend"), 0.0, 0.0, 0.0,
        revenue=form.number("top_campaign1_revenue"),
        roas=form.number("top_campaign1_roas"),
        is_top_performer=True,
    )]
    if form.top_campaign2_name:
        campaigns.append(_campaign_entry(
            form.top_campaign2_name, 0.0, 0.0, 0.0, 0.0,
            revenue=form.number("top_campaign2_revenue"),
        ))
    if form.most_efficient_campaign:
        campaigns.append(_campaign_entry(
            form.most_efficient_campaign, 0.0, 0.0, 0.0, 0.0,
            roas=form.number("most_efficient_campaign_roas"),
            is_most_efficient=True,
        ))
    return campaigns


def _has_campaigns(ctx: DerivationContext) -> bool:
    wh = ctx.warehouse
    return bool(ctx.aggregate.top_campaigns_by_revenue
                or wh.google_top_campaigns or wh.meta_top_campaigns_by_results
                or ctx.form.top_campaign1_name)


def _campaign_performance(ctx: DerivationContext) -> Slide:
    wh = ctx.warehouse
    if ctx.aggregate.top_campaigns_by_revenue:
        campaigns = _aggregate_campaigns(ctx)
    elif wh.google_top_campaigns or wh.meta_top_campaigns_by_results:
        campaigns = _warehouse_campaigns(ctx)
    else:
        campaigns = None

    if campaigns is None:
        # Manual campaigns carry no delivery figures; fall back to the headline.
        campaigns = _form_campaigns(ctx)
        f = ctx.figures
        totals = {"total_spend": f.spend, "total_results": f.results,
                  "total_impressions": f.impressions}
    else:
        totals = {
            "total_spend": sum(c["spend"] for c in campaigns),
            "total_results": sum(c["results"] for c in campaigns),
            "total_impressions": sum(c["impressions"] for c in campaigns),
        }
    return Slide(
        id="campaign-performance",
        type=SlideType.CAMPAIGN_PERFORMANCE,
        title="Top Campaigns Overall",
        subtitle="The campaigns that drove results.",
        payload=ctx.money(campaigns=campaigns, **totals),
    )


# ---------------------------------------------------------------------------
# Ads: metrics, creatives, showdown
# ---------------------------------------------------------------------------

def _has_reach(ctx: DerivationContext) -> bool:
    return ctx.figures.impressions > 0 or ctx.figures.clicks > 0


def _metrics_grid(ctx: DerivationContext) -> Slide:
    f = ctx.figures
    return Slide(
        id="ad-metrics",
        type=SlideType.AD_METRICS_GRID,
        title="Overall Performance Metrics",
        subtitle="The numbers behind your success.",
        payload=ctx.money(impressions=f.impressions, clicks=f.clicks, results=f.results,
                          ctr=f.ctr, cpc=f.cpc, cpr=f.cpr, cpm=f.cpm),
    )


def _has_creatives(ctx: DerivationContext) -> bool:
    return bool(ctx.form.top_creative1_description or ctx.form.best_performing_format)


def _creative_wins(ctx: DerivationContext) -> Slide:
    form = ctx.form
    creatives = [
        {"description": desc, "performance": perf}
        for desc, perf in ((form.top_creative1_description, form.top_creative1_performance),
                           (form.top_creative2_description, form.top_creative2_performance))
        if desc
    ]
    return Slide(
        id="creative-wins",
        type=SlideType.CREATIVE_WINS,
        title="Creative Winners",
        subtitle="The ads that captured attention.",
        payload={
            "creatives": creatives,
            "best_format": form.best_performing_format,
            "best_hook": form.best_hook_angle,
            "total_tested": form.number("total_creatives_tested"),
            "win_rate": form.number("creative_win_rate"),
        },
    )


def _showdown_side(name: str, platform: Platform, spend, impressions, clicks) -> dict:
    return {
        "name": name,
        "platform": platform.value,
        "spend": spend,
        "impressions": impressions,
        "clicks": clicks,
        "ctr": ratios.ctr(clicks, impressions),
    }


def _showdown_sides(ctx: DerivationContext) -> tuple[dict, dict] | None:
    meta = ctx.aggregate.get_channel(Platform.META)
    google = ctx.aggregate.get_channel(Platform.GOOGLE)
    if meta is not None and google is not None:
        return (
            _showdown_side(meta.display_name, Platform.META, meta.spend, meta.impressions, meta.clicks),
            _showdown_side(google.display_name, Platform.GOOGLE, google.spend,
                           google.impressions, google.clicks),
        )
    m, g = ctx.warehouse.meta_summary, ctx.warehouse.google_summary
    if m is not None and g is not None:
        return (
            _showdown_side(Platform.META.display_name, Platform.META, m.spend, m.impressions, m.clicks),
            _showdown_side(Platform.GOOGLE.display_name, Platform.GOOGLE, g.spend,
                           g.impressions, g.clicks),
        )
    return None


def _channel_showdown(ctx: DerivationContext) -> Slide:
    channel_a, channel_b = _showdown_sides(ctx)
    return Slide(
        id="channel-showdown",
        type=SlideType.CHANNEL_SHOWDOWN,
        title="Channel Showdown",
        subtitle="Meta vs Google, head to head.",
        payload=ctx.money(channel_a=channel_a, channel_b=channel_b),
    )


# ---------------------------------------------------------------------------
# Ads: milestones and optimization wins
# ---------------------------------------------------------------------------

def _count_text(value: float) -> str:
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.1f}"


def find_milestones(aggregate: AggregatedAdsData, currency_code: str) -> list[dict]:
    """Scan the monthly rollup for milestone moments, in reporting order.

    - the month with the most results
    - the months cumulative impressions first reach 100K and 1M
    - the lowest cost-per-result month
    - the best ROAS month
    Each appears only when its value is positive.
    """
    months = aggregate.monthly
    if not months:
        return []
    milestones = []

    best = None
    for m in months:
        if best is None or m.results > best.results:
            best = m
    if best.results > 0:
        milestones.append({
            "icon": "📈",
            "text": f"Your strongest performance was in {best.month_name} "
                    f"with {_count_text(best.results)} results",
        })

    cumulative = 0.0
    pending = list(IMPRESSION_MILESTONES)
    for m in months:
        cumulative += m.impressions
        while pending and cumulative >= pending[0][0]:
            _, icon, template = pending.pop(0)
            milestones.append({"icon": icon, "text": template.format(month=m.month_name)})

    best_cpr = aggregate.best_month_by_cpr
    if best_cpr is not None and best_cpr.cpr > 0:
        milestones.append({
            "icon": "💰",
            "text": f"Your lowest CPR was in {best_cpr.month_name} at "
                    f"{currency_symbol(currency_code)}{best_cpr.cpr:.2f}",
        })

    best_roas = aggregate.best_month_by_roas
    if best_roas is not None and best_roas.roas > 0:
        milestones.append({
            "icon": "🚀",
            "text": f"Your best ROAS was {best_roas.roas:.1f}x in {best_roas.month_name}",
        })
    return milestones


def _format_day(date: str) -> str:
    """"2024-03-05" -> "March 5"."""
    try:
        return f"{calendar.month_name[int(date[5:7])]} {int(date[8:10])}"
    except (ValueError, IndexError):
        return date


def find_optimization_wins(channels: list[ChannelData], form: AdsFormData) -> dict:
    """Best campaign-level efficiency figures, with manual fallbacks."""
    campaigns: list[CampaignData] = [c for ch in channels for c in ch.campaigns]
    cprs = [c.cpr for c in campaigns if c.results > 0 and c.cpr > 0]
    ctrs = [c.ctr for c in campaigns if c.ctr > 0]
    cpcs = [c.cpc for c in campaigns if c.clicks > 0 and c.cpc > 0]
    cpms = [c.cpm for c in campaigns if c.impressions > 0 and c.cpm > 0]

    top_day, top_count = "", 0.0
    for channel in channels:
        for day in channel.daily:
            if day.results > top_count:
                top_day, top_count = day.date, day.results

    return {
        "lowest_cpr": min(cprs) if cprs else max(form.number("average_cpa"), 0.0),
        "highest_ctr": max(ctrs) if ctrs else max(form.number("average_ctr"), 0.0),
        "lowest_cpc": min(cpcs) if cpcs else max(form.number("average_cpc"), 0.0),
        "best_cpm": min(cpms) if cpms else max(form.number("average_cpm"), 0.0),
        "top_results_day": _format_day(top_day) if top_day else None,
        "top_results_day_count": top_count if top_count > 0 else None,
    }


def _has_milestones(ctx: DerivationContext) -> bool:
    return bool(ctx.milestones)


def _milestones(ctx: DerivationContext) -> Slide:
    return Slide(
        id="milestones",
        type=SlideType.MILESTONES,
        title="Your Milestones",
        subtitle="The meaningful moments from your year.",
        payload=ctx.money(milestones=ctx.milestones),
    )


def _has_optimization_wins(ctx: DerivationContext) -> bool:
    if not ctx.aggregate.channels:
        return False
    wins = ctx.optimization
    return any(wins[k] > 0 for k in ("lowest_cpr", "highest_ctr", "lowest_cpc", "best_cpm"))


def _optimization_wins(ctx: DerivationContext) -> Slide:
    return Slide(
        id="optimization-wins",
        type=SlideType.OPTIMIZATION_WINS,
        title="Your Optimization Wins",
        subtitle="The best metrics you achieved this year.",
        payload=ctx.money(**ctx.optimization),
    )


# ---------------------------------------------------------------------------
# Ads: platform deep dives
# ---------------------------------------------------------------------------

def _summary_has_activity(summary: PlatformSummary | None) -> bool:
    return summary is not None and (summary.impressions > 0 or summary.clicks > 0
                                    or summary.conversions > 0)


def _summary_payload(ctx: DerivationContext, s: PlatformSummary, results_key: str,
                     cost_key: str) -> dict:
    return ctx.money(**{
        "impressions": s.impressions,
        "clicks": s.clicks,
        results_key: s.conversions,
        "spend": s.spend,
        "ctr": s.ctr if s.ctr > 0 else ratios.ctr(s.clicks, s.impressions),
        "cpc": s.cpc if s.cpc > 0 else ratios.cpc(s.spend, s.clicks),
        cost_key: ratios.cpr(s.spend, s.conversions),
        "cpm": ratios.cpm(s.spend, s.impressions),
    })


def _section(platform: Platform, subtitle: str) -> Callable[[DerivationContext], Slide]:
    def build(ctx: DerivationContext) -> Slide:
        return Slide(
            id=f"section-{platform.value}-ads",
            type=SlideType.PLATFORM_SECTION,
            title=platform.display_name,
            subtitle=subtitle,
            payload={"platform": platform.value},
        )
    return build


def _rows(items) -> list[dict]:
    return [row.to_dict() for row in items]


def _google_metrics(ctx: DerivationContext) -> Slide:
    return Slide(
        id="google-ads-metrics",
        type=SlideType.GOOGLE_ADS_METRICS,
        title="Google Ads Performance Metrics",
        subtitle="How Google Ads contributed to your results.",
        payload=_summary_payload(ctx, ctx.warehouse.google_summary, "conversions", "cpa"),
    )


def _search_terms(ctx: DerivationContext) -> Slide:
    return Slide(
        id="search-term-cloud",
        type=SlideType.SEARCH_TERM_CLOUD,
        title="Your Top Search Terms",
        subtitle="The queries that drove your conversions.",
        payload=ctx.money(terms=_rows(ctx.warehouse.google_search_terms)),
    )


def _heatmap(ctx: DerivationContext) -> Slide:
    return Slide(
        id="day-hour-heatmap",
        type=SlideType.DAY_HOUR_HEATMAP,
        title="When Your Ads Performed Best",
        subtitle="Performance by day and hour.",
        payload=ctx.money(data=_rows(ctx.warehouse.google_hourly_stats), metric="conversions"),
    )


def _google_devices(ctx: DerivationContext) -> Slide:
    return Slide(
        id="device-breakdown",
        type=SlideType.DEVICE_BREAKDOWN,
        title="Device Performance",
        subtitle="Where your audience engaged.",
        payload=ctx.money(devices=_rows(ctx.warehouse.google_device_stats), metric="spend"),
    )


def _google_campaigns(ctx: DerivationContext) -> Slide:
    return Slide(
        id="google-ads-campaigns",
        type=SlideType.GOOGLE_ADS_CAMPAIGNS,
        title="Top Google Ads Campaigns",
        subtitle="Your best performing campaigns by results.",
        payload=ctx.money(campaigns=_rows(ctx.warehouse.google_top_campaigns)),
    )


def _google_monthly(ctx: DerivationContext) -> Slide:
    return Slide(
        id="google-ads-monthly",
        type=SlideType.GOOGLE_ADS_MONTHLY,
        title="Your Peak Month",
        subtitle="Monthly performance throughout the year.",
        payload=ctx.money(months=_rows(label_google_months(ctx.warehouse.google_monthly)),
                          metric="roas"),
    )


def _meta_metrics(ctx: DerivationContext) -> Slide:
    return Slide(
        id="meta-ads-metrics",
        type=SlideType.META_ADS_METRICS,
        title="Meta Ads Performance Metrics",
        subtitle="How Meta Ads contributed to your results.",
        payload=_summary_payload(ctx, ctx.warehouse.meta_summary, "results", "cpr"),
    )


def _meta_monthly(ctx: DerivationContext) -> Slide:
    return Slide(
        id="meta-ads-monthly",
        type=SlideType.META_ADS_MONTHLY,
        title="Your Peak Month on Meta",
        subtitle="Monthly performance throughout the year.",
        payload=ctx.money(months=_rows(label_meta_months(ctx.warehouse.meta_monthly)),
                          metric="results"),
    )


def _meta_best_day(ctx: DerivationContext) -> Slide:
    return Slide(
        id="meta-ads-best-day",
        type=SlideType.META_ADS_BEST_DAY,
        title="Best Days of the Week (Meta)",
        subtitle="When your results hit hardest.",
        payload={"days": _rows(ctx.warehouse.meta_best_day_of_week)},
    )


def _meta_campaigns(ctx: DerivationContext) -> Slide:
    return Slide(
        id="meta-ads-top-campaigns-results",
        type=SlideType.META_ADS_CAMPAIGNS_RESULTS,
        title="Top Meta Campaigns",
        subtitle="Your best performing campaigns by results.",
        payload=ctx.money(campaigns=_rows(ctx.warehouse.meta_top_campaigns_by_results)),
    )


def _meta_devices(ctx: DerivationContext) -> Slide:
    return Slide(
        id="meta-ads-device-breakdown",
        type=SlideType.META_ADS_DEVICE_BREAKDOWN,
        title="Device Performance",
        subtitle="Where your audience engaged.",
        payload=ctx.money(devices=_rows(ctx.warehouse.meta_device_stats), metric="spend"),
    )


def _ads_recap(ctx: DerivationContext) -> Slide:
    return Slide(
        id="recap",
        type=SlideType.RECAP,
        title=" ".join(p for p in ("That was your", ctx.period_label, "Ads Wrapped.") if p),
        subtitle="Ready to make the next one even bigger?",
        payload={"handle": ctx.form.customer_name or "you"},
    )


def _always(ctx) -> bool:
    return True


def _warehouse_has(name: str) -> Callable[[DerivationContext], bool]:
    return lambda ctx: bool(getattr(ctx.warehouse, name))


GOOGLE_DETAIL_RULES = [
    SlideRule(SlideType.GOOGLE_ADS_METRICS,
              lambda ctx: _summary_has_activity(ctx.warehouse.google_summary), _google_metrics),
    SlideRule(SlideType.SEARCH_TERM_CLOUD, _warehouse_has("google_search_terms"), _search_terms),
    SlideRule(SlideType.DAY_HOUR_HEATMAP, _warehouse_has("google_hourly_stats"), _heatmap),
    SlideRule(SlideType.DEVICE_BREAKDOWN, _warehouse_has("google_device_stats"), _google_devices),
    SlideRule(SlideType.GOOGLE_ADS_CAMPAIGNS, _warehouse_has("google_top_campaigns"), _google_campaigns),
    SlideRule(SlideType.GOOGLE_ADS_MONTHLY, _warehouse_has("google_monthly"), _google_monthly),
]

META_DETAIL_RULES = [
    SlideRule(SlideType.META_ADS_METRICS,
              lambda ctx: _summary_has_activity(ctx.warehouse.meta_summary), _meta_metrics),
    SlideRule(SlideType.META_ADS_MONTHLY, _warehouse_has("meta_monthly"), _meta_monthly),
    SlideRule(SlideType.META_ADS_BEST_DAY, _warehouse_has("meta_best_day_of_week"), _meta_best_day),
    SlideRule(SlideType.META_ADS_CAMPAIGNS_RESULTS, _warehouse_has("meta_top_campaigns_by_results"),
              _meta_campaigns),
    SlideRule(SlideType.META_ADS_DEVICE_BREAKDOWN, _warehouse_has("meta_device_stats"), _meta_devices),
]

ADS_RULES = [
    SlideRule(SlideType.INTRO, _always, _ads_intro),
    SlideRule(SlideType.AD_SPEND_REVENUE, _has_spend_and_revenue, _spend_revenue),
    SlideRule(SlideType.AD_SPEND_RESULTS, _has_spend_and_results_only, _spend_results),
    SlideRule(SlideType.CHANNEL_COMPARISON, lambda ctx: bool(_top_channel_name(ctx)),
              _channel_comparison),
    SlideRule(SlideType.CAMPAIGN_PERFORMANCE, _has_campaigns, _campaign_performance),
    SlideRule(SlideType.AD_METRICS_GRID, _has_reach, _metrics_grid),
    SlideRule(SlideType.CREATIVE_WINS, _has_creatives, _creative_wins),
    SlideRule(SlideType.CHANNEL_SHOWDOWN, lambda ctx: _showdown_sides(ctx) is not None,
              _channel_showdown),
    SlideRule(SlideType.MILESTONES, _has_milestones, _milestones),
    SlideRule(SlideType.OPTIMIZATION_WINS, _has_optimization_wins, _optimization_wins),
    SlideRule(SlideType.PLATFORM_SECTION, _any_rule(GOOGLE_DETAIL_RULES),
              _section(Platform.GOOGLE, "Your deep-dive into Google performance."),
              platform=Platform.GOOGLE),
    *GOOGLE_DETAIL_RULES,
    SlideRule(SlideType.PLATFORM_SECTION, _any_rule(META_DETAIL_RULES),
              _section(Platform.META, "Your deep-dive into Meta performance."),
              platform=Platform.META),
    *META_DETAIL_RULES,
    SlideRule(SlideType.RECAP, _always, _ads_recap),
]


def derive_ads_slides(form: AdsFormData | None = None,
                      aggregate: AggregatedAdsData | None = None,
                      warehouse: WarehouseAdsData | None = None) -> list[Slide]:
    """Derive the ads Wrapped deck.

    ``aggregate`` is the cross-channel reduction of uploaded files;
    ``warehouse`` carries the automatic-import rows. Either, both or neither
    may be given; the form fills whatever they leave empty.
    """
    ctx = DerivationContext(
        form=form or AdsFormData(),
        aggregate=aggregate or AggregatedAdsData.empty(),
        warehouse=warehouse or WarehouseAdsData(),
    )
    slides = evaluate_rules(ADS_RULES, ctx)
    logger.info("Derived %d ads slides", len(slides))
    return slides


# ---------------------------------------------------------------------------
# E-commerce deck
# ---------------------------------------------------------------------------

def _num(value: str) -> float:
    return parse_form_number(value)


def _filled(*names: str) -> Callable[[Any], bool]:
    return lambda form: any(bool(getattr(form, n)) for n in names)


def _ecomm_intro(form: EcommFormData) -> Slide:
    return Slide(
        id="intro",
        type=SlideType.INTRO,
        title=_possessive_title(form.user_name, form.year, "E-commerce Wrapped"),
        subtitle="Your year in sales, customers, and growth.",
    )


def _total_revenue(form: EcommFormData) -> Slide:
    return Slide(
        id="total-revenue",
        type=SlideType.TOTAL_REVENUE,
        title="Your total revenue",
        subtitle="Every sale, every transaction, every win.",
        payload={
            "amount": _num(form.total_revenue),
            "previous_year": _num(form.previous_year_revenue),
            "growth_percent": _num(form.revenue_growth_percent),
            "currency": form.currency_code,
        },
    )


def _orders_count(form: EcommFormData) -> Slide:
    return Slide(
        id="orders-count",
        type=SlideType.ORDERS_COUNT,
        title="Orders fulfilled",
        subtitle="Each one a customer made happy.",
        payload={
            "total": _num(form.total_orders),
            "previous_year": _num(form.previous_year_orders),
            "growth_percent": _num(form.orders_growth_percent),
            "average_per_day": _num(form.average_orders_per_day),
        },
    )


def _numbered(form, template: str, count: int) -> list[int]:
    """Indexes 1..count whose ``template`` field is filled in."""
    return [i for i in range(1, count + 1) if getattr(form, template.format(i=i))]


def _refund_rate(form: EcommFormData) -> Slide:
    reasons = [
        {"reason": getattr(form, f"refund_reason{i}"),
         "percent": _num(getattr(form, f"refund_reason{i}_percent"))}
        for i in _numbered(form, "refund_reason{i}", 3)
    ]
    return Slide(
        id="refund-rate",
        type=SlideType.REFUND_RATE,
        title="Your refund rate",
        subtitle="Lower is better.",
        payload={
            "total_refunds": _num(form.total_refunds),
            "refund_rate": _num(form.refund_rate),
            "refund_amount": _num(form.refund_amount),
            "industry_average": _num(form.industry_average_refund_rate),
            "top_reasons": reasons,
            "currency": form.currency_code,
        },
    )


def _discount_usage(form: EcommFormData) -> Slide:
    codes = [
        {"code": getattr(form, f"discount_code{i}"),
         "uses": _num(getattr(form, f"discount_code{i}_uses")),
         "revenue": _num(getattr(form, f"discount_code{i}_revenue"))}
        for i in _numbered(form, "discount_code{i}", 3)
    ]
    return Slide(
        id="discount-usage",
        type=SlideType.DISCOUNT_USAGE,
        title="Discount codes in action",
        subtitle="Your promotions drove serious revenue.",
        payload={
            "total_discounted_orders": _num(form.total_discounted_orders),
            "discounted_orders_percent": _num(form.discounted_orders_percent),
            "total_discount_amount": _num(form.total_discount_amount),
            "top_codes": codes,
            "currency": form.currency_code,
        },
    )


def _top_products(form: EcommFormData) -> Slide:
    products = [
        {"rank": i,
         "name": getattr(form, f"top_product{i}_name"),
         "revenue": _num(getattr(form, f"top_product{i}_revenue")),
         "units": _num(getattr(form, f"top_product{i}_units"))}
        for i in _numbered(form, "top_product{i}_name", 5)
    ]
    return Slide(
        id="top-products",
        type=SlideType.TOP_PRODUCTS,
        title="Your bestsellers",
        subtitle="The products your customers couldn't resist.",
        payload={"products": products, "currency": form.currency_code},
    )


def _inventory_turnover(form: EcommFormData) -> Slide:
    return Slide(
        id="inventory-turnover",
        type=SlideType.INVENTORY_TURNOVER,
        title="Inventory turnover",
        subtitle="How fast your products fly off the shelves.",
        payload={
            "average_turnover": _num(form.average_turnover),
            "industry_average": _num(form.industry_average_turnover),
            "total_skus": _num(form.total_skus),
            "fast_movers": _num(form.fast_movers),
            "slow_movers": _num(form.slow_movers),
            "out_of_stock_events": _num(form.out_of_stock_events),
        },
    )


def _customer_ltv(form: EcommFormData) -> Slide:
    segments = []
    if form.vip_customers:
        segments.append({"name": "VIP", "clv": _num(form.vip_clv),
                         "customers": _num(form.vip_customers)})
    if form.loyal_customers:
        segments.append({"name": "Loyal", "clv": _num(form.loyal_clv),
                         "customers": _num(form.loyal_customers)})
    return Slide(
        id="customer-ltv",
        type=SlideType.CUSTOMER_LIFETIME_VALUE,
        title="Customer lifetime value",
        subtitle="What each customer is worth to your business.",
        payload={
            "average_clv": _num(form.average_clv),
            "previous_year": _num(form.previous_year_clv),
            "growth_percent": _num(form.clv_growth_percent),
            "top_tier_clv": _num(form.vip_clv),
            "segments": segments,
            "currency": form.currency_code,
        },
    )


def _top_referrers(form: EcommFormData) -> Slide:
    referrers = [
        {"source": getattr(form, f"referrer{i}_source"),
         "visitors": _num(getattr(form, f"referrer{i}_visitors")),
         "revenue": _num(getattr(form, f"referrer{i}_revenue")),
         "conversion_rate": _num(getattr(form, f"referrer{i}_conversion_rate"))}
        for i in _numbered(form, "referrer{i}_source", 3)
    ]
    return Slide(
        id="top-referrers",
        type=SlideType.TOP_REFERRERS,
        title="Where your traffic came from",
        subtitle="The channels driving your growth.",
        payload={"referrers": referrers, "currency": form.currency_code},
    )


def _fulfillment_speed(form: EcommFormData) -> Slide:
    return Slide(
        id="fulfillment-speed",
        type=SlideType.FULFILLMENT_SPEED,
        title="Fulfillment speed",
        subtitle="Getting orders out the door, fast.",
        payload={
            "average_hours": _num(form.average_fulfillment_hours),
            "previous_year": _num(form.previous_year_fulfillment_hours),
            "improvement_percent": _num(form.fulfillment_improvement_percent),
            "same_day": _num(form.same_day_percent),
            "next_day": _num(form.next_day_percent),
            "two_plus_day": _num(form.two_plus_day_percent),
            "on_time_rate": _num(form.on_time_rate),
        },
    )


def _peak_hour(form: EcommFormData) -> Slide:
    label = form.peak_hour_label or f"{form.peak_hour}:00"
    return Slide(
        id="peak-hour",
        type=SlideType.PEAK_HOUR,
        title="When your customers shop",
        subtitle=f"Your store was busiest around {label}.",
        payload={
            "hour": _num(form.peak_hour),
            "hour_label": label,
            "sales_at_peak": _num(form.sales_at_peak),
        },
    )


def _geo_hotspots(form: EcommFormData) -> Slide:
    regions = [{"name": form.top_region, "sales": _num(form.top_region_sales)}]
    regions += [
        {"name": getattr(form, f"region{i}_name"), "sales": _num(getattr(form, f"region{i}_sales"))}
        for i in range(2, 6) if getattr(form, f"region{i}_name")
    ]
    return Slide(
        id="geo-hotspots",
        type=SlideType.GEO_HOTSPOTS,
        title="Your top markets",
        subtitle="Where your customers are coming from.",
        payload={
            "top_region": form.top_region,
            "top_region_sales": _num(form.top_region_sales),
            "regions": regions,
            "currency": form.currency_code,
        },
    )


def _funnel(form: EcommFormData) -> Slide:
    return Slide(
        id="funnel",
        type=SlideType.FUNNEL,
        title="The customer journey",
        subtitle="From first visit to purchase.",
        payload={
            "visitors": _num(form.funnel_visitors),
            "product_views": _num(form.funnel_product_views),
            "added_to_cart": _num(form.funnel_added_to_cart),
            "checkout": _num(form.funnel_checkout),
            "purchased": _num(form.funnel_purchased),
        },
    )


def _customer_loyalty(form: EcommFormData) -> Slide:
    new_revenue, returning_revenue = _num(form.new_revenue), _num(form.returning_revenue)
    share = ratios.safe_divide(returning_revenue, new_revenue + returning_revenue)
    return Slide(
        id="customer-loyalty",
        type=SlideType.CUSTOMER_LOYALTY,
        title="Customer loyalty",
        subtitle="Your returning customers are your biggest fans.",
        payload={
            "new_customers": _num(form.new_customers),
            "returning_customers": _num(form.returning_customers),
            "new_revenue": new_revenue,
            "returning_revenue": returning_revenue,
            "returning_revenue_percent": round(share * 100),
            "currency": form.currency_code,
        },
    )


def _cart_recovery(form: EcommFormData) -> Slide:
    return Slide(
        id="cart-recovery",
        type=SlideType.CART_RECOVERY,
        title="Cart recovery wins",
        subtitle="Every recovered cart is a second chance.",
        payload={
            "abandoned_carts": _num(form.abandoned_carts),
            "recovered_carts": _num(form.recovered_carts),
            "recovered_revenue": _num(form.recovered_revenue),
            "recovery_rate": _num(form.recovery_rate),
            "currency": form.currency_code,
        },
    )


def _seasonal_peak(form: EcommFormData) -> Slide:
    peak, average = _num(form.peak_day_revenue), _num(form.average_day_revenue)
    return Slide(
        id="seasonal-peak",
        type=SlideType.SEASONAL_PEAK,
        title="Your biggest day",
        subtitle="When the sales went through the roof.",
        payload={
            "peak_day": form.peak_day,
            "peak_date": form.peak_date,
            "peak_revenue": peak,
            "average_day_revenue": average,
            "multiplier": round(ratios.safe_divide(peak, average), 1),
            "currency": form.currency_code,
        },
    )


def _aov_growth(form: EcommFormData) -> Slide:
    return Slide(
        id="aov-growth",
        type=SlideType.AOV_GROWTH,
        title="Average order value",
        subtitle="Your customers are spending more per order.",
        payload={
            "start_aov": _num(form.start_aov),
            "end_aov": _num(form.end_aov),
            "growth_percent": _num(form.aov_growth_percent),
            "currency": form.currency_code,
        },
    )


def _top_customer(form: EcommFormData) -> Slide:
    return Slide(
        id="top-customer",
        type=SlideType.TOP_CUSTOMER,
        title="Your #1 customer",
        subtitle="A true superfan (anonymized for privacy).",
        payload={
            "order_count": _num(form.top_customer_order_count),
            "total_spent": _num(form.top_customer_total_spent),
            "member_since": form.top_customer_member_since,
            "favorite_category": form.top_customer_favorite_category,
            "currency": form.currency_code,
        },
    )


def _fastest_selling(form: EcommFormData) -> Slide:
    return Slide(
        id="fastest-selling",
        type=SlideType.FASTEST_SELLING,
        title="Fastest sellout",
        subtitle="This product flew off the shelves.",
        payload={
            "product_name": form.fastest_selling_product,
            "sold_out_time": form.fastest_selling_sold_out_time,
            "units_sold": _num(form.fastest_selling_units_sold),
            "launch_date": form.fastest_selling_launch_date,
        },
    )


def _reviews(form: EcommFormData) -> Slide:
    words = [getattr(form, f"top_review_word{i}") for i in _numbered(form, "top_review_word{i}", 3)]
    return Slide(
        id="reviews",
        type=SlideType.REVIEWS,
        title="What customers said",
        subtitle="The voice of your community.",
        payload={
            "total_reviews": _num(form.total_reviews),
            "five_star_count": _num(form.five_star_count),
            "average_rating": _num(form.average_rating),
            "top_words": words,
        },
    )


def _ecomm_recap(form: EcommFormData) -> Slide:
    return Slide(
        id="recap",
        type=SlideType.RECAP,
        title="That was your year.",
        subtitle="Ready to make the next one even bigger?",
        payload={"handle": form.user_name or "you"},
    )


ECOMMERCE_RULES = [
    SlideRule(SlideType.INTRO, _always, _ecomm_intro),
    SlideRule(SlideType.TOTAL_REVENUE, _filled("total_revenue"), _total_revenue),
    SlideRule(SlideType.ORDERS_COUNT, _filled("total_orders"), _orders_count),
    SlideRule(SlideType.REFUND_RATE, _filled("refund_rate"), _refund_rate),
    SlideRule(SlideType.DISCOUNT_USAGE, _filled("discount_code1"), _discount_usage),
    SlideRule(SlideType.TOP_PRODUCTS, _filled("top_product1_name"), _top_products),
    SlideRule(SlideType.INVENTORY_TURNOVER, _filled("average_turnover"), _inventory_turnover),
    SlideRule(SlideType.CUSTOMER_LIFETIME_VALUE, _filled("average_clv"), _customer_ltv),
    SlideRule(SlideType.TOP_REFERRERS, _filled("referrer1_source"), _top_referrers),
    SlideRule(SlideType.FULFILLMENT_SPEED, _filled("average_fulfillment_hours"), _fulfillment_speed),
    SlideRule(SlideType.PEAK_HOUR, _filled("peak_hour"), _peak_hour),
    SlideRule(SlideType.GEO_HOTSPOTS, _filled("top_region"), _geo_hotspots),
    SlideRule(SlideType.FUNNEL, _filled("funnel_visitors"), _funnel),
    SlideRule(SlideType.CUSTOMER_LOYALTY, _filled("new_customers"), _customer_loyalty),
    SlideRule(SlideType.CART_RECOVERY, _filled("abandoned_carts"), _cart_recovery),
    SlideRule(SlideType.SEASONAL_PEAK, _filled("peak_day"), _seasonal_peak),
    SlideRule(SlideType.AOV_GROWTH, _filled("start_aov"), _aov_growth),
    SlideRule(SlideType.TOP_CUSTOMER, _filled("top_customer_order_count"), _top_customer),
    SlideRule(SlideType.FASTEST_SELLING, _filled("fastest_selling_product"), _fastest_selling),
    SlideRule(SlideType.REVIEWS, _filled("total_reviews"), _reviews),
    SlideRule(SlideType.RECAP, _always, _ecomm_recap),
]


def derive_ecommerce_slides(form: EcommFormData) -> list[Slide]:
    """Derive the e-commerce Wrapped deck from its form."""
    return evaluate_rules(ECOMMERCE_RULES, form)


# ---------------------------------------------------------------------------
# Social deck
# ---------------------------------------------------------------------------

ENGAGEMENT_COLORS = {
    "Likes": "#ec4899",
    "Comments": "#8b5cf6",
    "Shares": "#3b82f6",
    "Saves": "#10b981",
}


def _social_intro(form: SocialFormData) -> Slide:
    return Slide(
        id="intro",
        type=SlideType.INTRO,
        title=_possessive_title(form.customer_name, "Social Media Wrapped"),
        subtitle=f"Your year on {form.primary_platform or 'social media'}.",
    )


def _follower_growth(form: SocialFormData) -> Slide:
    start, end = _num(form.starting_followers), _num(form.ending_followers)
    net = end - start
    return Slide(
        id="follower-growth",
        type=SlideType.FOLLOWER_GROWTH,
        title="Your Community Grew",
        subtitle="Watch your audience expand throughout the year.",
        payload={
            "start_followers": start,
            "end_followers": end,
            "net_gain": net,
            "growth_percent": ratios.safe_divide(net * 100, start),
            "monthly_data": parse_monthly_followers(form.monthly_followers),
        },
    )


def _impressions_reach(form: SocialFormData) -> Slide:
    impressions, posts = _num(form.total_impressions), _num(form.total_posts_published)
    return Slide(
        id="impressions-reach",
        type=SlideType.IMPRESSIONS_REACH,
        title="Your Content's Visibility",
        subtitle="How far your posts traveled.",
        payload={
            "impressions": impressions,
            "reach": _num(form.total_reach),
            "posts_published": posts,
            "avg_impressions_per_post": round(ratios.safe_divide(impressions, posts)),
        },
    )


def _engagement_donut(form: SocialFormData) -> Slide:
    values = {
        "Likes": _num(form.total_likes),
        "Comments": _num(form.total_comments),
        "Shares": _num(form.total_shares),
        "Saves": _num(form.total_saves),
    }
    items = [{"name": name, "value": value, "color": ENGAGEMENT_COLORS[name]}
             for name, value in values.items() if value > 0]
    return Slide(
        id="engagement-donut",
        type=SlideType.ENGAGEMENT_DONUT,
        title="Engagement Breakdown",
        subtitle="How your audience showed love.",
        payload={
            "items": items,
            "total_engagement": sum(values.values()),
            "engagement_rate": _num(form.avg_engagement_rate),
        },
    )


def _top_posts(form: SocialFormData) -> Slide:
    posts = [
        {"rank": i,
         "description": getattr(form, f"top_post{i}_description"),
         "likes": _num(getattr(form, f"top_post{i}_likes")) or _num(getattr(form, f"top_post{i}_metrics")),
         "comments": _num(getattr(form, f"top_post{i}_comments")),
         "url": getattr(form, f"top_post{i}_url") or None}
        for i in _numbered(form, "top_post{i}_description", 3)
    ]
    return Slide(
        id="top-posts",
        type=SlideType.TOP_POSTS,
        title="Your Top Posts",
        subtitle="The content that resonated most.",
        payload={"posts": posts, "platform": form.primary_platform or "Social"},
    )


def _content_performance(form: SocialFormData) -> Slide:
    return Slide(
        id="content-performance",
        type=SlideType.CONTENT_PERFORMANCE,
        title="Content That Worked",
        subtitle="Your winning formula.",
        payload={
            "best_format": form.best_performing_format,
            "top_hashtag": form.top_hashtag,
            "best_day": form.best_engagement_day,
            "viral_reach": _num(form.most_viral_post_reach),
        },
    )


def _best_posting_time(form: SocialFormData) -> Slide:
    return Slide(
        id="best-posting-time",
        type=SlideType.BEST_POSTING_TIME,
        title="When to Post",
        subtitle="Your audience is most active at these times.",
        payload={
            "best_day": form.best_engagement_day,
            "peak_hours": form.peak_active_hours,
            "platform": form.primary_platform or "Social",
        },
    )


def _audience(form: SocialFormData) -> Slide:
    return Slide(
        id="audience-demographics",
        type=SlideType.AUDIENCE_DEMOGRAPHICS,
        title="Your Audience",
        subtitle="Who's following you.",
        payload={
            "top_country": form.top_country,
            "top_city": form.top_city,
            "top_age_range": form.top_age_range,
            "gender_split": form.gender_split,
            "peak_hours": form.peak_active_hours,
            "interests": form.audience_interests,
        },
    )


def _social_milestone(form: SocialFormData) -> Slide:
    return Slide(
        id="milestone",
        type=SlideType.SOCIAL_MILESTONE,
        title="Milestone Reached!",
        subtitle="A moment worth celebrating.",
        payload={
            "milestone": form.milestone_reached,
            "current_followers": _num(form.ending_followers),
            "best_month": form.best_growth_month,
            "platform": form.primary_platform or "Social",
        },
    )


def _social_recap(form: SocialFormData) -> Slide:
    return Slide(
        id="recap",
        type=SlideType.RECAP,
        title="That was your Social year.",
        subtitle="Ready to go even more viral?",
        payload={"handle": form.customer_name or form.primary_platform or "Creator"},
    )


SOCIAL_RULES = [
    SlideRule(SlideType.INTRO, _always, _social_intro),
    SlideRule(SlideType.FOLLOWER_GROWTH, _filled("ending_followers"), _follower_growth),
    SlideRule(SlideType.IMPRESSIONS_REACH, _filled("total_impressions", "total_reach"),
              _impressions_reach),
    SlideRule(SlideType.ENGAGEMENT_DONUT, _filled("total_likes"), _engagement_donut),
    SlideRule(SlideType.TOP_POSTS, _filled("top_post1_description"), _top_posts),
    SlideRule(SlideType.CONTENT_PERFORMANCE, _filled("best_performing_format"), _content_performance),
    SlideRule(SlideType.BEST_POSTING_TIME, _filled("best_engagement_day", "peak_active_hours"),
              _best_posting_time),
    SlideRule(SlideType.AUDIENCE_DEMOGRAPHICS, _filled("top_country", "top_age_range"), _audience),
    SlideRule(SlideType.SOCIAL_MILESTONE, _filled("milestone_reached"), _social_milestone),
    SlideRule(SlideType.RECAP, _always, _social_recap),
]


def derive_social_slides(form: SocialFormData) -> list[Slide]:
    """Derive the social media Wrapped deck from its form."""
    return evaluate_rules(SOCIAL_RULES, form)


# ---------------------------------------------------------------------------
# Deck registry
# ---------------------------------------------------------------------------

DECK_RULES = {
    "ads": ADS_RULES,
    "ecommerce": ECOMMERCE_RULES,
    "social": SOCIAL_RULES,
}


def _check_wrap_type(wrap_type: str) -> None:
    if wrap_type not in DECK_RULES:
        raise ValueError(
            f"Unknown wrap type '{wrap_type}'. "
            f"Valid types: {', '.join(sorted(DECK_RULES))}"
        )


def canonical_order(wrap_type: str) -> list[str]:
    """Position keys of a deck type, in narrative order."""
    _check_wrap_type(wrap_type)
    return [rule.key for rule in DECK_RULES[wrap_type]]


def derive_slides(wrap_type: str, form=None,
                  aggregate: AggregatedAdsData | None = None,
                  warehouse: WarehouseAdsData | None = None) -> list[Slide]:
    """Derive the deck for ``wrap_type`` ("ads", "ecommerce" or "social").

    ``aggregate`` and ``warehouse`` only apply to ads decks.

    Raises:
        ValueError: If wrap_type is unknown.
    """
    _check_wrap_type(wrap_type)
    if wrap_type == "ads":
        return derive_ads_slides(form, aggregate, warehouse)
    if wrap_type == "ecommerce":
        return derive_ecommerce_slides(form or EcommFormData())
    return derive_social_slides(form or SocialFormData())
