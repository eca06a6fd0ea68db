"""Wrap data models - the contract between ingestion, aggregation and slides.

Defines the normalized ad-metrics model that every upload or warehouse read
is reduced into, and the typed slide records the derivation engine emits.
Every model round-trips through plain dicts so it can be stored as YAML.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Platform(Enum):
    """Advertising platform a channel's data came from."""
    META = "meta"
    GOOGLE = "google"
    TIKTOK = "tiktok"
    LINKEDIN = "linkedin"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _PLATFORM_NAMES[self]


_PLATFORM_NAMES = {
    Platform.META: "Meta Ads",
    Platform.GOOGLE: "Google Ads",
    Platform.TIKTOK: "TikTok Ads",
    Platform.LINKEDIN: "LinkedIn Ads",
    Platform.OTHER: "Other",
}


class ResultType(Enum):
    """Conversion-style outcome a result row counts."""
    WEBSITE_PURCHASES = "website_purchases"
    LANDING_PAGE_VIEWS = "landing_page_views"
    REACH = "reach"
    LEADS = "leads"
    LINK_CLICKS = "link_clicks"
    VIDEO_VIEWS = "video_views"
    APP_INSTALLS = "app_installs"
    MESSAGES = "messages"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _RESULT_TYPE_NAMES[self]

    @classmethod
    def from_label(cls, label: str | None) -> "ResultType":
        """Map a free-text platform label ("Website purchases") to a type."""
        if not label:
            return cls.OTHER
        lower = str(label).strip().lower()
        for needles, result_type in _RESULT_TYPE_RULES:
            if any(n in lower for n in needles):
                return result_type
        return cls.OTHER


_RESULT_TYPE_NAMES = {
    ResultType.WEBSITE_PURCHASES: "Website Purchases",
    ResultType.LANDING_PAGE_VIEWS: "Landing Page Views",
    ResultType.REACH: "Reach",
    ResultType.LEADS: "Leads",
    ResultType.LINK_CLICKS: "Link Clicks",
    ResultType.VIDEO_VIEWS: "Video Views",
    ResultType.APP_INSTALLS: "App Installs",
    ResultType.MESSAGES: "Messages",
    ResultType.OTHER: "Other Results",
}

# Evaluated in order; the first rule with a matching substring wins.
_RESULT_TYPE_RULES = (
    (("purchase",), ResultType.WEBSITE_PURCHASES),
    (("landing page",), ResultType.LANDING_PAGE_VIEWS),
    (("reach",), ResultType.REACH),
    (("lead",), ResultType.LEADS),
    (("link click", "clicks"), ResultType.LINK_CLICKS),
    (("video",), ResultType.VIDEO_VIEWS),
    (("app", "install"), ResultType.APP_INSTALLS),
    (("message",), ResultType.MESSAGES),
)


class SlideType(Enum):
    """Every kind of slide the derivation engine can emit."""
    INTRO = "intro"
    RECAP = "recap"
    PLATFORM_SECTION = "platform_section"

    # Ads
    AD_SPEND_REVENUE = "ad_spend_revenue"
    AD_SPEND_RESULTS = "ad_spend_results"
    CHANNEL_COMPARISON = "channel_comparison"
    CAMPAIGN_PERFORMANCE = "campaign_performance"
    AD_METRICS_GRID = "ad_metrics_grid"
    CREATIVE_WINS = "creative_wins"
    CHANNEL_SHOWDOWN = "channel_showdown"
    MILESTONES = "milestones"
    OPTIMIZATION_WINS = "optimization_wins"
    GOOGLE_ADS_METRICS = "google_ads_metrics"
    SEARCH_TERM_CLOUD = "search_term_cloud"
    DAY_HOUR_HEATMAP = "day_hour_heatmap"
    DEVICE_BREAKDOWN = "device_breakdown"
    GOOGLE_ADS_CAMPAIGNS = "google_ads_campaigns"
    GOOGLE_ADS_MONTHLY = "google_ads_monthly"
    META_ADS_METRICS = "meta_ads_metrics"
    META_ADS_MONTHLY = "meta_ads_monthly"
    META_ADS_BEST_DAY = "meta_ads_best_day"
    META_ADS_CAMPAIGNS_RESULTS = "meta_ads_campaigns_results"
    META_ADS_DEVICE_BREAKDOWN = "meta_ads_device_breakdown"

    # E-commerce
    TOTAL_REVENUE = "total_revenue"
    ORDERS_COUNT = "orders_count"
    REFUND_RATE = "refund_rate"
    DISCOUNT_USAGE = "discount_usage"
    TOP_PRODUCTS = "top_products"
    INVENTORY_TURNOVER = "inventory_turnover"
    CUSTOMER_LIFETIME_VALUE = "customer_lifetime_value"
    TOP_REFERRERS = "top_referrers"
    FULFILLMENT_SPEED = "fulfillment_speed"
    PEAK_HOUR = "peak_hour"
    GEO_HOTSPOTS = "geo_hotspots"
    FUNNEL = "funnel"
    CUSTOMER_LOYALTY = "customer_loyalty"
    CART_RECOVERY = "cart_recovery"
    SEASONAL_PEAK = "seasonal_peak"
    AOV_GROWTH = "aov_growth"
    TOP_CUSTOMER = "top_customer"
    FASTEST_SELLING = "fastest_selling"
    REVIEWS = "reviews"

    # Social
    FOLLOWER_GROWTH = "follower_growth"
    IMPRESSIONS_REACH = "impressions_reach"
    ENGAGEMENT_DONUT = "engagement_donut"
    TOP_POSTS = "top_posts"
    CONTENT_PERFORMANCE = "content_performance"
    BEST_POSTING_TIME = "best_posting_time"
    AUDIENCE_DEMOGRAPHICS = "audience_demographics"
    SOCIAL_MILESTONE = "social_milestone"


# ---------------------------------------------------------------------------
# Result breakdowns and time series
# ---------------------------------------------------------------------------

@dataclass
class ResultsByType:
    """Results of one type, with the value and spend they carried."""
    type: ResultType
    display_name: str
    count: float = 0.0
    value: float = 0.0
    spend: float = 0.0

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "display_name": self.display_name,
            "count": self.count,
            "value": self.value,
            "spend": self.spend,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ResultsByType":
        result_type = ResultType(d["type"])
        return cls(
            type=result_type,
            display_name=d.get("display_name", result_type.display_name),
            count=d.get("count", 0.0),
            value=d.get("value", 0.0),
            spend=d.get("spend", 0.0),
        )


@dataclass(frozen=True)
class DailyMetrics:
    """One calendar day of one channel."""
    date: str  # YYYY-MM-DD
    spend: float = 0.0
    revenue: float = 0.0
    results: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0

    @property
    def month(self) -> str:
        return self.date[:7]

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "spend": self.spend,
            "revenue": self.revenue,
            "results": self.results,
            "impressions": self.impressions,
            "clicks": self.clicks,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DailyMetrics":
        return cls(
            date=str(d["date"]),
            spend=d.get("spend", 0.0),
            revenue=d.get("revenue", 0.0),
            results=d.get("results", 0.0),
            impressions=d.get("impressions", 0.0),
            clicks=d.get("clicks", 0.0),
        )


# ---------------------------------------------------------------------------
# Campaigns and channels
# ---------------------------------------------------------------------------

@dataclass
class CampaignData:
    """Summed metrics for one campaign name within one channel."""
    name: str
    platform: Platform
    spend: float = 0.0
    revenue: float = 0.0
    results: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    roas: float = 0.0
    cpr: float = 0.0   # cost per result
    cpm: float = 0.0
    cpc: float = 0.0
    ctr: float = 0.0   # percent
    results_by_type: list[ResultsByType] = field(default_factory=list)
    primary_result_type: ResultType = ResultType.OTHER

    @property
    def key(self) -> tuple[str, str]:
        """Campaign identity: the display name scoped to its platform."""
        return (self.platform.value, self.name)

    @property
    def primary_result_type_name(self) -> str:
        return self.primary_result_type.display_name

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "platform": self.platform.value,
            "spend": self.spend,
            "revenue": self.revenue,
            "results": self.results,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "roas": self.roas,
            "cpr": self.cpr,
            "cpm": self.cpm,
            "cpc": self.cpc,
            "ctr": self.ctr,
            "results_by_type": [r.to_dict() for r in self.results_by_type],
            "primary_result_type": self.primary_result_type.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CampaignData":
        return cls(
            name=d["name"],
            platform=Platform(d["platform"]),
            spend=d.get("spend", 0.0),
            revenue=d.get("revenue", 0.0),
            results=d.get("results", 0.0),
            impressions=d.get("impressions", 0.0),
            clicks=d.get("clicks", 0.0),
            roas=d.get("roas", 0.0),
            cpr=d.get("cpr", 0.0),
            cpm=d.get("cpm", 0.0),
            cpc=d.get("cpc", 0.0),
            ctr=d.get("ctr", 0.0),
            results_by_type=[ResultsByType.from_dict(r)
                             for r in d.get("results_by_type", [])],
            primary_result_type=ResultType(d.get("primary_result_type", "other")),
        )


@dataclass
class ChannelData:
    """Everything one platform import produced.

    At most one ChannelData exists per platform in a working set; a new
    import for the same platform replaces it.
    """
    platform: Platform
    spend: float = 0.0
    revenue: float = 0.0
    results: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    roas: float = 0.0
    cpr: float = 0.0
    cpm: float = 0.0
    cpc: float = 0.0
    ctr: float = 0.0
    campaigns: list[CampaignData] = field(default_factory=list)
    daily: list[DailyMetrics] = field(default_factory=list)
    results_by_type: list[ResultsByType] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.platform.display_name

    def to_dict(self) -> dict:
        return {
            "platform": self.platform.value,
            "spend": self.spend,
            "revenue": self.revenue,
            "results": self.results,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "roas": self.roas,
            "cpr": self.cpr,
            "cpm": self.cpm,
            "cpc": self.cpc,
            "ctr": self.ctr,
            "campaigns": [c.to_dict() for c in self.campaigns],
            "daily": [d.to_dict() for d in self.daily],
            "results_by_type": [r.to_dict() for r in self.results_by_type],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ChannelData":
        return cls(
            platform=Platform(d["platform"]),
            spend=d.get("spend", 0.0),
            revenue=d.get("revenue", 0.0),
            results=d.get("results", 0.0),
            impressions=d.get("impressions", 0.0),
            clicks=d.get("clicks", 0.0),
            roas=d.get("roas", 0.0),
            cpr=d.get("cpr", 0.0),
            cpm=d.get("cpm", 0.0),
            cpc=d.get("cpc", 0.0),
            ctr=d.get("ctr", 0.0),
            campaigns=[CampaignData.from_dict(c) for c in d.get("campaigns", [])],
            daily=[DailyMetrics.from_dict(x) for x in d.get("daily", [])],
            results_by_type=[ResultsByType.from_dict(r)
                             for r in d.get("results_by_type", [])],
        )


# ---------------------------------------------------------------------------
# Cross-channel aggregate
# ---------------------------------------------------------------------------

@dataclass
class MonthlyMetrics:
    """One calendar month across every channel."""
    month: str         # YYYY-MM
    month_name: str    # "January"
    spend: float = 0.0
    revenue: float = 0.0
    results: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    roas: float = 0.0
    cpr: float = 0.0
    highlights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "month_name": self.month_name,
            "spend": self.spend,
            "revenue": self.revenue,
            "results": self.results,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "roas": self.roas,
            "cpr": self.cpr,
            "highlights": list(self.highlights),
        }


@dataclass
class MonthHighlight:
    """A month singled out as best or worst on some ratio."""
    month: str
    month_name: str
    roas: float
    cpr: float

    def to_dict(self) -> dict:
        return {"month": self.month, "month_name": self.month_name,
                "roas": self.roas, "cpr": self.cpr}


@dataclass
class AggregatedAdsData:
    """Cross-channel reduction of a set of ChannelData.

    Holds no state of its own: it is always recomputed from the channels.
    """
    total_spend: float = 0.0
    total_revenue: float = 0.0
    total_results: float = 0.0
    total_impressions: float = 0.0
    total_clicks: float = 0.0
    results_by_type: list[ResultsByType] = field(default_factory=list)

    blended_roas: float = 0.0
    average_cpr: float = 0.0
    average_cpm: float = 0.0
    average_cpc: float = 0.0
    average_ctr: float = 0.0

    channels: list[ChannelData] = field(default_factory=list)
    top_channel_by_spend: ChannelData | None = None
    second_channel: ChannelData | None = None
    best_roas_channel: ChannelData | None = None

    top_campaigns_by_revenue: list[CampaignData] = field(default_factory=list)
    top_campaigns_by_roas: list[CampaignData] = field(default_factory=list)
    most_efficient_campaign: CampaignData | None = None

    monthly: list[MonthlyMetrics] = field(default_factory=list)
    best_month_by_roas: MonthHighlight | None = None
    best_month_by_cpr: MonthHighlight | None = None
    worst_month_by_roas: MonthHighlight | None = None
    worst_month_by_cpr: MonthHighlight | None = None

    @classmethod
    def empty(cls) -> "AggregatedAdsData":
        return cls()

    def get_channel(self, platform: Platform) -> ChannelData | None:
        for channel in self.channels:
            if channel.platform == platform:
                return channel
        return None

    def to_dict(self) -> dict:
        def _opt(obj):
            return obj.to_dict() if obj is not None else None

        return {
            "total_spend": self.total_spend,
            "total_revenue": self.total_revenue,
            "total_results": self.total_results,
            "total_impressions": self.total_impressions,
            "total_clicks": self.total_clicks,
            "results_by_type": [r.to_dict() for r in self.results_by_type],
            "blended_roas": self.blended_roas,
            "average_cpr": self.average_cpr,
            "average_cpm": self.average_cpm,
            "average_cpc": self.average_cpc,
            "average_ctr": self.average_ctr,
            "channels": [c.to_dict() for c in self.channels],
            "top_channel_by_spend": _platform_ref(self.top_channel_by_spend),
            "second_channel": _platform_ref(self.second_channel),
            "best_roas_channel": _platform_ref(self.best_roas_channel),
            "top_campaigns_by_revenue": [c.to_dict() for c in self.top_campaigns_by_revenue],
            "top_campaigns_by_roas": [c.to_dict() for c in self.top_campaigns_by_roas],
            "most_efficient_campaign": _opt(self.most_efficient_campaign),
            "monthly": [m.to_dict() for m in self.monthly],
            "best_month_by_roas": _opt(self.best_month_by_roas),
            "best_month_by_cpr": _opt(self.best_month_by_cpr),
            "worst_month_by_roas": _opt(self.worst_month_by_roas),
            "worst_month_by_cpr": _opt(self.worst_month_by_cpr),
        }


def _platform_ref(channel: ChannelData | None) -> str | None:
    return channel.platform.value if channel is not None else None


# ---------------------------------------------------------------------------
# Slides
# ---------------------------------------------------------------------------

@dataclass
class Slide:
    """One slide of a generated deck.

    ``payload`` is a plain dict whose shape depends on ``type``. Decks are
    stored verbatim once generated.
    """
    id: str
    type: SlideType
    title: str
    subtitle: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
        }
        if self.subtitle is not None:
            d["subtitle"] = self.subtitle
        if self.payload:
            d["payload"] = self.payload
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Slide":
        return cls(
            id=d["id"],
            type=SlideType(d["type"]),
            title=d["title"],
            subtitle=d.get("subtitle"),
            payload=dict(d.get("payload") or {}),
        )
