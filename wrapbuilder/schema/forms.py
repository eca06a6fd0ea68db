"""Manual override forms.

A user can type figures straight into a form instead of (or on top of)
uploading platform exports. Every field is kept as the raw string the user
entered; numbers are parsed with :func:`parse_form_number` at derivation time.

Forms accept snake_case or camelCase keys in ``from_dict`` so payloads posted
by the web front end load unchanged.
"""

import math
import re
from dataclasses import asdict, dataclass, fields

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_FORM_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


def parse_form_number(value) -> float:
    """Parse a number typed into a form field.

    Anything that is not a digit, decimal point or minus sign is dropped
    first, so "$12,500", "4.2x" and "35%" parse as 12500, 4.2 and 35.
    Empty or unparsable input gives 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    cleaned = re.sub(r"[^0-9.\-]", "", str(value))
    match = _FORM_NUMBER.match(cleaned)
    if not match:
        return 0.0
    f = float(match.group(0))
    return f if math.isfinite(f) else 0.0


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


class _Form:
    """Shared dict conversion for the override forms."""

    @classmethod
    def from_dict(cls, d: dict | None):
        d = d or {}
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in d.items():
            name = key if key in known else _snake(str(key))
            if name not in known:
                continue
            values[name] = "" if value is None else str(value)
        return cls(**values)

    def to_dict(self) -> dict:
        return asdict(self)

    def number(self, name: str) -> float:
        return parse_form_number(getattr(self, name))


# ---------------------------------------------------------------------------
# Ads
# ---------------------------------------------------------------------------

@dataclass
class AdsFormData(_Form):
    customer_name: str = ""
    currency_code: str = ""

    # Reporting period: "year", "month" or "custom"
    period_type: str = "year"
    period_year: str = ""
    period_month: str = ""
    period_start_date: str = ""
    period_end_date: str = ""

    # Headline
    total_ad_spend: str = ""
    revenue_attributed: str = ""
    blended_roas: str = ""
    total_conversions: str = ""
    total_impressions: str = ""
    total_clicks: str = ""

    # Channels
    top_channel_by_spend: str = ""
    spend_on_top_channel: str = ""
    top_channel_roas: str = ""
    second_channel: str = ""
    spend_on_second_channel: str = ""
    second_channel_roas: str = ""
    best_roas_channel: str = ""
    best_roas_channel_performance: str = ""

    # Campaigns
    top_campaign1_name: str = ""
    top_campaign1_revenue: str = ""
    top_campaign1_roas: str = ""
    top_campaign1_spend: str = ""
    top_campaign2_name: str = ""
    top_campaign2_revenue: str = ""
    most_efficient_campaign: str = ""
    most_efficient_campaign_roas: str = ""

    # Creatives
    top_creative1_description: str = ""
    top_creative1_performance: str = ""
    top_creative2_description: str = ""
    top_creative2_performance: str = ""
    best_performing_format: str = ""
    best_hook_angle: str = ""
    total_creatives_tested: str = ""
    creative_win_rate: str = ""

    # Efficiency
    average_cpm: str = ""
    average_cpc: str = ""
    average_cpa: str = ""
    average_ctr: str = ""
    best_month_for_efficiency: str = ""
    best_month_cpa: str = ""
    yoy_cpa_change: str = ""
    yoy_roas_change: str = ""

    @property
    def period_label(self) -> str:
        """Human label for the reporting period used in intro/recap titles."""
        if self.period_type == "custom" and self.period_start_date and self.period_end_date:
            return f"{self.period_start_date} – {self.period_end_date}"
        if self.period_type == "month" and self.period_month:
            return self.period_month
        return self.period_year


# ---------------------------------------------------------------------------
# E-commerce
# ---------------------------------------------------------------------------

@dataclass
class EcommFormData(_Form):
    user_name: str = ""
    year: str = ""
    currency_code: str = ""

    total_revenue: str = ""
    previous_year_revenue: str = ""
    revenue_growth_percent: str = ""

    total_orders: str = ""
    previous_year_orders: str = ""
    orders_growth_percent: str = ""
    average_orders_per_day: str = ""

    total_refunds: str = ""
    refund_rate: str = ""
    refund_amount: str = ""
    industry_average_refund_rate: str = "8.5"
    refund_reason1: str = ""
    refund_reason1_percent: str = ""
    refund_reason2: str = ""
    refund_reason2_percent: str = ""
    refund_reason3: str = ""
    refund_reason3_percent: str = ""

    total_discounted_orders: str = ""
    discounted_orders_percent: str = ""
    total_discount_amount: str = ""
    discount_code1: str = ""
    discount_code1_uses: str = ""
    discount_code1_revenue: str = ""
    discount_code2: str = ""
    discount_code2_uses: str = ""
    discount_code2_revenue: str = ""
    discount_code3: str = ""
    discount_code3_uses: str = ""
    discount_code3_revenue: str = ""

    top_product1_name: str = ""
    top_product1_revenue: str = ""
    top_product1_units: str = ""
    top_product2_name: str = ""
    top_product2_revenue: str = ""
    top_product2_units: str = ""
    top_product3_name: str = ""
    top_product3_revenue: str = ""
    top_product3_units: str = ""
    top_product4_name: str = ""
    top_product4_revenue: str = ""
    top_product4_units: str = ""
    top_product5_name: str = ""
    top_product5_revenue: str = ""
    top_product5_units: str = ""

    average_turnover: str = ""
    industry_average_turnover: str = "6.2"
    total_skus: str = ""
    fast_movers: str = ""
    slow_movers: str = ""
    out_of_stock_events: str = ""

    average_clv: str = ""
    previous_year_clv: str = ""
    clv_growth_percent: str = ""
    vip_customers: str = ""
    vip_clv: str = ""
    loyal_customers: str = ""
    loyal_clv: str = ""

    referrer1_source: str = ""
    referrer1_visitors: str = ""
    referrer1_revenue: str = ""
    referrer1_conversion_rate: str = ""
    referrer2_source: str = ""
    referrer2_visitors: str = ""
    referrer2_revenue: str = ""
    referrer2_conversion_rate: str = ""
    referrer3_source: str = ""
    referrer3_visitors: str = ""
    referrer3_revenue: str = ""
    referrer3_conversion_rate: str = ""

    average_fulfillment_hours: str = ""
    previous_year_fulfillment_hours: str = ""
    fulfillment_improvement_percent: str = ""
    same_day_percent: str = ""
    next_day_percent: str = ""
    two_plus_day_percent: str = ""
    on_time_rate: str = ""

    peak_hour: str = ""
    peak_hour_label: str = ""
    sales_at_peak: str = ""

    top_region: str = ""
    top_region_sales: str = ""
    region2_name: str = ""
    region2_sales: str = ""
    region3_name: str = ""
    region3_sales: str = ""
    region4_name: str = ""
    region4_sales: str = ""
    region5_name: str = ""
    region5_sales: str = ""

    funnel_visitors: str = ""
    funnel_product_views: str = ""
    funnel_added_to_cart: str = ""
    funnel_checkout: str = ""
    funnel_purchased: str = ""

    new_customers: str = ""
    returning_customers: str = ""
    new_revenue: str = ""
    returning_revenue: str = ""

    abandoned_carts: str = ""
    recovered_carts: str = ""
    recovered_revenue: str = ""
    recovery_rate: str = ""

    peak_day: str = ""
    peak_date: str = ""
    peak_day_revenue: str = ""
    average_day_revenue: str = ""

    start_aov: str = ""
    end_aov: str = ""
    aov_growth_percent: str = ""

    top_customer_order_count: str = ""
    top_customer_total_spent: str = ""
    top_customer_member_since: str = ""
    top_customer_favorite_category: str = ""

    fastest_selling_product: str = ""
    fastest_selling_sold_out_time: str = ""
    fastest_selling_units_sold: str = ""
    fastest_selling_launch_date: str = ""

    total_reviews: str = ""
    five_star_count: str = ""
    average_rating: str = ""
    top_review_word1: str = ""
    top_review_word2: str = ""
    top_review_word3: str = ""


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------

@dataclass
class SocialFormData(_Form):
    customer_name: str = ""
    currency_code: str = ""
    primary_platform: str = ""

    starting_followers: str = ""
    ending_followers: str = ""
    monthly_followers: str = ""  # "Jan:1000,Feb:1200,..."

    total_impressions: str = ""
    total_reach: str = ""
    total_posts_published: str = ""

    total_likes: str = ""
    total_comments: str = ""
    total_shares: str = ""
    total_saves: str = ""
    avg_engagement_rate: str = ""
    best_engagement_day: str = ""

    top_post1_description: str = ""
    top_post1_metrics: str = ""
    top_post1_url: str = ""
    top_post1_likes: str = ""
    top_post1_comments: str = ""
    top_post2_description: str = ""
    top_post2_metrics: str = ""
    top_post2_url: str = ""
    top_post2_likes: str = ""
    top_post2_comments: str = ""
    top_post3_description: str = ""
    top_post3_metrics: str = ""
    top_post3_url: str = ""
    top_post3_likes: str = ""
    top_post3_comments: str = ""

    best_performing_format: str = ""
    most_viral_post_reach: str = ""
    top_hashtag: str = ""
    best_campaign: str = ""

    top_age_range: str = ""
    gender_split: str = ""
    top_country: str = ""
    top_city: str = ""
    peak_active_hours: str = ""
    audience_interests: str = ""

    net_new_followers: str = ""
    growth_rate: str = ""
    best_growth_month: str = ""
    milestone_reached: str = ""
    notable_collaborations: str = ""
    new_platform_launched: str = ""


def parse_monthly_followers(text: str) -> list[dict]:
    """Parse "Jan:1000,Feb:1200" into month/follower rows.

    Pairs without a month or with a non-positive count are dropped.
    """
    if not text:
        return []
    rows = []
    for pair in text.split(","):
        month, _, value = pair.partition(":")
        month = month.strip()
        followers = parse_form_number(value)
        if month and followers > 0:
            rows.append({"month": month, "followers": followers})
    return rows
