"""Schema package - typed models shared by every stage of the pipeline.

- models.py: Platform, ResultType, channel/campaign/daily metrics, aggregate, Slide
- forms.py: Manual override forms (ads, e-commerce, social)
- warehouse.py: Pre-aggregated warehouse input and monthly highlight labels
- design_system.py: Value formatting and deck palette
- loader.py: YAML serialization
"""

from .design_system import (
    DesignSystem,
    currency_symbol,
    format_currency,
    format_integer,
    format_multiplier,
    format_number,
    format_payload_value,
    format_percentage,
)
from .forms import AdsFormData, EcommFormData, SocialFormData, parse_form_number
from .loader import (
    load_channels,
    load_form,
    load_slides,
    load_warehouse,
    load_yaml,
    save_channels,
    save_form,
    save_slides,
    save_yaml,
)
from .models import (
    AggregatedAdsData,
    CampaignData,
    ChannelData,
    DailyMetrics,
    MonthHighlight,
    MonthlyMetrics,
    Platform,
    ResultsByType,
    ResultType,
    Slide,
    SlideType,
)
from .warehouse import WarehouseAdsData, label_google_months, label_meta_months

__all__ = [
    # Models
    "AggregatedAdsData",
    "CampaignData",
    "ChannelData",
    "DailyMetrics",
    "MonthHighlight",
    "MonthlyMetrics",
    "Platform",
    "ResultsByType",
    "ResultType",
    "Slide",
    "SlideType",
    # Forms
    "AdsFormData",
    "EcommFormData",
    "SocialFormData",
    "parse_form_number",
    # Warehouse
    "WarehouseAdsData",
    "label_google_months",
    "label_meta_months",
    # Loader
    "load_channels",
    "load_form",
    "load_slides",
    "load_warehouse",
    "load_yaml",
    "save_channels",
    "save_form",
    "save_slides",
    "save_yaml",
    # Formatting
    "DesignSystem",
    "currency_symbol",
    "format_currency",
    "format_integer",
    "format_multiplier",
    "format_number",
    "format_payload_value",
    "format_percentage",
]
