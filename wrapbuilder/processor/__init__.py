"""Processor package - from uploaded exports to derived slides.

- ingestion.py: Upload parsing (delimited text, spreadsheets) and header detection
- columns.py: Per-platform column resolution
- channel.py: Row aggregation into one ChannelData
- transform.py: Cross-channel aggregation and the channel workspace
- slides.py: Rule-table slide derivation
"""

from .channel import ChannelImport, aggregate_rows, import_channel
from .columns import (
    COLUMN_MAPPINGS,
    ColumnMatch,
    ColumnResolution,
    Confidence,
    Metric,
    resolve_column,
    resolve_columns,
)
from .errors import (
    InsufficientDataError,
    UnrecognizedFormatError,
    UnsupportedFormatError,
    WrapImportError,
)
from .ingestion import ParsedTable, normalize_date, parse_number, parse_upload
from .slides import (
    DECK_RULES,
    SlideRule,
    canonical_order,
    derive_ads_slides,
    derive_ecommerce_slides,
    derive_slides,
    derive_social_slides,
    slide_key,
)
from .transform import AdsWorkspace, aggregate_channels

__all__ = [
    "ChannelImport",
    "aggregate_rows",
    "import_channel",
    "COLUMN_MAPPINGS",
    "ColumnMatch",
    "ColumnResolution",
    "Confidence",
    "Metric",
    "resolve_column",
    "resolve_columns",
    "InsufficientDataError",
    "UnrecognizedFormatError",
    "UnsupportedFormatError",
    "WrapImportError",
    "ParsedTable",
    "normalize_date",
    "parse_number",
    "parse_upload",
    "DECK_RULES",
    "SlideRule",
    "canonical_order",
    "derive_ads_slides",
    "derive_ecommerce_slides",
    "derive_slides",
    "derive_social_slides",
    "slide_key",
    "AdsWorkspace",
    "aggregate_channels",
]
