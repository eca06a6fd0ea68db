"""Design system utilities - value formatting and deck palette.

Formatting rules used on every rendered slide:
- Currency: symbol for the ISO code when known, otherwise "CODE 1.2k";
  <1k=XXX, 1k-999k=X.Xk, 1m+=X.Xm
- Numbers: <1k=XXX, 1k-999k=X.Xk, 1m+=X.Xm
- Percentages: X.X%
- Multipliers (ROAS): X.Xx

Money values are never converted; the code the caller supplies is shown as-is.
"""

import math
from dataclasses import dataclass

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "INR": "₹",
    "KRW": "₩",
    "BRL": "R$",
    "CHF": "CHF ",
}


def _missing(value) -> bool:
    return value is None or (isinstance(value, float) and (math.isnan(value) or math.isinf(value)))


def currency_symbol(currency_code: str | None) -> str:
    """Prefix used for money values in ``currency_code``.

    Unknown codes are shown as the code followed by a space; an empty code
    gives no prefix at all.
    """
    if not currency_code:
        return ""
    code = currency_code.strip().upper()
    if code in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[code]
    return f"{code} "


def _abbreviate(v: float, decimals_small: int = 0) -> str:
    if v < 1_000:
        return f"{v:,.{decimals_small}f}"
    if v < 999_950:
        formatted = f"{v / 1_000:.1f}"
        if formatted.endswith(".0"):
            formatted = formatted[:-2]
        return f"{formatted}k"
    formatted = f"{v / 1_000_000:.1f}"
    if formatted.endswith(".0"):
        formatted = formatted[:-2]
    return f"{formatted}m"


def format_currency(value: float | int | None, currency_code: str | None = "") -> str:
    """Format a money value using tiered abbreviation."""
    if _missing(value):
        return "N/A"
    sign = "-" if value < 0 else ""
    v = abs(value)
    body = f"{v:,.2f}" if 0 < v < 10 and v != int(v) else _abbreviate(v)
    return f"{sign}{currency_symbol(currency_code)}{body}"


def format_number(value: float | int | None) -> str:
    """Format a count using tiered abbreviation."""
    if _missing(value):
        return "N/A"
    sign = "-" if value < 0 else ""
    return f"{sign}{_abbreviate(abs(value))}"


def format_integer(value: float | int | None) -> str:
    """Format a whole number with comma separators."""
    if _missing(value):
        return "N/A"
    return f"{int(round(value)):,}"


def format_percentage(value: float | int | None) -> str:
    """Format a rate already expressed in percent as X.X%."""
    if _missing(value):
        return "N/A"
    return f"{value:.1f}%"


def format_multiplier(value: float | int | None) -> str:
    """Format a return ratio as X.Xx."""
    if _missing(value):
        return "N/A"
    return f"{value:.1f}x"


# Payload keys whose values are rendered with a specific formatter.
_MONEY_KEYS = {"spend", "revenue", "cpr", "cpc", "cpm", "value", "conversion_value",
               "conversions_value", "cost_per_result", "lowest_cpr", "lowest_cpc",
               "best_cpm", "total_spend", "total_revenue"}
_RATIO_KEYS = {"roas", "blended_roas"}
_PERCENT_KEYS = {"ctr", "highest_ctr", "average_ctr"}


def format_payload_value(key: str, value, currency_code: str | None = "") -> str:
    """Format one payload field for display based on its key."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return str(value) if value is not None else "N/A"
    if key in _MONEY_KEYS:
        return format_currency(value, currency_code)
    if key in _RATIO_KEYS:
        return format_multiplier(value)
    if key in _PERCENT_KEYS:
        return format_percentage(value)
    return format_number(value)


# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------

@dataclass
class DesignSystem:
    """Colours and fonts applied by the deck generator."""
    background: str = "#121212"
    surface: str = "#1E1E2E"
    primary: str = "#1DB954"
    accent: str = "#F573A0"
    text: str = "#FFFFFF"
    muted_text: str = "#B3B3B3"
    heading_font: str = "Montserrat"
    body_font: str = "Arial"
    title_size_pt: float = 36.0
    subtitle_size_pt: float = 18.0
    kpi_value_size_pt: float = 30.0
    kpi_label_size_pt: float = 12.0
    body_size_pt: float = 14.0
    caption_size_pt: float = 10.0
    chart_colors: tuple[str, ...] = ("#1DB954", "#F573A0", "#509BF5", "#FFC864", "#AF2896")

    # 16:9
    width_inches: float = 13.333
    height_inches: float = 7.5

    @classmethod
    def default(cls) -> "DesignSystem":
        return cls()
