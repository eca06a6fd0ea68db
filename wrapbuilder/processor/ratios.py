"""Zero-guarded ad ratios.

Every ratio in the pipeline goes through these helpers: a zero, negative or
missing denominator, or a non-finite result, yields exactly 0.0.
"""

import math


def safe_divide(numerator, denominator, default: float = 0.0) -> float:
    """Divide, returning ``default`` instead of an error, NaN or infinity."""
    if numerator is None or denominator is None:
        return default
    if isinstance(denominator, float) and math.isnan(denominator):
        return default
    if denominator <= 0:
        return default
    result = numerator / denominator
    if not math.isfinite(result):
        return default
    return float(result)


def roas(revenue, spend) -> float:
    return safe_divide(revenue, spend)


def cpr(spend, results) -> float:
    """Cost per result."""
    return safe_divide(spend, results)


def cpm(spend, impressions) -> float:
    return safe_divide(spend * 1000, impressions)


def cpc(spend, clicks) -> float:
    return safe_divide(spend, clicks)


def ctr(clicks, impressions) -> float:
    """Click-through rate in percent."""
    return safe_divide(clicks * 100, impressions)
