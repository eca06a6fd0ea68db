"""Chart generation module - renders chart shapes on PowerPoint slides.

Slides whose payload carries a series (channels, months, devices, engagement
split, funnel stages, follower history) get a native chart. ``chart_spec``
decides which payload list feeds the chart; ``add_chart`` draws it.

Supported chart types:
    COLUMN_CLUSTERED - one or more series side by side
    LINE             - follower history
    DOUGHNUT         - single series, one slice per category

Usage:
    from wrapbuilder.generator.charts import add_chart, chart_spec

    spec = chart_spec(slide)
    if spec is not None:
        add_chart(pptx_slide, spec, position, design)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from pptx.chart.data import CategoryChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE, XL_LEGEND_POSITION
from pptx.util import Inches, Pt

from ..schema.design_system import DesignSystem
from ..schema.models import Slide, SlideType


# ---------------------------------------------------------------------------
# Chart specification
# ---------------------------------------------------------------------------

COLUMN = "column"
LINE = "line"
DOUGHNUT = "doughnut"

_CHART_TYPE_MAP = {
    COLUMN: XL_CHART_TYPE.COLUMN_CLUSTERED,
    LINE: XL_CHART_TYPE.LINE,
    DOUGHNUT: XL_CHART_TYPE.DOUGHNUT,
}


@dataclass
class ChartSpec:
    """What to draw: categories, named value series and optional colours."""
    chart_type: str
    categories: list[str]
    series: list[tuple[str, list[float]]]
    colors: list[str | None] = field(default_factory=list)


@dataclass
class Position:
    left: float
    top: float
    width: float
    height: float


def _safe_value(value: Any) -> float:
    """Coerce a value to a safe float for chart data.  None/NaN/inf -> 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return 0.0
        return float(value)
    return 0.0


def _from_rows(chart_type: str, rows: list[dict], label_key: str,
               series: list[tuple[str, str]], color_key: str | None = None) -> ChartSpec | None:
    if not rows:
        return None
    return ChartSpec(
        chart_type=chart_type,
        categories=[str(r.get(label_key, "")) for r in rows],
        series=[(name, [_safe_value(r.get(key)) for r in rows]) for name, key in series],
        colors=[r.get(color_key) for r in rows] if color_key else [],
    )


def _month_label(row: dict) -> dict:
    return {**row, "label": str(row.get("month_start", ""))[:7]}


def chart_spec(slide: Slide) -> ChartSpec | None:
    """Chart for a slide, or None when the slide type has no chart."""
    p = slide.payload
    t = slide.type
    if t == SlideType.CHANNEL_COMPARISON:
        return _from_rows(COLUMN, p.get("channels", []), "name",
                          [("Spend", "spend"), ("Revenue", "revenue")])
    if t in (SlideType.DEVICE_BREAKDOWN, SlideType.META_ADS_DEVICE_BREAKDOWN):
        return _from_rows(DOUGHNUT, p.get("devices", []), "device", [("Spend", "spend")])
    if t == SlideType.GOOGLE_ADS_MONTHLY:
        return _from_rows(COLUMN, [_month_label(r) for r in p.get("months", [])], "label",
                          [("ROAS", "roas")])
    if t == SlideType.META_ADS_MONTHLY:
        return _from_rows(COLUMN, [_month_label(r) for r in p.get("months", [])], "label",
                          [("Results", "results")])
    if t == SlideType.META_ADS_BEST_DAY:
        return _from_rows(COLUMN, p.get("days", []), "day_of_week", [("Results", "results")])
    if t == SlideType.ENGAGEMENT_DONUT:
        return _from_rows(DOUGHNUT, p.get("items", []), "name", [("Engagement", "value")],
                          color_key="color")
    if t == SlideType.FOLLOWER_GROWTH:
        return _from_rows(LINE, p.get("monthly_data", []), "month", [("Followers", "followers")])
    if t == SlideType.FUNNEL:
        stages = [
            {"stage": label, "count": p.get(key)}
            for label, key in (("Visitors", "visitors"), ("Product views", "product_views"),
                               ("Added to cart", "added_to_cart"), ("Checkout", "checkout"),
                               ("Purchased", "purchased"))
        ]
        if all(_safe_value(s["count"]) == 0 for s in stages):
            return None
        return _from_rows(COLUMN, stages, "stage", [("Customers", "count")])
    return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _hex_to_rgb(hex_color: str) -> RGBColor:
    """Convert a hex color string (#RRGGBB) to an RGBColor."""
    hex_color = hex_color.lstrip("#")
    return RGBColor(
        int(hex_color[0:2], 16),
        int(hex_color[2:4], 16),
        int(hex_color[4:6], 16),
    )


def _build_chart_data(spec: ChartSpec) -> CategoryChartData | None:
    """Chart data for a spec, or None when every value is zero."""
    if not spec.categories or not spec.series:
        return None
    if all(v == 0.0 for _, values in spec.series for v in values):
        return None

    chart_data = CategoryChartData()
    chart_data.categories = spec.categories
    series = spec.series[:1] if spec.chart_type == DOUGHNUT else spec.series
    for name, values in series:
        chart_data.add_series(name, tuple(values))
    return chart_data


# ---------------------------------------------------------------------------
# Chart styling
# ---------------------------------------------------------------------------

def _apply_series_colors(chart, spec: ChartSpec, design: DesignSystem) -> None:
    """Colour doughnut slices per point and column/line series per series."""
    plot = chart.plots[0]
    palette = design.chart_colors

    if spec.chart_type == DOUGHNUT:
        series_obj = plot.series[0]
        for idx in range(len(spec.categories)):
            color = (spec.colors[idx] if idx < len(spec.colors) else None) or \
                palette[idx % len(palette)]
            point = series_obj.points[idx]
            point.format.fill.solid()
            point.format.fill.fore_color.rgb = _hex_to_rgb(color)
        return

    for idx, plot_series in enumerate(plot.series):
        rgb = _hex_to_rgb(palette[idx % len(palette)])
        if spec.chart_type == LINE:
            plot_series.format.line.color.rgb = rgb
        else:
            plot_series.format.fill.solid()
            plot_series.format.fill.fore_color.rgb = rgb


def _apply_chart_style(chart, spec: ChartSpec, design: DesignSystem) -> None:
    """Apply general styling: font, legend visibility and position."""
    chart.font.name = design.body_font
    chart.font.size = Pt(design.caption_size_pt)
    chart.font.color.rgb = _hex_to_rgb(design.muted_text)

    if spec.chart_type == DOUGHNUT or len(spec.series) > 1:
        chart.has_legend = True
        chart.legend.include_in_layout = False
        chart.legend.position = XL_LEGEND_POSITION.BOTTOM
        chart.legend.font.name = design.body_font
        chart.legend.font.size = Pt(design.caption_size_pt)
    else:
        chart.has_legend = False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def add_chart(slide, spec: ChartSpec, position: Position, design: DesignSystem) -> bool:
    """Add a chart shape to a slide.

    Args:
        slide: python-pptx Slide object.
        spec: What to draw.
        position: Where to draw it, in inches.
        design: DesignSystem for styling.

    Returns:
        True if the chart was added, False if skipped because all values are zero.

    Raises:
        ValueError: If the spec's chart type is unknown.
    """
    if spec.chart_type not in _CHART_TYPE_MAP:
        raise ValueError(f"Unknown chart type '{spec.chart_type}'")

    chart_data = _build_chart_data(spec)
    if chart_data is None:
        return False

    graphic_frame = slide.shapes.add_chart(
        _CHART_TYPE_MAP[spec.chart_type],
        Inches(position.left),
        Inches(position.top),
        Inches(position.width),
        Inches(position.height),
        chart_data,
    )
    chart = graphic_frame.chart

    _apply_series_colors(chart, spec, design)
    _apply_chart_style(chart, spec, design)
    return True
