"""Presentation generator package - PPTX export of a derived deck.

Modules:
    pptx_builder: Slide-by-slide PPTX rendering
    charts: Native charts for series-bearing slides (column, line, doughnut)
"""

from .charts import ChartSpec, add_chart, chart_spec
from .pptx_builder import PPTXBuilder, build_presentation

__all__ = [
    "ChartSpec",
    "PPTXBuilder",
    "add_chart",
    "build_presentation",
    "chart_spec",
]
