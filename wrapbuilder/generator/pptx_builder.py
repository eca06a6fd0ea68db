"""PPTX builder engine - exports a derived Wrapped deck to PowerPoint.

Every ``Slide`` becomes one 16:9 slide on the blank layout:
- title and subtitle on top
- scalar payload fields as KPI tiles
- a native chart when the slide type has one (see ``charts.chart_spec``)
- remaining row lists as a table, or a bullet list for text rows

Intro, recap and platform section slides are rendered as full-bleed title
cards.

Usage::

    from wrapbuilder.generator import PPTXBuilder

    pptx_bytes = PPTXBuilder().build(slides, currency_code="USD")
"""

import io
import logging
import math
from pathlib import Path
from typing import Any

from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.util import Inches, Pt

from ..schema.design_system import DesignSystem, format_payload_value
from ..schema.models import Slide, SlideType
from .charts import Position, add_chart, chart_spec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TITLE_CARD_TYPES = (SlideType.INTRO, SlideType.RECAP, SlideType.PLATFORM_SECTION)

# Payload keys that steer rendering and are never shown as values
_HIDDEN_KEYS = {"currency", "metric", "platform", "color", "url", "icon",
                "is_top_performer", "is_most_efficient", "campaign_id"}

_LABELS = {
    "roas": "ROAS",
    "cpr": "Cost per result",
    "cpa": "Cost per acquisition",
    "cpc": "CPC",
    "cpm": "CPM",
    "ctr": "CTR",
    "clv": "CLV",
    "average_clv": "Average CLV",
    "lowest_cpr": "Lowest cost per result",
    "highest_ctr": "Highest CTR",
    "lowest_cpc": "Lowest CPC",
    "best_cpm": "Best CPM",
}

MAX_KPIS = 8
KPIS_PER_ROW = 4
MAX_TABLE_ROWS = 8
MAX_TABLE_COLUMNS = 6

_MARGIN = 0.6
_BODY_TOP = 2.2


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _hex_to_rgb(hex_color: str) -> RGBColor:
    """Convert '#RRGGBB' hex string to an RGBColor."""
    h = hex_color.lstrip("#")
    return RGBColor(*bytes.fromhex(h))


def _label(key: str) -> str:
    if key in _LABELS:
        return _LABELS[key]
    return key.replace("_", " ").capitalize()


def _is_scalar(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return not (isinstance(value, float) and (math.isnan(value) or math.isinf(value)))
    return isinstance(value, str) and value.strip() != ""


def scalar_fields(payload: dict[str, Any]) -> list[tuple[str, Any]]:
    """Displayable single values of a payload, in payload order."""
    return [(k, v) for k, v in payload.items() if k not in _HIDDEN_KEYS and _is_scalar(v)]


def row_lists(payload: dict[str, Any]) -> list[tuple[str, list[dict]]]:
    """Lists of row dicts in a payload; dict-valued fields are gathered into one list."""
    lists = [(k, v) for k, v in payload.items()
             if isinstance(v, list) and v and all(isinstance(r, dict) for r in v)]
    singles = [v for v in payload.values() if isinstance(v, dict)]
    if singles:
        lists.append(("comparison", singles))
    return lists


def table_columns(rows: list[dict]) -> list[str]:
    first = rows[0]
    return [k for k, v in first.items() if k not in _HIDDEN_KEYS and
            (isinstance(v, (int, float, str)) and not isinstance(v, bool))][:MAX_TABLE_COLUMNS]


# ---------------------------------------------------------------------------
# PPTXBuilder
# ---------------------------------------------------------------------------

class PPTXBuilder:
    """Renders a list of Slides to a PowerPoint file.

    Parameters
    ----------
    design : DesignSystem, optional
        Colours, fonts and slide size; defaults to ``DesignSystem.default()``.
    """

    def __init__(self, design: DesignSystem | None = None) -> None:
        self.design = design or DesignSystem.default()

    def build(self, slides: list[Slide], currency_code: str = "") -> bytes:
        """Build the PPTX and return it as bytes.

        Parameters
        ----------
        slides : list[Slide]
            The derived deck, in order.
        currency_code : str
            Used for money values whose payload carries no ``currency``.
        """
        prs = Presentation()
        prs.slide_width = Inches(self.design.width_inches)
        prs.slide_height = Inches(self.design.height_inches)

        for slide in slides:
            self._build_slide(prs, slide, currency_code)

        buf = io.BytesIO()
        prs.save(buf)
        logger.debug("Rendered %d slides", len(slides))
        return buf.getvalue()

    def build_to_file(self, slides: list[Slide], path: str | Path,
                      currency_code: str = "") -> None:
        """Build the PPTX and write it to a file path."""
        Path(path).write_bytes(self.build(slides, currency_code))

    # ------------------------------------------------------------------
    # Slide builders
    # ------------------------------------------------------------------

    def _build_slide(self, prs: Presentation, slide: Slide, currency_code: str) -> None:
        layout = prs.slide_layouts[6]  # Blank layout
        pptx_slide = prs.slides.add_slide(layout)

        if slide.type == SlideType.PLATFORM_SECTION:
            self._fill_background(pptx_slide, self.design.primary)
        else:
            self._fill_background(pptx_slide, self.design.background)

        if slide.type in TITLE_CARD_TYPES:
            self._render_title_card(pptx_slide, slide)
            return

        currency = slide.payload.get("currency") or currency_code
        self._render_heading(pptx_slide, slide)

        kpis = scalar_fields(slide.payload)[:MAX_KPIS]
        top = _BODY_TOP
        if kpis:
            top = self._render_kpis(pptx_slide, kpis, currency, top)

        bottom_space = self.design.height_inches - _MARGIN - top
        spec = chart_spec(slide)
        if spec is not None and bottom_space > 1.0:
            position = Position(_MARGIN, top, self.design.width_inches - 2 * _MARGIN, bottom_space)
            if add_chart(pptx_slide, spec, position, self.design):
                return

        for _, rows in row_lists(slide.payload):
            if "text" in rows[0]:
                self._render_bullets(pptx_slide, rows, top)
            else:
                self._render_table(pptx_slide, rows, currency, top)
            break

    def _fill_background(self, pptx_slide, color: str) -> None:
        fill = pptx_slide.background.fill
        fill.solid()
        fill.fore_color.rgb = _hex_to_rgb(color)

    def _add_text(self, pptx_slide, text: str, left: float, top: float, width: float,
                  height: float, size: float, color: str, font: str,
                  bold: bool = False, align=PP_ALIGN.LEFT):
        txbox = pptx_slide.shapes.add_textbox(
            Inches(left), Inches(top), Inches(width), Inches(height),
        )
        tf = txbox.text_frame
        tf.word_wrap = True
        p = tf.paragraphs[0]
        p.alignment = align
        run = p.add_run()
        run.text = text
        run.font.name = font
        run.font.size = Pt(size)
        run.font.bold = bold
        run.font.color.rgb = _hex_to_rgb(color)
        return txbox

    # ------------------------------------------------------------------
    # Title cards and headings
    # ------------------------------------------------------------------

    def _render_title_card(self, pptx_slide, slide: Slide) -> None:
        d = self.design
        width = d.width_inches - 2 * _MARGIN
        self._add_text(pptx_slide, slide.title, _MARGIN, 2.4, width, 1.4,
                       d.title_size_pt * 1.4, d.text, d.heading_font, bold=True,
                       align=PP_ALIGN.CENTER)
        if slide.subtitle:
            self._add_text(pptx_slide, slide.subtitle, _MARGIN, 3.9, width, 0.8,
                           d.subtitle_size_pt, d.muted_text, d.body_font,
                           align=PP_ALIGN.CENTER)
        handle = slide.payload.get("handle")
        if slide.type == SlideType.RECAP and handle:
            self._add_text(pptx_slide, f"@{handle}", _MARGIN, 4.9, width, 0.6,
                           d.body_size_pt, d.accent, d.body_font, align=PP_ALIGN.CENTER)

    def _render_heading(self, pptx_slide, slide: Slide) -> None:
        d = self.design
        width = d.width_inches - 2 * _MARGIN
        self._add_text(pptx_slide, slide.title, _MARGIN, 0.4, width, 0.9,
                       d.title_size_pt, d.text, d.heading_font, bold=True)
        if slide.subtitle:
            self._add_text(pptx_slide, slide.subtitle, _MARGIN, 1.3, width, 0.6,
                           d.subtitle_size_pt, d.muted_text, d.body_font)

    # ------------------------------------------------------------------
    # KPI rendering
    # ------------------------------------------------------------------

    def _render_kpis(self, pptx_slide, kpis: list[tuple[str, Any]], currency: str,
                     top: float) -> float:
        """Render KPI tiles in rows; returns the top of the space left below."""
        d = self.design
        tile_width = (d.width_inches - 2 * _MARGIN) / KPIS_PER_ROW
        tile_height = 1.2
        for idx, (key, value) in enumerate(kpis):
            row, col = divmod(idx, KPIS_PER_ROW)
            left = _MARGIN + col * tile_width
            tile_top = top + row * tile_height
            txbox = pptx_slide.shapes.add_textbox(
                Inches(left), Inches(tile_top), Inches(tile_width), Inches(tile_height),
            )
            tf = txbox.text_frame
            tf.word_wrap = True

            p_value = tf.paragraphs[0]
            p_value.alignment = PP_ALIGN.CENTER
            run_value = p_value.add_run()
            run_value.text = format_payload_value(key, value, currency)
            run_value.font.name = d.heading_font
            run_value.font.size = Pt(d.kpi_value_size_pt)
            run_value.font.bold = True
            run_value.font.color.rgb = _hex_to_rgb(d.primary)

            p_label = tf.add_paragraph()
            p_label.alignment = PP_ALIGN.CENTER
            run_label = p_label.add_run()
            run_label.text = _label(key)
            run_label.font.name = d.body_font
            run_label.font.size = Pt(d.kpi_label_size_pt)
            run_label.font.color.rgb = _hex_to_rgb(d.muted_text)

        rows = (len(kpis) + KPIS_PER_ROW - 1) // KPIS_PER_ROW
        return top + rows * tile_height + 0.2

    # ------------------------------------------------------------------
    # Row lists
    # ------------------------------------------------------------------

    def _render_bullets(self, pptx_slide, rows: list[dict], top: float) -> None:
        d = self.design
        txbox = pptx_slide.shapes.add_textbox(
            Inches(_MARGIN), Inches(top),
            Inches(d.width_inches - 2 * _MARGIN), Inches(d.height_inches - _MARGIN - top),
        )
        tf = txbox.text_frame
        tf.word_wrap = True
        for idx, row in enumerate(rows[:MAX_TABLE_ROWS]):
            p = tf.paragraphs[0] if idx == 0 else tf.add_paragraph()
            run = p.add_run()
            icon = row.get("icon")
            run.text = f"{icon}  {row['text']}" if icon else str(row["text"])
            run.font.name = d.body_font
            run.font.size = Pt(d.body_size_pt + 4)
            run.font.color.rgb = _hex_to_rgb(d.text)
            p.space_after = Pt(10)

    def _render_table(self, pptx_slide, rows: list[dict], currency: str, top: float) -> None:
        columns = table_columns(rows)
        if not columns:
            return
        rows = rows[:MAX_TABLE_ROWS]
        d = self.design
        height = min(0.45 * (len(rows) + 1), d.height_inches - _MARGIN - top)

        table_shape = pptx_slide.shapes.add_table(
            len(rows) + 1, len(columns),
            Inches(_MARGIN), Inches(top),
            Inches(d.width_inches - 2 * _MARGIN), Inches(height),
        )
        table = table_shape.table

        for col_idx, key in enumerate(columns):
            cell = table.cell(0, col_idx)
            cell.text = _label(key)
            self._style_table_cell(cell, is_header=True)

        for row_idx, row in enumerate(rows):
            for col_idx, key in enumerate(columns):
                cell = table.cell(row_idx + 1, col_idx)
                value = row.get(key)
                cell.text = format_payload_value(key, value, currency) if value is not None else ""
                self._style_table_cell(cell, is_header=False)

    def _style_table_cell(self, cell, is_header: bool = False) -> None:
        d = self.design
        cell.vertical_anchor = MSO_ANCHOR.MIDDLE
        cell.fill.solid()
        cell.fill.fore_color.rgb = _hex_to_rgb(d.primary if is_header else d.surface)

        for paragraph in cell.text_frame.paragraphs:
            for run in paragraph.runs:
                run.font.name = d.body_font
                run.font.size = Pt(11.0)
                run.font.bold = is_header
                run.font.color.rgb = _hex_to_rgb(d.background if is_header else d.text)


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------

def build_presentation(slides: list[Slide], currency_code: str = "",
                       design: DesignSystem | None = None) -> bytes:
    """One-shot convenience: build a PPTX from a derived deck."""
    return PPTXBuilder(design).build(slides, currency_code)
