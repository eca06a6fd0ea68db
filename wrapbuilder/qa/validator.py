"""QA validator - checks a derived deck before it is stored or exported.

Deck checks:
- starts with intro, ends with recap
- slide ids are unique
- slide positions follow the deck's canonical order (skips only)
- every platform section header is followed by a slide of that platform
- no payload number is NaN or infinite
- every money payload carries the expected currency code

With the exported ``.pptx`` bytes, the file is read back with python-pptx
and its slide count, dimensions and titles are compared with the deck.

Usage::

    from wrapbuilder.qa import DeckValidator

    result = DeckValidator().validate(slides, currency_code="USD", pptx_bytes=data)
    assert result.passed, result.report()
"""

import io
import math
from dataclasses import dataclass, field
from typing import Any

from pptx import Presentation
from pptx.util import Inches

from ..processor.slides import (
    DECK_RULES,
    GOOGLE_DETAIL_RULES,
    META_DETAIL_RULES,
    slide_key,
)
from ..schema.design_system import DesignSystem
from ..schema.models import Slide, SlideType

PLATFORM_DETAIL_TYPES = {
    "google": {rule.slide_type for rule in GOOGLE_DETAIL_RULES},
    "meta": {rule.slide_type for rule in META_DETAIL_RULES},
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Issue:
    """A single QA issue found during validation."""
    severity: str       # "error" or "warning"
    slide_index: int    # -1 for deck-level issues
    slide_id: str
    category: str       # e.g. "bookends", "order", "currency"
    message: str

    def __str__(self) -> str:
        loc = "deck" if self.slide_index < 0 else f"slide {self.slide_index}"
        if self.slide_id:
            loc += f" ({self.slide_id})"
        return f"[{self.severity.upper()}] {loc}: {self.message}"


@dataclass
class QAResult:
    """Aggregated result of QA validation."""
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def categories(self) -> set[str]:
        return {i.category for i in self.issues}

    def summary(self) -> str:
        """One-line summary string."""
        status = "PASS" if self.passed else "FAIL"
        return (
            f"QA {status}: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)"
        )

    def report(self) -> str:
        """Multi-line report of all issues."""
        lines = [self.summary()]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _non_finite_paths(value: Any, path: str = "") -> list[str]:
    """Payload paths holding NaN or infinite numbers."""
    if isinstance(value, float) and not math.isfinite(value):
        return [path or "<value>"]
    if isinstance(value, dict):
        found = []
        for k, v in value.items():
            found += _non_finite_paths(v, f"{path}.{k}" if path else str(k))
        return found
    if isinstance(value, list):
        found = []
        for i, v in enumerate(value):
            found += _non_finite_paths(v, f"{path}[{i}]")
        return found
    return []


def _all_text_on_slide(slide) -> str:
    """Concatenate all text on a slide for content searches."""
    parts: list[str] = []
    for shape in slide.shapes:
        if shape.has_text_frame:
            parts.append(shape.text_frame.text)
    return " ".join(parts)


def infer_wrap_type(slides: list[Slide]) -> str | None:
    """The first deck type whose positions cover every slide, or None.

    Only bookend-only decks fit several types; their order is the same in all.
    """
    keys = {slide_key(s) for s in slides}
    for wrap_type, rules in DECK_RULES.items():
        if keys <= {rule.key for rule in rules}:
            return wrap_type
    return None


# ---------------------------------------------------------------------------
# DeckValidator
# ---------------------------------------------------------------------------

class DeckValidator:
    """Validates a derived deck and, optionally, its PPTX export.

    Parameters
    ----------
    design : DesignSystem, optional
        Expected slide dimensions for the PPTX read-back.
    """

    def __init__(self, design: DesignSystem | None = None) -> None:
        self.design = design or DesignSystem.default()

    def validate(self, slides: list[Slide], currency_code: str | None = None,
                 pptx_bytes: bytes | None = None,
                 wrap_type: str | None = None) -> QAResult:
        """Run every check.

        Parameters
        ----------
        slides : list[Slide]
            The derived deck.
        currency_code : str, optional
            When given, every payload ``currency`` must equal it.
        pptx_bytes : bytes, optional
            Exported PPTX to compare against the deck.
        wrap_type : str, optional
            Deck type; inferred from the slide types when omitted.
        """
        result = QAResult()
        if not slides:
            result.issues.append(Issue("error", -1, "", "empty", "Deck has no slides"))
            return result

        self._check_bookends(slides, result)
        self._check_unique_ids(slides, result)
        self._check_order(slides, wrap_type or infer_wrap_type(slides), result)
        self._check_sections(slides, result)
        self._check_numbers(slides, result)
        if currency_code is not None:
            self._check_currency(slides, currency_code, result)
        if pptx_bytes is not None:
            self._check_pptx(slides, pptx_bytes, result)
        return result

    # ------------------------------------------------------------------
    # Deck structure
    # ------------------------------------------------------------------

    def _check_bookends(self, slides: list[Slide], result: QAResult) -> None:
        if slides[0].type != SlideType.INTRO:
            result.issues.append(Issue(
                "error", 0, slides[0].id, "bookends",
                f"Deck must start with an intro slide, got {slides[0].type.value}",
            ))
        if slides[-1].type != SlideType.RECAP:
            last = len(slides) - 1
            result.issues.append(Issue(
                "error", last, slides[-1].id, "bookends",
                f"Deck must end with a recap slide, got {slides[-1].type.value}",
            ))

    def _check_unique_ids(self, slides: list[Slide], result: QAResult) -> None:
        seen: set[str] = set()
        for idx, slide in enumerate(slides):
            if slide.id in seen:
                result.issues.append(Issue(
                    "error", idx, slide.id, "duplicate_id", f"Duplicate slide id '{slide.id}'",
                ))
            seen.add(slide.id)

    def _check_order(self, slides: list[Slide], wrap_type: str | None,
                     result: QAResult) -> None:
        if wrap_type is None:
            result.issues.append(Issue(
                "error", -1, "", "order", "Slides do not belong to a single deck type",
            ))
            return
        if wrap_type not in DECK_RULES:
            result.issues.append(Issue(
                "error", -1, "", "order", f"Unknown wrap type '{wrap_type}'",
            ))
            return
        positions = {rule.key: i for i, rule in enumerate(DECK_RULES[wrap_type])}
        last = -1
        for idx, slide in enumerate(slides):
            position = positions.get(slide_key(slide))
            if position is None:
                result.issues.append(Issue(
                    "error", idx, slide.id, "order",
                    f"Slide type {slide_key(slide)} has no position in a {wrap_type} deck",
                ))
                continue
            if position <= last:
                result.issues.append(Issue(
                    "error", idx, slide.id, "order",
                    f"Slide {slide_key(slide)} is out of canonical order",
                ))
            last = max(last, position)

    def _check_sections(self, slides: list[Slide], result: QAResult) -> None:
        for idx, slide in enumerate(slides):
            if slide.type != SlideType.PLATFORM_SECTION:
                continue
            platform = slide.payload.get("platform", "")
            expected = PLATFORM_DETAIL_TYPES.get(platform, set())
            following = slides[idx + 1] if idx + 1 < len(slides) else None
            if following is None or following.type not in expected:
                result.issues.append(Issue(
                    "error", idx, slide.id, "empty_section",
                    f"Section '{platform}' is not followed by any {platform} slide",
                ))

    # ------------------------------------------------------------------
    # Payload values
    # ------------------------------------------------------------------

    def _check_numbers(self, slides: list[Slide], result: QAResult) -> None:
        for idx, slide in enumerate(slides):
            for path in _non_finite_paths(slide.payload):
                result.issues.append(Issue(
                    "error", idx, slide.id, "non_finite", f"Payload value {path} is not finite",
                ))

    def _check_currency(self, slides: list[Slide], currency_code: str,
                        result: QAResult) -> None:
        for idx, slide in enumerate(slides):
            if "currency" not in slide.payload:
                continue
            if slide.payload["currency"] != currency_code:
                result.issues.append(Issue(
                    "error", idx, slide.id, "currency",
                    f"Currency '{slide.payload['currency']}' != expected '{currency_code}'",
                ))

    # ------------------------------------------------------------------
    # PPTX read-back
    # ------------------------------------------------------------------

    def _check_pptx(self, slides: list[Slide], pptx_bytes: bytes, result: QAResult) -> None:
        prs = Presentation(io.BytesIO(pptx_bytes))

        if len(prs.slides) != len(slides):
            result.issues.append(Issue(
                "error", -1, "", "slide_count",
                f"Expected {len(slides)} slides, got {len(prs.slides)}",
            ))
            return

        expected_w = Inches(self.design.width_inches)
        expected_h = Inches(self.design.height_inches)
        if prs.slide_width != expected_w or prs.slide_height != expected_h:
            result.issues.append(Issue(
                "warning", -1, "", "dimensions",
                f"Slide size {prs.slide_width}x{prs.slide_height} != "
                f"expected {expected_w}x{expected_h}",
            ))

        for idx, (slide, pptx_slide) in enumerate(zip(slides, prs.slides)):
            if slide.title not in _all_text_on_slide(pptx_slide):
                result.issues.append(Issue(
                    "error", idx, slide.id, "title", f"Title '{slide.title}' not found on slide",
                ))


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------

def validate_deck(slides: list[Slide], currency_code: str | None = None,
                  pptx_bytes: bytes | None = None) -> QAResult:
    """One-shot convenience: validate a deck and optional PPTX export."""
    return DeckValidator().validate(slides, currency_code, pptx_bytes)
