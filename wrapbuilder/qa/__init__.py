"""QA validation package for Wrap Builder.

Validates derived decks (bookends, canonical order, unique ids, finite
numbers, currency pass-through) and their PPTX exports.
"""

from .validator import (
    DeckValidator,
    Issue,
    QAResult,
    infer_wrap_type,
    validate_deck,
)

__all__ = [
    "DeckValidator",
    "Issue",
    "QAResult",
    "infer_wrap_type",
    "validate_deck",
]
