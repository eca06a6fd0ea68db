"""Wrap Builder: year-in-review ("Wrapped") decks from advertising data.

Sub-packages:
    schema: Data model, override forms, warehouse shapes, formatting, YAML IO
    processor: Upload parsing, column resolution, aggregation, slide derivation
    generator: python-pptx export of a derived deck
    qa: Deck validation
"""

__version__ = "0.4.0"
