"""Import errors.

Each carries a user-facing message and aborts the import of one file or
channel only; other channels in a workspace are unaffected.
"""


class WrapImportError(ValueError):
    """An upload could not be turned into channel data."""


class InsufficientDataError(WrapImportError):
    """Too few non-empty rows to hold a header and data."""


class UnsupportedFormatError(WrapImportError):
    """The file is not one of the accepted delimited or spreadsheet formats."""


class UnrecognizedFormatError(WrapImportError):
    """No spend or impressions signal could be found for the platform."""
