"""Tabular import parser.

Turns an uploaded ad-platform export into a header row plus a list of
row dicts of raw strings. Handles the shapes platforms actually export:
- Delimited text (.csv, .tsv, .txt) with comma, tab, semicolon or pipe
  separators, UTF-8 or UTF-16 (BOM)
- Spreadsheets (.xlsx, .xlsm), first sheet only

Exports often carry report titles, date ranges or blank lines above the real
header, so the header row is found by scoring candidate rows against known
metric keywords rather than assumed to be the first line.
"""

import io
import logging
import math
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from ..schema.models import Platform
from .columns import Metric, resolve_column
from .errors import InsufficientDataError, UnsupportedFormatError

logger = logging.getLogger(__name__)

HEADER_SCAN_LIMIT = 20
DELIMITERS = (",", "\t", ";", "|")
HEADER_KEYWORDS = (
    "campaign", "clicks", "impr", "impressions", "cost", "spend",
    "conversions", "conv", "ctr", "cpc", "cpm", "revenue", "results",
)
# Extra score per platform column (campaign, spend, impressions) a row resolves
PLATFORM_HEADER_BONUS = 2

DELIMITED_FORMATS = ("csv", "tsv", "txt")
SPREADSHEET_FORMATS = ("xlsx", "xlsm")


@dataclass
class ParsedTable:
    headers: list[str]
    rows: list[dict[str, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------

_NUMBER_NOISE = re.compile(r"[$€£¥₹,%\s]")
_LEADING_FLOAT = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")


def parse_number(value) -> float:
    """Parse a numeric cell from a platform export.

    Currency symbols, thousands separators, percent signs and whitespace are
    stripped before parsing; the leading number is used.

    Examples:
        "$1,234.50" -> 1234.5
        "2.35%"     -> 2.35
        " 1 200 "   -> 1200.0
        "--"        -> 0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else 0.0
    cleaned = _NUMBER_NOISE.sub("", str(value))
    match = _LEADING_FLOAT.match(cleaned)
    if not match:
        return 0.0
    f = float(match.group(0))
    return f if math.isfinite(f) else 0.0


def normalize_date(value) -> str | None:
    """Normalize a date cell to ``YYYY-MM-DD``, or None when unparsable.

    An embedded ISO date is taken literally; anything else goes through the
    generic pandas parser.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    match = _ISO_DATE.search(text)
    if match:
        return f"{match.group(1)}-{match.group(2)}-{match.group(3)}"
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.strftime("%Y-%m-%d")


# ---------------------------------------------------------------------------
# Header detection
# ---------------------------------------------------------------------------

def detect_delimiter(line: str) -> str:
    """Pick the delimiter that splits ``line`` into the most fields."""
    best, most = DELIMITERS[0], 0
    for delim in DELIMITERS:
        count = len(line.split(delim))
        if count > most:
            best, most = delim, count
    return best


def split_delimited_line(line: str, delimiter: str) -> list[str]:
    """Split one line on ``delimiter``, honouring double quotes.

    Quotes toggle the inside-quotes state and are not kept in the value.
    """
    cells = []
    current = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    cells.append("".join(current).strip())
    return cells


def keyword_score(cells: list[str]) -> int:
    """Count cells that contain at least one header keyword."""
    score = 0
    for cell in cells:
        lower = cell.lower()
        if lower and any(k in lower for k in HEADER_KEYWORDS):
            score += 1
    return score


# ---------------------------------------------------------------------------
# Delimited text
# ---------------------------------------------------------------------------

def decode_text(data: bytes) -> str:
    """Decode upload bytes as UTF-16 when a UTF-16 BOM is present, else UTF-8."""
    if data[:2] in (b"\xff\xfe", b"\xfe\xff"):
        return data.decode("utf-16", errors="replace")
    return data.decode("utf-8-sig", errors="replace")


def parse_delimited(text: str) -> ParsedTable:
    """Parse delimited text into headers and row dicts."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise InsufficientDataError("File must have at least a header row and one data row")

    header_index = 0
    delimiter = detect_delimiter(lines[0])
    best_score = 0
    for i, line in enumerate(lines[:HEADER_SCAN_LIMIT]):
        line_delim = detect_delimiter(line)
        cells = split_delimited_line(line, line_delim)
        if len(cells) < 2:
            continue
        score = keyword_score(cells)
        if score > best_score:
            best_score, header_index, delimiter = score, i, line_delim

    logger.debug("Delimited upload: delimiter=%r header row=%d", delimiter, header_index)

    headers = split_delimited_line(lines[header_index], delimiter)
    rows = []
    for line in lines[header_index + 1:]:
        values = split_delimited_line(line, delimiter)
        rows.append({h: (values[i] if i < len(values) else "") for i, h in enumerate(headers)})
    return ParsedTable(headers=headers, rows=rows)


# ---------------------------------------------------------------------------
# Spreadsheets
# ---------------------------------------------------------------------------

def _cell_text(value) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_spreadsheet(data: bytes, platform: Platform = Platform.OTHER) -> ParsedTable:
    """Parse the first sheet of a workbook into headers and row dicts.

    Header rows that resolve the platform's own campaign, spend and
    impressions columns score extra, so the platform header beats a generic
    report title above it.
    """
    try:
        frame = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None,
                              dtype=object, engine="openpyxl")
    except (zipfile.BadZipFile, ValueError, KeyError, OSError) as e:
        raise UnsupportedFormatError(f"Could not read the spreadsheet: {e}") from e
    grid = [[_cell_text(v) for v in row] for row in frame.itertuples(index=False)]
    non_empty = [row for row in grid if any(row)]
    if len(non_empty) < 2:
        raise InsufficientDataError("File must have at least a header row and one data row")

    header_index = 0
    best_score = 0
    for i, row in enumerate(grid[:HEADER_SCAN_LIMIT]):
        if not any(row):
            continue
        score = keyword_score(row)
        for metric in (Metric.CAMPAIGN_NAME, Metric.SPEND, Metric.IMPRESSIONS):
            if resolve_column(row, metric, platform) is not None:
                score += PLATFORM_HEADER_BONUS
        if score > best_score:
            best_score, header_index = score, i

    headers = grid[header_index]
    logger.debug("Spreadsheet upload: header row=%d headers=%s", header_index, headers)

    rows = []
    for row in grid[header_index + 1:]:
        if not any(row):
            continue
        rows.append({h: (row[i] if i < len(row) else "") for i, h in enumerate(headers)})
    return ParsedTable(headers=headers, rows=rows)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def upload_format(filename_or_format: str) -> str:
    """Normalize a filename or bare extension to a lowercase format key."""
    text = str(filename_or_format).strip().lower()
    suffix = Path(text).suffix
    return suffix.lstrip(".") if suffix else text.lstrip(".")


def parse_upload(data: bytes, filename_or_format: str,
                 platform: Platform = Platform.OTHER) -> ParsedTable:
    """Parse uploaded bytes according to their file format.

    Raises:
        UnsupportedFormatError: The format is not delimited text or xlsx/xlsm.
        InsufficientDataError: No header plus data rows could be found.
    """
    fmt = upload_format(filename_or_format)
    if fmt in DELIMITED_FORMATS:
        table = parse_delimited(decode_text(data))
    elif fmt in SPREADSHEET_FORMATS:
        table = parse_spreadsheet(data, platform)
    else:
        raise UnsupportedFormatError(
            "Please upload a CSV or Excel file "
            f"({', '.join('.' + f for f in DELIMITED_FORMATS + SPREADSHEET_FORMATS)})"
        )
    if not table.rows:
        raise InsufficientDataError("No data rows found in the file")
    return table
