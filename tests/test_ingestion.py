"""Tests for the tabular import parser."""

import io

import pytest
from openpyxl import Workbook

from wrapbuilder.processor.errors import (
    InsufficientDataError,
    UnsupportedFormatError,
    WrapImportError,
)
from wrapbuilder.processor.ingestion import (
    decode_text,
    detect_delimiter,
    keyword_score,
    normalize_date,
    parse_delimited,
    parse_number,
    parse_spreadsheet,
    parse_upload,
    split_delimited_line,
    upload_format,
)
from wrapbuilder.schema.models import Platform


def _xlsx(rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# parse_number
# ---------------------------------------------------------------------------

class TestParseNumber:
    def test_plain_integer(self):
        assert parse_number("42") == 42.0

    def test_currency_and_thousands(self):
        assert parse_number("$1,234.50") == 1234.5

    def test_other_currency_symbols(self):
        assert parse_number("€99") == 99.0
        assert parse_number("£1,000") == 1000.0

    def test_percent(self):
        assert parse_number("2.35%") == 2.35

    def test_inner_whitespace(self):
        assert parse_number(" 1 200 ") == 1200.0

    def test_placeholder_dashes(self):
        assert parse_number("--") == 0.0

    def test_empty(self):
        assert parse_number("") == 0.0

    def test_none(self):
        assert parse_number(None) == 0.0

    def test_negative(self):
        assert parse_number("-15.5") == -15.5

    def test_leading_number_used(self):
        assert parse_number("12abc") == 12.0

    def test_numeric_passthrough(self):
        assert parse_number(7) == 7.0
        assert parse_number(2.5) == 2.5

    def test_nan_and_inf_are_zero(self):
        assert parse_number(float("nan")) == 0.0
        assert parse_number(float("inf")) == 0.0

    def test_bool_is_zero(self):
        assert parse_number(True) == 0.0


# ---------------------------------------------------------------------------
# normalize_date
# ---------------------------------------------------------------------------

class TestNormalizeDate:
    def test_iso_date(self):
        assert normalize_date("2024-03-05") == "2024-03-05"

    def test_iso_datetime_keeps_date(self):
        assert normalize_date("2024-03-05 13:45:00") == "2024-03-05"

    def test_embedded_iso_date(self):
        assert normalize_date("Week of 2024-03-04") == "2024-03-04"

    def test_generic_format(self):
        assert normalize_date("March 5, 2024") == "2024-03-05"

    def test_empty(self):
        assert normalize_date("") is None
        assert normalize_date("   ") is None
        assert normalize_date(None) is None

    def test_unparsable(self):
        assert normalize_date("not a date") is None


# ---------------------------------------------------------------------------
# Line splitting
# ---------------------------------------------------------------------------

class TestDelimiters:
    def test_comma(self):
        assert detect_delimiter("a,b,c") == ","

    def test_tab(self):
        assert detect_delimiter("a\tb\tc") == "\t"

    def test_semicolon(self):
        assert detect_delimiter("a;b;c") == ";"

    def test_pipe(self):
        assert detect_delimiter("a|b|c|d") == "|"

    def test_most_fields_wins(self):
        assert detect_delimiter("a;b;c,d") == ";"

    def test_quoted_delimiter_kept(self):
        assert split_delimited_line('"Brand, Search",100', ",") == ["Brand, Search", "100"]

    def test_cells_trimmed(self):
        assert split_delimited_line(" a , b ", ",") == ["a", "b"]

    def test_trailing_empty_cell(self):
        assert split_delimited_line("a,b,", ",") == ["a", "b", ""]


class TestKeywordScore:
    def test_counts_matching_cells(self):
        assert keyword_score(["Campaign", "Cost", "Impr.", "Notes"]) == 3

    def test_blank_cells_ignored(self):
        assert keyword_score(["", "  "]) == 0

    def test_case_insensitive(self):
        assert keyword_score(["CLICKS"]) == 1


# ---------------------------------------------------------------------------
# Delimited text
# ---------------------------------------------------------------------------

class TestParseDelimited:
    def test_simple(self):
        table = parse_delimited("Campaign,Cost\nBrand,10\nGeneric,20\n")
        assert table.headers == ["Campaign", "Cost"]
        assert table.rows == [
            {"Campaign": "Brand", "Cost": "10"},
            {"Campaign": "Generic", "Cost": "20"},
        ]

    def test_preamble_lines_skipped(self):
        text = (
            "Campaign performance report\n"
            "January 1, 2024 - December 31, 2024\n"
            "\n"
            "Campaign,Cost,Impressions\n"
            "Brand,10,100\n"
        )
        table = parse_delimited(text)
        assert table.headers == ["Campaign", "Cost", "Impressions"]
        assert len(table.rows) == 1

    def test_header_falls_back_to_first_line(self):
        table = parse_delimited("a,b\n1,2\n")
        assert table.headers == ["a", "b"]
        assert table.rows == [{"a": "1", "b": "2"}]

    def test_tab_separated(self):
        table = parse_delimited("Campaign\tCost\nBrand\t5\n")
        assert table.rows[0]["Cost"] == "5"

    def test_short_rows_padded(self):
        table = parse_delimited("Campaign,Cost,Clicks\nBrand,5\n")
        assert table.rows[0]["Clicks"] == ""

    def test_single_line_rejected(self):
        with pytest.raises(InsufficientDataError):
            parse_delimited("Campaign,Cost\n")

    def test_blank_lines_do_not_count(self):
        with pytest.raises(InsufficientDataError):
            parse_delimited("\n\nCampaign,Cost\n\n")


class TestDecodeText:
    def test_utf8_bom_stripped(self):
        assert decode_text(b"\xef\xbb\xbfCampaign") == "Campaign"

    def test_utf16_with_bom(self):
        data = "Campaign\tCost\nBrand\t5\n".encode("utf-16")
        assert decode_text(data).startswith("Campaign\tCost")

    def test_utf16_truncated_byte_replaced(self):
        data = "Campaign,Cost\nA,1\n".encode("utf-16") + b"\x00"
        assert decode_text(data).startswith("Campaign,Cost\nA,1")

    def test_utf16_truncated_upload_parses(self):
        data = "Campaign,Cost\nA,1\n".encode("utf-16") + b"\x00"
        table = parse_upload(data, "report.csv")
        assert table.headers == ["Campaign", "Cost"]
        assert table.rows[0]["Campaign"] == "A"


# ---------------------------------------------------------------------------
# Spreadsheets
# ---------------------------------------------------------------------------

class TestParseSpreadsheet:
    def test_first_row_header(self):
        data = _xlsx([["Campaign", "Cost", "Impr."], ["Brand", 10.5, 1000]])
        table = parse_spreadsheet(data, Platform.GOOGLE)
        assert table.headers == ["Campaign", "Cost", "Impr."]
        assert table.rows == [{"Campaign": "Brand", "Cost": "10.5", "Impr.": "1000"}]

    def test_platform_header_beats_title_row(self):
        data = _xlsx([
            ["Campaign performance"],
            ["Campaign", "Cost", "Impr."],
            ["Brand", 5, 100],
        ])
        table = parse_spreadsheet(data, Platform.GOOGLE)
        assert table.headers[:3] == ["Campaign", "Cost", "Impr."]
        assert len(table.rows) == 1

    def test_whole_floats_rendered_as_integers(self):
        data = _xlsx([["Campaign", "Clicks"], ["Brand", 12.0]])
        table = parse_spreadsheet(data, Platform.META)
        assert table.rows[0]["Clicks"] == "12"

    def test_too_few_rows(self):
        with pytest.raises(InsufficientDataError):
            parse_spreadsheet(_xlsx([["Campaign", "Cost"]]), Platform.META)


# ---------------------------------------------------------------------------
# parse_upload
# ---------------------------------------------------------------------------

class TestParseUpload:
    def test_format_from_filename(self):
        assert upload_format("Export.CSV") == "csv"
        assert upload_format("report.final.xlsx") == "xlsx"

    def test_bare_extension(self):
        assert upload_format(".tsv") == "tsv"
        assert upload_format("txt") == "txt"

    def test_csv(self):
        table = parse_upload(b"Campaign,Cost\nBrand,5\n", "meta.csv")
        assert table.rows[0]["Cost"] == "5"

    def test_txt_is_delimited(self):
        table = parse_upload(b"Campaign|Cost\nBrand|5\n", "export.txt")
        assert table.headers == ["Campaign", "Cost"]

    def test_xlsx(self):
        data = _xlsx([["Campaign", "Cost"], ["Brand", 5]])
        table = parse_upload(data, "google.xlsx", Platform.GOOGLE)
        assert table.rows[0]["Campaign"] == "Brand"

    @pytest.mark.parametrize("name", ["report.pdf", "legacy.xls", "data.json"])
    def test_unsupported_formats(self, name):
        with pytest.raises(UnsupportedFormatError):
            parse_upload(b"whatever", name)

    def test_unsupported_message_lists_formats(self):
        with pytest.raises(UnsupportedFormatError, match=r"\.csv"):
            parse_upload(b"x", "report.pdf")

    def test_renamed_csv_as_xlsx(self):
        with pytest.raises(UnsupportedFormatError, match="Could not read the spreadsheet"):
            parse_upload(b"Campaign,Cost\nA,1\n", "report.xlsx", Platform.META)

    def test_truncated_workbook(self):
        data = _xlsx([["Campaign", "Cost"], ["Brand", 5]])
        with pytest.raises(WrapImportError):
            parse_upload(data[: len(data) // 2], "google.xlsx", Platform.GOOGLE)
