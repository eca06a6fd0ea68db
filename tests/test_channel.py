"""Tests for the row aggregator and single-file import."""

import io
import math

import pytest
from openpyxl import Workbook

from wrapbuilder.processor.channel import (
    UNKNOWN_CAMPAIGN,
    aggregate_rows,
    build_row_frame,
    import_channel,
)
from wrapbuilder.processor.columns import resolve_columns
from wrapbuilder.processor.errors import (
    InsufficientDataError,
    UnrecognizedFormatError,
    UnsupportedFormatError,
    WrapImportError,
)
from wrapbuilder.processor.ingestion import parse_delimited
from wrapbuilder.schema.models import Platform, ResultType


def _aggregate(text: str, platform: Platform = Platform.META):
    table = parse_delimited(text)
    return aggregate_rows(table, resolve_columns(table.headers, platform), platform)


# ---------------------------------------------------------------------------
# End-to-end CSV
# ---------------------------------------------------------------------------

BASIC_CSV = (
    "Date,Campaign,Cost,Impressions,Clicks,Results\n"
    "2024-01-01,Brand,100,1000,10,2\n"
    "2024-01-02,Brand,200,2000,30,8\n"
)


class TestBasicImport:
    @pytest.fixture
    def channel(self):
        return import_channel(BASIC_CSV.encode("utf-8"), "meta.csv", Platform.META).channel

    def test_totals(self, channel):
        assert channel.spend == 300
        assert channel.impressions == 3000
        assert channel.clicks == 40
        assert channel.results == 10

    def test_ratios(self, channel):
        assert channel.cpr == 30
        assert channel.ctr == pytest.approx(1.3333, rel=1e-3)
        assert channel.cpc == pytest.approx(7.5)
        assert channel.cpm == pytest.approx(100.0)

    def test_no_revenue_means_zero_roas(self, channel):
        assert channel.revenue == 0
        assert channel.roas == 0

    def test_daily(self, channel):
        assert [d.date for d in channel.daily] == ["2024-01-01", "2024-01-02"]
        assert channel.daily[0].spend == 100
        assert channel.daily[1].results == 8

    def test_campaign(self, channel):
        assert len(channel.campaigns) == 1
        campaign = channel.campaigns[0]
        assert campaign.name == "Brand"
        assert campaign.platform == Platform.META
        assert campaign.spend == 300
        assert campaign.cpr == 30

    def test_platform(self, channel):
        assert channel.platform == Platform.META

    def test_platform_as_string(self):
        imported = import_channel(BASIC_CSV.encode("utf-8"), "csv", "meta")
        assert imported.channel.platform == Platform.META

    def test_diagnostics(self):
        imported = import_channel(BASIC_CSV.encode("utf-8"), "meta.csv", Platform.META)
        assert imported.row_count == 2
        assert imported.headers == ["Date", "Campaign", "Cost", "Impressions", "Clicks", "Results"]
        assert imported.resolution.header("spend") == "Cost"


# ---------------------------------------------------------------------------
# Grains
# ---------------------------------------------------------------------------

class TestCampaignGrain:
    def test_sorted_by_results(self):
        channel = _aggregate(
            "Campaign,Cost,Results\n"
            "Small,50,1\n"
            "Big,10,9\n"
            "Small,50,1\n"
        )
        assert [c.name for c in channel.campaigns] == ["Big", "Small"]
        assert channel.campaigns[1].spend == 100

    def test_blank_campaign_name(self):
        channel = _aggregate("Campaign,Cost\n,5\nBrand,5\n")
        assert {c.name for c in channel.campaigns} == {UNKNOWN_CAMPAIGN, "Brand"}

    def test_no_campaign_column(self):
        channel = _aggregate("Cost,Impressions\n5,100\n")
        assert channel.campaigns == []
        assert channel.spend == 5

    def test_campaign_ratios_from_sums(self):
        channel = _aggregate(
            "Campaign,Cost,Impressions,Clicks\n"
            "A,10,1000,10\n"
            "A,30,1000,30\n"
        )
        # Ratio of sums, not mean of per-row ratios
        assert channel.campaigns[0].ctr == pytest.approx(2.0)
        assert channel.campaigns[0].cpc == pytest.approx(1.0)


class TestDailyGrain:
    def test_rows_on_same_day_summed(self):
        channel = _aggregate(
            "Day,Cost\n"
            "2024-02-01,5\n"
            "2024-02-01,7\n"
        )
        assert len(channel.daily) == 1
        assert channel.daily[0].spend == 12

    def test_sorted_by_date(self):
        channel = _aggregate("Day,Cost\n2024-03-02,1\n2024-01-15,1\n")
        assert [d.date for d in channel.daily] == ["2024-01-15", "2024-03-02"]

    def test_undated_rows_still_count_in_totals(self):
        channel = _aggregate("Day,Cost\n2024-02-01,5\nTotal,100\n")
        assert channel.spend == 105
        assert [d.spend for d in channel.daily] == [5]

    def test_no_date_column(self):
        channel = _aggregate("Campaign,Cost\nA,5\n")
        assert channel.daily == []


class TestResultTypes:
    CSV = (
        "Campaign name,Result type,Results,Amount spent (USD),Impressions\n"
        "A,Website purchases,5,100,1000\n"
        "A,Link clicks,20,50,500\n"
        "B,Leads,3,30,300\n"
        "B,Leads,0,10,100\n"
    )

    def test_channel_breakdown_by_count(self):
        channel = _aggregate(self.CSV)
        assert [r.type for r in channel.results_by_type] == [
            ResultType.LINK_CLICKS, ResultType.WEBSITE_PURCHASES, ResultType.LEADS,
        ]
        assert channel.results_by_type[0].display_name == "Link Clicks"

    def test_rows_without_results_excluded(self):
        channel = _aggregate(self.CSV)
        leads = next(r for r in channel.results_by_type if r.type == ResultType.LEADS)
        assert leads.count == 3
        assert leads.spend == 30

    def test_campaign_primary_type(self):
        channel = _aggregate(self.CSV)
        a = next(c for c in channel.campaigns if c.name == "A")
        assert a.primary_result_type == ResultType.LINK_CLICKS
        assert a.primary_result_type_name == "Link Clicks"
        assert len(a.results_by_type) == 2

    def test_missing_type_column(self):
        channel = _aggregate("Campaign,Results,Cost\nA,4,10\n")
        assert [r.type for r in channel.results_by_type] == [ResultType.OTHER]
        assert channel.campaigns[0].primary_result_type == ResultType.OTHER


class TestRowFrame:
    def test_conversions_used_when_no_results_column(self):
        table = parse_delimited("Campaign,Cost,Purchases\nA,10,3\n")
        frame = build_row_frame(table, resolve_columns(table.headers, Platform.META))
        assert frame["results"].tolist() == [3.0]

    def test_formatted_numbers(self):
        channel = _aggregate('Campaign,Cost,Impressions\nA,"$1,234.50","12,000"\n')
        assert channel.spend == 1234.5
        assert channel.impressions == 12000

    def test_values_are_finite(self):
        channel = _aggregate("Campaign,Cost,Results\nA,abc,\n")
        assert math.isfinite(channel.spend)
        assert channel.cpr == 0


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------

class TestImportErrors:
    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormatError):
            import_channel(b"%PDF", "report.pdf", Platform.META)

    def test_header_only(self):
        with pytest.raises(InsufficientDataError):
            import_channel(b"Campaign,Cost\n", "meta.csv", Platform.META)

    def test_no_signal_columns(self):
        with pytest.raises(UnrecognizedFormatError):
            import_channel(b"Name,Value\nx,1\n", "meta.csv", Platform.META)

    def test_all_zero_spend_and_impressions(self):
        with pytest.raises(UnrecognizedFormatError, match="spend or impressions"):
            import_channel(b"Campaign,Cost\nA,0\n", "google.csv", Platform.GOOGLE)

    def test_errors_share_a_base(self):
        for cls in (InsufficientDataError, UnrecognizedFormatError, UnsupportedFormatError):
            assert issubclass(cls, WrapImportError)


class TestSpreadsheetImport:
    def test_google_xlsx(self):
        wb = Workbook()
        ws = wb.active
        ws.append(["Campaign report"])
        ws.append(["Day", "Campaign", "Cost", "Impr.", "Clicks", "Conversions"])
        ws.append(["2024-05-01", "Search", 40, 4000, 80, 4])
        ws.append(["2024-05-02", "Search", 60, 6000, 120, 6])
        buf = io.BytesIO()
        wb.save(buf)

        channel = import_channel(buf.getvalue(), "google.xlsx", Platform.GOOGLE).channel
        assert channel.spend == 100
        assert channel.results == 10
        assert channel.cpr == 10
        assert len(channel.daily) == 2
