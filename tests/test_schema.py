"""Tests for the wrap data models, override forms, warehouse rows and YAML loader."""

import math

import pytest
import yaml

from wrapbuilder.schema.forms import (
    AdsFormData,
    EcommFormData,
    SocialFormData,
    parse_form_number,
    parse_monthly_followers,
)
from wrapbuilder.schema.loader import (
    load_channels,
    load_form,
    load_slides,
    load_warehouse,
    save_channels,
    save_form,
    save_slides,
    save_yaml,
)
from wrapbuilder.schema.models import (
    CampaignData,
    ChannelData,
    DailyMetrics,
    Platform,
    ResultsByType,
    ResultType,
    Slide,
    SlideType,
)
from wrapbuilder.schema.warehouse import (
    BEST_CLICK_VOLUME_MONTH,
    HIGHEST_ROAS_MONTH,
    MOST_EXPENSIVE_MONTH,
    NORMAL_MONTH,
    GoogleMonth,
    MetaCampaignResults,
    WarehouseAdsData,
    label_google_months,
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class TestPlatform:
    def test_display_names(self):
        assert Platform.META.display_name == "Meta Ads"
        assert Platform.GOOGLE.display_name == "Google Ads"

    def test_from_value(self):
        assert Platform("tiktok") is Platform.TIKTOK


class TestResultType:
    @pytest.mark.parametrize("label, expected", [
        ("Website purchases", ResultType.WEBSITE_PURCHASES),
        ("Landing page views", ResultType.LANDING_PAGE_VIEWS),
        ("Reach", ResultType.REACH),
        ("On-Facebook leads", ResultType.LEADS),
        ("Link clicks", ResultType.LINK_CLICKS),
        ("ThruPlays video", ResultType.VIDEO_VIEWS),
        ("Mobile app installs", ResultType.APP_INSTALLS),
        ("Messaging conversations started (message)", ResultType.MESSAGES),
        ("Page likes", ResultType.OTHER),
    ])
    def test_from_label(self, label, expected):
        assert ResultType.from_label(label) is expected

    def test_empty_label(self):
        assert ResultType.from_label("") is ResultType.OTHER
        assert ResultType.from_label(None) is ResultType.OTHER

    def test_first_rule_wins(self):
        # "purchase" is checked before "app"
        assert ResultType.from_label("In-app purchases") is ResultType.WEBSITE_PURCHASES


class TestChannelData:
    def test_round_trip(self):
        channel = ChannelData(
            platform=Platform.GOOGLE, spend=100.0, revenue=250.0, results=5.0, roas=2.5, cpr=20.0,
            campaigns=[CampaignData(name="Search", platform=Platform.GOOGLE, spend=100.0,
                                    results=5.0, primary_result_type=ResultType.LEADS,
                                    results_by_type=[ResultsByType(ResultType.LEADS, "Leads", 5.0)])],
            daily=[DailyMetrics(date="2024-01-01", spend=100.0)],
        )
        assert ChannelData.from_dict(channel.to_dict()) == channel

    def test_enums_serialized_by_value(self):
        d = ChannelData(platform=Platform.META).to_dict()
        assert d["platform"] == "meta"

    def test_display_name(self):
        assert ChannelData(platform=Platform.LINKEDIN).display_name == "LinkedIn Ads"

    def test_daily_month(self):
        assert DailyMetrics(date="2024-07-14").month == "2024-07"


class TestCampaignData:
    def test_key_includes_platform(self):
        a = CampaignData(name="Brand", platform=Platform.META)
        b = CampaignData(name="Brand", platform=Platform.GOOGLE)
        assert a.key != b.key

    def test_primary_result_type_name(self):
        c = CampaignData(name="x", platform=Platform.META, primary_result_type=ResultType.REACH)
        assert c.primary_result_type_name == "Reach"


class TestSlide:
    def test_to_dict_omits_empty_fields(self):
        assert Slide("intro", SlideType.INTRO, "Hi").to_dict() == {
            "id": "intro", "type": "intro", "title": "Hi",
        }

    def test_round_trip(self):
        slide = Slide("s", SlideType.FUNNEL, "Funnel", "sub", {"visitors": 10.0})
        assert Slide.from_dict(slide.to_dict()) == slide

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            Slide.from_dict({"id": "x", "type": "nope", "title": "x"})


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

class TestParseFormNumber:
    @pytest.mark.parametrize("text, expected", [
        ("$12,500", 12500.0),
        ("4.2x", 4.2),
        ("35%", 35.0),
        ("-3", -3.0),
        (".5", 0.5),
        ("", 0.0),
        ("n/a", 0.0),
        (None, 0.0),
        (7, 7.0),
    ])
    def test_values(self, text, expected):
        assert parse_form_number(text) == expected

    def test_non_finite_is_zero(self):
        assert parse_form_number(float("nan")) == 0.0
        assert parse_form_number(float("inf")) == 0.0


class TestForms:
    def test_camel_case_keys(self):
        form = AdsFormData.from_dict({"customerName": "Acme", "totalAdSpend": "1,000",
                                      "currencyCode": "EUR"})
        assert form.customer_name == "Acme"
        assert form.number("total_ad_spend") == 1000.0
        assert form.currency_code == "EUR"

    def test_unknown_keys_ignored(self):
        form = AdsFormData.from_dict({"somethingElse": "x", "period_year": "2024"})
        assert form.period_year == "2024"

    def test_values_kept_as_strings(self):
        form = EcommFormData.from_dict({"totalRevenue": 5000, "userName": None})
        assert form.total_revenue == "5000"
        assert form.user_name == ""

    def test_industry_defaults(self):
        form = EcommFormData()
        assert form.number("industry_average_refund_rate") == 8.5
        assert form.number("industry_average_turnover") == 6.2

    def test_to_dict_round_trip(self):
        form = SocialFormData(customer_name="Sam", total_likes="10")
        assert SocialFormData.from_dict(form.to_dict()) == form

    @pytest.mark.parametrize("kwargs, label", [
        ({"period_year": "2024"}, "2024"),
        ({"period_type": "month", "period_month": "March 2024", "period_year": "2024"}, "March 2024"),
        ({"period_type": "custom", "period_start_date": "2024-01-01",
          "period_end_date": "2024-06-30"}, "2024-01-01 – 2024-06-30"),
        ({"period_type": "custom", "period_start_date": "2024-01-01", "period_year": "2024"}, "2024"),
    ])
    def test_period_label(self, kwargs, label):
        assert AdsFormData(**kwargs).period_label == label


class TestMonthlyFollowers:
    def test_pairs(self):
        assert parse_monthly_followers("Jan:1000, Feb:1,200") == [
            {"month": "Jan", "followers": 1000.0},
            {"month": "Feb", "followers": 1.0},
        ]

    def test_invalid_pairs_dropped(self):
        assert parse_monthly_followers(":5,Mar:,Apr:-3,May:10") == [{"month": "May", "followers": 10.0}]

    def test_empty(self):
        assert parse_monthly_followers("") == []


# ---------------------------------------------------------------------------
# Warehouse rows
# ---------------------------------------------------------------------------

class TestWarehouseAdsData:
    def test_query_layer_names(self):
        wh = WarehouseAdsData.from_dict({
            "currencyCode": "GBP",
            "dateRange": {"start": "2024-01-01", "end": "2024-12-31"},
            "totalSpend": "1200.5",
            "googleAdsSummary": {"impressions": 1000, "clicks": 20},
            "metaAdsTopCampaignsByResults": [
                {"campaignId": "1", "campaignName": "Leads", "results": 7, "cpr": None},
            ],
        })
        assert wh.currency_code == "GBP"
        assert wh.start_date == "2024-01-01"
        assert wh.end_date == "2024-12-31"
        assert wh.total_spend == 1200.5
        assert wh.google_summary.clicks == 20
        assert wh.meta_summary is None
        campaign = wh.meta_top_campaigns_by_results[0]
        assert campaign == MetaCampaignResults(campaign_id="1", campaign_name="Leads", results=7.0)
        assert campaign.cpr is None

    def test_bad_numbers_are_zero(self):
        wh = WarehouseAdsData.from_dict({"total_spend": "abc", "total_clicks": float("nan")})
        assert wh.total_spend == 0.0
        assert wh.total_clicks == 0.0

    def test_round_trip(self):
        wh = WarehouseAdsData.from_dict({
            "currency_code": "USD",
            "google_monthly": [{"month_start": "2024-01-01", "spend": 5, "roas": 2}],
        })
        assert WarehouseAdsData.from_dict(wh.to_dict()) == wh

    def test_empty(self):
        assert WarehouseAdsData.from_dict(None) == WarehouseAdsData()


class TestMonthLabels:
    def test_priority(self):
        rows = [
            GoogleMonth(month_start="2024-01-01", roas=5, clicks=10, spend=10),
            GoogleMonth(month_start="2024-02-01", roas=1, clicks=90, spend=90),
            GoogleMonth(month_start="2024-03-01", roas=2, clicks=50, spend=20),
        ]
        labels = [r.highlight_label for r in label_google_months(rows)]
        assert labels == [HIGHEST_ROAS_MONTH, BEST_CLICK_VOLUME_MONTH, NORMAL_MONTH]

    def test_most_expensive(self):
        rows = [
            GoogleMonth(month_start="2024-01-01", roas=5, clicks=10, spend=10),
            GoogleMonth(month_start="2024-02-01", roas=1, clicks=90, spend=20),
            GoogleMonth(month_start="2024-03-01", roas=2, clicks=50, spend=95),
        ]
        labels = [r.highlight_label for r in label_google_months(rows)]
        assert labels[2] == MOST_EXPENSIVE_MONTH

    def test_existing_labels_kept(self):
        rows = [GoogleMonth(month_start="2024-01-01", highlight_label="CUSTOM")]
        assert label_google_months(rows)[0].highlight_label == "CUSTOM"

    def test_input_not_mutated(self):
        rows = [GoogleMonth(month_start="2024-01-01", roas=1)]
        label_google_months(rows)
        assert rows[0].highlight_label == ""


# ---------------------------------------------------------------------------
# YAML loader
# ---------------------------------------------------------------------------

class TestLoader:
    def test_slides_round_trip(self, tmp_path):
        slides = [Slide("intro", SlideType.INTRO, "Your Wrapped"),
                  Slide("recap", SlideType.RECAP, "Bye", payload={"handle": "you"})]
        path = tmp_path / "out" / "slides.yaml"
        save_slides(slides, path)
        assert load_slides(path) == slides

    def test_yaml_is_readable(self, tmp_path):
        path = tmp_path / "data.yaml"
        save_yaml({"title": "Café", "n": 1}, path)
        text = path.read_text(encoding="utf-8")
        assert "Café" in text
        assert yaml.safe_load(text) == {"title": "Café", "n": 1}

    def test_channels_round_trip(self, tmp_path):
        channels = [ChannelData(platform=Platform.META, spend=10.0)]
        save_channels(channels, tmp_path / "c.yaml")
        assert load_channels(tmp_path / "c.yaml") == channels

    def test_form_by_type(self, tmp_path):
        path = tmp_path / "form.yaml"
        path.write_text("userName: Shop\ntotalRevenue: '9,000'\n", encoding="utf-8")
        form = load_form(path, "ecommerce")
        assert isinstance(form, EcommFormData)
        assert form.number("total_revenue") == 9000.0

    def test_form_round_trip(self, tmp_path):
        form = AdsFormData(customer_name="Acme", total_ad_spend="10")
        save_form(form, tmp_path / "f.yaml")
        assert load_form(tmp_path / "f.yaml", "ads") == form

    def test_empty_form_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_form(path, "social") == SocialFormData()

    def test_unknown_form_type(self, tmp_path):
        with pytest.raises(ValueError, match="Valid types: ads, ecommerce, social"):
            load_form(tmp_path / "x.yaml", "podcast")

    def test_warehouse(self, tmp_path):
        path = tmp_path / "wh.yaml"
        path.write_text("currency_code: USD\ntotal_spend: 10\n", encoding="utf-8")
        wh = load_warehouse(path)
        assert wh.currency_code == "USD"
        assert math.isclose(wh.total_spend, 10.0)
