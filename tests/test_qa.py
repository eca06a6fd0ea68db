"""Tests for the deck QA validator."""

import io

import pytest
from pptx import Presentation
from pptx.util import Inches

from wrapbuilder.generator.pptx_builder import PPTXBuilder
from wrapbuilder.processor.slides import derive_ads_slides, derive_ecommerce_slides
from wrapbuilder.processor.transform import aggregate_channels
from wrapbuilder.qa.validator import DeckValidator, Issue, QAResult, infer_wrap_type, validate_deck
from wrapbuilder.schema.design_system import DesignSystem
from wrapbuilder.schema.forms import AdsFormData, EcommFormData
from wrapbuilder.schema.models import ChannelData, Platform, Slide, SlideType


def _intro():
    return Slide("intro", SlideType.INTRO, "Your Wrapped")


def _recap():
    return Slide("recap", SlideType.RECAP, "That was your Ads Wrapped.")


def _spend(currency="USD", **payload):
    return Slide("spend-revenue", SlideType.AD_SPEND_REVENUE, "Your Ad Investment",
                 payload={"spend": 100.0, "revenue": 400.0, "roas": 4.0, "currency": currency,
                          **payload})


@pytest.fixture
def ads_deck():
    aggregate = aggregate_channels([
        ChannelData(platform=Platform.GOOGLE, spend=500, revenue=2000, results=40,
                    impressions=50_000, clicks=900),
        ChannelData(platform=Platform.META, spend=300, revenue=600, results=60,
                    impressions=80_000, clicks=1200),
    ])
    return derive_ads_slides(AdsFormData(customer_name="Acme", currency_code="EUR"), aggregate)


class TestQAResult:
    def test_counts_and_summary(self):
        result = QAResult([
            Issue("error", 0, "intro", "bookends", "bad"),
            Issue("warning", -1, "", "dimensions", "odd"),
        ])
        assert not result.passed
        assert result.error_count == 1
        assert result.warning_count == 1
        assert result.summary() == "QA FAIL: 1 error(s), 1 warning(s)"

    def test_issue_str(self):
        assert str(Issue("error", 2, "recap", "order", "late")) == "[ERROR] slide 2 (recap): late"
        assert str(Issue("warning", -1, "", "dimensions", "odd")) == "[WARNING] deck: odd"

    def test_warnings_do_not_fail(self):
        assert QAResult([Issue("warning", -1, "", "dimensions", "odd")]).passed


class TestDerivedDecks:
    def test_ads_deck_passes(self, ads_deck):
        result = DeckValidator().validate(ads_deck, currency_code="EUR")
        assert result.passed, result.report()

    def test_ads_deck_with_pptx_passes(self, ads_deck):
        data = PPTXBuilder().build(ads_deck, "EUR")
        result = validate_deck(ads_deck, "EUR", data)
        assert result.passed, result.report()
        assert result.issues == []

    def test_ecommerce_deck_passes(self):
        slides = derive_ecommerce_slides(EcommFormData(user_name="Shop", currency_code="USD",
                                                       total_revenue="12000", total_orders="300"))
        result = DeckValidator().validate(slides, currency_code="USD", wrap_type="ecommerce")
        assert result.passed, result.report()

    def test_bookends_only(self):
        assert DeckValidator().validate([_intro(), _recap()]).passed


class TestDeckChecks:
    def test_empty(self):
        result = DeckValidator().validate([])
        assert result.categories() == {"empty"}

    def test_missing_intro(self):
        result = DeckValidator().validate([_spend(), _recap()])
        assert "bookends" in result.categories()

    def test_missing_recap(self):
        result = DeckValidator().validate([_intro(), _spend()])
        assert "bookends" in result.categories()

    def test_duplicate_id(self):
        dup = Slide("intro", SlideType.AD_SPEND_REVENUE, "Again", payload={"currency": "USD"})
        result = DeckValidator().validate([_intro(), dup, _recap()])
        assert "duplicate_id" in result.categories()

    def test_out_of_order(self):
        channels = Slide("channel-comparison", SlideType.CHANNEL_COMPARISON, "Channels")
        result = DeckValidator().validate([_intro(), channels, _spend(), _recap()])
        order = [i for i in result.issues if i.category == "order"]
        assert len(order) == 1
        assert order[0].slide_id == "spend-revenue"

    def test_mixed_deck_types(self):
        orders = Slide("orders", SlideType.ORDERS_COUNT, "Orders")
        result = DeckValidator().validate([_intro(), _spend(), orders, _recap()])
        assert "order" in result.categories()

    def test_type_without_position(self):
        orders = Slide("orders", SlideType.ORDERS_COUNT, "Orders")
        result = DeckValidator().validate([_intro(), orders, _recap()], wrap_type="ads")
        assert any("no position" in i.message for i in result.issues)

    def test_unknown_wrap_type(self):
        result = DeckValidator().validate([_intro(), _recap()], wrap_type="podcast")
        assert "order" in result.categories()

    def test_empty_section(self):
        section = Slide("section-google-ads", SlideType.PLATFORM_SECTION, "Google Ads",
                        payload={"platform": "google"})
        result = DeckValidator().validate([_intro(), section, _recap()])
        assert "empty_section" in result.categories()

    def test_section_with_detail(self):
        section = Slide("section-meta-ads", SlideType.PLATFORM_SECTION, "Meta Ads",
                        payload={"platform": "meta"})
        detail = Slide("meta-ads-metrics", SlideType.META_ADS_METRICS, "Meta Ads",
                       payload={"currency": "USD", "spend": 10.0})
        result = DeckValidator().validate([_intro(), section, detail, _recap()])
        assert "empty_section" not in result.categories()

    def test_non_finite(self):
        slide = _spend(channels=[{"name": "A", "roas": float("inf")}])
        result = DeckValidator().validate([_intro(), slide, _recap()])
        issues = [i for i in result.issues if i.category == "non_finite"]
        assert len(issues) == 1
        assert "channels[0].roas" in issues[0].message

    def test_currency_mismatch(self):
        result = DeckValidator().validate([_intro(), _spend("GBP"), _recap()], currency_code="USD")
        assert "currency" in result.categories()

    def test_currency_not_checked_without_code(self):
        result = DeckValidator().validate([_intro(), _spend("GBP"), _recap()])
        assert result.passed


class TestPPTXChecks:
    def test_slide_count_mismatch(self, ads_deck):
        data = PPTXBuilder().build(ads_deck[:-1], "EUR")
        result = DeckValidator().validate(ads_deck, "EUR", data)
        assert "slide_count" in result.categories()

    def test_dimension_warning(self, ads_deck):
        small = DesignSystem(width_inches=10.0, height_inches=7.5)
        data = PPTXBuilder(small).build(ads_deck, "EUR")
        result = DeckValidator().validate(ads_deck, "EUR", data)
        assert "dimensions" in result.categories()
        assert result.passed

    def test_missing_title(self):
        prs = Presentation()
        prs.slide_width = Inches(13.333)
        prs.slide_height = Inches(7.5)
        for _ in range(2):
            prs.slides.add_slide(prs.slide_layouts[6])
        buf = io.BytesIO()
        prs.save(buf)

        result = DeckValidator().validate([_intro(), _recap()], pptx_bytes=buf.getvalue())
        titles = [i for i in result.issues if i.category == "title"]
        assert len(titles) == 2


class TestInferWrapType:
    def test_ads(self, ads_deck):
        assert infer_wrap_type(ads_deck) == "ads"

    def test_ecommerce(self):
        orders = Slide("orders", SlideType.ORDERS_COUNT, "Orders")
        assert infer_wrap_type([_intro(), orders, _recap()]) == "ecommerce"

    def test_bookends_only_is_ads(self):
        assert infer_wrap_type([_intro(), _recap()]) == "ads"

    def test_mixed(self):
        orders = Slide("orders", SlideType.ORDERS_COUNT, "Orders")
        assert infer_wrap_type([_intro(), _spend(), orders, _recap()]) is None
