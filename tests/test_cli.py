"""Tests for the command-line interface."""

import pytest
import yaml

from wrapbuilder.cli import build_parser, main
from wrapbuilder.processor.transform import AdsWorkspace
from wrapbuilder.schema.loader import load_slides
from wrapbuilder.schema.models import Platform, SlideType
from wrapbuilder.storage import YamlWrapStore


META_CSV = (
    "Reporting starts,Campaign name,Result type,Results,Amount spent (USD),Impressions,"
    "Link clicks,Purchases conversion value\n"
    "2024-01-05,Prospecting,Website purchases,10,200,20000,300,900\n"
    "2024-02-10,Retargeting,Website purchases,6,100,8000,150,600\n"
)

GOOGLE_CSV = (
    "Google Ads campaign report\n"
    "Day,Campaign,Cost,Impr.,Clicks,Conversions,Conv. value\n"
    "2024-01-05,Search - Brand,300,10000,500,20,1500\n"
    "2024-03-01,Search - Generic,100,5000,100,4,200\n"
)


@pytest.fixture
def files(tmp_path):
    meta = tmp_path / "meta.csv"
    meta.write_text(META_CSV, encoding="utf-8")
    google = tmp_path / "google.csv"
    google.write_text(GOOGLE_CSV, encoding="utf-8")
    form = tmp_path / "form.yaml"
    form.write_text(yaml.safe_dump({
        "customer_name": "Acme",
        "currency_code": "USD",
        "period_year": "2024",
    }))
    return {"meta": meta, "google": google, "form": form,
            "workspace": tmp_path / "work" / "channels.yaml"}


def _import(files, platform):
    main(["import", str(files[platform]), "--platform", platform,
          "--workspace", str(files["workspace"])])


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class TestParser:
    def test_import_args(self):
        args = build_parser().parse_args(["import", "meta.csv", "--platform", "meta"])
        assert args.file == "meta.csv"
        assert args.platform == "meta"
        assert args.workspace == "channels.yaml"
        assert args.show_columns is False

    def test_generate_defaults(self):
        args = build_parser().parse_args(["generate", "-o", "slides.yaml"])
        assert args.type == "ads"
        assert args.skip_qa is False
        assert args.force is False
        assert args.store is None

    def test_generate_requires_output(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["generate"])

    def test_unknown_platform(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["import", "x.csv", "--platform", "snapchat"])

    def test_unknown_type(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["inspect", "--type", "podcast"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_verbose_flag(self):
        args = build_parser().parse_args(["-v", "inspect"])
        assert args.verbose is True


# ---------------------------------------------------------------------------
# import / remove / aggregate
# ---------------------------------------------------------------------------

class TestImport:
    def test_import_creates_workspace(self, files):
        _import(files, "meta")
        workspace = AdsWorkspace.load(files["workspace"])
        assert workspace.platforms == [Platform.META]
        assert workspace.get_channel(Platform.META).spend == 300

    def test_two_platforms(self, files):
        _import(files, "meta")
        _import(files, "google")
        workspace = AdsWorkspace.load(files["workspace"])
        assert set(workspace.platforms) == {Platform.META, Platform.GOOGLE}

    def test_reimport_replaces(self, files, capsys):
        _import(files, "meta")
        _import(files, "meta")
        assert len(AdsWorkspace.load(files["workspace"]).channels) == 1
        assert "Replaced the existing Meta Ads channel" in capsys.readouterr().err

    def test_show_columns(self, files, capsys):
        main(["import", str(files["google"]), "--platform", "google",
              "--workspace", str(files["workspace"]), "--show-columns"])
        err = capsys.readouterr().err
        assert "spend" in err
        assert "<- Cost" in err

    def test_missing_file(self, files, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["import", str(tmp_path / "nope.csv"), "--platform", "meta",
                  "--workspace", str(files["workspace"])])
        assert exc.value.code == 1

    def test_rejected_file(self, files, tmp_path, capsys):
        bad = tmp_path / "bad.csv"
        bad.write_text("Name,Value\nx,1\n")
        with pytest.raises(SystemExit) as exc:
            main(["import", str(bad), "--platform", "meta", "--workspace", str(files["workspace"])])
        assert exc.value.code == 1
        assert "ERROR" in capsys.readouterr().err
        assert not files["workspace"].exists()

    def test_unreadable_workbook(self, files, tmp_path, capsys):
        fake = tmp_path / "x.xlsx"
        fake.write_text(META_CSV, encoding="utf-8")
        with pytest.raises(SystemExit) as exc:
            main(["import", str(fake), "--platform", "meta", "--workspace", str(files["workspace"])])
        assert exc.value.code == 1
        assert "Could not read the spreadsheet" in capsys.readouterr().err
        assert not files["workspace"].exists()


class TestRemove:
    def test_remove(self, files):
        _import(files, "meta")
        _import(files, "google")
        main(["remove", "--platform", "meta", "--workspace", str(files["workspace"])])
        assert AdsWorkspace.load(files["workspace"]).platforms == [Platform.GOOGLE]

    def test_remove_missing(self, files):
        _import(files, "google")
        with pytest.raises(SystemExit) as exc:
            main(["remove", "--platform", "meta", "--workspace", str(files["workspace"])])
        assert exc.value.code == 1


class TestAggregate:
    def test_prints_totals(self, files, capsys):
        _import(files, "meta")
        _import(files, "google")
        main(["aggregate", "--workspace", str(files["workspace"]), "--currency", "USD"])
        out = capsys.readouterr().out
        assert "Spend:       $700" in out
        assert "Top channel: Google Ads" in out

    def test_writes_yaml(self, files, tmp_path):
        _import(files, "meta")
        out = tmp_path / "agg.yaml"
        main(["aggregate", "--workspace", str(files["workspace"]), "-o", str(out)])
        data = yaml.safe_load(out.read_text())
        assert data["total_spend"] == 300

    def test_empty_workspace(self, tmp_path, capsys):
        main(["aggregate", "--workspace", str(tmp_path / "empty.yaml")])
        captured = capsys.readouterr()
        assert "No channels" in captured.err
        assert "Spend:" in captured.out


# ---------------------------------------------------------------------------
# generate / validate
# ---------------------------------------------------------------------------

class TestGenerate:
    def test_ads_deck(self, files, tmp_path):
        _import(files, "meta")
        _import(files, "google")
        out = tmp_path / "out" / "slides.yaml"
        pptx = tmp_path / "out" / "wrapped.pptx"
        main(["generate", "--workspace", str(files["workspace"]), "--form", str(files["form"]),
              "-o", str(out), "--pptx", str(pptx)])

        slides = load_slides(out)
        assert slides[0].type == SlideType.INTRO
        assert slides[0].title == "Acme's 2024 Wrapped"
        assert slides[-1].type == SlideType.RECAP
        assert SlideType.CHANNEL_COMPARISON in [s.type for s in slides]
        assert pptx.read_bytes()[:2] == b"PK"

    def test_form_only(self, files, tmp_path, capsys):
        out = tmp_path / "slides.yaml"
        main(["generate", "--form", str(files["form"]), "-o", str(out)])
        assert [s.type for s in load_slides(out)] == [SlideType.INTRO, SlideType.RECAP]
        assert "form fields only" in capsys.readouterr().err

    def test_social_ignores_workspace(self, files, tmp_path, capsys):
        out = tmp_path / "social.yaml"
        main(["generate", "--type", "social", "--workspace", str(files["workspace"]),
              "-o", str(out)])
        assert "ignored for social decks" in capsys.readouterr().err
        assert load_slides(out)[-1].title == "That was your Social year."

    def test_store(self, files, tmp_path, capsys):
        _import(files, "meta")
        store_dir = tmp_path / "store"
        main(["generate", "--workspace", str(files["workspace"]), "--form", str(files["form"]),
              "-o", str(tmp_path / "slides.yaml"), "--store", str(store_dir),
              "--owner", "user-1", "--password", "pw"])

        records = YamlWrapStore(store_dir).list("user-1")
        assert len(records) == 1
        assert records[0].year == 2024
        assert records[0].title == "Acme's ads Wrapped"
        assert records[0].is_password_protected
        assert f"/wrap/{records[0].share_code}" in capsys.readouterr().err

    def test_store_requires_owner(self, files, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["generate", "--form", str(files["form"]), "-o", str(tmp_path / "s.yaml"),
                  "--store", str(tmp_path / "store")])
        assert exc.value.code == 1

    def test_missing_form(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["generate", "--form", str(tmp_path / "nope.yaml"), "-o", str(tmp_path / "s.yaml")])
        assert exc.value.code == 1


class TestValidate:
    def _generate(self, files, tmp_path):
        _import(files, "google")
        out = tmp_path / "slides.yaml"
        pptx = tmp_path / "wrapped.pptx"
        main(["generate", "--workspace", str(files["workspace"]), "--form", str(files["form"]),
              "-o", str(out), "--pptx", str(pptx)])
        return out, pptx

    def test_valid_deck(self, files, tmp_path, capsys):
        out, pptx = self._generate(files, tmp_path)
        with pytest.raises(SystemExit) as exc:
            main(["validate", "--slides", str(out), "--pptx", str(pptx), "--currency", "USD"])
        assert exc.value.code == 0
        assert "QA PASS" in capsys.readouterr().out

    def test_currency_mismatch(self, files, tmp_path, capsys):
        out, _ = self._generate(files, tmp_path)
        with pytest.raises(SystemExit) as exc:
            main(["validate", "--slides", str(out), "--currency", "EUR"])
        assert exc.value.code == 1
        assert "QA FAIL" in capsys.readouterr().out

    def test_broken_deck(self, tmp_path):
        slides = tmp_path / "slides.yaml"
        slides.write_text(yaml.safe_dump({"slides": [
            {"id": "recap", "type": "recap", "title": "Bye"},
            {"id": "intro", "type": "intro", "title": "Hi"},
        ]}))
        with pytest.raises(SystemExit) as exc:
            main(["validate", "--slides", str(slides)])
        assert exc.value.code == 1


# ---------------------------------------------------------------------------
# inspect
# ---------------------------------------------------------------------------

class TestInspect:
    def test_ads_order(self, capsys):
        main(["inspect"])
        out = capsys.readouterr().out
        assert "Deck type:   ads" in out
        assert "  [ 0] intro" in out
        assert "platform_section:google" in out

    def test_column_candidates(self, capsys):
        main(["inspect", "--type", "social", "--platform", "google"])
        out = capsys.readouterr().out
        assert "Column candidates for Google Ads:" in out
        assert "Cost" in out
