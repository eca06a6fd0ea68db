"""CLI entry point for Wrap Builder.

Drives the pipeline end to end: import platform exports into a channel
workspace, aggregate, derive a Wrapped deck, validate it, export it to
PPTX and store it under a share code.

Usage::

    # Import exports (a re-import replaces that platform's channel)
    wrap-builder import data/meta.csv --platform meta --workspace work/channels.yaml
    wrap-builder import data/google.xlsx --platform google --workspace work/channels.yaml

    # Show the cross-channel aggregate
    wrap-builder aggregate --workspace work/channels.yaml

    # Derive an ads deck from uploads, warehouse rows and the override form
    wrap-builder generate --type ads \\
        --workspace work/channels.yaml \\
        --warehouse data/warehouse.yaml \\
        --form data/form.yaml \\
        --output out/slides.yaml --pptx out/wrapped.pptx

    # Store the deck for sharing
    wrap-builder generate --type social --form data/social.yaml \\
        --output out/social.yaml --store store/ --owner jane@example.com

    # Validate a stored deck (and its export)
    wrap-builder validate --slides out/slides.yaml --pptx out/wrapped.pptx

    # Show a deck type's slide order
    wrap-builder inspect --type ads
"""

import argparse
import logging
import sys
from pathlib import Path

from .generator.pptx_builder import PPTXBuilder
from .processor.channel import import_channel
from .processor.columns import COLUMN_MAPPINGS
from .processor.errors import WrapImportError
from .processor.slides import DECK_RULES, canonical_order, derive_slides
from .processor.transform import AdsWorkspace
from .qa.validator import DeckValidator
from .schema.design_system import format_currency, format_multiplier, format_number
from .schema.loader import (
    FORM_TYPES,
    load_form,
    load_slides,
    load_warehouse,
    save_slides,
    save_yaml,
)
from .schema.models import Platform
from .storage import StorageError, YamlWrapStore

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_WORKSPACE = "channels.yaml"


# ---------------------------------------------------------------------------
# Input loading
# ---------------------------------------------------------------------------

def _require_file(path: str, what: str) -> Path:
    p = Path(path)
    if not p.exists():
        _error(f"{what} not found: {p}")
    return p


def _load_form(args):
    if not args.form:
        return FORM_TYPES[args.type]()
    return load_form(_require_file(args.form, "Form file"), args.type)


def _deck_currency(wrap_type: str, form, warehouse) -> str | None:
    """Currency every money payload of the deck must carry."""
    if wrap_type == "social":
        return None
    code = getattr(form, "currency_code", "")
    if wrap_type == "ads" and not code and warehouse is not None:
        code = warehouse.currency_code
    return code


def _report_year(form) -> int | None:
    text = getattr(form, "period_year", "") or getattr(form, "year", "")
    return int(text) if str(text).isdigit() else None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_import(args):
    """Import one platform export into the workspace."""
    path = _require_file(args.file, "Data file")
    workspace = AdsWorkspace.load(args.workspace)
    platform = Platform(args.platform)

    _info(f"Importing {platform.display_name} from {path}")
    try:
        imported = import_channel(path.read_bytes(), path.name, platform)
    except WrapImportError as e:
        _error(str(e))

    if args.show_columns:
        for row in imported.resolution.diagnostics():
            if row["header"]:
                _info(f"{row['metric']:<16} <- {row['header']} ({row['confidence']})")

    replaced = workspace.get_channel(platform) is not None
    workspace.put_channel(imported.channel)
    workspace.save(args.workspace)

    ch = imported.channel
    _info(f"{imported.row_count} rows, {len(ch.campaigns)} campaigns, {len(ch.daily)} days")
    _info(f"Spend {format_number(ch.spend)}, impressions {format_number(ch.impressions)}, "
          f"results {format_number(ch.results)}")
    if replaced:
        _warn(f"Replaced the existing {platform.display_name} channel")
    _info(f"Workspace: {args.workspace} ({len(workspace.channels)} channel(s))")


def cmd_remove(args):
    """Remove a platform's channel from the workspace."""
    workspace = AdsWorkspace.load(args.workspace)
    platform = Platform(args.platform)
    if not workspace.remove_channel(platform):
        _error(f"No {platform.display_name} channel in {args.workspace}")
    workspace.save(args.workspace)
    _info(f"Removed {platform.display_name}; {len(workspace.channels)} channel(s) left")


def cmd_aggregate(args):
    """Print the cross-channel aggregate, optionally saving it."""
    workspace = AdsWorkspace.load(args.workspace)
    if not workspace.channels:
        _warn(f"No channels in {args.workspace}")
    agg = workspace.aggregate()

    print(f"Channels:    {', '.join(c.display_name for c in agg.channels) or '-'}")
    print(f"Spend:       {format_currency(agg.total_spend, args.currency)}")
    print(f"Revenue:     {format_currency(agg.total_revenue, args.currency)}")
    print(f"Results:     {format_number(agg.total_results)}")
    print(f"ROAS:        {format_multiplier(agg.blended_roas)}")
    print(f"Top channel: {agg.top_channel_by_spend.display_name if agg.top_channel_by_spend else '-'}")
    print(f"Best ROAS:   {agg.best_roas_channel.display_name if agg.best_roas_channel else '-'}")
    if agg.most_efficient_campaign:
        print(f"Most efficient campaign: {agg.most_efficient_campaign.name}")
    if args.verbose:
        for month in agg.monthly:
            labels = f" [{', '.join(month.highlights)}]" if month.highlights else ""
            print(f"  {month.month}  spend {format_number(month.spend)}"
                  f"  results {format_number(month.results)}{labels}")

    if args.output:
        save_yaml(agg.to_dict(), args.output)
        _info(f"Written: {args.output}")


def cmd_generate(args):
    """Derive a deck, validate it and write the requested outputs."""
    form = _load_form(args)
    aggregate = warehouse = None
    if args.type == "ads":
        if args.workspace:
            aggregate = AdsWorkspace.load(_require_file(args.workspace, "Workspace")).aggregate()
        if args.warehouse:
            warehouse = load_warehouse(_require_file(args.warehouse, "Warehouse file"))
        if aggregate is None and warehouse is None:
            _warn("No workspace or warehouse data; the deck uses form fields only")
    elif args.workspace or args.warehouse:
        _warn(f"--workspace and --warehouse are ignored for {args.type} decks")

    slides = derive_slides(args.type, form, aggregate, warehouse)
    _info(f"Derived {len(slides)} slides: {', '.join(s.id for s in slides)}")

    currency = _deck_currency(args.type, form, warehouse)
    pptx_bytes = PPTXBuilder().build(slides, currency or "") if args.pptx else None

    if not args.skip_qa:
        qa_result = DeckValidator().validate(slides, currency, pptx_bytes, args.type)
        if qa_result.passed:
            _info(qa_result.summary())
        else:
            _warn(qa_result.summary())
            if args.verbose:
                print(qa_result.report(), file=sys.stderr)
            if not args.force:
                _error("QA validation failed. Use --force to write anyway, "
                       "or --skip-qa to skip validation.")
    else:
        _info("QA validation skipped (--skip-qa)")

    save_slides(slides, args.output)
    _info(f"Written: {args.output}")

    if pptx_bytes is not None:
        pptx_path = Path(args.pptx)
        pptx_path.parent.mkdir(parents=True, exist_ok=True)
        pptx_path.write_bytes(pptx_bytes)
        _info(f"Written: {pptx_path} ({len(pptx_bytes):,} bytes)")

    if args.store:
        if not args.owner:
            _error("--owner is required with --store")
        name = getattr(form, "customer_name", "") or getattr(form, "user_name", "")
        try:
            record = YamlWrapStore(args.store).create(
                owner_id=args.owner,
                wrap_type=args.type,
                slides=slides,
                form_data=form.to_dict(),
                name=name,
                year=_report_year(form),
                password=args.password,
            )
        except StorageError as e:
            _error(str(e))
        _info(f"Stored as {record.share_code} ({record.share_path})")


def cmd_validate(args):
    """Validate a saved deck and, optionally, its PPTX export."""
    slides = load_slides(_require_file(args.slides, "Slides file"))
    pptx_bytes = _require_file(args.pptx, "PPTX file").read_bytes() if args.pptx else None
    _info(f"Validating {args.slides} ({len(slides)} slides)")

    qa_result = DeckValidator().validate(slides, args.currency, pptx_bytes, args.type)
    print(qa_result.report())
    sys.exit(0 if qa_result.passed else 1)


def cmd_inspect(args):
    """Show a deck type's canonical slide order."""
    order = canonical_order(args.type)
    print(f"Deck type:   {args.type}")
    print(f"Positions:   {len(order)}")
    print()
    for i, key in enumerate(order):
        print(f"  [{i:2d}] {key}")

    if args.platform:
        platform = Platform(args.platform)
        print()
        print(f"Column candidates for {platform.display_name}:")
        for metric, names in COLUMN_MAPPINGS[platform].items():
            print(f"  {metric.value:<16} {', '.join(names)}")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

_PLATFORMS = [p.value for p in Platform]


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wrap-builder",
        description="Build year-in-review (Wrapped) decks from advertising data.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Debug logging and detailed output.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- import ----
    imp = subparsers.add_parser(
        "import",
        help="Import a platform export (.csv, .tsv, .txt, .xlsx, .xlsm).",
    )
    imp.add_argument("file", help="Export file to import.")
    _add_platform_arg(imp, required=True)
    _add_workspace_arg(imp)
    imp.add_argument(
        "--show-columns",
        action="store_true",
        default=False,
        help="List which header each metric bound to.",
    )
    imp.set_defaults(func=cmd_import)

    # ---- remove ----
    rem = subparsers.add_parser(
        "remove",
        help="Remove a platform's channel from the workspace.",
    )
    _add_platform_arg(rem, required=True)
    _add_workspace_arg(rem)
    rem.set_defaults(func=cmd_remove)

    # ---- aggregate ----
    agg = subparsers.add_parser(
        "aggregate",
        help="Show the cross-channel aggregate of the workspace.",
    )
    _add_workspace_arg(agg)
    agg.add_argument(
        "--currency",
        default="",
        help="Currency code used to display money values.",
    )
    agg.add_argument(
        "-o", "--output",
        help="Also write the aggregate to this YAML file.",
    )
    agg.set_defaults(func=cmd_aggregate)

    # ---- generate ----
    gen = subparsers.add_parser(
        "generate",
        help="Derive a Wrapped deck.",
    )
    _add_type_arg(gen)
    gen.add_argument(
        "--workspace",
        help="Channel workspace YAML (ads decks).",
    )
    gen.add_argument(
        "--warehouse",
        help="Warehouse rows YAML (ads decks).",
    )
    gen.add_argument(
        "--form",
        help="Override form YAML.",
    )
    gen.add_argument(
        "-o", "--output",
        required=True,
        help="Output slides YAML path.",
    )
    gen.add_argument(
        "--pptx",
        help="Also export the deck to this PPTX path.",
    )
    store = gen.add_argument_group("sharing")
    store.add_argument(
        "--store",
        help="Wrap store directory; stores the deck under a new share code.",
    )
    store.add_argument(
        "--owner",
        help="Owner id recorded with the stored deck.",
    )
    store.add_argument(
        "--password",
        help="Protect the shared deck with a password.",
    )
    gen.add_argument(
        "--skip-qa",
        action="store_true",
        default=False,
        help="Skip QA validation after derivation.",
    )
    gen.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Write output even if QA validation fails.",
    )
    gen.set_defaults(func=cmd_generate)

    # ---- validate ----
    val = subparsers.add_parser(
        "validate",
        help="Validate a saved deck.",
    )
    val.add_argument(
        "--slides",
        required=True,
        help="Slides YAML to validate.",
    )
    val.add_argument(
        "--pptx",
        help="PPTX export to compare against the deck.",
    )
    val.add_argument(
        "--currency",
        help="Currency code every money payload must carry.",
    )
    val.add_argument(
        "--type",
        choices=sorted(DECK_RULES),
        help="Deck type (inferred when omitted).",
    )
    val.set_defaults(func=cmd_validate)

    # ---- inspect ----
    insp = subparsers.add_parser(
        "inspect",
        help="Show a deck type's slide order and column candidates.",
    )
    _add_type_arg(insp)
    _add_platform_arg(insp, required=False)
    insp.set_defaults(func=cmd_inspect)

    return parser


def _add_type_arg(parser):
    parser.add_argument(
        "--type",
        choices=sorted(DECK_RULES),
        default="ads",
        help="Deck type (default: ads).",
    )


def _add_platform_arg(parser, required: bool):
    parser.add_argument(
        "--platform",
        choices=_PLATFORMS,
        required=required,
        help="Advertising platform.",
    )


def _add_workspace_arg(parser):
    parser.add_argument(
        "--workspace",
        default=DEFAULT_WORKSPACE,
        help=f"Channel workspace YAML (default: {DEFAULT_WORKSPACE}).",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    args.func(args)


if __name__ == "__main__":
    main()
