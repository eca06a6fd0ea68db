"""Row aggregator - reduces one parsed export into a ChannelData.

Every row contributes to three grains at once:
- channel totals (always)
- its campaign (only when a campaign column resolved)
- its day (only when the date cell normalizes to YYYY-MM-DD)

The reduction is a grouped pandas sum over a frame built once from the
rows; ratios are computed from the summed values of each grain, never
accumulated row by row.
"""

import logging
from dataclasses import dataclass

import pandas as pd

from ..schema.models import (
    CampaignData,
    ChannelData,
    DailyMetrics,
    Platform,
    ResultsByType,
    ResultType,
)
from . import ratios
from .columns import ColumnResolution, Metric, require_signal, resolve_columns
from .errors import UnrecognizedFormatError
from .ingestion import ParsedTable, normalize_date, parse_number, parse_upload

logger = logging.getLogger(__name__)

UNKNOWN_CAMPAIGN = "Unknown Campaign"
SUM_COLUMNS = ["spend", "revenue", "results", "impressions", "clicks"]
TYPE_COLUMNS = ["results", "result_value", "spend"]


@dataclass
class ChannelImport:
    """A successful import plus the diagnostics a caller may display."""
    channel: ChannelData
    resolution: ColumnResolution
    headers: list[str]
    row_count: int


# ---------------------------------------------------------------------------
# Row frame
# ---------------------------------------------------------------------------

def _numeric(rows: list[dict], header: str | None) -> list[float]:
    if header is None:
        return [0.0] * len(rows)
    return [parse_number(r.get(header, "")) for r in rows]


def build_row_frame(table: ParsedTable, resolution: ColumnResolution) -> pd.DataFrame:
    """One row per export row with every cell already normalized."""
    rows = table.rows
    results_header = resolution.header(Metric.RESULTS) or resolution.header(Metric.CONVERSIONS)
    type_header = resolution.header(Metric.RESULT_TYPE)
    campaign_header = resolution.header(Metric.CAMPAIGN_NAME)
    date_header = resolution.header(Metric.DATE)

    frame = pd.DataFrame({
        "spend": _numeric(rows, resolution.header(Metric.SPEND)),
        "revenue": _numeric(rows, resolution.header(Metric.REVENUE)),
        "results": _numeric(rows, results_header),
        "impressions": _numeric(rows, resolution.header(Metric.IMPRESSIONS)),
        "clicks": _numeric(rows, resolution.header(Metric.CLICKS)),
        "result_value": _numeric(rows, resolution.header(Metric.RESULT_VALUE)),
        "result_type": [
            ResultType.from_label(r.get(type_header, "") if type_header else "").value
            for r in rows
        ],
        "campaign": [
            (r.get(campaign_header, "") or UNKNOWN_CAMPAIGN) if campaign_header else None
            for r in rows
        ],
        "date": [
            normalize_date(r.get(date_header, "")) if date_header else None
            for r in rows
        ],
    }, columns=["spend", "revenue", "results", "impressions", "clicks",
                "result_value", "result_type", "campaign", "date"])

    if date_header:
        skipped = int(frame["date"].isna().sum())
        if skipped:
            logger.debug("%d rows have no usable date and are left out of daily metrics", skipped)
    return frame


# ---------------------------------------------------------------------------
# Grains
# ---------------------------------------------------------------------------

def _type_entry(type_value: str, sums: pd.Series) -> ResultsByType:
    result_type = ResultType(type_value)
    return ResultsByType(
        type=result_type,
        display_name=result_type.display_name,
        count=float(sums["results"]),
        value=float(sums["result_value"]),
        spend=float(sums["spend"]),
    )


def _by_count(entries: list[ResultsByType]) -> list[ResultsByType]:
    return sorted(entries, key=lambda r: r.count, reverse=True)


def _primary_type(entries_in_encounter_order: list[ResultsByType]) -> ResultType:
    primary, most = ResultType.OTHER, 0.0
    for entry in entries_in_encounter_order:
        if entry.count > most:
            primary, most = entry.type, entry.count
    return primary


def _campaigns(frame: pd.DataFrame, platform: Platform) -> list[CampaignData]:
    campaign_rows = frame[frame["campaign"].notna()]
    if campaign_rows.empty:
        return []

    totals = campaign_rows.groupby("campaign", sort=False)[SUM_COLUMNS].sum()
    with_results = campaign_rows[campaign_rows["results"] > 0]
    by_type = with_results.groupby(["campaign", "result_type"], sort=False)[TYPE_COLUMNS].sum()

    # Group order follows first appearance, so each list is in encounter order.
    breakdowns: dict[str, list[ResultsByType]] = {}
    for (name, type_value), sums in by_type.iterrows():
        breakdowns.setdefault(name, []).append(_type_entry(type_value, sums))

    campaigns = []
    for name, sums in totals.iterrows():
        entries = breakdowns.get(name, [])
        spend, revenue, results = float(sums["spend"]), float(sums["revenue"]), float(sums["results"])
        impressions, clicks = float(sums["impressions"]), float(sums["clicks"])
        campaigns.append(CampaignData(
            name=str(name),
            platform=platform,
            spend=spend,
            revenue=revenue,
            results=results,
            impressions=impressions,
            clicks=clicks,
            roas=ratios.roas(revenue, spend),
            cpr=ratios.cpr(spend, results),
            cpm=ratios.cpm(spend, impressions),
            cpc=ratios.cpc(spend, clicks),
            ctr=ratios.ctr(clicks, impressions),
            results_by_type=_by_count(entries),
            primary_result_type=_primary_type(entries),
        ))
    return sorted(campaigns, key=lambda c: c.results, reverse=True)


def _daily(frame: pd.DataFrame) -> list[DailyMetrics]:
    dated = frame[frame["date"].notna()]
    if dated.empty:
        return []
    by_day = dated.groupby("date", sort=True)[SUM_COLUMNS].sum()
    return [
        DailyMetrics(
            date=str(day),
            spend=float(sums["spend"]),
            revenue=float(sums["revenue"]),
            results=float(sums["results"]),
            impressions=float(sums["impressions"]),
            clicks=float(sums["clicks"]),
        )
        for day, sums in by_day.iterrows()
    ]


def aggregate_rows(table: ParsedTable, resolution: ColumnResolution,
                   platform: Platform) -> ChannelData:
    """Reduce parsed rows into channel totals, campaigns and daily metrics."""
    frame = build_row_frame(table, resolution)
    totals = frame[SUM_COLUMNS].sum()
    spend, revenue, results = float(totals["spend"]), float(totals["revenue"]), float(totals["results"])
    impressions, clicks = float(totals["impressions"]), float(totals["clicks"])

    with_results = frame[frame["results"] > 0]
    channel_types = with_results.groupby("result_type", sort=False)[TYPE_COLUMNS].sum()

    return ChannelData(
        platform=platform,
        spend=spend,
        revenue=revenue,
        results=results,
        impressions=impressions,
        clicks=clicks,
        roas=ratios.roas(revenue, spend),
        cpr=ratios.cpr(spend, results),
        cpm=ratios.cpm(spend, impressions),
        cpc=ratios.cpc(spend, clicks),
        ctr=ratios.ctr(clicks, impressions),
        campaigns=_campaigns(frame, platform),
        daily=_daily(frame),
        results_by_type=_by_count([_type_entry(t, s) for t, s in channel_types.iterrows()]),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def import_channel(data: bytes, fmt: str, platform: Platform | str) -> ChannelImport:
    """Parse, resolve and aggregate one platform export.

    Args:
        data: Raw upload bytes.
        fmt: Filename or extension ("meta.csv", "xlsx").
        platform: Platform the export came from.

    Raises:
        WrapImportError: The file could not be used; nothing is produced.
    """
    platform = Platform(platform) if isinstance(platform, str) else platform
    table = parse_upload(data, fmt, platform)
    resolution = resolve_columns(table.headers, platform)
    require_signal(resolution)

    channel = aggregate_rows(table, resolution, platform)
    if channel.spend == 0 and channel.impressions == 0:
        raise UnrecognizedFormatError(
            "Could not find spend or impressions data. Please check your file format."
        )

    logger.info("Imported %s: %d rows, %d campaigns, spend=%.2f impressions=%.0f",
                platform.value, len(table.rows), len(channel.campaigns),
                channel.spend, channel.impressions)
    return ChannelImport(channel=channel, resolution=resolution,
                         headers=list(table.headers), row_count=len(table.rows))
