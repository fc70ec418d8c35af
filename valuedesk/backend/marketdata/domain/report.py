# marketdata/domain/report.py
from __future__ import annotations

from datetime import date

from .types import (
    Confidence,
    ImportRunResult,
    MarketValueEstimate,
    StatisticsSnapshot,
    TrendSnapshot,
)

RISING_THRESHOLD_PCT = 5.0
VOLUME_THRESHOLD_PCT = 20.0
SPREAD_WIDE_PCT = 50.0
SPREAD_TIGHT_PCT = 20.0
LOW_SAMPLE = 5
HIGH_SAMPLE = 20


def market_label(trend: TrendSnapshot) -> str:
    if trend.price_change_12m > RISING_THRESHOLD_PCT:
        return "rising market"
    if trend.price_change_12m < -RISING_THRESHOLD_PCT:
        return "cooling market"
    return "stable market"


def price_spread_pct(snapshot: StatisticsSnapshot) -> float | None:
    if snapshot.avg_price_per_sqm <= 0:
        return None
    return (snapshot.max_price_per_sqm - snapshot.min_price_per_sqm) / snapshot.avg_price_per_sqm * 100.0


def insights(snapshot: StatisticsSnapshot, trend: TrendSnapshot) -> list[str]:
    out: list[str] = []

    label = market_label(trend)
    if label == "rising market":
        out.append("rising market: prices climbing quickly")
    elif label == "cooling market":
        out.append("cooling market: prices falling")
    else:
        out.append("stable market: no significant price change")

    if trend.volume_change > VOLUME_THRESHOLD_PCT:
        out.append("high activity: strong demand")
    elif trend.volume_change < -VOLUME_THRESHOLD_PCT:
        out.append("low activity: weak demand")

    # empty snapshot has no spread to speak of
    spread = price_spread_pct(snapshot)
    if spread is not None:
        if spread > SPREAD_WIDE_PCT:
            out.append("non-homogeneous market: wide price gaps")
        elif spread < SPREAD_TIGHT_PCT:
            out.append("homogeneous market: consistent prices")

    if snapshot.total < LOW_SAMPLE:
        out.append("low confidence: few data points")
    elif snapshot.total >= HIGH_SAMPLE:
        out.append("high confidence: sufficient data")

    return out


def _signed(pct: float) -> str:
    return f"{'+' if pct > 0 else ''}{pct:.1f}%"


def summarize(snapshot: StatisticsSnapshot, trend: TrendSnapshot, months: int | None = None) -> str:
    period = f" in the last {months} months" if months else ""
    return "\n".join(
        [
            f"Found {snapshot.total} transactions{period}.",
            f"Average price per sqm: {snapshot.avg_price_per_sqm:,.0f}",
            f"Median price per sqm: {snapshot.median_price_per_sqm:,.0f}",
            f"Price trend (12 months): {_signed(trend.price_change_12m)} ({market_label(trend)})",
        ]
    )


def import_summary(result: ImportRunResult) -> str:
    lines = [
        f"Import: {result.config_name}",
        f"Started: {result.started_at.isoformat(timespec='seconds')}",
        f"Duration: {result.duration_ms / 1000:.1f}s",
        f"Status: {result.status.value}",
        "",
        f"Fetched: {result.total_fetched}",
        f"New: {result.new_records}",
        f"Duplicates: {result.duplicates}",
        f"Filtered: {result.filtered}",
    ]
    if result.errors > 0:
        lines.append(f"Errors: {result.errors}")
        lines.extend(f"   - {msg}" for msg in result.error_messages)
    return "\n".join(lines)


_CONFIDENCE_TEXT = {Confidence.high: "high", Confidence.medium: "medium", Confidence.low: "low"}


def valuation_report(
    *,
    target_date: date,
    radius_km: float,
    record_count: int,
    estimate: MarketValueEstimate,
) -> str:
    """Short plain-text block for the determining-date valuation."""
    return "\n".join(
        [
            f"Determining date: {target_date.isoformat()}",
            f"Search radius: {radius_km:g} km",
            f"Relevant transactions: {record_count}",
            f"Market value per sqm: {estimate.value_per_sqm:,.0f}",
            f"Confidence: {_CONFIDENCE_TEXT[estimate.confidence]}",
            f"Price range: {estimate.range_min:,.0f} - {estimate.range_max:,.0f}",
        ]
    )
