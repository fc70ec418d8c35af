# marketdata/domain/statistics.py
"""
Aggregate statistics, rolling trend deltas and the median-based value estimate.

Medians here are the element at index n // 2 of the sorted series (the upper
median for even counts), which is what the valuation screens have always shown.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Sequence

from .dates import add_months, as_date, month_key
from .types import (
    Confidence,
    ImportedRecord,
    ImportStatistics,
    MarketValueEstimate,
    ReviewStatus,
    StatisticsSnapshot,
    TransactionRecord,
    TrendSnapshot,
)

HIGH_CONFIDENCE_MIN_POINTS = 10
MEDIUM_CONFIDENCE_MIN_POINTS = 5


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _upper_median(sorted_values: Sequence[float]) -> float:
    return sorted_values[len(sorted_values) // 2] if sorted_values else 0.0


def _pct_change(recent: Sequence[float], prior: Sequence[float]) -> float:
    # an empty window on either side means "no comparison", not -100%
    if not recent or not prior:
        return 0.0
    base = _mean(prior)
    if base <= 0:
        return 0.0
    return (_mean(recent) - base) / base * 100.0


def aggregate(records: Sequence[TransactionRecord]) -> StatisticsSnapshot:
    if not records:
        return StatisticsSnapshot(
            avg_price_per_sqm=0.0,
            median_price_per_sqm=0.0,
            min_price_per_sqm=0.0,
            max_price_per_sqm=0.0,
            total=0,
            by_month={},
            by_property_type={},
        )

    series = sorted(r.price_per_sqm for r in records)

    by_month: dict[str, int] = dict(Counter(month_key(r.transaction_date) for r in records))

    # one pass per category, not one per record
    per_type: dict[str, list[float]] = defaultdict(list)
    for r in records:
        per_type[r.property_type].append(r.price_per_sqm)
    by_type = {t: _mean(v) for t, v in per_type.items()}

    return StatisticsSnapshot(
        avg_price_per_sqm=_mean(series),
        median_price_per_sqm=_upper_median(series),
        min_price_per_sqm=series[0],
        max_price_per_sqm=series[-1],
        total=len(records),
        by_month=by_month,
        by_property_type=by_type,
    )


def trends(records: Sequence[TransactionRecord], now: date | datetime) -> TrendSnapshot:
    """
    Windows relative to now:
      recent 3m  [now-3m, now]   vs prior 3m  [now-6m, now-3m)
      recent 6m  [now-6m, now]   vs prior 6m  [now-12m, now-6m)

    The 12-month figure repeats the 6-vs-6 comparison.
    """
    today = as_date(now)
    m3 = add_months(today, -3)
    m6 = add_months(today, -6)
    m12 = add_months(today, -12)

    recent_3: list[float] = []
    prior_3: list[float] = []
    recent_6: list[float] = []
    prior_6: list[float] = []

    for r in records:
        d = r.transaction_date
        if d > today:
            continue
        if d >= m3:
            recent_3.append(r.price_per_sqm)
        elif d >= m6:
            prior_3.append(r.price_per_sqm)

        if d >= m6:
            recent_6.append(r.price_per_sqm)
        elif d >= m12:
            prior_6.append(r.price_per_sqm)

    change_3 = _pct_change(recent_3, prior_3)
    change_6 = _pct_change(recent_6, prior_6)
    volume = (len(recent_6) - len(prior_6)) / len(prior_6) * 100.0 if prior_6 else 0.0

    return TrendSnapshot(
        price_change_3m=change_3,
        price_change_6m=change_6,
        price_change_12m=change_6,
        volume_change=volume,
    )


def confidence_for(data_points: int) -> Confidence:
    if data_points >= HIGH_CONFIDENCE_MIN_POINTS:
        return Confidence.high
    if data_points >= MEDIUM_CONFIDENCE_MIN_POINTS:
        return Confidence.medium
    return Confidence.low


def estimate_value(
    records: Sequence[TransactionRecord],
    target_date: date,
    area: float,
    property_type: str,
    window_months: int = 6,
) -> MarketValueEstimate:
    """
    Median price-per-sqm of the records matching property_type, times area.

    target_date and window_months describe the window the records were
    fetched for (see MarketDataSync.fetch_for_target_date); no second date
    filter is applied here.
    """
    matches = sorted(r.price_per_sqm for r in records if r.property_type == property_type)
    if not matches:
        return MarketValueEstimate(
            value_per_sqm=0.0,
            total_value=0.0,
            confidence=Confidence.low,
            data_points=0,
            range_min=0.0,
            range_max=0.0,
            median=0.0,
        )

    median = _upper_median(matches)
    return MarketValueEstimate(
        value_per_sqm=median,
        total_value=median * area,
        confidence=confidence_for(len(matches)),
        data_points=len(matches),
        range_min=matches[0],
        range_max=matches[-1],
        median=median,
    )


def import_statistics(imported: Sequence[ImportedRecord]) -> ImportStatistics:
    total = len(imported)
    statuses = Counter(i.status for i in imported)
    verified = sum(1 for i in imported if i.record.verified)

    return ImportStatistics(
        total=total,
        approved=statuses[ReviewStatus.approved],
        pending=statuses[ReviewStatus.pending],
        rejected=statuses[ReviewStatus.rejected],
        duplicates=statuses[ReviewStatus.duplicate],
        avg_price=_mean([i.record.price for i in imported]),
        avg_price_per_sqm=_mean([i.record.price_per_sqm for i in imported]),
        avg_area=_mean([i.record.area for i in imported]),
        by_property_type=dict(Counter(i.record.property_type for i in imported)),
        by_source=dict(Counter(i.record.source.value for i in imported)),
        by_month=dict(Counter(month_key(i.record.transaction_date) for i in imported)),
        verified_count=verified,
        verified_percentage=(verified / total * 100.0) if total else 0.0,
    )
