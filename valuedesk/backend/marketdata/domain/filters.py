# marketdata/domain/filters.py
from __future__ import annotations

import math
from typing import Iterable, Sequence

from .types import FilterSpec, ImportedRecord, TransactionRecord

# dedup tolerances (currency units / sqm); both bounds are exclusive
DUPLICATE_PRICE_TOLERANCE = 1000.0
DUPLICATE_AREA_TOLERANCE = 2.0

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance."""
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def passes_filter(record: TransactionRecord, spec: FilterSpec) -> bool:
    """
    True iff the record satisfies every constraint present in spec.
    Empty collections count as "not specified".
    """
    loc = spec.location
    if loc is not None and record.latitude is not None and record.longitude is not None:
        # the feed is already radius-scoped; records without coordinates are trusted
        if distance_km(loc.latitude, loc.longitude, record.latitude, record.longitude) > loc.radius_km:
            return False

    if spec.property_types and record.property_type not in spec.property_types:
        return False

    if spec.min_price is not None and record.price < spec.min_price:
        return False
    if spec.max_price is not None and record.price > spec.max_price:
        return False

    if spec.min_area is not None and record.area < spec.min_area:
        return False
    if spec.max_area is not None and record.area > spec.max_area:
        return False

    if spec.rooms and record.rooms not in spec.rooms:
        return False

    if spec.min_floor is not None and record.floor < spec.min_floor:
        return False
    if spec.max_floor is not None and record.floor > spec.max_floor:
        return False

    if spec.conditions and record.condition not in spec.conditions:
        return False

    if spec.max_age is not None and record.age > spec.max_age:
        return False

    if spec.verified_only and not record.verified:
        return False

    if spec.sources and record.source not in spec.sources:
        return False

    return True


def apply_filter(records: Iterable[TransactionRecord], spec: FilterSpec) -> list[TransactionRecord]:
    """Order-preserving filter; an empty spec returns every record."""
    return [r for r in records if passes_filter(r, spec)]


def is_duplicate_of(candidate: TransactionRecord, existing: ImportedRecord | TransactionRecord) -> bool:
    return (
        existing.address == candidate.address
        and existing.transaction_date == candidate.transaction_date
        and abs(existing.price - candidate.price) < DUPLICATE_PRICE_TOLERANCE
        and abs(existing.area - candidate.area) < DUPLICATE_AREA_TOLERANCE
    )


def find_duplicate(
    candidate: TransactionRecord,
    existing: Sequence[ImportedRecord],
) -> ImportedRecord | None:
    """
    Strict, address-exact match. First match wins.
    Addresses are compared verbatim: "Herzl 10" and "Herzl St. 10" are different.
    """
    for ex in existing:
        if is_duplicate_of(candidate, ex):
            return ex
    return None


def is_complete(record: TransactionRecord) -> bool:
    """Data-quality signal only; never used to reject a record."""
    return bool(
        record.address
        and record.price > 0
        and record.area > 0
        and record.price_per_sqm > 0
        and record.transaction_date
        and record.property_type
    )
