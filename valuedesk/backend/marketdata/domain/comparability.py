# marketdata/domain/comparability.py
from __future__ import annotations

from .types import ComparabilityFactors, ReferenceProperty, TransactionRecord

WEIGHT_LOCATION = 0.35
WEIGHT_SIZE = 0.30
WEIGHT_AGE = 0.20
WEIGHT_CONDITION = 0.15

CONDITION_MATCH = 1.0
CONDITION_MISMATCH = 0.5


def size_similarity(tx_area: float, ref_area: float) -> float:
    if ref_area <= 0:
        return 0.0
    return 1.0 - min(abs(tx_area - ref_area) / ref_area, 1.0)


def age_similarity(tx_age: int, ref_age: int) -> float:
    return 1.0 - min(abs(tx_age - ref_age) / max(ref_age, 1), 1.0)


def condition_similarity(tx_condition: str, ref_condition: str) -> float:
    return CONDITION_MATCH if tx_condition == ref_condition else CONDITION_MISMATCH


def comparability(
    record: TransactionRecord,
    reference: ReferenceProperty,
    *,
    location_similarity: float,
) -> ComparabilityFactors:
    """
    Weighted similarity of a transaction to the subject property.

    location_similarity is supplied by the caller (a configured constant today;
    nothing here derives it from coordinates).
    """
    size = size_similarity(record.area, reference.area)
    age = age_similarity(record.age, reference.age)
    cond = condition_similarity(record.condition, reference.condition)

    overall = (
        WEIGHT_LOCATION * location_similarity
        + WEIGHT_SIZE * size
        + WEIGHT_AGE * age
        + WEIGHT_CONDITION * cond
    )
    return ComparabilityFactors(
        location_similarity=location_similarity,
        size_similarity=size,
        age_similarity=age,
        condition_similarity=cond,
        overall_score=overall,
    )
