# marketdata/domain/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class Provenance(str, Enum):
    land_registry = "land-registry"
    tax_authority = "tax-authority"
    broker = "broker"
    platform = "platform"


class Cadence(str, Enum):
    manual = "manual"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class ReviewStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    duplicate = "duplicate"


class RunStatus(str, Enum):
    success = "success"
    partial = "partial"
    failed = "failed"


class JobState(str, Enum):
    idle = "idle"
    due = "due"
    running = "running"


class SecondaryKind(str, Enum):
    planning = "planning"
    tax = "tax"
    municipal = "municipal"
    spatial = "spatial"


class Confidence(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank >= other.rank


_CONFIDENCE_RANK = {Confidence.low: 0, Confidence.medium: 1, Confidence.high: 2}


# -----------------------------
# Records
# -----------------------------
@dataclass(frozen=True)
class TransactionRecord:
    id: str
    transaction_date: date
    price: float
    price_per_sqm: float
    address: str
    property_type: str
    rooms: float
    floor: int
    total_floors: int
    area: float
    condition: str
    age: int
    verified: bool
    source: Provenance
    city: str | None = None
    neighborhood: str | None = None
    features: tuple[str, ...] = ()
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class Region:
    name: str
    latitude: float
    longitude: float
    radius_km: float


@dataclass(frozen=True)
class FilterSpec:
    location: Region | None = None
    property_types: tuple[str, ...] | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_area: float | None = None
    max_area: float | None = None
    rooms: tuple[float, ...] | None = None
    min_floor: int | None = None
    max_floor: int | None = None
    conditions: tuple[str, ...] | None = None
    max_age: int | None = None
    verified_only: bool = False
    sources: tuple[Provenance, ...] | None = None


# -----------------------------
# Job configs
# -----------------------------
@dataclass(frozen=True)
class ImportJobConfig:
    id: str
    name: str
    cadence: Cadence
    filters: FilterSpec
    lookback_months: int = 12
    enabled: bool = True
    auto_approve: bool = False
    notify_on_import: bool = False
    last_run: datetime | None = None
    next_run: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class SyncJobConfig:
    id: str
    name: str
    cadence: Cadence
    regions: tuple[Region, ...]
    filters: FilterSpec = field(default_factory=FilterSpec)
    lookback_months: int = 12
    enabled: bool = True
    auto_enrich: bool = False
    notify_on_new_data: bool = False
    last_run: datetime | None = None
    next_run: datetime | None = None


@dataclass(frozen=True)
class ImportedRecord:
    record: TransactionRecord
    import_id: str
    config_id: str
    imported_at: datetime
    status: ReviewStatus
    reviewed: bool = False
    duplicate_of: str | None = None
    tags: tuple[str, ...] = ()

    # dedup and export read through to the wrapped record
    @property
    def address(self) -> str:
        return self.record.address

    @property
    def transaction_date(self) -> date:
        return self.record.transaction_date

    @property
    def price(self) -> float:
        return self.record.price

    @property
    def area(self) -> float:
        return self.record.area


# -----------------------------
# Run results
# -----------------------------
@dataclass(frozen=True)
class ImportRunResult:
    config_id: str
    config_name: str
    started_at: datetime
    finished_at: datetime
    duration_ms: int
    total_fetched: int
    new_records: int
    duplicates: int
    filtered: int
    errors: int
    status: RunStatus
    error_messages: tuple[str, ...] = ()
    records: tuple[ImportedRecord, ...] = ()


@dataclass(frozen=True)
class DataQuality:
    verified: int = 0
    unverified: int = 0
    complete: int = 0
    incomplete: int = 0


@dataclass(frozen=True)
class SyncRunResult:
    id: str
    config_id: str
    started_at: datetime
    finished_at: datetime
    duration_ms: int
    status: RunStatus
    total_fetched: int
    new_records: int
    updated: int
    errors: int
    regions_processed: int
    data_quality: DataQuality
    error_messages: tuple[str, ...] = ()
    records: tuple[TransactionRecord, ...] = ()
    enriched: tuple[EnrichedRecord, ...] = ()


# -----------------------------
# Enrichment
# -----------------------------
@dataclass(frozen=True)
class PlanningAttributes:
    status: str
    zoning_designation: str
    far: float
    floors: int


@dataclass(frozen=True)
class MunicipalAttributes:
    neighborhood: str
    statistical_area: str


@dataclass(frozen=True)
class SpatialAttributes:
    elevation: float
    view_quality: str


@dataclass(frozen=True)
class ReferenceProperty:
    address: str
    area: float
    age: int
    condition: str


@dataclass(frozen=True)
class ComparabilityFactors:
    location_similarity: float
    size_similarity: float
    age_similarity: float
    condition_similarity: float
    overall_score: float


@dataclass(frozen=True)
class EnrichedRecord:
    record: TransactionRecord
    planning: PlanningAttributes | None = None
    tax_assessment: float | None = None
    municipal: MunicipalAttributes | None = None
    spatial: SpatialAttributes | None = None
    comparability: ComparabilityFactors | None = None
    # provider kind -> error message for every secondary call that failed
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def has_attributes(self) -> bool:
        return any(x is not None for x in (self.planning, self.tax_assessment, self.municipal, self.spatial))


# -----------------------------
# Derived snapshots
# -----------------------------
@dataclass(frozen=True)
class StatisticsSnapshot:
    avg_price_per_sqm: float
    median_price_per_sqm: float
    min_price_per_sqm: float
    max_price_per_sqm: float
    total: int
    by_month: dict[str, int]
    by_property_type: dict[str, float]


@dataclass(frozen=True)
class TrendSnapshot:
    price_change_3m: float
    price_change_6m: float
    price_change_12m: float
    volume_change: float


@dataclass(frozen=True)
class MarketValueEstimate:
    value_per_sqm: float
    total_value: float
    confidence: Confidence
    data_points: int
    range_min: float
    range_max: float
    median: float


@dataclass(frozen=True)
class ImportStatistics:
    total: int
    approved: int
    pending: int
    rejected: int
    duplicates: int
    avg_price: float
    avg_price_per_sqm: float
    avg_area: float
    by_property_type: dict[str, int]
    by_source: dict[str, int]
    by_month: dict[str, int]
    verified_count: int
    verified_percentage: float


@dataclass(frozen=True)
class MarketReport:
    summary: str
    records: tuple[TransactionRecord, ...]
    statistics: StatisticsSnapshot
    trends: TrendSnapshot
    insights: tuple[str, ...]


@dataclass(frozen=True)
class DateCenteredValuation:
    target_date: date
    records: tuple[TransactionRecord, ...]
    estimate: MarketValueEstimate
    report: str
