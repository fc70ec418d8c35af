# marketdata/schemas.py
from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .adapters.repos.codec import filter_to_dict
from .domain.types import (
    DateCenteredValuation,
    FilterSpec,
    ImportedRecord,
    ImportJobConfig,
    ImportRunResult,
    ImportStatistics,
    MarketReport,
    Provenance,
    Region,
    SyncJobConfig,
    SyncRunResult,
)

CadenceName = Literal["manual", "daily", "weekly", "monthly"]
SourceName = Literal["land-registry", "tax-authority", "broker", "platform"]
ReviewName = Literal["pending", "approved", "rejected", "duplicate"]


# -----------------------------
# Config input
# -----------------------------
class RegionIn(BaseModel):
    name: str = ""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(2.0, gt=0)

    def to_domain(self) -> Region:
        return Region(name=self.name, latitude=self.latitude, longitude=self.longitude, radius_km=self.radius_km)


class FilterSpecIn(BaseModel):
    location: RegionIn | None = None
    property_types: list[str] | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_area: float | None = None
    max_area: float | None = None
    rooms: list[float] | None = None
    min_floor: int | None = None
    max_floor: int | None = None
    conditions: list[str] | None = None
    max_age: int | None = None
    verified_only: bool = False
    sources: list[SourceName] | None = None

    def to_domain(self) -> FilterSpec:
        return FilterSpec(
            location=self.location.to_domain() if self.location else None,
            property_types=tuple(self.property_types) if self.property_types is not None else None,
            min_price=self.min_price,
            max_price=self.max_price,
            min_area=self.min_area,
            max_area=self.max_area,
            rooms=tuple(self.rooms) if self.rooms is not None else None,
            min_floor=self.min_floor,
            max_floor=self.max_floor,
            conditions=tuple(self.conditions) if self.conditions is not None else None,
            max_age=self.max_age,
            verified_only=self.verified_only,
            sources=tuple(Provenance(s) for s in self.sources) if self.sources is not None else None,
        )


class ImportConfigIn(BaseModel):
    id: str | None = None
    name: str
    cadence: CadenceName = "manual"
    filters: FilterSpecIn = Field(default_factory=FilterSpecIn)
    lookback_months: int = Field(12, ge=1, le=120)
    enabled: bool = True
    auto_approve: bool = False
    notify_on_import: bool = False


class SyncConfigIn(BaseModel):
    id: str | None = None
    name: str
    cadence: CadenceName = "daily"
    regions: list[RegionIn] = Field(default_factory=list)
    filters: FilterSpecIn = Field(default_factory=FilterSpecIn)
    lookback_months: int = Field(12, ge=1, le=120)
    enabled: bool = True
    auto_enrich: bool = False
    notify_on_new_data: bool = False


# -----------------------------
# Config output
# -----------------------------
class ImportConfigOut(BaseModel):
    id: str
    name: str
    cadence: str
    enabled: bool
    state: str
    filters: dict[str, Any]
    lookback_months: int
    auto_approve: bool
    notify_on_import: bool
    last_run: datetime | None = None
    next_run: datetime | None = None

    @classmethod
    def from_domain(cls, cfg: ImportJobConfig, state: str) -> "ImportConfigOut":
        return cls(
            id=cfg.id,
            name=cfg.name,
            cadence=cfg.cadence.value,
            enabled=cfg.enabled,
            state=state,
            filters=filter_to_dict(cfg.filters),
            lookback_months=cfg.lookback_months,
            auto_approve=cfg.auto_approve,
            notify_on_import=cfg.notify_on_import,
            last_run=cfg.last_run,
            next_run=cfg.next_run,
        )


class SyncConfigOut(BaseModel):
    id: str
    name: str
    cadence: str
    enabled: bool
    state: str
    regions: list[dict[str, Any]]
    filters: dict[str, Any]
    lookback_months: int
    auto_enrich: bool
    notify_on_new_data: bool
    last_run: datetime | None = None
    next_run: datetime | None = None

    @classmethod
    def from_domain(cls, cfg: SyncJobConfig, state: str) -> "SyncConfigOut":
        return cls(
            id=cfg.id,
            name=cfg.name,
            cadence=cfg.cadence.value,
            enabled=cfg.enabled,
            state=state,
            regions=[asdict(r) for r in cfg.regions],
            filters=filter_to_dict(cfg.filters),
            lookback_months=cfg.lookback_months,
            auto_enrich=cfg.auto_enrich,
            notify_on_new_data=cfg.notify_on_new_data,
            last_run=cfg.last_run,
            next_run=cfg.next_run,
        )


# -----------------------------
# Run results
# -----------------------------
class ImportRunOut(BaseModel):
    config_id: str
    config_name: str
    status: str
    started_at: datetime
    finished_at: datetime
    duration_ms: int = Field(..., ge=0)
    total_fetched: int = Field(..., ge=0)
    new_records: int = Field(..., ge=0)
    duplicates: int = Field(..., ge=0)
    filtered: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)
    error_messages: list[str]
    summary: str

    @classmethod
    def from_domain(cls, res: ImportRunResult, summary: str) -> "ImportRunOut":
        return cls(
            config_id=res.config_id,
            config_name=res.config_name,
            status=res.status.value,
            started_at=res.started_at,
            finished_at=res.finished_at,
            duration_ms=res.duration_ms,
            total_fetched=res.total_fetched,
            new_records=res.new_records,
            duplicates=res.duplicates,
            filtered=res.filtered,
            errors=res.errors,
            error_messages=list(res.error_messages),
            summary=summary,
        )


class DataQualityOut(BaseModel):
    verified: int
    unverified: int
    complete: int
    incomplete: int


class SyncRunOut(BaseModel):
    id: str
    config_id: str
    status: str
    started_at: datetime
    finished_at: datetime
    duration_ms: int = Field(..., ge=0)
    total_fetched: int = Field(..., ge=0)
    new_records: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)
    regions_processed: int = Field(..., ge=0)
    data_quality: DataQualityOut
    enriched: int = Field(..., ge=0)
    error_messages: list[str]

    @classmethod
    def from_domain(cls, res: SyncRunResult) -> "SyncRunOut":
        return cls(
            id=res.id,
            config_id=res.config_id,
            status=res.status.value,
            started_at=res.started_at,
            finished_at=res.finished_at,
            duration_ms=res.duration_ms,
            total_fetched=res.total_fetched,
            new_records=res.new_records,
            updated=res.updated,
            errors=res.errors,
            regions_processed=res.regions_processed,
            data_quality=DataQualityOut(**asdict(res.data_quality)),
            enriched=len(res.enriched),
            error_messages=list(res.error_messages),
        )


class JobRunOut(BaseModel):
    id: int
    job_name: str
    config_id: str | None = None
    status: str
    started_at: datetime
    finished_at: datetime | None = None
    error: str | None = None
    summary: dict[str, Any] | None = None


# -----------------------------
# Market analyses
# -----------------------------
class StatisticsOut(BaseModel):
    avg_price_per_sqm: float
    median_price_per_sqm: float
    min_price_per_sqm: float
    max_price_per_sqm: float
    total: int
    by_month: dict[str, int]
    by_property_type: dict[str, float]


class TrendsOut(BaseModel):
    price_change_3m: float
    price_change_6m: float
    price_change_12m: float
    volume_change: float


class MarketReportOut(BaseModel):
    summary: str
    statistics: StatisticsOut
    trends: TrendsOut
    insights: list[str]

    @classmethod
    def from_domain(cls, rep: MarketReport) -> "MarketReportOut":
        return cls(
            summary=rep.summary,
            statistics=StatisticsOut(**asdict(rep.statistics)),
            trends=TrendsOut(**asdict(rep.trends)),
            insights=list(rep.insights),
        )


class ValuationOut(BaseModel):
    target_date: date
    value_per_sqm: float
    total_value: float
    confidence: str
    data_points: int
    range_min: float
    range_max: float
    median: float
    report: str

    @classmethod
    def from_domain(cls, v: DateCenteredValuation) -> "ValuationOut":
        e = v.estimate
        return cls(
            target_date=v.target_date,
            value_per_sqm=e.value_per_sqm,
            total_value=e.total_value,
            confidence=e.confidence.value,
            data_points=e.data_points,
            range_min=e.range_min,
            range_max=e.range_max,
            median=e.median,
            report=v.report,
        )


# -----------------------------
# Imported records
# -----------------------------
class ImportedRecordOut(BaseModel):
    import_id: str
    config_id: str
    transaction_id: str
    transaction_date: date
    address: str
    price: float
    price_per_sqm: float
    area: float
    property_type: str
    verified: bool
    source: str
    imported_at: datetime
    status: str
    reviewed: bool
    duplicate_of: str | None = None

    @classmethod
    def from_domain(cls, item: ImportedRecord) -> "ImportedRecordOut":
        r = item.record
        return cls(
            import_id=item.import_id,
            config_id=item.config_id,
            transaction_id=r.id,
            transaction_date=r.transaction_date,
            address=r.address,
            price=r.price,
            price_per_sqm=r.price_per_sqm,
            area=r.area,
            property_type=r.property_type,
            verified=r.verified,
            source=r.source.value,
            imported_at=item.imported_at,
            status=item.status.value,
            reviewed=item.reviewed,
            duplicate_of=item.duplicate_of,
        )


class RecordStatusUpdate(BaseModel):
    status: ReviewName
    duplicate_of: str | None = None


class ImportStatisticsOut(BaseModel):
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

    @classmethod
    def from_domain(cls, s: ImportStatistics) -> "ImportStatisticsOut":
        return cls(**asdict(s))
