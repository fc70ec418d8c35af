# marketdata/models.py
from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .domain.dates import utcnow
from .domain.types import Cadence, Provenance, ReviewStatus


class Base(DeclarativeBase):
    pass


class JobRunStatus(str, enum.Enum):
    running = "running"
    success = "success"
    partial = "partial"
    failed = "failed"


# -----------------------------
# Job configs
# -----------------------------
class ImportJobConfigRow(Base):
    __tablename__ = "import_job_configs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120))

    enabled: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    cadence: Mapped[Cadence] = mapped_column(Enum(Cadence), default=Cadence.manual)

    # FilterSpec as JSON: {"location": {...}, "property_types": [...], ...}
    filters_json: Mapped[str] = mapped_column(Text, default="{}")
    lookback_months: Mapped[int] = mapped_column(Integer, default=12)

    auto_approve: Mapped[bool] = mapped_column(Boolean, default=False)
    notify_on_import: Mapped[bool] = mapped_column(Boolean, default=False)

    last_run: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_run: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class SyncJobConfigRow(Base):
    __tablename__ = "sync_job_configs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120))

    enabled: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    cadence: Mapped[Cadence] = mapped_column(Enum(Cadence), default=Cadence.daily)

    # [{"name": ..., "latitude": ..., "longitude": ..., "radius_km": ...}, ...]
    regions_json: Mapped[str] = mapped_column(Text, default="[]")
    filters_json: Mapped[str] = mapped_column(Text, default="{}")
    lookback_months: Mapped[int] = mapped_column(Integer, default=12)

    auto_enrich: Mapped[bool] = mapped_column(Boolean, default=False)
    notify_on_new_data: Mapped[bool] = mapped_column(Boolean, default=False)

    last_run: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_run: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


# -----------------------------
# Imported transactions
# -----------------------------
class ImportedRecordRow(Base):
    __tablename__ = "imported_records"

    import_id: Mapped[str] = mapped_column(String(40), primary_key=True)
    config_id: Mapped[str] = mapped_column(String(64), index=True)

    transaction_id: Mapped[str] = mapped_column(String(120), index=True)
    transaction_date: Mapped[date] = mapped_column(Date, index=True)
    price: Mapped[float] = mapped_column(Float)
    price_per_sqm: Mapped[float] = mapped_column(Float)

    address: Mapped[str] = mapped_column(String(255), index=True)
    city: Mapped[str | None] = mapped_column(String(80), nullable=True)
    neighborhood: Mapped[str | None] = mapped_column(String(120), nullable=True)

    property_type: Mapped[str] = mapped_column(String(40), index=True)
    rooms: Mapped[float] = mapped_column(Float, default=0.0)
    floor: Mapped[int] = mapped_column(Integer, default=0)
    total_floors: Mapped[int] = mapped_column(Integer, default=0)
    area: Mapped[float] = mapped_column(Float)
    condition: Mapped[str] = mapped_column(String(40), default="unknown")
    age: Mapped[int] = mapped_column(Integer, default=0)
    features_json: Mapped[str] = mapped_column(Text, default="[]")

    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    source: Mapped[Provenance] = mapped_column(Enum(Provenance), index=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    imported_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    status: Mapped[ReviewStatus] = mapped_column(Enum(ReviewStatus), default=ReviewStatus.pending, index=True)
    reviewed: Mapped[bool] = mapped_column(Boolean, default=False)
    duplicate_of: Mapped[str | None] = mapped_column(String(40), nullable=True)
    tags_json: Mapped[str] = mapped_column(Text, default="[]")


class JobRun(Base):
    """
    One row per import / sync execution (scheduled or API-triggered).
    service_layer/jobruns.py writes these.
    """
    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_name: Mapped[str] = mapped_column(String(80), index=True)
    config_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    status: Mapped[JobRunStatus] = mapped_column(Enum(JobRunStatus), default=JobRunStatus.running, index=True)

    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # store error message
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # optional metadata: {"trigger": "scheduler"}
    meta_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # run counters: {"total_fetched": ..., "new_records": ..., "error_messages": [...]}
    summary_json: Mapped[str | None] = mapped_column(Text, nullable=True)
