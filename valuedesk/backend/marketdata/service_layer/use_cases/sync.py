# marketdata/service_layer/use_cases/sync.py
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Sequence

from ...adapters.providers.gateway import ProviderGateway
from ...config import settings
from ...domain.dates import as_date, utcnow
from ...domain.errors import ConcurrencyViolation, ConfigurationError, DecodeError, ProviderUnavailable
from ...domain.filters import apply_filter, is_complete
from ...domain.report import insights, summarize, valuation_report
from ...domain.schedule import is_due, next_run_for
from ...domain.statistics import aggregate, estimate_value, trends
from ...domain.types import (
    DataQuality,
    DateCenteredValuation,
    EnrichedRecord,
    FilterSpec,
    MarketReport,
    ReferenceProperty,
    Region,
    RunStatus,
    SyncJobConfig,
    SyncRunResult,
    TransactionRecord,
)
from ..enrichment import EnrichmentCoordinator
from ..fetching import fetch_region
from ..run_lock import SYNC_RUN, RunLock, run_key

log = logging.getLogger(__name__)

DAYS_PER_MONTH = 30
VALUATION_AREA_SQM = 100.0
VALUATION_PROPERTY_TYPE = "apartment"
VALUATION_WINDOW_MONTHS = 6


def sync_status(*, errors: int, new_records: int) -> RunStatus:
    if errors > 0:
        return RunStatus.partial if new_records > 0 else RunStatus.failed
    return RunStatus.success


def within_days(records: Sequence[TransactionRecord], target: date, days: int) -> list[TransactionRecord]:
    return [r for r in records if abs((r.transaction_date - target).days) <= days]


class MarketDataSync:
    """
    Multi-region sync plus the read-side market analyses built on the
    same gateway (market report, date-centered valuation).
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        run_lock: RunLock | None = None,
        *,
        enrichment: EnrichmentCoordinator | None = None,
        region_concurrency: int | None = None,
        max_retries: int | None = None,
        backoff_base_s: float | None = None,
        run_hour: int | None = None,
    ) -> None:
        self.gateway = gateway
        self.run_lock = run_lock or RunLock()
        self.enrichment = enrichment or EnrichmentCoordinator(gateway)
        self.region_concurrency = max(
            1, int(region_concurrency if region_concurrency is not None else settings.SYNC_REGION_CONCURRENCY)
        )
        self.max_retries = max_retries
        self.backoff_base_s = backoff_base_s
        self.run_hour = int(run_hour if run_hour is not None else settings.SCHED_RUN_HOUR)

    async def _fetch(self, region: Region, months: int) -> tuple[list[TransactionRecord], list[DecodeError]]:
        return await fetch_region(
            self.gateway,
            region,
            months,
            max_retries=self.max_retries,
            backoff_base_s=self.backoff_base_s,
        )

    # -------------------------
    # Multi-region sync run
    # -------------------------
    async def perform_sync(
        self,
        config: SyncJobConfig,
        reference: ReferenceProperty | None = None,
    ) -> SyncRunResult:
        """
        Raises ConcurrencyViolation (before any fetch) if this config is
        already syncing. A failing region is counted and reported; the
        remaining regions are still processed.
        """
        with self.run_lock.hold(run_key(SYNC_RUN, config.id)):
            return await self._sync(config, reference)

    async def _sync(self, config: SyncJobConfig, reference: ReferenceProperty | None) -> SyncRunResult:
        started = utcnow()
        run_id = f"SYNC-{uuid.uuid4().hex[:12]}"

        total = errors = processed = 0
        messages: list[str] = []
        kept: list[TransactionRecord] = []

        if not config.regions:
            errors += 1
            messages.append(str(ConfigurationError("at least one region is required")))
        else:
            sem = asyncio.Semaphore(self.region_concurrency)

            async def _one(region: Region):
                async with sem:
                    try:
                        return region, await self._fetch(region, config.lookback_months), None
                    except ProviderUnavailable as e:
                        return region, None, e

            # gather keeps config order, so counters and messages are deterministic
            outcomes = await asyncio.gather(*(_one(r) for r in config.regions))

            for region, fetched, err in outcomes:
                if err is not None:
                    errors += 1
                    messages.append(f"region {region.name}: {err}")
                    log.warning("sync region failed config=%s region=%s: %s", config.id, region.name, err)
                    continue
                records, rejects = fetched
                total += len(records) + len(rejects)
                messages.extend(f"region {region.name}: {rej}" for rej in rejects)
                kept.extend(apply_filter(records, config.filters))
                processed += 1

        verified = sum(1 for r in kept if r.verified)
        complete = sum(1 for r in kept if is_complete(r))
        quality = DataQuality(
            verified=verified,
            unverified=len(kept) - verified,
            complete=complete,
            incomplete=len(kept) - complete,
        )

        enriched: list[EnrichedRecord] = []
        if config.auto_enrich and kept:
            enriched = await self.enrichment.enrich_many(kept, reference)

        finished = utcnow()
        result = SyncRunResult(
            id=run_id,
            config_id=config.id,
            started_at=started,
            finished_at=finished,
            duration_ms=int((finished - started).total_seconds() * 1000),
            status=sync_status(errors=errors, new_records=len(kept)),
            total_fetched=total,
            new_records=len(kept),
            updated=0,
            errors=errors,
            regions_processed=processed,
            data_quality=quality,
            error_messages=tuple(messages),
            records=tuple(kept),
            enriched=tuple(enriched),
        )
        log.info(
            "sync done config=%s status=%s regions=%s/%s fetched=%s new=%s errors=%s",
            config.id,
            result.status.value,
            processed,
            len(config.regions),
            total,
            result.new_records,
            errors,
        )
        return result

    def advance(self, config: SyncJobConfig, now: datetime) -> SyncJobConfig:
        return replace(config, last_run=now, next_run=next_run_for(config.cadence, now, run_hour=self.run_hour))

    async def run_due(
        self,
        configs: Sequence[SyncJobConfig],
        now: datetime | None = None,
    ) -> list[tuple[SyncJobConfig, SyncRunResult]]:
        now = now or utcnow()
        out: list[tuple[SyncJobConfig, SyncRunResult]] = []
        for cfg in configs:
            if not is_due(cfg, now):
                continue
            try:
                result = await self.perform_sync(cfg)
            except ConcurrencyViolation as e:
                log.warning("skipping due sync: %s", e)
                continue
            out.append((self.advance(cfg, now), result))
        return out

    # -------------------------
    # Market analyses
    # -------------------------
    async def fetch_for_target_date(
        self,
        region: Region,
        target_date: date,
        window_months: int = VALUATION_WINDOW_MONTHS,
    ) -> list[TransactionRecord]:
        """
        Fetch twice the window, then keep records within window_months * 30
        days of target_date on either side.
        """
        records, rejects = await self._fetch(region, window_months * 2)
        for rej in rejects:
            log.warning("dropped undecodable transaction from %s: %s", rej.provider, rej)
        return within_days(records, as_date(target_date), window_months * DAYS_PER_MONTH)

    async def market_report(
        self,
        region: Region,
        months: int = 12,
        filters: FilterSpec | None = None,
        now: datetime | None = None,
    ) -> MarketReport:
        records, rejects = await self._fetch(region, months)
        for rej in rejects:
            log.warning("dropped undecodable transaction from %s: %s", rej.provider, rej)
        if filters is not None:
            records = apply_filter(records, filters)

        snapshot = aggregate(records)
        trend = trends(records, now or utcnow())
        return MarketReport(
            summary=summarize(snapshot, trend, months),
            records=tuple(records),
            statistics=snapshot,
            trends=trend,
            insights=tuple(insights(snapshot, trend)),
        )

    async def valuation_at_date(
        self,
        target_date: date,
        latitude: float,
        longitude: float,
        radius_km: float = 2.0,
        *,
        area: float = VALUATION_AREA_SQM,
        property_type: str = VALUATION_PROPERTY_TYPE,
        window_months: int = VALUATION_WINDOW_MONTHS,
    ) -> DateCenteredValuation:
        region = Region(name="valuation", latitude=latitude, longitude=longitude, radius_km=radius_km)
        records = await self.fetch_for_target_date(region, target_date, window_months)
        estimate = estimate_value(records, target_date, area, property_type, window_months)
        return DateCenteredValuation(
            target_date=target_date,
            records=tuple(records),
            estimate=estimate,
            report=valuation_report(
                target_date=target_date,
                radius_km=radius_km,
                record_count=len(records),
                estimate=estimate,
            ),
        )
