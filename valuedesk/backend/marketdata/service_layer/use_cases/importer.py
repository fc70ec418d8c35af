# marketdata/service_layer/use_cases/importer.py
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Sequence

from ...adapters.providers.gateway import ProviderGateway
from ...config import settings
from ...domain.dates import utcnow
from ...domain.errors import ConcurrencyViolation, ConfigurationError, ProviderUnavailable
from ...domain.filters import find_duplicate, passes_filter
from ...domain.schedule import is_due, next_run_for
from ...domain.types import (
    ImportedRecord,
    ImportJobConfig,
    ImportRunResult,
    ReviewStatus,
    RunStatus,
)
from ..fetching import fetch_region
from ..run_lock import IMPORT_RUN, RunLock, run_key

log = logging.getLogger(__name__)

# address set -> previously stored imports at those addresses
StoredLookup = Callable[[set[str]], Awaitable[Iterable[ImportedRecord]]]


def new_import_id() -> str:
    return f"IMP-{uuid.uuid4().hex[:12]}"


def import_status(*, aborted: bool, errors: int, new_records: int) -> RunStatus:
    if aborted:
        return RunStatus.failed
    if errors > 0:
        return RunStatus.partial if new_records > 0 else RunStatus.failed
    return RunStatus.success


class TransactionImporter:
    """
    Single-config import: fetch once for the config's location, filter,
    dedup against the supplied existing records and wrap survivors as
    ImportedRecords. Nothing is persisted here; jobs.runner does that.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        run_lock: RunLock | None = None,
        *,
        max_retries: int | None = None,
        backoff_base_s: float | None = None,
        run_hour: int | None = None,
    ) -> None:
        self.gateway = gateway
        self.run_lock = run_lock or RunLock()
        self.max_retries = max_retries
        self.backoff_base_s = backoff_base_s
        self.run_hour = int(run_hour if run_hour is not None else settings.SCHED_RUN_HOUR)

    async def run_import(
        self,
        config: ImportJobConfig,
        existing: Sequence[ImportedRecord] = (),
        *,
        stored: StoredLookup | None = None,
    ) -> ImportRunResult:
        """
        Dedup runs against `existing` plus, when given, whatever `stored`
        returns for the fetched addresses (so callers need not load every
        stored record up front).

        Raises ConcurrencyViolation (before any fetch) if this config is
        already running. Every other failure ends up in the result.
        """
        with self.run_lock.hold(run_key(IMPORT_RUN, config.id)):
            return await self._run(config, existing, stored)

    async def _run(
        self,
        config: ImportJobConfig,
        existing: Sequence[ImportedRecord],
        stored: StoredLookup | None,
    ) -> ImportRunResult:
        started = utcnow()
        total = filtered = duplicates = errors = 0
        messages: list[str] = []
        imported: list[ImportedRecord] = []
        aborted = False

        try:
            region = config.filters.location
            if region is None:
                raise ConfigurationError("Location filter is required")

            records, rejects = await fetch_region(
                self.gateway,
                region,
                config.lookback_months,
                max_retries=self.max_retries,
                backoff_base_s=self.backoff_base_s,
            )
            total = len(records) + len(rejects)
            # undecodable items are dropped like filtered ones, but keep their reason
            filtered += len(rejects)
            messages.extend(str(rej) for rej in rejects)

            # dedup also covers records imported earlier in this same run
            seen = list(existing)
            if stored is not None and records:
                seen.extend(await stored({r.address for r in records}))
            for rec in records:
                if not passes_filter(rec, config.filters):
                    filtered += 1
                    continue
                if find_duplicate(rec, seen) is not None:
                    duplicates += 1
                    continue

                item = ImportedRecord(
                    record=rec,
                    import_id=new_import_id(),
                    config_id=config.id,
                    imported_at=utcnow(),
                    status=ReviewStatus.approved if config.auto_approve else ReviewStatus.pending,
                    reviewed=config.auto_approve,
                )
                imported.append(item)
                seen.append(item)

        except (ConfigurationError, ProviderUnavailable) as e:
            aborted = True
            errors += 1
            messages.append(str(e))
            log.warning("import aborted config=%s: %s", config.id, e)

        finished = utcnow()
        result = ImportRunResult(
            config_id=config.id,
            config_name=config.name,
            started_at=started,
            finished_at=finished,
            duration_ms=int((finished - started).total_seconds() * 1000),
            total_fetched=total,
            new_records=len(imported),
            duplicates=duplicates,
            filtered=filtered,
            errors=errors,
            status=import_status(aborted=aborted, errors=errors, new_records=len(imported)),
            error_messages=tuple(messages),
            records=tuple(imported),
        )
        log.info(
            "import done config=%s status=%s fetched=%s new=%s dup=%s filtered=%s errors=%s",
            config.id,
            result.status.value,
            result.total_fetched,
            result.new_records,
            result.duplicates,
            result.filtered,
            result.errors,
        )
        return result

    def advance(self, config: ImportJobConfig, now: datetime) -> ImportJobConfig:
        return replace(
            config,
            last_run=now,
            next_run=next_run_for(config.cadence, now, run_hour=self.run_hour),
            updated_at=now,
        )

    async def run_due(
        self,
        configs: Sequence[ImportJobConfig],
        existing: Sequence[ImportedRecord] = (),
        now: datetime | None = None,
        *,
        stored: StoredLookup | None = None,
    ) -> list[tuple[ImportJobConfig, ImportRunResult]]:
        """
        Run every due config in order. Each pair holds the config with
        last_run/next_run advanced (also after a failed run) and its result.
        A config that is already running elsewhere is skipped and left as is.
        """
        now = now or utcnow()
        pool = list(existing)
        out: list[tuple[ImportJobConfig, ImportRunResult]] = []

        for cfg in configs:
            if not is_due(cfg, now):
                continue
            try:
                result = await self.run_import(cfg, pool, stored=stored)
            except ConcurrencyViolation as e:
                log.warning("skipping due import: %s", e)
                continue
            pool.extend(result.records)
            out.append((self.advance(cfg, now), result))

        return out
