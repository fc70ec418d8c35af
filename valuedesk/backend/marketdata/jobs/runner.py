# marketdata/jobs/runner.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.repos.imported_records import ImportedRecordRepository
from ..adapters.repos.job_configs import JobConfigRepository
from ..domain.dates import utcnow
from ..domain.types import ImportRunResult, SyncRunResult
from ..service_layer.bootstrap import Services
from ..service_layer.jobruns import finish_job, finish_job_fail, start_job

log = logging.getLogger(__name__)


def import_summary_dict(res: ImportRunResult) -> dict[str, Any]:
    return {
        "config_id": res.config_id,
        "status": res.status.value,
        "total_fetched": res.total_fetched,
        "new_records": res.new_records,
        "duplicates": res.duplicates,
        "filtered": res.filtered,
        "errors": res.errors,
        "error_messages": list(res.error_messages),
        "duration_ms": res.duration_ms,
    }


def sync_summary_dict(res: SyncRunResult) -> dict[str, Any]:
    return {
        "id": res.id,
        "config_id": res.config_id,
        "status": res.status.value,
        "total_fetched": res.total_fetched,
        "new_records": res.new_records,
        "updated": res.updated,
        "errors": res.errors,
        "regions_processed": res.regions_processed,
        "data_quality": {
            "verified": res.data_quality.verified,
            "unverified": res.data_quality.unverified,
            "complete": res.data_quality.complete,
            "incomplete": res.data_quality.incomplete,
        },
        "enriched": len(res.enriched),
        "error_messages": list(res.error_messages),
        "duration_ms": res.duration_ms,
    }


async def _record_import(session: AsyncSession, res: ImportRunResult, trigger: str) -> None:
    jr = await start_job(session, "import", config_id=res.config_id, meta={"trigger": trigger})
    jr.started_at = res.started_at
    error = "; ".join(res.error_messages) or None
    await finish_job(session, jr, res.status, import_summary_dict(res), error=error)


async def _record_sync(session: AsyncSession, res: SyncRunResult, trigger: str) -> None:
    jr = await start_job(session, "sync", config_id=res.config_id, meta={"trigger": trigger})
    jr.started_at = res.started_at
    error = "; ".join(res.error_messages) or None
    await finish_job(session, jr, res.status, sync_summary_dict(res), error=error)


# -------------------------
# Scheduled (due) runs
# -------------------------
async def run_due_imports(session: AsyncSession, services: Services, now: datetime | None = None) -> list[ImportRunResult]:
    """
    Load enabled import configs, run whatever is due (dedup candidates are
    looked up by address, never the whole table), store the new records and
    advance each config's schedule.
    Caller commits.
    """
    now = now or utcnow()
    configs = JobConfigRepository(session)
    records = ImportedRecordRepository(session)

    due = await services.importer.run_due(
        await configs.list_imports(enabled_only=True),
        (),
        now,
        stored=records.list_by_addresses,
    )
    out: list[ImportRunResult] = []
    for cfg, res in due:
        await records.add_many(res.records)
        await configs.save_import(cfg)
        await _record_import(session, res, "scheduler")
        out.append(res)
    return out


async def run_due_syncs(session: AsyncSession, services: Services, now: datetime | None = None) -> list[SyncRunResult]:
    now = now or utcnow()
    configs = JobConfigRepository(session)

    due = await services.sync.run_due(await configs.list_syncs(enabled_only=True), now)
    out: list[SyncRunResult] = []
    for cfg, res in due:
        await configs.save_sync(cfg)
        await _record_sync(session, res, "scheduler")
        out.append(res)
    return out


async def run_tick(session: AsyncSession, services: Services, now: datetime | None = None) -> dict[str, int]:
    now = now or utcnow()
    if services.quota is not None:
        services.quota.reset()
    imports = await run_due_imports(session, services, now)
    syncs = await run_due_syncs(session, services, now)
    if imports or syncs:
        log.info("scheduler tick ran imports=%s syncs=%s", len(imports), len(syncs))
    return {"imports": len(imports), "syncs": len(syncs)}


# -------------------------
# On-demand runs (API)
# -------------------------
async def run_import_now(session: AsyncSession, services: Services, config_id: str) -> ImportRunResult | None:
    """
    Returns None for an unknown config id.
    ConcurrencyViolation propagates (after the JobRun row is marked failed).
    """
    configs = JobConfigRepository(session)
    cfg = await configs.get_import(config_id)
    if cfg is None:
        return None

    records = ImportedRecordRepository(session)
    jr = await start_job(session, "import", config_id=cfg.id, meta={"trigger": "api"})
    try:
        res = await services.importer.run_import(cfg, stored=records.list_by_addresses)
    except Exception as e:
        await finish_job_fail(session, jr, e)
        raise

    await records.add_many(res.records)
    await configs.save_import(services.importer.advance(cfg, res.finished_at))
    await finish_job(session, jr, res.status, import_summary_dict(res), error="; ".join(res.error_messages) or None)
    return res


async def run_sync_now(session: AsyncSession, services: Services, config_id: str) -> SyncRunResult | None:
    configs = JobConfigRepository(session)
    cfg = await configs.get_sync(config_id)
    if cfg is None:
        return None

    jr = await start_job(session, "sync", config_id=cfg.id, meta={"trigger": "api"})
    try:
        res = await services.sync.perform_sync(cfg)
    except Exception as e:
        await finish_job_fail(session, jr, e)
        raise

    await configs.save_sync(services.sync.advance(cfg, res.finished_at))
    await finish_job(session, jr, res.status, sync_summary_dict(res), error="; ".join(res.error_messages) or None)
    return res
