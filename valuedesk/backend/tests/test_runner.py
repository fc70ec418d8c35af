# tests/test_runner.py
from datetime import datetime, timezone

import pytest
from factories import JLM, TLV, FakeFeed, make_gateway, make_payload

from marketdata.adapters.repos.imported_records import ImportedRecordRepository
from marketdata.adapters.repos.job_configs import JobConfigRepository
from marketdata.domain.types import Cadence, FilterSpec, ImportJobConfig, RunStatus, SyncJobConfig
from marketdata.jobs.runner import run_import_now, run_sync_now, run_tick
from marketdata.jobs.scheduler import build_scheduler
from marketdata.models import JobRunStatus
from marketdata.service_layer.bootstrap import build_services
from marketdata.service_layer.jobruns import recent_runs

NOW = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)


def _feed() -> FakeFeed:
    return FakeFeed(
        {
            TLV.latitude: [
                make_payload(transactionId="a", address="Herzl 1, Tel Aviv"),
                make_payload(transactionId="b", address="Herzl 3, Tel Aviv"),
            ],
            JLM.latitude: [make_payload(transactionId="j", address="Jaffa 5, Jerusalem")],
        }
    )


@pytest.mark.asyncio
async def test_run_import_now_persists_records_and_schedule(session):
    services = build_services(gateway=make_gateway(_feed()))
    repo = JobConfigRepository(session)
    await repo.save_import(ImportJobConfig(id="cfg-1", name="TLV", cadence=Cadence.daily, filters=FilterSpec(location=TLV)))

    res = await run_import_now(session, services, "cfg-1")
    assert res is not None
    assert res.status == RunStatus.success
    assert res.new_records == 2

    stored = await ImportedRecordRepository(session).list_records(config_id="cfg-1")
    assert sorted(i.record.id for i in stored) == ["a", "b"]

    cfg = await repo.get_import("cfg-1")
    assert cfg.last_run is not None
    assert cfg.next_run is not None and cfg.next_run > cfg.last_run

    runs = await recent_runs(session, config_id="cfg-1")
    assert len(runs) == 1
    assert runs[0].status == JobRunStatus.success

    # a second run finds everything already imported
    again = await run_import_now(session, services, "cfg-1")
    assert (again.new_records, again.duplicates) == (0, 2)


@pytest.mark.asyncio
async def test_run_now_unknown_config_is_none(session):
    services = build_services(gateway=make_gateway(_feed()))
    assert await run_import_now(session, services, "nope") is None
    assert await run_sync_now(session, services, "nope") is None


@pytest.mark.asyncio
async def test_run_sync_now_records_job_run(session):
    services = build_services(gateway=make_gateway(_feed()))
    await JobConfigRepository(session).save_sync(
        SyncJobConfig(id="s-1", name="Both", cadence=Cadence.weekly, regions=(TLV, JLM))
    )

    res = await run_sync_now(session, services, "s-1")
    assert res.status == RunStatus.success
    assert (res.total_fetched, res.regions_processed) == (3, 2)

    runs = await recent_runs(session, config_id="s-1")
    assert runs[0].job_name == "sync"
    assert '"regions_processed": 2' in runs[0].summary_json


@pytest.mark.asyncio
async def test_tick_runs_only_due_configs(session):
    services = build_services(gateway=make_gateway(_feed()))
    repo = JobConfigRepository(session)
    await repo.save_import(ImportJobConfig(id="due", name="due", cadence=Cadence.daily, filters=FilterSpec(location=TLV)))
    await repo.save_import(
        ImportJobConfig(id="manual", name="manual", cadence=Cadence.manual, filters=FilterSpec(location=TLV))
    )
    await repo.save_sync(
        SyncJobConfig(
            id="later",
            name="later",
            cadence=Cadence.daily,
            regions=(JLM,),
            next_run=datetime(2024, 6, 16, 2, 0, tzinfo=timezone.utc),
        )
    )

    out = await run_tick(session, services, NOW)
    assert out == {"imports": 1, "syncs": 0}

    due = await repo.get_import("due")
    assert due.last_run == NOW
    assert due.next_run == datetime(2024, 6, 16, 2, 0, tzinfo=timezone.utc)
    assert (await repo.get_import("manual")).last_run is None

    # not due again until tomorrow
    assert await run_tick(session, services, NOW) == {"imports": 0, "syncs": 0}


def test_scheduler_has_one_non_overlapping_tick_job():
    sched = build_scheduler(build_services(gateway=make_gateway(_feed())))
    jobs = sched.get_jobs()
    assert len(jobs) == 1
    assert jobs[0].max_instances == 1
    assert jobs[0].coalesce is True
