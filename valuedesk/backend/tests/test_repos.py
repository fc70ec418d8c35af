# tests/test_repos.py
from datetime import datetime, timezone

import pytest
from factories import JLM, TLV, make_record

from marketdata.adapters.repos.imported_records import ImportedRecordRepository
from marketdata.adapters.repos.job_configs import JobConfigRepository
from marketdata.domain.types import (
    Cadence,
    FilterSpec,
    ImportedRecord,
    ImportJobConfig,
    Provenance,
    ReviewStatus,
    RunStatus,
    SyncJobConfig,
)
from marketdata.models import JobRunStatus
from marketdata.service_layer.demo_seed import DEFAULT_IMPORT_ID, DEFAULT_SYNC_ID, seed_demo
from marketdata.service_layer.jobruns import finish_job, finish_job_fail, recent_runs, start_job

NOW = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)


def _imported(import_id: str, **kw) -> ImportedRecord:
    return ImportedRecord(
        record=make_record(**kw),
        import_id=import_id,
        config_id="cfg-1",
        imported_at=NOW,
        status=ReviewStatus.pending,
    )


@pytest.mark.asyncio
async def test_import_config_roundtrip_keeps_filters(session):
    repo = JobConfigRepository(session)
    cfg = ImportJobConfig(
        id="cfg-1",
        name="Tel Aviv",
        cadence=Cadence.weekly,
        filters=FilterSpec(
            location=TLV,
            property_types=("apartment", "penthouse"),
            min_price=1_000_000,
            rooms=(3.0, 4.5),
            verified_only=True,
            sources=(Provenance.land_registry,),
        ),
        lookback_months=6,
        next_run=NOW,
    )
    await repo.save_import(cfg)
    await session.commit()

    got = await repo.get_import("cfg-1")
    assert got is not None
    assert got.filters == cfg.filters
    assert got.cadence == Cadence.weekly
    assert got.lookback_months == 6
    assert got.next_run == NOW
    assert got.last_run is None


@pytest.mark.asyncio
async def test_save_import_upserts_and_delete(session):
    repo = JobConfigRepository(session)
    cfg = ImportJobConfig(id="cfg-1", name="A", cadence=Cadence.manual, filters=FilterSpec(location=TLV))
    await repo.save_import(cfg)
    await repo.save_import(ImportJobConfig(id="cfg-1", name="B", cadence=Cadence.daily, filters=FilterSpec(location=TLV), enabled=False))

    all_cfgs = await repo.list_imports()
    assert [c.name for c in all_cfgs] == ["B"]
    assert await repo.list_imports(enabled_only=True) == []

    assert await repo.delete_import("cfg-1") is True
    assert await repo.delete_import("cfg-1") is False
    assert await repo.list_imports() == []


@pytest.mark.asyncio
async def test_sync_config_roundtrip_keeps_region_order(session):
    repo = JobConfigRepository(session)
    cfg = SyncJobConfig(id="s-1", name="Both", cadence=Cadence.daily, regions=(JLM, TLV), auto_enrich=True)
    await repo.save_sync(cfg)

    got = await repo.get_sync("s-1")
    assert got is not None
    assert got.regions == (JLM, TLV)
    assert got.filters == FilterSpec()
    assert got.auto_enrich is True


@pytest.mark.asyncio
async def test_imported_records_add_list_and_review(session):
    repo = ImportedRecordRepository(session)
    n = await repo.add_many(
        [
            _imported("IMP-1", id="a", features=("parking", "elevator"), latitude=32.08, longitude=34.78),
            _imported("IMP-2", id="b", address="Herzl 12, Tel Aviv"),
        ]
    )
    assert n == 2

    items = await repo.list_records(config_id="cfg-1")
    assert [i.import_id for i in items] == ["IMP-1", "IMP-2"]
    first = items[0]
    assert first.record.features == ("parking", "elevator")
    assert first.record.source == Provenance.land_registry
    assert first.imported_at == NOW

    updated = await repo.set_status("IMP-2", ReviewStatus.duplicate, duplicate_of="IMP-1")
    assert updated is not None
    assert updated.status == ReviewStatus.duplicate
    assert updated.reviewed is True
    assert updated.duplicate_of == "IMP-1"

    # duplicate_of only sticks for the duplicate status
    approved = await repo.set_status("IMP-2", ReviewStatus.approved, duplicate_of="IMP-1")
    assert approved.duplicate_of is None

    assert [i.import_id for i in await repo.list_records(status=ReviewStatus.pending)] == ["IMP-1"]
    assert await repo.set_status("IMP-missing", ReviewStatus.rejected) is None


@pytest.mark.asyncio
async def test_list_by_addresses_loads_only_matching_rows(session):
    repo = ImportedRecordRepository(session)
    await repo.add_many(
        [
            _imported("IMP-1", id="a", address="Herzl 10, Tel Aviv"),
            _imported("IMP-2", id="b", address="Herzl 12, Tel Aviv"),
            _imported("IMP-3", id="c", address="Jaffa 1, Jerusalem"),
        ]
    )

    found = await repo.list_by_addresses(["Herzl 10, Tel Aviv", "Jaffa 1, Jerusalem", "Nowhere 1"])
    assert sorted(i.import_id for i in found) == ["IMP-1", "IMP-3"]
    assert await repo.list_by_addresses([]) == []
    # address match is verbatim
    assert await repo.list_by_addresses(["herzl 10, tel aviv"]) == []


@pytest.mark.asyncio
async def test_seed_idempotent_runs_twice(session):
    first = await seed_demo(session)
    second = await seed_demo(session)

    assert first["created"] == [DEFAULT_SYNC_ID, DEFAULT_IMPORT_ID]
    assert second == {"created": [], "seeded": 0}

    repo = JobConfigRepository(session)
    sync = await repo.get_sync(DEFAULT_SYNC_ID)
    assert sync is not None and len(sync.regions) == 3
    assert sync.filters.verified_only is True
    imp = await repo.get_import(DEFAULT_IMPORT_ID)
    assert imp is not None and imp.filters.location is not None


@pytest.mark.asyncio
async def test_jobruns_lifecycle(session):
    ok = await start_job(session, "import", config_id="cfg-1", meta={"trigger": "api"})
    assert ok.status == JobRunStatus.running
    await finish_job(session, ok, RunStatus.partial, {"new_records": 2}, error="fake-feed: bad row")

    bad = await start_job(session, "sync", config_id="s-1")
    await finish_job_fail(session, bad, RuntimeError("boom"))

    runs = await recent_runs(session)
    assert {r.id for r in runs} == {ok.id, bad.id}
    assert ok.status == JobRunStatus.partial
    assert ok.finished_at is not None
    assert '"new_records": 2' in ok.summary_json
    assert bad.status == JobRunStatus.failed
    assert bad.error == "boom"

    only = await recent_runs(session, config_id="s-1")
    assert [r.id for r in only] == [bad.id]
