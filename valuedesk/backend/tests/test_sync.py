# tests/test_sync.py
import asyncio
from datetime import date, datetime, timezone

import pytest
from factories import JLM, TLV, FakeFeed, FakeSecondary, make_gateway, make_payload

from marketdata.domain.errors import ConcurrencyViolation, ProviderUnavailable
from marketdata.domain.types import Cadence, Confidence, FilterSpec, ImportJobConfig, RunStatus, SyncJobConfig
from marketdata.service_layer.run_lock import RunLock
from marketdata.service_layer.use_cases.importer import TransactionImporter
from marketdata.service_layer.use_cases.sync import MarketDataSync, sync_status

NOW = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)


def _config(**kw) -> SyncJobConfig:
    base = dict(id="SYNC-1", name="sync", cadence=Cadence.daily, regions=(TLV, JLM))
    base.update(kw)
    return SyncJobConfig(**base)


def _five(prefix: str) -> list[dict]:
    return [
        make_payload(transactionId=f"{prefix}{i}", address=f"Herzl {i}", verified=(i % 2 == 0))
        for i in range(5)
    ]


def _sync(feed: FakeFeed, secondary: FakeSecondary | None = None, **kw) -> MarketDataSync:
    gw = make_gateway(feed, secondary)
    return MarketDataSync(gw, RunLock(), backoff_base_s=0, max_retries=0, **kw)


@pytest.mark.asyncio
async def test_one_region_failing_gives_partial():
    feed = FakeFeed({TLV.latitude: ProviderUnavailable("fake-feed", "HTTP 503"), JLM.latitude: _five("J")})
    res = await _sync(feed).perform_sync(_config())

    assert res.status == RunStatus.partial
    assert res.regions_processed == 1
    assert res.errors == 1
    assert res.new_records == 5
    assert res.total_fetched == 5
    assert res.updated == 0
    assert "Tel Aviv Center" in res.error_messages[0]
    assert res.id.startswith("SYNC-")
    # both regions were attempted
    assert len(feed.calls) == 2


@pytest.mark.asyncio
async def test_every_region_failing_gives_failed():
    err = ProviderUnavailable("fake-feed", "down")
    res = await _sync(FakeFeed({TLV.latitude: err, JLM.latitude: err})).perform_sync(_config())
    assert res.status == RunStatus.failed
    assert res.errors == 2
    assert res.regions_processed == 0


@pytest.mark.asyncio
async def test_clean_sync_counts_data_quality_after_filtering():
    feed = FakeFeed({TLV.latitude: _five("T"), JLM.latitude: [make_payload(transactionId="J0", propertyType="villa")]})
    res = await _sync(feed).perform_sync(_config(filters=FilterSpec(property_types=("apartment",))))

    assert res.status == RunStatus.success
    assert res.total_fetched == 6
    assert res.new_records == 5
    assert res.regions_processed == 2
    assert (res.data_quality.verified, res.data_quality.unverified) == (3, 2)
    assert (res.data_quality.complete, res.data_quality.incomplete) == (5, 0)
    assert res.enriched == ()
    assert feed.calls[0]["months"] == 12


@pytest.mark.asyncio
async def test_sync_without_regions_fails():
    res = await _sync(FakeFeed()).perform_sync(_config(regions=()))
    assert res.status == RunStatus.failed
    assert res.errors == 1


@pytest.mark.asyncio
async def test_auto_enrich_attaches_secondary_data():
    feed = FakeFeed({TLV.latitude: _five("T")})
    res = await _sync(feed, FakeSecondary(failing={"spatial"})).perform_sync(_config(regions=(TLV,), auto_enrich=True))

    assert len(res.enriched) == 5
    assert all(e.planning is not None for e in res.enriched)
    assert all("spatial" in e.failures for e in res.enriched)
    assert res.status == RunStatus.success


@pytest.mark.asyncio
async def test_bounded_region_concurrency_keeps_config_order():
    feed = FakeFeed({TLV.latitude: ProviderUnavailable("fake-feed", "x"), JLM.latitude: ProviderUnavailable("fake-feed", "y")})
    res = await _sync(feed, region_concurrency=4).perform_sync(_config())
    assert [m.split(":")[0] for m in res.error_messages] == ["region Tel Aviv Center", "region Jerusalem Center"]


@pytest.mark.asyncio
async def test_concurrent_sync_for_same_config_is_rejected():
    gate = asyncio.Event()
    feed = FakeFeed({TLV.latitude: _five("T")}, gate=gate)
    sync = _sync(feed)

    first = asyncio.create_task(sync.perform_sync(_config(regions=(TLV,))))
    while not feed.calls:
        await asyncio.sleep(0)

    with pytest.raises(ConcurrencyViolation):
        await sync.perform_sync(_config(regions=(TLV,)))

    gate.set()
    assert (await first).status == RunStatus.success
    assert len(feed.calls) == 1


@pytest.mark.asyncio
async def test_infinite_values_in_one_region_do_not_sink_the_sync():
    odd = [
        make_payload(transactionId="T-floor", floor=float("inf")),
        make_payload(transactionId="T-price", price=float("inf")),
    ]
    res = await _sync(FakeFeed({TLV.latitude: odd, JLM.latitude: _five("J")})).perform_sync(_config())

    assert res.status == RunStatus.success
    assert res.regions_processed == 2
    assert res.total_fetched == 7
    assert res.new_records == 6
    assert res.errors == 0
    kept = {r.id: r for r in res.records}
    assert kept["T-floor"].floor == 0
    assert "T-price" not in kept
    assert any("Tel Aviv Center" in m and "price" in m for m in res.error_messages)


@pytest.mark.asyncio
async def test_import_and_sync_sharing_an_id_run_side_by_side():
    gate = asyncio.Event()
    feed = FakeFeed({TLV.latitude: _five("T")}, gate=gate)
    gw = make_gateway(feed)
    lock = RunLock()
    sync = MarketDataSync(gw, lock, backoff_base_s=0, max_retries=0)
    importer = TransactionImporter(gw, lock, backoff_base_s=0)

    syncing = asyncio.create_task(sync.perform_sync(_config(id="X", regions=(TLV,))))
    imp_cfg = ImportJobConfig(id="X", name="import", cadence=Cadence.daily, filters=FilterSpec(location=TLV))
    importing = asyncio.create_task(importer.run_import(imp_cfg))
    for _ in range(50):
        if len(feed.calls) == 2:
            break
        await asyncio.sleep(0)
    # both runs are inside their fetch at once
    assert len(feed.calls) == 2

    gate.set()
    synced, imported = await asyncio.gather(syncing, importing)
    assert synced.status == RunStatus.success
    assert imported.status == RunStatus.success
    assert imported.new_records == 5


def test_sync_status():
    assert sync_status(errors=1, new_records=2) == RunStatus.partial
    assert sync_status(errors=1, new_records=0) == RunStatus.failed
    assert sync_status(errors=0, new_records=0) == RunStatus.success


@pytest.mark.asyncio
async def test_run_due_advances_sync_configs():
    sync = _sync(FakeFeed({TLV.latitude: _five("T")}))
    out = await sync.run_due([_config(regions=(TLV,)), _config(id="manual", cadence=Cadence.manual)], NOW)
    assert len(out) == 1
    cfg, res = out[0]
    assert cfg.last_run == NOW
    assert cfg.next_run == datetime(2024, 6, 16, 2, 0, tzinfo=timezone.utc)
    assert res.new_records == 5


# -------------------------
# date-centered window
# -------------------------
TARGET = date(2024, 6, 15)
DATED = {
    "m3": "2024-03-15",
    "m5": "2024-01-15",
    "m6-": "2023-12-20",
    "m7": "2023-11-15",
    "m9": "2023-09-15",
}


def _dated_feed() -> FakeFeed:
    return FakeFeed(
        {
            TLV.latitude: [
                make_payload(transactionId=k, transactionDate=v, address=f"Herzl {k}", price=2_000_000 + i * 100_000)
                for i, (k, v) in enumerate(DATED.items())
            ]
        }
    )


@pytest.mark.asyncio
async def test_fetch_for_target_date_keeps_only_the_window():
    feed = _dated_feed()
    records = await _sync(feed).fetch_for_target_date(TLV, TARGET, 6)

    assert sorted(r.id for r in records) == ["m3", "m5", "m6-"]
    # twice the window is fetched
    assert feed.calls[0]["months"] == 12


@pytest.mark.asyncio
async def test_valuation_at_date():
    feed = _dated_feed()
    v = await _sync(feed).valuation_at_date(TARGET, TLV.latitude, TLV.longitude)

    assert v.target_date == TARGET
    assert len(v.records) == 3
    assert v.estimate.data_points == 3
    assert v.estimate.confidence == Confidence.low
    # prices 2.0M / 2.1M / 2.2M over 100 sqm -> median 21,000
    assert v.estimate.value_per_sqm == 21_000
    assert v.estimate.total_value == 2_100_000
    assert "Determining date: 2024-06-15" in v.report
    assert "Relevant transactions: 3" in v.report
    assert feed.calls[0]["radius_km"] == 2.0


@pytest.mark.asyncio
async def test_market_report():
    feed = FakeFeed({TLV.latitude: _five("T")})
    rep = await _sync(feed).market_report(TLV, 12, now=NOW)

    assert rep.statistics.total == 5
    assert len(rep.records) == 5
    assert rep.summary.startswith("Found 5 transactions in the last 12 months.")
    assert "stable market: no significant price change" in rep.insights
    assert "homogeneous market: consistent prices" in rep.insights


@pytest.mark.asyncio
async def test_market_report_applies_filters():
    feed = FakeFeed({TLV.latitude: _five("T")})
    rep = await _sync(feed).market_report(TLV, 12, filters=FilterSpec(verified_only=True), now=NOW)
    assert rep.statistics.total == 3

