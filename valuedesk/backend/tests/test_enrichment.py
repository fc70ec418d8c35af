# tests/test_enrichment.py
import json

import pytest
from factories import FakeSecondary, make_gateway, make_record

from marketdata.config import settings
from marketdata.domain.comparability import comparability
from marketdata.domain.types import PlanningAttributes, ReferenceProperty
from marketdata.service_layer.enrichment import EnrichmentCoordinator

REF = ReferenceProperty(address="Herzl 12, Tel Aviv", area=80.0, age=10, condition="good")


@pytest.mark.asyncio
async def test_all_lookups_succeed():
    coord = EnrichmentCoordinator(make_gateway())
    out = await coord.enrich(make_record())

    assert out.planning == PlanningAttributes(status="approved", zoning_designation="residential", far=2.5, floors=8)
    assert out.tax_assessment == 1_900_000
    assert out.municipal.statistical_area == "111"
    assert out.spatial.view_quality == "partial"
    assert out.failures == {}
    assert out.comparability is None


@pytest.mark.asyncio
async def test_enrich_never_fails_when_every_provider_fails():
    sec = FakeSecondary(failing={"planning", "tax", "municipal", "spatial"})
    out = await EnrichmentCoordinator(make_gateway(secondary=sec)).enrich(make_record())

    assert out.record == make_record()
    assert not out.has_attributes
    assert set(out.failures) == {"planning", "tax", "municipal", "spatial"}


@pytest.mark.asyncio
async def test_one_failure_does_not_cancel_siblings():
    sec = FakeSecondary(failing={"tax"})
    out = await EnrichmentCoordinator(make_gateway(secondary=sec)).enrich(make_record())

    assert out.tax_assessment is None
    assert out.planning is not None
    assert out.municipal is not None
    assert out.spatial is not None
    assert "simulated outage" in out.failures["tax"]
    assert len(sec.calls) == 4


@pytest.mark.asyncio
async def test_overflowing_planning_payload_leaves_planning_absent():
    class OverflowPlanning(FakeSecondary):
        async def fetch_planning(self, key):
            self.calls.append(("planning", key))
            return json.loads(
                '{"status": "approved", "zoningDesignation": "residential",'
                ' "heightFloors": 1e400, "buildingRights": {"far": 2.5}}'
            )

    out = await EnrichmentCoordinator(make_gateway(secondary=OverflowPlanning())).enrich(make_record())

    assert out.planning is None
    assert "building rights" in out.failures["planning"]
    assert out.tax_assessment == 1_900_000
    assert out.spatial is not None


@pytest.mark.asyncio
async def test_lookup_keys():
    sec = FakeSecondary()
    coord = EnrichmentCoordinator(make_gateway(secondary=sec))
    await coord.enrich(make_record(id="TX-9", latitude=31.5, longitude=35.1))
    await coord.enrich(make_record(id="TX-10"))

    calls = dict()
    for kind, key in sec.calls:
        calls.setdefault(kind, []).append(key)
    assert calls["planning"] == ["Herzl 10, Tel Aviv", "Herzl 10, Tel Aviv"]
    assert calls["tax"] == ["TX-9", "TX-10"]
    assert calls["spatial"] == [(31.5, 35.1), (settings.DEFAULT_LATITUDE, settings.DEFAULT_LONGITUDE)]


@pytest.mark.asyncio
async def test_comparability_with_reference():
    coord = EnrichmentCoordinator(make_gateway(), location_similarity=0.8)
    out = await coord.enrich(make_record(area=100.0, age=15, condition="renovated"), REF)

    f = out.comparability
    assert f.location_similarity == 0.8
    assert f.size_similarity == pytest.approx(1 - 20 / 80)
    assert f.age_similarity == pytest.approx(1 - 5 / 10)
    assert f.condition_similarity == 0.5
    assert f.overall_score == pytest.approx(0.35 * 0.8 + 0.30 * 0.75 + 0.20 * 0.5 + 0.15 * 0.5)


def test_comparability_clamps_and_guards_zero_age():
    f = comparability(
        make_record(area=400.0, age=7, condition="good"),
        ReferenceProperty(address="x", area=100.0, age=0, condition="good"),
        location_similarity=0.8,
    )
    assert f.size_similarity == 0.0
    assert f.age_similarity == 0.0
    assert f.condition_similarity == 1.0


@pytest.mark.asyncio
async def test_enrich_many_keeps_order():
    coord = EnrichmentCoordinator(make_gateway(), concurrency=2)
    records = [make_record(id=f"TX-{i}") for i in range(5)]
    out = await coord.enrich_many(records)
    assert [e.record.id for e in out] == [r.id for r in records]
