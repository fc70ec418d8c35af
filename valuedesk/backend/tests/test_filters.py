# tests/test_filters.py
from datetime import date, datetime, timezone

from factories import TLV, make_record

from marketdata.domain.filters import apply_filter, find_duplicate, is_complete, passes_filter
from marketdata.domain.types import FilterSpec, ImportedRecord, Provenance, Region, ReviewStatus


def _imported(rec, import_id="IMP-1"):
    return ImportedRecord(
        record=rec,
        import_id=import_id,
        config_id="cfg",
        imported_at=datetime(2024, 4, 1, tzinfo=timezone.utc),
        status=ReviewStatus.pending,
    )


def test_empty_spec_returns_input_unchanged():
    records = [make_record(id=str(i), price=1_000_000 + i) for i in range(5)]
    assert apply_filter(records, FilterSpec()) == records


def test_every_survivor_satisfies_every_present_constraint():
    records = [
        make_record(id="a", price=900_000, area=60, rooms=2.0, floor=1, age=5),
        make_record(id="b", price=2_500_000, area=110, rooms=4.0, floor=6, age=40),
        make_record(id="c", price=3_100_000, area=95, rooms=4.0, floor=3, age=12, property_type="penthouse"),
        make_record(id="d", price=1_800_000, area=90, rooms=4.0, floor=3, age=12, verified=False),
        make_record(id="e", price=1_800_000, area=90, rooms=4.0, floor=3, age=12, source=Provenance.broker),
    ]
    spec = FilterSpec(
        property_types=("apartment",),
        min_price=1_000_000,
        max_price=3_000_000,
        min_area=80,
        rooms=(4.0,),
        max_floor=5,
        max_age=30,
        verified_only=True,
        sources=(Provenance.land_registry,),
    )
    kept = apply_filter(records, spec)
    assert kept == []

    relaxed = FilterSpec(property_types=("apartment",), min_price=1_000_000, max_price=3_000_000, verified_only=True)
    kept = apply_filter(records, relaxed)
    assert [r.id for r in kept] == ["b", "e"]
    for r in kept:
        assert passes_filter(r, relaxed)


def test_empty_collections_count_as_unspecified():
    rec = make_record(property_type="villa", condition="new")
    assert passes_filter(rec, FilterSpec(property_types=(), conditions=(), rooms=(), sources=()))


def test_location_constraint_uses_coordinates_when_present():
    near = make_record(id="near", latitude=32.0860, longitude=34.7820)
    far = make_record(id="far", latitude=31.7683, longitude=35.2137)
    unknown = make_record(id="unknown")
    kept = apply_filter([near, far, unknown], FilterSpec(location=TLV))
    assert [r.id for r in kept] == ["near", "unknown"]

    tiny = FilterSpec(location=Region(name="x", latitude=32.0853, longitude=34.7818, radius_km=0.01))
    assert not passes_filter(near, tiny)


def test_duplicate_within_tolerance_matches():
    existing = [_imported(make_record(price=2_000_000, area=100))]
    candidate = make_record(id="other", price=2_000_500, area=101)
    assert find_duplicate(candidate, existing) is existing[0]


def test_duplicate_outside_tolerance_does_not_match():
    existing = [_imported(make_record(price=2_000_000, area=100))]
    candidate = make_record(id="other", price=2_002_000, area=105)
    assert find_duplicate(candidate, existing) is None


def test_duplicate_tolerances_are_exclusive_and_address_exact():
    existing = [_imported(make_record(price=2_000_000, area=100))]
    assert find_duplicate(make_record(price=2_001_000, area=100), existing) is None
    assert find_duplicate(make_record(price=2_000_000, area=102), existing) is None
    assert find_duplicate(make_record(address="Herzl St. 10, Tel Aviv"), existing) is None
    assert find_duplicate(make_record(transaction_date=date(2024, 3, 2)), existing) is None


def test_first_duplicate_wins():
    a = _imported(make_record(price=2_000_000), "IMP-A")
    b = _imported(make_record(price=2_000_100), "IMP-B")
    assert find_duplicate(make_record(price=2_000_050), [a, b]).import_id == "IMP-A"


def test_is_complete():
    assert is_complete(make_record())
    assert not is_complete(make_record(address=""))
    assert not is_complete(make_record(price_per_sqm=0.0))
    assert not is_complete(make_record(property_type=""))
