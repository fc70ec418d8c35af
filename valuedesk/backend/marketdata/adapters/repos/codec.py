# marketdata/adapters/repos/codec.py
"""JSON-in-Text helpers for the nested config fields (regions, filter specs)."""
from __future__ import annotations

from typing import Any

from ...domain.types import FilterSpec, Provenance, Region


def region_to_dict(r: Region) -> dict[str, Any]:
    return {"name": r.name, "latitude": r.latitude, "longitude": r.longitude, "radius_km": r.radius_km}


def region_from_dict(d: dict[str, Any]) -> Region:
    return Region(
        name=str(d.get("name") or ""),
        latitude=float(d["latitude"]),
        longitude=float(d["longitude"]),
        radius_km=float(d["radius_km"]),
    )


def _tuple(v: Any) -> tuple | None:
    if v is None:
        return None
    return tuple(v)


def filter_to_dict(f: FilterSpec) -> dict[str, Any]:
    out: dict[str, Any] = {
        "location": region_to_dict(f.location) if f.location else None,
        "property_types": list(f.property_types) if f.property_types is not None else None,
        "min_price": f.min_price,
        "max_price": f.max_price,
        "min_area": f.min_area,
        "max_area": f.max_area,
        "rooms": list(f.rooms) if f.rooms is not None else None,
        "min_floor": f.min_floor,
        "max_floor": f.max_floor,
        "conditions": list(f.conditions) if f.conditions is not None else None,
        "max_age": f.max_age,
        "verified_only": f.verified_only,
        "sources": [s.value for s in f.sources] if f.sources is not None else None,
    }
    # keep the stored JSON small: absent constraints are simply not written
    return {k: v for k, v in out.items() if v is not None}


def filter_from_dict(d: dict[str, Any] | None) -> FilterSpec:
    d = d or {}
    loc = d.get("location")
    sources = d.get("sources")
    rooms = d.get("rooms")
    return FilterSpec(
        location=region_from_dict(loc) if loc else None,
        property_types=_tuple(d.get("property_types")),
        min_price=d.get("min_price"),
        max_price=d.get("max_price"),
        min_area=d.get("min_area"),
        max_area=d.get("max_area"),
        rooms=tuple(float(x) for x in rooms) if rooms is not None else None,
        min_floor=d.get("min_floor"),
        max_floor=d.get("max_floor"),
        conditions=_tuple(d.get("conditions")),
        max_age=d.get("max_age"),
        verified_only=bool(d.get("verified_only", False)),
        sources=tuple(Provenance(s) for s in sources) if sources is not None else None,
    )
