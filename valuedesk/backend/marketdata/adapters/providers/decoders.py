# marketdata/adapters/providers/decoders.py
"""
One decoder per provider payload shape.

Every decoder returns either the normalized value or a DecodeError (never
raises for bad input), so the gateway can count rejects instead of losing them.
Both the normalized camelCase shape (fixtures, internal mocks) and the
data.gov.il CKAN record shape (dealAmount / dealDate / assetType ...) are accepted
for transactions.
"""
from __future__ import annotations

from typing import Any

from ...domain.errors import DecodeError
from ...domain.parsing import get_first, get_nested, to_bool, to_date, to_float, to_int, to_str
from ...domain.types import (
    MunicipalAttributes,
    PlanningAttributes,
    Provenance,
    SpatialAttributes,
    TransactionRecord,
)

# outside this band the registry row is almost always a typo or a partial-rights deal
MIN_PRICE_PER_SQM = 1_000.0
MAX_PRICE_PER_SQM = 200_000.0

_PROVENANCE_ALIASES: dict[str, Provenance] = {
    "land-registry": Provenance.land_registry,
    "land_registry": Provenance.land_registry,
    "data.gov.il": Provenance.land_registry,
    "tax-authority": Provenance.tax_authority,
    "tax_authority": Provenance.tax_authority,
    "broker": Provenance.broker,
    "platform": Provenance.platform,
}


def decode_provenance(raw: Any, default: Provenance = Provenance.land_registry) -> Provenance | None:
    s = to_str(raw)
    if s is None:
        return default
    return _PROVENANCE_ALIASES.get(s.lower())


def _address(it: dict[str, Any]) -> str | None:
    addr = to_str(get_first(it, "address", "fullAddress", "addressLine"))
    if addr:
        return addr
    # CKAN rows split street / house number / city
    street = to_str(it.get("street"))
    if not street:
        return None
    house = to_str(it.get("houseNumber"))
    city = to_str(it.get("city"))
    line = f"{street} {house}" if house else street
    return f"{line}, {city}" if city else line


def _features(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, (list, tuple)):
        return tuple(s for s in (to_str(x) for x in raw) if s)
    if isinstance(raw, str) and raw.strip():
        return tuple(p.strip() for p in raw.split(",") if p.strip())
    return ()


def decode_transaction(it: dict[str, Any], *, provider: str) -> TransactionRecord | DecodeError:
    ref = to_str(get_first(it, "transactionId", "id", "_id"))

    tx_date = to_date(get_first(it, "transactionDate", "dealDate", "date"))
    if tx_date is None:
        return DecodeError(provider, "missing or invalid transaction date", ref)

    price = to_float(get_first(it, "price", "dealAmount", "salePrice"))
    area = to_float(get_first(it, "area", "builtArea", "sqm"))
    if price is None or price <= 0:
        return DecodeError(provider, "missing or non-positive price", ref)
    if area is None or area <= 0:
        return DecodeError(provider, "missing or non-positive area", ref)

    ppsqm = to_float(get_first(it, "pricePerSqm", "pricePerSqM"))
    if ppsqm is None:
        ppsqm = price / area
    if not (MIN_PRICE_PER_SQM <= ppsqm <= MAX_PRICE_PER_SQM):
        return DecodeError(provider, f"price per sqm {ppsqm:.0f} out of range", ref)

    address = _address(it)
    if not address:
        return DecodeError(provider, "missing address", ref)

    source = decode_provenance(get_first(it, "source", "dataSource"))
    if source is None:
        return DecodeError(provider, f"unknown source {it.get('source') or it.get('dataSource')!r}", ref)

    return TransactionRecord(
        id=ref or f"{provider}::{address}::{tx_date.isoformat()}::{price:.0f}",
        transaction_date=tx_date,
        price=price,
        price_per_sqm=ppsqm,
        address=address,
        city=to_str(it.get("city")),
        neighborhood=to_str(it.get("neighborhood")),
        property_type=to_str(get_first(it, "propertyType", "assetType")) or "apartment",
        rooms=to_float(it.get("rooms")) or 0.0,
        floor=to_int(it.get("floor")) or 0,
        total_floors=to_int(get_first(it, "totalFloors", "buildingFloors")) or 0,
        area=area,
        condition=to_str(get_first(it, "condition", "propertyStatus")) or "unknown",
        age=to_int(it.get("age")) or 0,
        features=_features(it.get("features")),
        # registry rows are verified by definition when the flag is absent
        verified=to_bool(it["verified"]) if "verified" in it else source == Provenance.land_registry,
        source=source,
        latitude=to_float(get_first(it, "latitude", "lat")),
        longitude=to_float(get_first(it, "longitude", "lng", "lon")),
    )


def decode_planning(it: dict[str, Any], *, provider: str) -> PlanningAttributes | DecodeError:
    status = to_str(get_first(it, "status", "statusHe"))
    zoning = to_str(get_first(it, "zoningDesignation", "zoningDesignationHe"))
    far = to_float(get_nested(it, "buildingRights.far"))
    floors = to_int(get_first(it, "heightFloors") or get_nested(it, "buildingRights.heightFloors"))
    if status is None or zoning is None:
        return DecodeError(provider, "missing plan status or zoning", to_str(it.get("planNumber")))
    if far is None or floors is None:
        return DecodeError(provider, "missing building rights", to_str(it.get("planNumber")))
    return PlanningAttributes(status=status, zoning_designation=zoning, far=far, floors=floors)


def decode_tax(it: dict[str, Any], *, provider: str) -> float | DecodeError:
    value = to_float(get_first(it, "taxAssessedValue", "assessedValue"))
    if value is None or value <= 0:
        return DecodeError(provider, "missing assessed value", to_str(it.get("propertyId")))
    return value


def decode_municipal(it: dict[str, Any], *, provider: str) -> MunicipalAttributes | DecodeError:
    neighborhood = to_str(it.get("neighborhood"))
    area = to_str(it.get("statisticalArea"))
    if neighborhood is None or area is None:
        return DecodeError(provider, "missing neighborhood or statistical area", to_str(it.get("municipalityCode")))
    return MunicipalAttributes(neighborhood=neighborhood, statistical_area=area)


def decode_spatial(it: dict[str, Any], *, provider: str) -> SpatialAttributes | DecodeError:
    elevation = to_float(it.get("elevation"))
    view = to_str(get_nested(it, "viewshed.viewQuality") or it.get("viewQuality"))
    if elevation is None or view is None:
        return DecodeError(provider, "missing elevation or view quality")
    return SpatialAttributes(elevation=elevation, view_quality=view)
