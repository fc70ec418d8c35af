# tests/factories.py
from __future__ import annotations

import asyncio
from datetime import date
from typing import Any

from marketdata.adapters.providers.base import RawTransaction
from marketdata.adapters.providers.gateway import ProviderGateway
from marketdata.domain.errors import ProviderUnavailable
from marketdata.domain.types import Provenance, Region, TransactionRecord

TLV = Region(name="Tel Aviv Center", latitude=32.0853, longitude=34.7818, radius_km=2.0)
JLM = Region(name="Jerusalem Center", latitude=31.7683, longitude=35.2137, radius_km=2.0)


def make_record(**kw: Any) -> TransactionRecord:
    base: dict[str, Any] = dict(
        id="TX-1",
        transaction_date=date(2024, 3, 1),
        price=2_000_000.0,
        price_per_sqm=20_000.0,
        address="Herzl 10, Tel Aviv",
        property_type="apartment",
        rooms=3.0,
        floor=2,
        total_floors=5,
        area=100.0,
        condition="good",
        age=20,
        verified=True,
        source=Provenance.land_registry,
    )
    base.update(kw)
    return TransactionRecord(**base)


def make_payload(**kw: Any) -> dict[str, Any]:
    """Normalized camelCase feed item, the shape fixtures use."""
    base: dict[str, Any] = {
        "transactionId": "TX-1",
        "transactionDate": "2024-03-01",
        "price": 2_000_000,
        "area": 100,
        "address": "Herzl 10, Tel Aviv",
        "propertyType": "apartment",
        "rooms": 3,
        "floor": 2,
        "totalFloors": 5,
        "condition": "good",
        "age": 20,
        "verified": True,
        "source": "land-registry",
    }
    base.update(kw)
    return base


class FakeFeed:
    """
    Per-region canned responses keyed by region latitude.
    A response is either a list of payload dicts or an exception instance.
    A list of responses is consumed one per call (for retry tests).
    """

    name = "fake-feed"

    def __init__(self, responses: dict[float, Any] | None = None, *, gate: asyncio.Event | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[dict[str, Any]] = []
        self.gate = gate

    async def fetch_transactions(self, *, latitude: float, longitude: float, radius_km: float, months: int):
        self.calls.append({"latitude": latitude, "longitude": longitude, "radius_km": radius_km, "months": months})
        if self.gate is not None:
            await self.gate.wait()

        resp = self.responses.get(latitude, [])
        if isinstance(resp, tuple):
            # sequence of per-call responses
            idx = min(len([c for c in self.calls if c["latitude"] == latitude]) - 1, len(resp) - 1)
            resp = resp[idx]
        if isinstance(resp, Exception):
            raise resp
        return [RawTransaction(payload=p, provider=self.name) for p in resp]


class FakeSecondary:
    """All four secondary providers in one; `failing` kinds raise ProviderUnavailable."""

    name = "fake-secondary"

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = set(failing or ())
        self.calls: list[tuple[str, Any]] = []

    def _maybe_fail(self, kind: str) -> None:
        if kind in self.failing:
            raise ProviderUnavailable(kind, "simulated outage")

    async def fetch_planning(self, key: str) -> dict[str, Any]:
        self.calls.append(("planning", key))
        self._maybe_fail("planning")
        return {"status": "approved", "zoningDesignation": "residential", "buildingRights": {"far": 2.5, "heightFloors": 8}}

    async def fetch_tax_assessment(self, key: str) -> dict[str, Any]:
        self.calls.append(("tax", key))
        self._maybe_fail("tax")
        return {"taxAssessedValue": 1_900_000}

    async def fetch_municipal(self, key: str) -> dict[str, Any]:
        self.calls.append(("municipal", key))
        self._maybe_fail("municipal")
        return {"neighborhood": "Center", "statisticalArea": "111"}

    async def fetch_gis(self, latitude: float, longitude: float) -> dict[str, Any]:
        self.calls.append(("spatial", (latitude, longitude)))
        self._maybe_fail("spatial")
        return {"elevation": 25, "viewshed": {"viewQuality": "partial"}}


def make_gateway(feed: FakeFeed | None = None, secondary: FakeSecondary | None = None, **kw: Any) -> ProviderGateway:
    sec = secondary or FakeSecondary()
    return ProviderGateway(
        feed=feed or FakeFeed(),
        planning=sec,
        tax=sec,
        municipal=sec,
        spatial=sec,
        **kw,
    )
