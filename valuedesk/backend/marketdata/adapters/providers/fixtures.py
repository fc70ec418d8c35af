# marketdata/adapters/providers/fixtures.py
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from ...config import settings
from ...domain.dates import add_months
from ...domain.errors import ProviderUnavailable
from ...domain.filters import distance_km
from ...domain.parsing import as_list_of_dicts, get_first, to_date, to_float, to_str
from .base import RawTransaction


def _load(path: Path) -> Any:
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


@dataclass
class FixtureTransactionFeed:
    """
    Offline transaction feed for development/testing.

    Reads <fixtures_dir>/transactions.json, either:
      - list of dict payloads
      - {"result": {"records": [...]}} (CKAN-like)

    Items with coordinates are kept only inside the requested radius; items
    with a date are kept only inside the lookback window.
    """

    fixtures_dir: Path
    name: str = "fixtures"

    @classmethod
    def from_settings(cls) -> "FixtureTransactionFeed":
        return cls(fixtures_dir=Path(settings.FIXTURES_DIR))

    async def fetch_transactions(
        self,
        *,
        latitude: float,
        longitude: float,
        radius_km: float,
        months: int,
    ) -> list[RawTransaction]:
        raw = _load(self.fixtures_dir / "transactions.json")
        if raw is None:
            # Dev-friendly: missing fixture means "no transactions"
            return []

        since = add_months(date.today(), -int(months))
        out: list[RawTransaction] = []
        for it in as_list_of_dicts(raw, "result.records", "value"):
            lat = to_float(get_first(it, "latitude", "lat"))
            lng = to_float(get_first(it, "longitude", "lng", "lon"))
            if lat is not None and lng is not None and distance_km(latitude, longitude, lat, lng) > radius_km:
                continue
            d = to_date(get_first(it, "transactionDate", "dealDate"))
            if d is not None and d < since:
                continue
            out.append(RawTransaction(payload=it, provider=self.name, source_ref=to_str(get_first(it, "transactionId", "_id"))))
        return out


@dataclass
class FixtureLookupProvider:
    """
    Secondary provider backed by <fixtures_dir>/<kind>.json:
      {"<key>": {...payload...}, "*": {...fallback...}}

    A missing key without a "*" entry fails like an upstream 404 would.
    Implements all four secondary protocols so one class covers planning,
    tax, municipal and GIS fixtures.
    """

    fixtures_dir: Path
    kind: str

    @property
    def name(self) -> str:
        return f"fixtures:{self.kind}"

    @classmethod
    def from_settings(cls, kind: str) -> "FixtureLookupProvider":
        return cls(fixtures_dir=Path(settings.FIXTURES_DIR), kind=kind)

    def _lookup(self, key: str) -> dict[str, Any]:
        table = _load(self.fixtures_dir / f"{self.kind}.json") or {}
        hit = table.get(key) if isinstance(table, dict) else None
        if hit is None and isinstance(table, dict):
            hit = table.get("*")
        if not isinstance(hit, dict):
            raise ProviderUnavailable(self.name, f"no fixture for {key!r}")
        return hit

    async def fetch_planning(self, key: str) -> dict[str, Any]:
        return self._lookup(key)

    async def fetch_tax_assessment(self, key: str) -> dict[str, Any]:
        return self._lookup(key)

    async def fetch_municipal(self, key: str) -> dict[str, Any]:
        return self._lookup(key)

    async def fetch_gis(self, latitude: float, longitude: float) -> dict[str, Any]:
        return self._lookup(f"{latitude:.4f},{longitude:.4f}")
