# marketdata/adapters/providers/base.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class RawTransaction:
    # provider-shaped item; decoders turn it into a TransactionRecord
    payload: dict[str, Any]
    provider: str
    source_ref: str | None = None


class TransactionFeed(Protocol):
    name: str

    async def fetch_transactions(
        self,
        *,
        latitude: float,
        longitude: float,
        radius_km: float,
        months: int,
    ) -> list[RawTransaction]:
        """Raw transactions within radius_km of the point, for the last `months` months."""
        ...


class PlanningProvider(Protocol):
    name: str

    async def fetch_planning(self, key: str) -> dict[str, Any]:
        ...


class TaxAssessmentProvider(Protocol):
    name: str

    async def fetch_tax_assessment(self, key: str) -> dict[str, Any]:
        ...


class MunicipalProvider(Protocol):
    name: str

    async def fetch_municipal(self, key: str) -> dict[str, Any]:
        ...


class SpatialProvider(Protocol):
    name: str

    async def fetch_gis(self, latitude: float, longitude: float) -> dict[str, Any]:
        ...


class QuotaGate(Protocol):
    """
    External quota/throttle manager. acquire() returning False means the call
    is refused; the gateway turns that into QuotaRefused.
    """

    async def acquire(self, provider: str) -> bool:
        ...
