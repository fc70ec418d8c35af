# marketdata/adapters/providers/gateway.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from ...config import settings
from ...domain.errors import DecodeError, MalformedResponse, ProviderTimeout, ProviderUnavailable, QuotaRefused
from ...domain.types import Region, SecondaryKind, TransactionRecord
from .base import (
    MunicipalProvider,
    PlanningProvider,
    QuotaGate,
    SpatialProvider,
    TaxAssessmentProvider,
    TransactionFeed,
)
from .decoders import decode_municipal, decode_planning, decode_spatial, decode_tax, decode_transaction

log = logging.getLogger(__name__)

T = TypeVar("T")

_SECONDARY_DECODERS: dict[SecondaryKind, Callable[..., Any]] = {
    SecondaryKind.planning: decode_planning,
    SecondaryKind.tax: decode_tax,
    SecondaryKind.municipal: decode_municipal,
    SecondaryKind.spatial: decode_spatial,
}


class ProviderGateway:
    """
    Uniform async front for the primary feed and the four secondary providers.

    - every call gets the caller-supplied timeout
    - every call asks the quota gate first (refusal == QuotaRefused)
    - no retries; whatever fails surfaces as a ProviderUnavailable subclass
    - no side effects beyond the outbound call
    """

    def __init__(
        self,
        *,
        feed: TransactionFeed,
        planning: PlanningProvider,
        tax: TaxAssessmentProvider,
        municipal: MunicipalProvider,
        spatial: SpatialProvider,
        quota: QuotaGate | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self.feed = feed
        self.planning = planning
        self.tax = tax
        self.municipal = municipal
        self.spatial = spatial
        self.quota = quota
        self.timeout_s = float(timeout_s if timeout_s is not None else settings.PROVIDER_TIMEOUT_S)

    async def _call(self, provider: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            if self.quota is not None and not await self.quota.acquire(provider):
                raise QuotaRefused(provider, "call refused by quota manager")
            return await asyncio.wait_for(fn(), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(provider, f"no response within {self.timeout_s:g}s") from e
        except ProviderUnavailable:
            raise
        except Exception as e:
            # provider bugs still count as an unavailable provider, not a crashed run
            raise ProviderUnavailable(provider, f"{type(e).__name__}: {e}") from e

    def _decode(self, provider: str, decoder: Callable[..., Any], payload: dict[str, Any]) -> Any:
        try:
            return decoder(payload, provider=provider)
        except Exception as e:
            # one bad item is a reject, never a crashed fetch
            log.warning("decoder %s raised on payload from %s", getattr(decoder, "__name__", decoder), provider, exc_info=True)
            return DecodeError(provider, f"undecodable payload: {type(e).__name__}: {e}")

    # -------------------------
    # Primary feed
    # -------------------------
    async def fetch_with_rejects(
        self,
        region: Region,
        lookback_months: int,
    ) -> tuple[list[TransactionRecord], list[DecodeError]]:
        raw = await self._call(
            self.feed.name,
            lambda: self.feed.fetch_transactions(
                latitude=region.latitude,
                longitude=region.longitude,
                radius_km=region.radius_km,
                months=lookback_months,
            ),
        )
        if not isinstance(raw, list):
            raise MalformedResponse(self.feed.name, f"expected a list of transactions, got {type(raw).__name__}")

        records: list[TransactionRecord] = []
        rejects: list[DecodeError] = []
        for item in raw:
            decoded = self._decode(item.provider or self.feed.name, decode_transaction, item.payload)
            if isinstance(decoded, DecodeError):
                rejects.append(decoded)
            else:
                records.append(decoded)
        return records, rejects

    async def fetch(self, region: Region, lookback_months: int) -> list[TransactionRecord]:
        records, rejects = await self.fetch_with_rejects(region, lookback_months)
        for rej in rejects:
            log.warning("dropped undecodable transaction from %s: %s", rej.provider, rej)
        return records

    # -------------------------
    # Secondary providers
    # -------------------------
    async def fetch_secondary(self, kind: SecondaryKind, key: Any) -> Any:
        """
        key: address for planning/municipal, transaction or parcel id for tax,
        (latitude, longitude) for spatial.
        """
        if kind == SecondaryKind.planning:
            name = self.planning.name
            payload = await self._call(name, lambda: self.planning.fetch_planning(str(key)))
        elif kind == SecondaryKind.tax:
            name = self.tax.name
            payload = await self._call(name, lambda: self.tax.fetch_tax_assessment(str(key)))
        elif kind == SecondaryKind.municipal:
            name = self.municipal.name
            payload = await self._call(name, lambda: self.municipal.fetch_municipal(str(key)))
        elif kind == SecondaryKind.spatial:
            lat, lng = key
            name = self.spatial.name
            payload = await self._call(name, lambda: self.spatial.fetch_gis(float(lat), float(lng)))
        else:
            raise ValueError(f"unknown secondary provider kind: {kind!r}")

        if not isinstance(payload, dict):
            raise MalformedResponse(name, f"expected an object, got {type(payload).__name__}")

        decoded = self._decode(name, _SECONDARY_DECODERS[kind], payload)
        if isinstance(decoded, DecodeError):
            raise MalformedResponse(name, decoded.reason)
        return decoded
