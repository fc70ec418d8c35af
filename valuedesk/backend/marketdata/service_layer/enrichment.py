# marketdata/service_layer/enrichment.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from ..adapters.providers.gateway import ProviderGateway
from ..config import settings
from ..domain.comparability import comparability
from ..domain.errors import ProviderUnavailable
from ..domain.types import EnrichedRecord, ReferenceProperty, SecondaryKind, TransactionRecord

log = logging.getLogger(__name__)


class EnrichmentCoordinator:
    """
    Attaches secondary attributes (planning, tax, municipal, spatial) to a
    transaction. The four lookups run concurrently and fail independently:
    a failed lookup leaves its field None and records the message under
    `failures`; enrich() itself never raises for a provider error.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        *,
        location_similarity: float | None = None,
        concurrency: int | None = None,
    ) -> None:
        self.gateway = gateway
        self.location_similarity = float(
            location_similarity if location_similarity is not None else settings.LOCATION_SIMILARITY_DEFAULT
        )
        self.concurrency = max(1, int(concurrency if concurrency is not None else settings.ENRICH_CONCURRENCY))

    def _keys(self, record: TransactionRecord) -> dict[SecondaryKind, Any]:
        if record.latitude is not None and record.longitude is not None:
            point = (record.latitude, record.longitude)
        else:
            point = (settings.DEFAULT_LATITUDE, settings.DEFAULT_LONGITUDE)
        return {
            SecondaryKind.planning: record.address,
            SecondaryKind.tax: record.id,
            SecondaryKind.municipal: record.address,
            SecondaryKind.spatial: point,
        }

    async def _lookup(self, kind: SecondaryKind, key: Any) -> tuple[SecondaryKind, Any, str | None]:
        try:
            return kind, await self.gateway.fetch_secondary(kind, key), None
        except ProviderUnavailable as e:
            return kind, None, str(e)

    async def enrich(self, record: TransactionRecord, reference: ReferenceProperty | None = None) -> EnrichedRecord:
        keys = self._keys(record)
        results = await asyncio.gather(*(self._lookup(kind, key) for kind, key in keys.items()))

        values: dict[SecondaryKind, Any] = {}
        failures: dict[str, str] = {}
        for kind, value, err in results:
            if err is not None:
                failures[kind.value] = err
                log.warning("enrichment lookup failed record=%s kind=%s: %s", record.id, kind.value, err)
            else:
                values[kind] = value

        factors = None
        if reference is not None:
            factors = comparability(record, reference, location_similarity=self.location_similarity)

        return EnrichedRecord(
            record=record,
            planning=values.get(SecondaryKind.planning),
            tax_assessment=values.get(SecondaryKind.tax),
            municipal=values.get(SecondaryKind.municipal),
            spatial=values.get(SecondaryKind.spatial),
            comparability=factors,
            failures=failures,
        )

    async def enrich_many(
        self,
        records: Sequence[TransactionRecord],
        reference: ReferenceProperty | None = None,
    ) -> list[EnrichedRecord]:
        """Input order is preserved; at most `concurrency` records are in flight."""
        sem = asyncio.Semaphore(self.concurrency)

        async def _one(r: TransactionRecord) -> EnrichedRecord:
            async with sem:
                return await self.enrich(r, reference)

        return list(await asyncio.gather(*(_one(r) for r in records)))
