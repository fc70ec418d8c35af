# marketdata/service_layer/fetching.py
from __future__ import annotations

import asyncio
import logging

from ..adapters.providers.gateway import ProviderGateway
from ..config import settings
from ..domain.errors import DecodeError, MalformedResponse, ProviderUnauthorized, ProviderUnavailable, QuotaRefused
from ..domain.types import Region, TransactionRecord

log = logging.getLogger(__name__)

# retrying these cannot help within one run
_PERMANENT = (ProviderUnauthorized, QuotaRefused, MalformedResponse)


def backoff_s(attempt: int, base_s: float) -> float:
    return min(5.0, base_s * (2**attempt))


async def fetch_region(
    gateway: ProviderGateway,
    region: Region,
    lookback_months: int,
    *,
    max_retries: int | None = None,
    backoff_base_s: float | None = None,
) -> tuple[list[TransactionRecord], list[DecodeError]]:
    """
    Primary-feed fetch with caller-side retry (the gateway never retries).
    Timeouts and plain unavailability are retried with capped exponential
    backoff; auth, quota and malformed-payload failures are raised at once.
    """
    retries = int(max_retries if max_retries is not None else settings.FETCH_MAX_RETRIES)
    base = float(backoff_base_s if backoff_base_s is not None else settings.FETCH_BACKOFF_BASE_S)

    attempt = 0
    while True:
        try:
            return await gateway.fetch_with_rejects(region, lookback_months)
        except _PERMANENT:
            raise
        except ProviderUnavailable as e:
            if attempt >= retries:
                raise
            delay = backoff_s(attempt, base)
            log.warning(
                "feed fetch failed region=%s attempt=%s/%s, retrying in %.1fs: %s",
                region.name,
                attempt + 1,
                retries + 1,
                delay,
                e,
            )
            await asyncio.sleep(delay)
            attempt += 1
