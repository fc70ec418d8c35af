# marketdata/adapters/clients/http_resilience.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from ...config import settings
from ...domain.errors import (
    MalformedResponse,
    ProviderTimeout,
    ProviderUnauthorized,
    ProviderUnavailable,
)

log = logging.getLogger(__name__)


@dataclass
class _CircuitState:
    fails: int = 0
    opened_at: float | None = None


class ProviderHttpClient:
    """
    One outbound call per request(): rate limited, circuit-broken, never retried.
    Retry/backoff is the caller's decision.

    All httpx failures come out as ProviderUnavailable subclasses tagged with
    the provider name.
    """

    def __init__(
        self,
        provider: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_s: float | None = None,
        rate_limit_rps: float | None = None,
        fail_threshold: int | None = None,
        reset_s: float | None = None,
    ) -> None:
        self.provider = provider
        self._transport = transport
        self._timeout_s = float(timeout_s if timeout_s is not None else settings.PROVIDER_TIMEOUT_S)
        self._rps = float(rate_limit_rps if rate_limit_rps is not None else settings.HTTP_RATE_LIMIT_RPS)
        self._fail_threshold = int(fail_threshold if fail_threshold is not None else settings.HTTP_CIRCUIT_FAIL_THRESHOLD)
        self._reset_s = float(reset_s if reset_s is not None else settings.HTTP_CIRCUIT_RESET_S)

        self._circuit = _CircuitState()
        self._rate_lock = asyncio.Lock()
        self._last_ts = 0.0

    # -------------------------
    # circuit breaker
    # -------------------------
    def _circuit_is_open(self, now: float) -> bool:
        if self._circuit.opened_at is None:
            return False
        return (now - self._circuit.opened_at) < self._reset_s

    def _circuit_on_success(self) -> None:
        self._circuit.fails = 0
        self._circuit.opened_at = None

    def _circuit_on_failure(self) -> None:
        self._circuit.fails += 1
        if self._circuit.fails >= self._fail_threshold:
            self._circuit.opened_at = time.time()

    async def _rate_limit(self) -> None:
        """Very simple per-client limiter."""
        if self._rps <= 0:
            return
        min_gap = 1.0 / self._rps
        async with self._rate_lock:
            now = time.time()
            wait = (self._last_ts + min_gap) - now
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_ts = time.time()

    # -------------------------
    # request
    # -------------------------
    async def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> Any:
        if self._circuit_is_open(time.time()):
            raise ProviderUnavailable(self.provider, f"circuit_open: refusing external call to {url}")

        await self._rate_limit()

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_s), transport=self._transport) as client:
                resp = await client.request(method, url, headers=headers, params=params, json=json)
        except httpx.TimeoutException as e:
            self._circuit_on_failure()
            raise ProviderTimeout(self.provider, f"timeout calling {url}") from e
        except httpx.HTTPError as e:
            self._circuit_on_failure()
            raise ProviderUnavailable(self.provider, f"{type(e).__name__}: {e}") from e

        if resp.status_code in (401, 403):
            # auth problems are not the upstream's health problem; leave the circuit alone
            raise ProviderUnauthorized(self.provider, f"HTTP {resp.status_code}")

        if resp.status_code >= 400:
            self._circuit_on_failure()
            raise ProviderUnavailable(self.provider, f"HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            self._circuit_on_failure()
            raise MalformedResponse(self.provider, "response body is not JSON") from e

        self._circuit_on_success()
        return data
