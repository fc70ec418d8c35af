# marketdata/adapters/providers/quota.py
from __future__ import annotations

import asyncio
from collections import Counter


class CallBudget:
    """
    In-process QuotaGate: at most `limits[provider]` calls per provider
    (or `default_limit` for providers not listed). None means unlimited.

    reset() starts a new budget window; the scheduler calls it once per tick.
    """

    def __init__(self, limits: dict[str, int] | None = None, default_limit: int | None = None) -> None:
        self.limits = dict(limits or {})
        self.default_limit = default_limit
        self.used: Counter[str] = Counter()
        self._lock = asyncio.Lock()

    def _limit(self, provider: str) -> int | None:
        return self.limits.get(provider, self.default_limit)

    async def acquire(self, provider: str) -> bool:
        async with self._lock:
            limit = self._limit(provider)
            if limit is not None and self.used[provider] >= limit:
                return False
            self.used[provider] += 1
            return True

    def remaining(self, provider: str) -> int | None:
        limit = self._limit(provider)
        if limit is None:
            return None
        return max(0, limit - self.used[provider])

    def reset(self) -> None:
        self.used.clear()
