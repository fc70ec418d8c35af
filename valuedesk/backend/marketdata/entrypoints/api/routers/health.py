# marketdata/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..deps import require_api_key
from ....config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    def _redact(v: str | None) -> str | None:
        if not v:
            return v
        if len(v) <= 8:
            return "***"
        return v[:4] + "***" + v[-4:]

    return {
        "ENV": settings.ENV,
        "PROVIDER_SOURCE": settings.PROVIDER_SOURCE,
        "MARKETDATA_DB_URL": settings.MARKETDATA_DB_URL,
        "TRANSACTIONS_BASE_URL": settings.TRANSACTIONS_BASE_URL,
        "GOV_API_KEY": _redact(settings.GOV_API_KEY),
        "PROVIDER_TIMEOUT_S": settings.PROVIDER_TIMEOUT_S,
        "SYNC_REGION_CONCURRENCY": settings.SYNC_REGION_CONCURRENCY,
        "ENRICH_CONCURRENCY": settings.ENRICH_CONCURRENCY,
    }
