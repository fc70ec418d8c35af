# marketdata/entrypoints/api/routers/jobs.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_services, require_api_key
from ....db import get_session
from ....domain.errors import ConcurrencyViolation
from ....domain.report import import_summary
from ....jobs.runner import run_import_now, run_sync_now, run_tick
from ....schemas import ImportRunOut, JobRunOut, SyncRunOut
from ....service_layer.bootstrap import Services
from ....service_layer.jobruns import recent_runs

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_api_key)])


@router.post("/imports/{config_id}/run", response_model=ImportRunOut)
async def run_import(
    config_id: str,
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> ImportRunOut:
    try:
        res = await run_import_now(session, services, config_id)
    except ConcurrencyViolation as e:
        # keep the failed JobRun row
        await session.commit()
        raise HTTPException(status_code=409, detail=str(e)) from e

    if res is None:
        raise HTTPException(status_code=404, detail="Import config not found")
    await session.commit()
    return ImportRunOut.from_domain(res, import_summary(res))


@router.post("/syncs/{config_id}/run", response_model=SyncRunOut)
async def run_sync(
    config_id: str,
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> SyncRunOut:
    try:
        res = await run_sync_now(session, services, config_id)
    except ConcurrencyViolation as e:
        await session.commit()
        raise HTTPException(status_code=409, detail=str(e)) from e

    if res is None:
        raise HTTPException(status_code=404, detail="Sync config not found")
    await session.commit()
    return SyncRunOut.from_domain(res)


@router.post("/tick")
async def tick(
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    """Run everything that is due now (same work as one scheduler tick)."""
    res = await run_tick(session, services)
    await session.commit()
    return res


@router.get("/runs", response_model=list[JobRunOut])
async def list_runs(
    limit: int = Query(50, ge=1, le=500),
    config_id: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[JobRunOut]:
    rows = await recent_runs(session, limit=limit, config_id=config_id)
    return [
        JobRunOut(
            id=r.id,
            job_name=r.job_name,
            config_id=r.config_id,
            status=r.status.value,
            started_at=r.started_at,
            finished_at=r.finished_at,
            error=r.error,
            summary=json.loads(r.summary_json) if r.summary_json else None,
        )
        for r in rows
    ]
