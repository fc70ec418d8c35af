# marketdata/service_layer/jobruns.py
from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.dates import utcnow
from ..domain.types import RunStatus
from ..models import JobRun, JobRunStatus

_FINAL_STATUS = {
    RunStatus.success: JobRunStatus.success,
    RunStatus.partial: JobRunStatus.partial,
    RunStatus.failed: JobRunStatus.failed,
}


async def start_job(
    session: AsyncSession,
    job_name: str,
    *,
    config_id: str | None = None,
    meta: dict[str, Any] | None = None,
) -> JobRun:
    jr = JobRun(
        job_name=job_name,
        config_id=config_id,
        started_at=utcnow(),
        status=JobRunStatus.running,
        meta_json=json.dumps(meta or {}),
    )
    session.add(jr)
    await session.flush()
    return jr


async def finish_job(
    session: AsyncSession,
    jr: JobRun,
    status: RunStatus,
    summary: dict[str, Any],
    error: str | None = None,
) -> None:
    jr.status = _FINAL_STATUS[status]
    jr.finished_at = utcnow()
    jr.summary_json = json.dumps(summary, default=str)
    jr.error = error
    await session.flush()


async def finish_job_fail(session: AsyncSession, jr: JobRun, err: Exception) -> None:
    jr.status = JobRunStatus.failed
    jr.finished_at = utcnow()
    jr.error = str(err)
    await session.flush()


async def recent_runs(session: AsyncSession, *, limit: int = 50, config_id: str | None = None) -> list[JobRun]:
    q = select(JobRun).order_by(JobRun.started_at.desc(), JobRun.id.desc()).limit(limit)
    if config_id is not None:
        q = q.where(JobRun.config_id == config_id)
    return list((await session.execute(q)).scalars().all())
