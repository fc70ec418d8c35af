# marketdata/jobs/scheduler.py
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import settings
from ..db import async_session
from ..service_layer.bootstrap import Services, build_services
from .runner import run_tick

log = logging.getLogger(__name__)


async def _run_tick(services: Services) -> None:
    async with async_session() as session:
        try:
            await run_tick(session, services)
            await session.commit()
        except Exception:
            await session.rollback()
            log.exception("scheduler tick failed")


def build_scheduler(services: Services | None = None) -> AsyncIOScheduler:
    services = services or build_services()
    sched = AsyncIOScheduler()

    # single logical worker: a tick never overlaps the previous one
    sched.add_job(
        _run_tick,
        "interval",
        args=[services],
        minutes=settings.SCHED_TICK_MINUTES,
        max_instances=1,
        coalesce=True,
    )

    return sched
