# marketdata/domain/schedule.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from .dates import add_months, ensure_aware_utc
from .types import Cadence, JobState

RUN_HOUR = 2


class Schedulable(Protocol):
    enabled: bool
    cadence: Cadence
    next_run: datetime | None


def next_run_for(cadence: Cadence, from_: datetime, *, run_hour: int = RUN_HOUR) -> datetime | None:
    """
    daily   -> from + 1 day,  at run_hour:00
    weekly  -> from + 7 days, at run_hour:00
    monthly -> 1st of the following month, at run_hour:00
    manual  -> None
    """
    if cadence == Cadence.daily:
        nxt = from_ + timedelta(days=1)
    elif cadence == Cadence.weekly:
        nxt = from_ + timedelta(days=7)
    elif cadence == Cadence.monthly:
        nxt = datetime.combine(add_months(from_.date(), 1).replace(day=1), from_.timetz())
    else:
        return None
    return nxt.replace(hour=run_hour, minute=0, second=0, microsecond=0)


def is_due(config: Schedulable, now: datetime) -> bool:
    if not config.enabled or config.cadence == Cadence.manual:
        return False
    if config.next_run is None:
        # never scheduled yet: run on the first tick
        return True
    return ensure_aware_utc(now) >= ensure_aware_utc(config.next_run)


def job_state(config: Schedulable, now: datetime, *, running: bool = False) -> JobState:
    if running:
        return JobState.running
    if is_due(config, now):
        return JobState.due
    return JobState.idle
