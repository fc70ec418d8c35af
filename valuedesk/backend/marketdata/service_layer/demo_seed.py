# marketdata/service_layer/demo_seed.py
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.repos.job_configs import JobConfigRepository
from ..domain.types import Cadence, FilterSpec, ImportJobConfig, Region, SyncJobConfig

DEFAULT_SYNC_ID = "SYNC-CONFIG-DEFAULT"
DEFAULT_IMPORT_ID = "IMPORT-CONFIG-DEFAULT"

DEFAULT_REGIONS: tuple[Region, ...] = (
    Region(name="Tel Aviv Center", latitude=32.0853, longitude=34.7818, radius_km=2.0),
    Region(name="Jerusalem Center", latitude=31.7683, longitude=35.2137, radius_km=2.0),
    Region(name="Haifa Center", latitude=32.7940, longitude=34.9896, radius_km=2.0),
)


def default_sync_config() -> SyncJobConfig:
    return SyncJobConfig(
        id=DEFAULT_SYNC_ID,
        name="Default market sync",
        cadence=Cadence.daily,
        regions=DEFAULT_REGIONS,
        filters=FilterSpec(
            property_types=("apartment",),
            min_price=500_000,
            max_price=10_000_000,
            verified_only=True,
        ),
        auto_enrich=True,
        notify_on_new_data=True,
    )


def default_import_config() -> ImportJobConfig:
    return ImportJobConfig(
        id=DEFAULT_IMPORT_ID,
        name="Tel Aviv apartments",
        cadence=Cadence.weekly,
        filters=FilterSpec(location=DEFAULT_REGIONS[0], property_types=("apartment",)),
        lookback_months=12,
    )


async def seed_demo(session: AsyncSession) -> dict[str, Any]:
    """
    Idempotent demo seed:
    - creates the default sync and import configs if missing
    - never touches configs that already exist (schedule state survives)
    """
    repo = JobConfigRepository(session)
    created: list[str] = []

    if await repo.get_sync(DEFAULT_SYNC_ID) is None:
        await repo.save_sync(default_sync_config())
        created.append(DEFAULT_SYNC_ID)

    if await repo.get_import(DEFAULT_IMPORT_ID) is None:
        await repo.save_import(default_import_config())
        created.append(DEFAULT_IMPORT_ID)

    return {"created": created, "seeded": len(created)}
