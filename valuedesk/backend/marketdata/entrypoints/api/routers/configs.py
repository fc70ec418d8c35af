# marketdata/entrypoints/api/routers/configs.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_services, require_api_key
from ....adapters.repos.job_configs import JobConfigRepository
from ....db import get_session
from ....domain.dates import utcnow
from ....domain.schedule import job_state
from ....domain.types import Cadence, ImportJobConfig, SyncJobConfig
from ....schemas import ImportConfigIn, ImportConfigOut, SyncConfigIn, SyncConfigOut
from ....service_layer.bootstrap import Services
from ....service_layer.run_lock import IMPORT_RUN, SYNC_RUN, run_key

router = APIRouter(prefix="/configs", tags=["configs"], dependencies=[Depends(require_api_key)])


def _state(services: Services, cfg: ImportJobConfig | SyncJobConfig) -> str:
    kind = IMPORT_RUN if isinstance(cfg, ImportJobConfig) else SYNC_RUN
    return job_state(cfg, utcnow(), running=services.run_lock.is_held(run_key(kind, cfg.id))).value


def _import_from_body(body: ImportConfigIn, config_id: str, existing: ImportJobConfig | None) -> ImportJobConfig:
    return ImportJobConfig(
        id=config_id,
        name=body.name,
        cadence=Cadence(body.cadence),
        filters=body.filters.to_domain(),
        lookback_months=body.lookback_months,
        enabled=body.enabled,
        auto_approve=body.auto_approve,
        notify_on_import=body.notify_on_import,
        # editing a config keeps its schedule position
        last_run=existing.last_run if existing else None,
        next_run=existing.next_run if existing else None,
        created_at=existing.created_at if existing else None,
    )


# -------------------------
# Import configs
# -------------------------
@router.get("/imports", response_model=list[ImportConfigOut])
async def list_import_configs(
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> list[ImportConfigOut]:
    configs = await JobConfigRepository(session).list_imports()
    return [ImportConfigOut.from_domain(c, _state(services, c)) for c in configs]


@router.post("/imports", response_model=ImportConfigOut, status_code=201)
async def create_import_config(
    body: ImportConfigIn,
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> ImportConfigOut:
    repo = JobConfigRepository(session)
    config_id = body.id or f"IMPORT-CONFIG-{uuid.uuid4().hex[:12]}"
    if await repo.get_import(config_id) is not None:
        raise HTTPException(status_code=409, detail=f"Import config {config_id!r} already exists")

    cfg = await repo.save_import(_import_from_body(body, config_id, None))
    await session.commit()
    return ImportConfigOut.from_domain(cfg, _state(services, cfg))


@router.get("/imports/{config_id}", response_model=ImportConfigOut)
async def get_import_config(
    config_id: str,
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> ImportConfigOut:
    cfg = await JobConfigRepository(session).get_import(config_id)
    if cfg is None:
        raise HTTPException(status_code=404, detail="Import config not found")
    return ImportConfigOut.from_domain(cfg, _state(services, cfg))


@router.put("/imports/{config_id}", response_model=ImportConfigOut)
async def update_import_config(
    config_id: str,
    body: ImportConfigIn,
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> ImportConfigOut:
    repo = JobConfigRepository(session)
    existing = await repo.get_import(config_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Import config not found")

    cfg = await repo.save_import(_import_from_body(body, config_id, existing))
    await session.commit()
    return ImportConfigOut.from_domain(cfg, _state(services, cfg))


@router.delete("/imports/{config_id}", status_code=204)
async def delete_import_config(config_id: str, session: AsyncSession = Depends(get_session)) -> None:
    if not await JobConfigRepository(session).delete_import(config_id):
        raise HTTPException(status_code=404, detail="Import config not found")
    await session.commit()


# -------------------------
# Sync configs
# -------------------------
@router.get("/syncs", response_model=list[SyncConfigOut])
async def list_sync_configs(
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> list[SyncConfigOut]:
    configs = await JobConfigRepository(session).list_syncs()
    return [SyncConfigOut.from_domain(c, _state(services, c)) for c in configs]


@router.post("/syncs", response_model=SyncConfigOut, status_code=201)
async def create_sync_config(
    body: SyncConfigIn,
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> SyncConfigOut:
    repo = JobConfigRepository(session)
    config_id = body.id or f"SYNC-CONFIG-{uuid.uuid4().hex[:12]}"
    if await repo.get_sync(config_id) is not None:
        raise HTTPException(status_code=409, detail=f"Sync config {config_id!r} already exists")

    cfg = await repo.save_sync(
        SyncJobConfig(
            id=config_id,
            name=body.name,
            cadence=Cadence(body.cadence),
            regions=tuple(r.to_domain() for r in body.regions),
            filters=body.filters.to_domain(),
            lookback_months=body.lookback_months,
            enabled=body.enabled,
            auto_enrich=body.auto_enrich,
            notify_on_new_data=body.notify_on_new_data,
        )
    )
    await session.commit()
    return SyncConfigOut.from_domain(cfg, _state(services, cfg))


@router.get("/syncs/{config_id}", response_model=SyncConfigOut)
async def get_sync_config(
    config_id: str,
    services: Services = Depends(get_services),
    session: AsyncSession = Depends(get_session),
) -> SyncConfigOut:
    cfg = await JobConfigRepository(session).get_sync(config_id)
    if cfg is None:
        raise HTTPException(status_code=404, detail="Sync config not found")
    return SyncConfigOut.from_domain(cfg, _state(services, cfg))
