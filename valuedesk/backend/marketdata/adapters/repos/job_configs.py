# marketdata/adapters/repos/job_configs.py
from __future__ import annotations

import json
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.dates import ensure_aware_utc, utcnow
from ...domain.types import ImportJobConfig, SyncJobConfig
from ...models import ImportJobConfigRow, SyncJobConfigRow
from .codec import filter_from_dict, filter_to_dict, region_from_dict, region_to_dict


def _aware(dt: datetime | None) -> datetime | None:
    return ensure_aware_utc(dt) if dt is not None else None


def import_config_from_row(row: ImportJobConfigRow) -> ImportJobConfig:
    return ImportJobConfig(
        id=row.id,
        name=row.name,
        cadence=row.cadence,
        filters=filter_from_dict(json.loads(row.filters_json or "{}")),
        lookback_months=int(row.lookback_months),
        enabled=bool(row.enabled),
        auto_approve=bool(row.auto_approve),
        notify_on_import=bool(row.notify_on_import),
        last_run=_aware(row.last_run),
        next_run=_aware(row.next_run),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def sync_config_from_row(row: SyncJobConfigRow) -> SyncJobConfig:
    return SyncJobConfig(
        id=row.id,
        name=row.name,
        cadence=row.cadence,
        regions=tuple(region_from_dict(r) for r in json.loads(row.regions_json or "[]")),
        filters=filter_from_dict(json.loads(row.filters_json or "{}")),
        lookback_months=int(row.lookback_months),
        enabled=bool(row.enabled),
        auto_enrich=bool(row.auto_enrich),
        notify_on_new_data=bool(row.notify_on_new_data),
        last_run=_aware(row.last_run),
        next_run=_aware(row.next_run),
    )


class JobConfigRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # -------------------------
    # Import configs
    # -------------------------
    async def list_imports(self, *, enabled_only: bool = False) -> list[ImportJobConfig]:
        q = select(ImportJobConfigRow).order_by(ImportJobConfigRow.created_at, ImportJobConfigRow.id)
        if enabled_only:
            q = q.where(ImportJobConfigRow.enabled == True)  # noqa: E712
        rows = (await self.session.execute(q)).scalars().all()
        return [import_config_from_row(r) for r in rows]

    async def get_import(self, config_id: str) -> ImportJobConfig | None:
        row = await self.session.get(ImportJobConfigRow, config_id)
        return import_config_from_row(row) if row is not None else None

    async def save_import(self, cfg: ImportJobConfig) -> ImportJobConfig:
        """Insert or update by id. Returns the stored config."""
        row = await self.session.get(ImportJobConfigRow, cfg.id)
        now = utcnow()
        if row is None:
            row = ImportJobConfigRow(id=cfg.id, created_at=cfg.created_at or now)
            self.session.add(row)

        row.name = cfg.name
        row.enabled = cfg.enabled
        row.cadence = cfg.cadence
        row.filters_json = json.dumps(filter_to_dict(cfg.filters))
        row.lookback_months = cfg.lookback_months
        row.auto_approve = cfg.auto_approve
        row.notify_on_import = cfg.notify_on_import
        row.last_run = cfg.last_run
        row.next_run = cfg.next_run
        row.updated_at = cfg.updated_at or now

        await self.session.flush()
        return import_config_from_row(row)

    async def delete_import(self, config_id: str) -> bool:
        res = await self.session.execute(delete(ImportJobConfigRow).where(ImportJobConfigRow.id == config_id))
        return (res.rowcount or 0) > 0

    # -------------------------
    # Sync configs
    # -------------------------
    async def list_syncs(self, *, enabled_only: bool = False) -> list[SyncJobConfig]:
        q = select(SyncJobConfigRow).order_by(SyncJobConfigRow.created_at, SyncJobConfigRow.id)
        if enabled_only:
            q = q.where(SyncJobConfigRow.enabled == True)  # noqa: E712
        rows = (await self.session.execute(q)).scalars().all()
        return [sync_config_from_row(r) for r in rows]

    async def get_sync(self, config_id: str) -> SyncJobConfig | None:
        row = await self.session.get(SyncJobConfigRow, config_id)
        return sync_config_from_row(row) if row is not None else None

    async def save_sync(self, cfg: SyncJobConfig) -> SyncJobConfig:
        row = await self.session.get(SyncJobConfigRow, cfg.id)
        now = utcnow()
        if row is None:
            row = SyncJobConfigRow(id=cfg.id, created_at=now)
            self.session.add(row)

        row.name = cfg.name
        row.enabled = cfg.enabled
        row.cadence = cfg.cadence
        row.regions_json = json.dumps([region_to_dict(r) for r in cfg.regions])
        row.filters_json = json.dumps(filter_to_dict(cfg.filters))
        row.lookback_months = cfg.lookback_months
        row.auto_enrich = cfg.auto_enrich
        row.notify_on_new_data = cfg.notify_on_new_data
        row.last_run = cfg.last_run
        row.next_run = cfg.next_run
        row.updated_at = now

        await self.session.flush()
        return sync_config_from_row(row)
