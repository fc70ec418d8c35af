# marketdata/adapters/repos/imported_records.py
from __future__ import annotations

import json
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.dates import ensure_aware_utc
from ...domain.types import ImportedRecord, ReviewStatus, TransactionRecord
from ...models import ImportedRecordRow

# stay well under SQLite's bound-parameter limit
_IN_CHUNK = 500


def imported_from_row(row: ImportedRecordRow) -> ImportedRecord:
    rec = TransactionRecord(
        id=row.transaction_id,
        transaction_date=row.transaction_date,
        price=float(row.price),
        price_per_sqm=float(row.price_per_sqm),
        address=row.address,
        city=row.city,
        neighborhood=row.neighborhood,
        property_type=row.property_type,
        rooms=float(row.rooms or 0.0),
        floor=int(row.floor or 0),
        total_floors=int(row.total_floors or 0),
        area=float(row.area),
        condition=row.condition,
        age=int(row.age or 0),
        features=tuple(json.loads(row.features_json or "[]")),
        verified=bool(row.verified),
        source=row.source,
        latitude=row.latitude,
        longitude=row.longitude,
    )
    return ImportedRecord(
        record=rec,
        import_id=row.import_id,
        config_id=row.config_id,
        imported_at=ensure_aware_utc(row.imported_at),
        status=row.status,
        reviewed=bool(row.reviewed),
        duplicate_of=row.duplicate_of,
        tags=tuple(json.loads(row.tags_json or "[]")),
    )


def row_from_imported(item: ImportedRecord) -> ImportedRecordRow:
    r = item.record
    return ImportedRecordRow(
        import_id=item.import_id,
        config_id=item.config_id,
        transaction_id=r.id,
        transaction_date=r.transaction_date,
        price=r.price,
        price_per_sqm=r.price_per_sqm,
        address=r.address,
        city=r.city,
        neighborhood=r.neighborhood,
        property_type=r.property_type,
        rooms=r.rooms,
        floor=r.floor,
        total_floors=r.total_floors,
        area=r.area,
        condition=r.condition,
        age=r.age,
        features_json=json.dumps(list(r.features)),
        verified=r.verified,
        source=r.source,
        latitude=r.latitude,
        longitude=r.longitude,
        imported_at=item.imported_at,
        status=item.status,
        reviewed=item.reviewed,
        duplicate_of=item.duplicate_of,
        tags_json=json.dumps(list(item.tags)),
    )


class ImportedRecordRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_records(
        self,
        *,
        config_id: str | None = None,
        status: ReviewStatus | None = None,
        limit: int | None = None,
    ) -> list[ImportedRecord]:
        q = select(ImportedRecordRow).order_by(ImportedRecordRow.imported_at, ImportedRecordRow.import_id)
        if config_id is not None:
            q = q.where(ImportedRecordRow.config_id == config_id)
        if status is not None:
            q = q.where(ImportedRecordRow.status == status)
        if limit is not None:
            q = q.limit(int(limit))
        rows = (await self.session.execute(q)).scalars().all()
        return [imported_from_row(r) for r in rows]

    async def list_by_addresses(self, addresses: Iterable[str]) -> list[ImportedRecord]:
        """Stored imports at any of the given addresses; the dedup candidates for a run."""
        wanted = sorted(set(addresses))
        out: list[ImportedRecord] = []
        for i in range(0, len(wanted), _IN_CHUNK):
            chunk = wanted[i : i + _IN_CHUNK]
            q = select(ImportedRecordRow).where(ImportedRecordRow.address.in_(chunk))
            rows = (await self.session.execute(q)).scalars().all()
            out.extend(imported_from_row(r) for r in rows)
        return out

    async def add_many(self, items: Iterable[ImportedRecord]) -> int:
        n = 0
        for item in items:
            self.session.add(row_from_imported(item))
            n += 1
        await self.session.flush()
        return n

    async def set_status(
        self,
        import_id: str,
        status: ReviewStatus,
        *,
        duplicate_of: str | None = None,
    ) -> ImportedRecord | None:
        """Review action. Returns None when the id is unknown."""
        row = await self.session.get(ImportedRecordRow, import_id)
        if row is None:
            return None
        row.status = status
        row.reviewed = True
        row.duplicate_of = duplicate_of if status == ReviewStatus.duplicate else None
        await self.session.flush()
        return imported_from_row(row)
