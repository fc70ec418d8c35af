# marketdata/entrypoints/api/routers/records.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import require_api_key
from ....adapters.repos.imported_records import ImportedRecordRepository
from ....db import get_session
from ....domain.statistics import import_statistics
from ....domain.types import ReviewStatus
from ....schemas import ImportedRecordOut, ImportStatisticsOut, RecordStatusUpdate
from ....service_layer.export import export_csv

router = APIRouter(prefix="/records", tags=["records"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=list[ImportedRecordOut])
async def list_records(
    config_id: str | None = Query(None),
    status: ReviewStatus | None = Query(None),
    limit: int = Query(200, ge=1, le=5000),
    session: AsyncSession = Depends(get_session),
) -> list[ImportedRecordOut]:
    items = await ImportedRecordRepository(session).list_records(config_id=config_id, status=status, limit=limit)
    return [ImportedRecordOut.from_domain(i) for i in items]


@router.get("/statistics", response_model=ImportStatisticsOut)
async def record_statistics(
    config_id: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> ImportStatisticsOut:
    items = await ImportedRecordRepository(session).list_records(config_id=config_id)
    return ImportStatisticsOut.from_domain(import_statistics(items))


@router.get("/export.csv", response_class=PlainTextResponse)
async def export_records(
    config_id: str | None = Query(None),
    status: ReviewStatus | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> PlainTextResponse:
    items = await ImportedRecordRepository(session).list_records(config_id=config_id, status=status)
    return PlainTextResponse(
        export_csv(items),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
    )


@router.patch("/{import_id}", response_model=ImportedRecordOut)
async def review_record(
    import_id: str,
    body: RecordStatusUpdate,
    session: AsyncSession = Depends(get_session),
) -> ImportedRecordOut:
    if body.status == "duplicate" and not body.duplicate_of:
        raise HTTPException(status_code=422, detail="duplicate_of is required when marking a duplicate")

    item = await ImportedRecordRepository(session).set_status(
        import_id, ReviewStatus(body.status), duplicate_of=body.duplicate_of
    )
    if item is None:
        raise HTTPException(status_code=404, detail="Record not found")
    await session.commit()
    return ImportedRecordOut.from_domain(item)
