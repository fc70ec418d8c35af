# marketdata/entrypoints/api/routers/market.py
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import get_services, require_api_key
from ....domain.errors import ProviderUnavailable
from ....domain.types import Region
from ....schemas import MarketReportOut, ValuationOut
from ....service_layer.bootstrap import Services

router = APIRouter(prefix="/market", tags=["market"], dependencies=[Depends(require_api_key)])


@router.get("/report", response_model=MarketReportOut)
async def market_report(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(2.0, gt=0, le=50),
    months: int = Query(12, ge=1, le=60),
    services: Services = Depends(get_services),
) -> MarketReportOut:
    region = Region(name="report", latitude=latitude, longitude=longitude, radius_km=radius_km)
    try:
        rep = await services.sync.market_report(region, months)
    except ProviderUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return MarketReportOut.from_domain(rep)


@router.get("/valuation", response_model=ValuationOut)
async def valuation(
    target_date: date = Query(...),
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(2.0, gt=0, le=50),
    area: float = Query(100.0, gt=0),
    property_type: str = Query("apartment"),
    window_months: int = Query(6, ge=1, le=36),
    services: Services = Depends(get_services),
) -> ValuationOut:
    try:
        v = await services.sync.valuation_at_date(
            target_date,
            latitude,
            longitude,
            radius_km,
            area=area,
            property_type=property_type,
            window_months=window_months,
        )
    except ProviderUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return ValuationOut.from_domain(v)
