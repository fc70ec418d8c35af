# marketdata/entrypoints/fastapi_app.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..db import engine
from ..domain.errors import ConcurrencyViolation, ConfigurationError
from ..models import Base
from ..service_layer.bootstrap import Services, build_services
from .api.routers import configs, health, jobs, market, records


def create_app(services: Services | None = None, *, create_tables: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if create_tables:
            # Single place where DB tables are created in dev.
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        yield

    app = FastAPI(title="ValueDesk - Market Data", lifespan=lifespan)
    app.state.services = services or build_services()

    @app.exception_handler(ConcurrencyViolation)
    async def _concurrency(request: Request, exc: ConcurrencyViolation) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ConfigurationError)
    async def _configuration(request: Request, exc: ConfigurationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    # Routers
    app.include_router(health.router)
    app.include_router(configs.router)
    app.include_router(jobs.router)
    app.include_router(market.router)
    app.include_router(records.router)

    return app
