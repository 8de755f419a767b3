from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from chainseries.services.read_api import ReadApi
from chainseries.services.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


def create_app(read_api: ReadApi, scheduler: Optional[RefreshScheduler] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler is not None:
            scheduler.start()
            logger.info("refresh scheduler started")
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop(timeout=5)

    app = FastAPI(title="chainseries", lifespan=lifespan)

    @app.get("/health")
    def health() -> dict:
        store = read_api.store
        return {"status": "ok", "lastRefreshAt": store.last_refresh_at}

    @app.get("/api/data")
    def data(
        time_frame: Optional[str] = Query(None, alias="timeFrame"),
        simulate: Optional[str] = Query(None),
    ) -> JSONResponse:
        result = read_api.get_data(time_frame, simulate)
        return JSONResponse(status_code=result.status, content=result.body)

    @app.get("/api/cache")
    def cache() -> JSONResponse:
        result = read_api.get_cache()
        return JSONResponse(status_code=result.status, content=result.body)

    return app
