from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from causewaypulse.api.routes_map import router as map_router
from causewaypulse.ingestion.datamall_client import DataMallFetcher
from causewaypulse.logging_config import configure_logging
from causewaypulse.refresh import MapSession, RefreshScheduler
from causewaypulse.settings import get_config


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging()
    config = get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        fetcher = DataMallFetcher(config=config)
        session = MapSession(config=config)
        scheduler = RefreshScheduler(fetcher, session)
        app.state.session = session
        app.state.scheduler = scheduler
        if config.refresh.autostart:
            scheduler.start()
        else:
            logger.info("Refresh autostart disabled; waiting for manual refresh.")
        try:
            yield
        finally:
            await scheduler.shutdown()
            await fetcher.aclose()

    app = FastAPI(title="CausewayPulse", version="0.1.0", lifespan=lifespan)

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(map_router, tags=["map"])
    return app
