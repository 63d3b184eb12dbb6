from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.stream import router as stream_router
from app.web import router as web_router
from datastore.sensor_store import build_default_store
from logging_config import configure_logging
from services.sensors import build_default_service
from services.streaming import build_default_gateway
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    service = build_default_service()
    if settings.seed_on_startup:
        service.initialize_sensors()
    if settings.fluctuation_enabled:
        service.simulator.start()
    try:
        yield
    finally:
        service.shutdown()
        build_default_gateway.cache_clear()
        build_default_service.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor State Service",
        description="In-memory environmental sensor registry with live streaming.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(stream_router)
    app.include_router(web_router)
    return app

app = create_app()
