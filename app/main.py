from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.decoder import build_default_decoder


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    decoder = build_default_decoder()
    decoder.start()
    try:
        yield
    finally:
        decoder.shutdown()
        build_default_decoder.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="P1 Exporter",
        description="Decodes DSMR P1 smart meter telegrams and exposes the latest readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
