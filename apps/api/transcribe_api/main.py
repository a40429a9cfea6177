"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from transcribe_api.core.config import Settings, get_settings
from transcribe_api.core.logging_setup import configure_logging
from transcribe_api.errors import ApiError
from transcribe_api.repositories.base import JobStore
from transcribe_api.repositories.memory import InMemoryStore
from transcribe_api.repositories.postgrest import PostgrestStore
from transcribe_api.routes import jobs_router, transcriptions_router, worker_router

API_PREFIX = "/api"


def build_store(settings: Settings) -> JobStore:
    if settings.store_backend == "memory":
        return InMemoryStore()
    return PostgrestStore(
        base_url=settings.postgrest_url or "",
        service_key=settings.postgrest_service_key or "",
        timeout=settings.store_timeout_seconds,
    )


def create_app(settings: Settings | None = None, store: JobStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.store.close()

    app = FastAPI(title="Transcribe API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store if store is not None else build_store(settings)

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.payload.model_dump())

    # Worker routes first so /jobs/worker is not captured by /jobs/{jobId}.
    app.include_router(worker_router, prefix=API_PREFIX)
    app.include_router(jobs_router, prefix=API_PREFIX)
    app.include_router(transcriptions_router, prefix=API_PREFIX)

    return app
