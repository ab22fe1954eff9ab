"""
Recipe sync FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend import db
from backend.config import settings, validate_settings
from backend.middleware.body_limit import limit_body_size
from backend.routes import data as data_routes
from backend.routes import records as record_routes
from backend.services.sync_service import SyncService
from engine.sync import FileStorage, MemoryStorage, StateGateway, StateStorage, StorageWriteFailure
from engine.sync.types import now_iso

logger = logging.getLogger(__name__)


async def build_storage() -> StateStorage:
    """Create the storage backend selected by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "postgres":
        from engine.sync.postgres_storage import PostgresStorage

        pool = await db.init_pool()
        logger.info("Database pool initialized")
        return PostgresStorage(pool)
    if settings.STORAGE_BACKEND == "memory":
        return MemoryStorage()
    return FileStorage(settings.DATA_FILE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Validate settings and open the storage backend
    - Bootstrap an empty state on first start
    - Close the database pool on shutdown
    """
    # Startup
    validate_settings()
    storage = await build_storage()
    gateway = StateGateway(storage)
    await gateway.initialize()
    app.state.sync_service = SyncService(gateway)
    logger.info("Sync service started (storage=%s)", settings.STORAGE_BACKEND)

    yield

    # Shutdown
    await gateway.close()
    await db.close_pool()
    logger.info("Sync service stopped")


app = FastAPI(
    title="Recipe Sync",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(limit_body_size)

# Register routes
app.include_router(data_routes.router)
app.include_router(record_routes.router)


@app.exception_handler(RequestValidationError)
async def invalid_request_shape(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed top-level payloads are client errors (400), not 422."""
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid data structure.", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StorageWriteFailure)
async def storage_write_failure(request: Request, exc: StorageWriteFailure) -> JSONResponse:
    """The write did not happen; the client must not treat its data as merged."""
    return JSONResponse(status_code=500, content={"detail": "Failed to save data"})


@app.get("/")
async def root():
    return {"message": "Recipe sync API is running"}


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok", "timestamp": now_iso()}


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
