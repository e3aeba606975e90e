"""FastAPI app exposing the inventory pipeline over HTTP."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stocksync.errors import (
    AccessDeniedError,
    CsvFormatError,
    LocationNotFoundError,
    SnapshotLoadError,
    StockSyncError,
    StockValidationError,
    StoreError,
    SubjectNotFoundError,
    VariantNameError,
)
from stocksync.server.inventory_routes import router as inventory_router
from stocksync.store import StockStore, build_store
from stocksync.utils.logger import get_logger

logger = get_logger("stocksync.server")

# Most specific first
_STATUS_BY_ERROR: list[tuple[type[StockSyncError], int]] = [
    (StockValidationError, 400),
    (CsvFormatError, 400),
    (VariantNameError, 400),
    (AccessDeniedError, 403),
    (SubjectNotFoundError, 404),
    (LocationNotFoundError, 404),
    (SnapshotLoadError, 502),
    (StoreError, 502),
]


def _status_for(error: StockSyncError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


@asynccontextmanager
async def _lifespan(app: FastAPI, create_store: bool):
    if create_store:
        app.state.store = build_store()
        logger.info("server.store_created", store=type(app.state.store).__name__)
    try:
        yield
    finally:
        if create_store:
            await app.state.store.aclose()
            logger.info("server.store_closed")


def create_app(store: StockStore | None = None) -> FastAPI:
    """Create the app. A passed store is used as-is (tests); otherwise the lifespan builds and closes one."""
    app = FastAPI(
        title="stocksync",
        version="0.1.0",
        lifespan=lambda app: _lifespan(app, create_store=store is None),
    )
    if store is not None:
        app.state.store = store

    @app.exception_handler(StockSyncError)
    async def stocksync_error_handler(request: Request, exc: StockSyncError) -> JSONResponse:
        status = _status_for(exc)
        content: dict[str, Any] = {"detail": str(exc), "error": type(exc).__name__}
        code = getattr(exc, "code", None)
        if code:
            content["code"] = code
        log = logger.bind(path=request.url.path, status=status, error_type=type(exc).__name__)
        if status >= 500:
            log.error("server.request_failed", error=str(exc))
        else:
            log.info("server.request_rejected", error=str(exc))
        return JSONResponse(status_code=status, content=content)

    app.include_router(inventory_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
