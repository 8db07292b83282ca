"""
Stock Ledger — inventory sync and movement ledger service.

Wires settings, logging, the store backend and the row sources together in
the lifespan, then mounts the routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import settings
from .connectors import build_sources
from .errors import (
    ImmutableRecordError,
    PreconditionViolation,
    SourceUnavailable,
    StockLedgerError,
    SyncAlreadyRunning,
    TransactionFailure,
)
from .http_client import close_clients
from .logging_config import setup_logging
from .repositories import create_repository_factory
from .routers import cache, movements, outbound, reports, search, shipped_keys, sync
from .schemas.errors import ErrorResponse
from .startup import repair_stale_runs, run_startup_migrations

log = logging.getLogger("stockledger.main")

APP_VERSION = "1.0.0"

_STATUS_BY_ERROR = (
    (SyncAlreadyRunning, 409),
    (SourceUnavailable, 502),
    (ImmutableRecordError, 409),
    (PreconditionViolation, 422),
    (TransactionFailure, 500),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    run_startup_migrations(settings.store_backend)
    app.state.repository_factory = create_repository_factory(settings.store_backend)
    app.state.sources = build_sources(settings)
    repair_stale_runs(app.state.repository_factory, settings.stale_run_minutes)
    log.info("Stock Ledger started (store=%s)", settings.store_backend)
    yield
    await close_clients()


app = FastAPI(title="Stock Ledger", version=APP_VERSION, lifespan=lifespan)

app.include_router(sync.router)
app.include_router(search.router)
app.include_router(movements.router)
app.include_router(reports.router)
app.include_router(cache.router)
app.include_router(shipped_keys.router)
app.include_router(outbound.router)


def _error_body(error: str, status_code: int, code: str | None = None, detail: list | None = None) -> dict:
    return ErrorResponse(error=error, status_code=status_code, code=code, detail=detail).model_dump()


@app.exception_handler(StockLedgerError)
async def stockledger_error_handler(request: Request, exc: StockLedgerError):
    status = next((s for cls, s in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=_error_body(str(exc), status, exc.code))


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail), exc.status_code))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    detail = [{"loc": list(e.get("loc", [])), "msg": e.get("msg", "")} for e in exc.errors()]
    return JSONResponse(status_code=422, content=_error_body("Validation error", 422, detail=detail))


@app.get("/health")
def health(request: Request):
    factory = getattr(request.app.state, "repository_factory", None)
    db_ok = True
    if factory is not None:
        try:
            with factory() as repo:
                repo.count_items()
        except Exception as e:
            log.warning("Health check store probe failed: %s", e)
            db_ok = False
    return {
        "status": "ok" if db_ok else "degraded",
        "version": APP_VERSION,
        "store": settings.store_backend,
        "store_ok": db_ok,
    }
