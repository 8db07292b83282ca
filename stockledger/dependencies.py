"""
dependencies.py — Shared FastAPI Dependencies

Routers never build repositories, sources or caches themselves; everything
is wired once in the app lifespan and handed out from here.

Business Rules:
- get_repository yields one repository per request (session closed after)
- get_sources returns the row sources built from settings at startup
- get_cache returns the process-wide reconciliation cache

Called by: all routers
Depends on: repositories, connectors, cache
"""

from fastapi import HTTPException, Request

from .cache.inventory_cache import ReconciliationCache, reconciliation_cache
from .connectors.row_source import RowSource
from .repositories import get_repository  # noqa: F401


def get_sources(request: Request) -> dict[str, RowSource]:
    sources = getattr(request.app.state, "sources", None)
    if not sources:
        raise HTTPException(503, "Row sources are not configured")
    return sources


def get_cache() -> ReconciliationCache:
    return reconciliation_cache
