"""Cache API — inspect and clear the reconciliation cache."""

from fastapi import APIRouter, Depends, Query

from ..cache.inventory_cache import ReconciliationCache
from ..dependencies import get_cache

router = APIRouter(tags=["cache"])


@router.get("/api/cache/stats")
def cache_stats(cache: ReconciliationCache = Depends(get_cache)):
    cache.cleanup_expired()
    entries = cache.stats()
    return {"entries": entries, "count": len(entries)}


@router.delete("/api/cache")
def clear_cache(key: str | None = Query(None), cache: ReconciliationCache = Depends(get_cache)):
    cache.clear(key)
    return {"ok": True, "cleared": key or "all"}
