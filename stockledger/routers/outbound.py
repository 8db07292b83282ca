"""Outbound API — page through the outbound source's rows.

SourceUnavailable (502) is mapped by the StockLedgerError handler in main.py.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from ..cache.inventory_cache import ReconciliationCache
from ..dependencies import get_cache, get_sources
from ..schemas.lists import OutboundListResponse
from ..services.outbound_listing import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(tags=["outbound"])


@router.get("/api/outbound/items", response_model=OutboundListResponse)
async def list_outbound_items(
    search: str | None = Query(None, max_length=255),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    sources: dict = Depends(get_sources),
    cache: ReconciliationCache = Depends(get_cache),
):
    from ..services.outbound_listing import list_outbound

    if "outbound" not in sources:
        raise HTTPException(503, "Outbound source is not configured")
    return await list_outbound(sources["outbound"], cache, search=search, limit=limit, offset=offset)
