"""Sync API — trigger inventory and outbound syncs, inspect and repair runs.

SyncAlreadyRunning (409) and SourceUnavailable (502) are mapped to HTTP
responses by the StockLedgerError handler in main.py.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_repository, get_sources
from ..models import IN_STOCK
from ..repositories import InventoryRepository
from ..schemas.sync import FixStaleResponse, OutboundSyncResponse, SyncResultResponse, SyncStatusResponse

router = APIRouter(tags=["sync"])
log = logging.getLogger("stockledger.routers.sync")


@router.post("/api/sync/run", response_model=SyncResultResponse)
async def run_sync(
    repo: InventoryRepository = Depends(get_repository),
    sources: dict = Depends(get_sources),
):
    from ..services.sync_service import SyncOrchestrator

    result = await SyncOrchestrator(repo, sources["primary"]).run()
    return result.to_dict()


@router.get("/api/sync/status", response_model=SyncStatusResponse)
def sync_status(
    source: str | None = Query(None),
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.sync_tracker import SyncRunTracker, run_to_dict

    return {
        "latest_run": run_to_dict(SyncRunTracker(repo).latest_run(source)),
        "total_items": repo.count_items(),
        "in_stock": repo.count_items(IN_STOCK),
    }


@router.post("/api/sync/fix-stale", response_model=FixStaleResponse)
def fix_stale_runs(
    threshold_minutes: int = Query(10, ge=1),
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.sync_tracker import SyncRunTracker

    return SyncRunTracker(repo).fix_stale(threshold_minutes)


@router.post("/api/sync/outbound", response_model=OutboundSyncResponse)
async def run_outbound_sync(
    repo: InventoryRepository = Depends(get_repository),
    sources: dict = Depends(get_sources),
):
    from ..services.outbound_sync import sync_outbound

    if "outbound" not in sources:
        raise HTTPException(503, "Outbound source is not configured")
    result = await sync_outbound(repo, sources["outbound"])
    return result.to_dict()
