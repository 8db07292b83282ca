"""Reports API — generate and read daily inventory snapshots."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_repository
from ..models import utcnow
from ..repositories import InventoryRepository
from ..schemas.reports import SnapshotOut, SnapshotRequest

router = APIRouter(tags=["reports"])


@router.post("/api/reports/snapshot", response_model=SnapshotOut)
def generate_snapshot(
    payload: SnapshotRequest | None = None,
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.snapshot_service import SnapshotGenerator

    payload = payload or SnapshotRequest()
    try:
        return SnapshotGenerator(repo).generate(payload.date or utcnow().date(), payload.location_id)
    except ValueError as e:
        raise HTTPException(404, str(e))


@router.get("/api/reports/daily/{snapshot_date}", response_model=SnapshotOut)
def get_daily_snapshot(
    snapshot_date: date,
    location_id: int | None = Query(None),
    include_items: bool = Query(False),
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.snapshot_service import SnapshotGenerator

    snap = SnapshotGenerator(repo).get_by_date(snapshot_date, location_id, include_items)
    if snap is None:
        raise HTTPException(404, "No snapshot for that date")
    return snap


@router.get("/api/reports/range", response_model=list[SnapshotOut])
def get_snapshot_range(
    start: date = Query(...),
    end: date = Query(...),
    location_id: int | None = Query(None),
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.snapshot_service import SnapshotGenerator

    try:
        return SnapshotGenerator(repo).get_range(start, end, location_id)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.get("/api/reports/summary")
def get_range_summary(
    start: date = Query(...),
    end: date = Query(...),
    location_id: int | None = Query(None),
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.snapshot_service import SnapshotGenerator

    try:
        return SnapshotGenerator(repo).get_range_summary(start, end, location_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
