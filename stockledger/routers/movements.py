"""Movements API — item history, ledger queries and state-changing operations.

Per-key precondition failures come back in the 200 body under ``errors``;
only malformed requests are rejected outright.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_repository
from ..repositories import InventoryRepository
from ..schemas.inventory import (
    MovementOpResponse,
    RemoveRequest,
    ShipRequest,
    TransferRequest,
    UpdateStatusRequest,
)

router = APIRouter(tags=["movements"])


@router.get("/api/movements/{key}/history")
def movement_history(
    key: str,
    limit: int = Query(50, ge=1, le=500),
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.ledger import MovementLedger

    try:
        return MovementLedger(repo).history_for(key, limit)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.get("/api/movements")
def list_movements(
    type: str | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    key: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    repo: InventoryRepository = Depends(get_repository),
):
    from ..services.ledger import MovementLedger

    try:
        return MovementLedger(repo).query(type, start, end, key, limit, offset)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/api/movements/ship", response_model=MovementOpResponse)
def ship_items(payload: ShipRequest, repo: InventoryRepository = Depends(get_repository)):
    from ..services.movement_service import MovementService

    try:
        return MovementService(repo).ship(payload.keys, payload.note, payload.performed_by)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/api/movements/transfer", response_model=MovementOpResponse)
def transfer_items(payload: TransferRequest, repo: InventoryRepository = Depends(get_repository)):
    from ..services.movement_service import MovementService

    try:
        return MovementService(repo).transfer(
            payload.keys, payload.to_location_id, payload.note, payload.performed_by
        )
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/api/movements/remove", response_model=MovementOpResponse)
def remove_items(payload: RemoveRequest, repo: InventoryRepository = Depends(get_repository)):
    from ..services.movement_service import MovementService

    try:
        return MovementService(repo).remove(payload.keys, payload.note, payload.performed_by)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/api/movements/update-status", response_model=MovementOpResponse)
def update_item_status(payload: UpdateStatusRequest, repo: InventoryRepository = Depends(get_repository)):
    from ..services.movement_service import MovementService

    try:
        return MovementService(repo).update_status(
            payload.key,
            grade=payload.grade,
            lock_status=payload.lock_status,
            note=payload.note,
            actor=payload.performed_by,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))
