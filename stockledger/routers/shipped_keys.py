"""Shipped-Key API — maintain the operator's list of keys known to have shipped."""

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_repository
from ..repositories import InventoryRepository
from ..schemas.inventory import KeyListRequest
from ..schemas.lists import ShippedKeysResponse

router = APIRouter(tags=["shipped-keys"])


@router.get("/api/shipped-keys", response_model=ShippedKeysResponse)
def list_shipped_keys(repo: InventoryRepository = Depends(get_repository)):
    from ..services.shipped_keys import ShippedKeyList

    return ShippedKeyList(repo).list_keys()


@router.post("/api/shipped-keys", response_model=ShippedKeysResponse)
def add_shipped_keys(payload: KeyListRequest, repo: InventoryRepository = Depends(get_repository)):
    from ..services.shipped_keys import ShippedKeyList

    try:
        return ShippedKeyList(repo).add(payload.keys)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.delete("/api/shipped-keys", response_model=ShippedKeysResponse)
def clear_shipped_keys(repo: InventoryRepository = Depends(get_repository)):
    from ..services.shipped_keys import ShippedKeyList

    return ShippedKeyList(repo).clear()


@router.delete("/api/shipped-keys/{key}", response_model=ShippedKeysResponse)
def remove_shipped_key(key: str, repo: InventoryRepository = Depends(get_repository)):
    from ..services.shipped_keys import ShippedKeyList

    try:
        return ShippedKeyList(repo).remove(key)
    except ValueError as e:
        raise HTTPException(400, str(e))
