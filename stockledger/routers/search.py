"""Search API — key lookups and cross-source validation."""

from fastapi import APIRouter, Depends, HTTPException

from ..cache.inventory_cache import ReconciliationCache
from ..dependencies import get_cache, get_repository, get_sources
from ..repositories import InventoryRepository
from ..schemas.inventory import KeyListRequest, ValidationResponse

router = APIRouter(tags=["search"])


@router.get("/api/search/{key}")
def search_key(key: str, repo: InventoryRepository = Depends(get_repository)):
    from ..services.search_service import SearchService

    try:
        return SearchService(repo).find_by_key(key)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.post("/api/search/batch")
def search_batch(payload: KeyListRequest, repo: InventoryRepository = Depends(get_repository)):
    from ..services.search_service import SearchService

    return SearchService(repo).find_by_keys(payload.keys)


@router.post("/api/validate", response_model=ValidationResponse)
async def validate_keys(
    payload: KeyListRequest,
    repo: InventoryRepository = Depends(get_repository),
    sources: dict = Depends(get_sources),
    cache: ReconciliationCache = Depends(get_cache),
):
    from ..services.validation_service import ValidationService

    report = await ValidationService(repo, sources["secondary"], cache).validate(payload.keys)
    return report.to_dict()
