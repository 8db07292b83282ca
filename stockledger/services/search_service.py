"""Search Service — item lookups by key, single and batch.

Batch lookups use one query for the items and one for their latest
movements, never one per key. Results keep the caller's key order.

Called by: routers/search.py
Depends on: repositories
"""

import logging
from datetime import datetime

from ..models import IN_STOCK, Item, Movement, utcnow
from ..repositories import InventoryRepository
from .locations import location_to_dict

log = logging.getLogger("stockledger.search")


def _last_movement(m: Movement | None) -> dict | None:
    if m is None:
        return None
    return {
        "type": m.movement_type,
        "date": m.performed_at.isoformat() if m.performed_at else None,
        "notes": m.notes,
    }


def _days_in_inventory(item: Item, now: datetime) -> int | None:
    if item.status != IN_STOCK or item.first_seen_at is None:
        return None
    return (now - item.first_seen_at).days


class SearchService:
    def __init__(self, repo: InventoryRepository):
        self.repo = repo

    def _result(self, key: str, item: Item, location, last: Movement | None, now: datetime) -> dict:
        return {
            "found": True,
            "key": key,
            "status": item.status,
            "location": location_to_dict(location),
            "grade": item.grade,
            "lock_status": item.lock_status,
            "model": item.model,
            "capacity": item.capacity,
            "color": item.color,
            "sku": item.sku,
            "first_seen_at": item.first_seen_at.isoformat() if item.first_seen_at else None,
            "last_seen_at": item.last_seen_at.isoformat() if item.last_seen_at else None,
            "last_movement": _last_movement(last),
            "days_in_inventory": _days_in_inventory(item, now),
        }

    def find_by_key(self, key: str, now: datetime | None = None) -> dict:
        key = (key or "").strip()
        if not key:
            raise ValueError("Item key is required")

        item = self.repo.get_item(key)
        if item is None:
            return {"found": False, "key": key}

        last = self.repo.last_movements([item.id]).get(item.id)
        return self._result(key, item, self.repo.get_location(item.location_id), last, now or utcnow())

    def find_by_keys(self, keys: list[str], now: datetime | None = None) -> dict:
        cleaned = [k.strip() for k in keys or [] if k and k.strip()]
        if not cleaned:
            return {"results": [], "summary": {"total": 0, "found": 0, "not_found": 0}}

        now = now or utcnow()
        items = self.repo.get_items_by_keys(list(dict.fromkeys(cleaned)))
        last = self.repo.last_movements([i.id for i in items.values()])
        locations = self.repo.get_locations([i.location_id for i in items.values()])

        results = []
        for key in cleaned:
            item = items.get(key)
            if item is None:
                results.append({"found": False, "key": key})
            else:
                results.append(self._result(key, item, locations.get(item.location_id),
                                            last.get(item.id), now))

        found = sum(1 for r in results if r["found"])
        log.info("Batch search: %d keys, %d found", len(results), found)
        return {
            "results": results,
            "summary": {"total": len(results), "found": found, "not_found": len(results) - found},
        }
