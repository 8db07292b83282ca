"""
Movement Ledger — append-only history of every item state transition.

Business Rules:
- Movements are only ever appended; the ORM refuses updates and deletes
- Every movement carries a snapshot of the item's attributes at transition
  time, so reports never replay the ledger to know what an item looked like
- History and query results are ordered newest first

Called by: services/sync_service.py, services/movement_service.py,
           services/outbound_sync.py, routers/movements.py
Depends on: repositories, models
"""

import logging
from datetime import datetime

from ..models import MOVEMENT_TYPES, Item, Movement
from ..repositories import InventoryRepository

log = logging.getLogger("stockledger.ledger")

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_PAGE_SIZE = 100


def snapshot_item(item: Item) -> dict:
    """Point-in-time attribute snapshot stored on a movement."""
    return {
        "key": item.item_key,
        "model": item.model,
        "capacity": item.capacity,
        "color": item.color,
        "sku": item.sku,
        "grade": item.grade,
        "lock_status": item.lock_status,
        "status": item.status,
        "location_id": item.location_id,
    }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def movement_to_dict(m: Movement, item_key: str | None = None, locations: dict | None = None) -> dict:
    locations = locations or {}
    return {
        "id": m.id,
        "item_id": m.item_id,
        "key": item_key,
        "movement_type": m.movement_type,
        "from_status": m.from_status,
        "to_status": m.to_status,
        "from_grade": m.from_grade,
        "to_grade": m.to_grade,
        "from_lock_status": m.from_lock_status,
        "to_lock_status": m.to_lock_status,
        "from_location": _location_ref(m.from_location_id, locations),
        "to_location": _location_ref(m.to_location_id, locations),
        "source": m.source,
        "performed_by": m.performed_by,
        "notes": m.notes,
        "snapshot_data": m.snapshot_data,
        "performed_at": _iso(m.performed_at),
    }


def _location_ref(location_id, locations: dict) -> dict | None:
    if location_id is None:
        return None
    loc = locations.get(location_id)
    if loc is None:
        return {"id": location_id, "code": None, "name": None}
    return {"id": loc.id, "code": loc.code, "name": loc.name}


class MovementLedger:
    def __init__(self, repo: InventoryRepository):
        self.repo = repo

    def append(self, movement: Movement) -> int:
        """Append one movement and return its id. Call inside a transaction."""
        self.repo.add_movements([movement])
        return movement.id

    def append_many(self, movements: list[Movement]) -> list[int]:
        if not movements:
            return []
        self.repo.add_movements(movements)
        return [m.id for m in movements]

    def history_for(self, key: str, limit: int = DEFAULT_HISTORY_LIMIT) -> dict:
        """Item summary plus its movements, newest first."""
        key = (key or "").strip()
        if not key:
            raise ValueError("Item key is required")

        item = self.repo.get_item(key)
        if item is None:
            return {"found": False, "key": key, "movements": []}

        movements = self.repo.movements_for_item(item.id, limit)
        locations = self.repo.get_locations(
            [m.from_location_id for m in movements] + [m.to_location_id for m in movements]
        )
        return {
            "found": True,
            "key": key,
            "status": item.status,
            "grade": item.grade,
            "lock_status": item.lock_status,
            "model": item.model,
            "capacity": item.capacity,
            "color": item.color,
            "total_movements": self.repo.count_movements(item.id),
            "movements": [movement_to_dict(m, key, locations) for m in movements],
        }

    def query(
        self,
        movement_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        key: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> dict:
        """Filtered, paginated movement listing across all items."""
        if movement_type and movement_type not in MOVEMENT_TYPES:
            raise ValueError(f"Unknown movement type {movement_type!r}")
        if limit < 1 or offset < 0:
            raise ValueError("limit must be positive and offset non-negative")

        item_id = None
        if key and key.strip():
            item = self.repo.get_item(key.strip())
            if item is None:
                return _page([], 0, limit, offset)
            item_id = item.id

        rows, total = self.repo.query_movements(
            movement_type=movement_type, start=start, end=end,
            item_id=item_id, limit=limit, offset=offset,
        )
        items = self.repo.get_items_by_ids([m.item_id for m in rows])
        locations = self.repo.get_locations(
            [m.from_location_id for m in rows] + [m.to_location_id for m in rows]
        )
        results = [
            movement_to_dict(m, items[m.item_id].item_key if m.item_id in items else None, locations)
            for m in rows
        ]
        return _page(results, total, limit, offset)


def _page(movements: list[dict], total: int, limit: int, offset: int) -> dict:
    return {
        "movements": movements,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(movements) < total,
        },
    }
