"""
Movement Service — explicit ship / transfer / remove / status operations.

Every operation works key by key, one transaction per key. A key that fails
a precondition (not found, already shipped, same location...) is reported
in ``errors`` and the remaining keys still go through. Only unexpected
infrastructure errors propagate.

State machine:
    in_stock --ship--> shipped        (terminal)
    in_stock --remove--> removed      (terminal)
    in_stock --transfer--> in_stock   (location changes)
    in_stock|shipped --update_status--> same status, new grade/lock status

Called by: routers/movements.py, services/outbound_sync.py
Depends on: repositories, services/ledger.py
"""

import logging
from typing import Callable

from ..errors import (
    AlreadyAtLocation,
    AlreadyShipped,
    InvalidTransition,
    ItemNotFound,
    LocationNotFound,
    PreconditionViolation,
)
from ..models import (
    IN_STOCK,
    MOVEMENT_GRADE_CHANGED,
    MOVEMENT_REMOVED,
    MOVEMENT_SHIPPED,
    MOVEMENT_STATUS_CHANGED,
    MOVEMENT_TRANSFERRED,
    REMOVED,
    SHIPPED,
    SOURCE_MANUAL,
    Item,
    Movement,
    utcnow,
)
from ..repositories import InventoryRepository
from ..utils import clean_keys
from .ledger import MovementLedger, snapshot_item

log = logging.getLogger("stockledger.movements")


class MovementService:
    def __init__(self, repo: InventoryRepository):
        self.repo = repo
        self.ledger = MovementLedger(repo)

    # ── Batch operations ─────────────────────────────────────────────

    def ship(self, keys: list[str], note: str | None = None, actor: str | None = None,
             source: str = SOURCE_MANUAL) -> dict:
        def op(key):
            item = self._load(key)
            if item.status == SHIPPED:
                raise AlreadyShipped(key)
            if item.status == REMOVED:
                raise InvalidTransition(key, item.status, SHIPPED)
            previous = item.status
            movement_id = self._record(item, MOVEMENT_SHIPPED, source, note, actor,
                                       from_status=previous, to_status=SHIPPED,
                                       from_location_id=item.location_id)
            self.repo.update_item(item, status=SHIPPED)
            return {"key": key, "movement_id": movement_id, "previous_status": previous}

        successes, errors = self._per_key(keys, op, "ship")
        return {
            "success": not errors,
            "items_shipped": len(successes),
            "movements": successes,
            "errors": errors,
        }

    def transfer(self, keys: list[str], to_location_id: int, note: str | None = None,
                 actor: str | None = None) -> dict:
        def op(key):
            item = self._load(key)
            if self.repo.get_location(to_location_id) is None:
                raise LocationNotFound(key, to_location_id)
            if item.status != IN_STOCK:
                raise InvalidTransition(key, item.status, "transferred")
            if item.location_id == to_location_id:
                raise AlreadyAtLocation(key)
            from_location_id = item.location_id
            movement_id = self._record(item, MOVEMENT_TRANSFERRED, SOURCE_MANUAL, note, actor,
                                       from_status=item.status, to_status=item.status,
                                       from_location_id=from_location_id,
                                       to_location_id=to_location_id)
            self.repo.update_item(item, location_id=to_location_id)
            return {"key": key, "movement_id": movement_id, "from_location_id": from_location_id}

        successes, errors = self._per_key(keys, op, "transfer")
        return {
            "success": not errors,
            "items_transferred": len(successes),
            "movements": successes,
            "errors": errors,
        }

    def remove(self, keys: list[str], note: str | None = None, actor: str | None = None) -> dict:
        def op(key):
            item = self._load(key)
            if item.status != IN_STOCK:
                raise InvalidTransition(key, item.status, REMOVED)
            previous = item.status
            movement_id = self._record(item, MOVEMENT_REMOVED, SOURCE_MANUAL, note, actor,
                                       from_status=previous, to_status=REMOVED,
                                       from_location_id=item.location_id)
            self.repo.update_item(item, status=REMOVED)
            return {"key": key, "movement_id": movement_id, "previous_status": previous}

        successes, errors = self._per_key(keys, op, "remove")
        return {
            "success": not errors,
            "items_removed": len(successes),
            "movements": successes,
            "errors": errors,
        }

    # ── Single-item status edit ──────────────────────────────────────

    def update_status(self, key: str, grade: str | None = None, lock_status: str | None = None,
                      note: str | None = None, actor: str | None = None) -> dict:
        """Apply grade / lock status edits; one movement per field that differs."""
        key = (key or "").strip()
        if not key:
            raise ValueError("Item key is required")

        movements: list[dict] = []
        try:
            with self.repo.transaction():
                item = self._load(key)
                if grade is not None and grade != item.grade:
                    movement_id = self._record(item, MOVEMENT_GRADE_CHANGED, SOURCE_MANUAL, note, actor,
                                               from_status=item.status, to_status=item.status,
                                               from_grade=item.grade, to_grade=grade)
                    movements.append({"movement_id": movement_id, "field": "grade",
                                      "from": item.grade, "to": grade})
                    self.repo.update_item(item, grade=grade)
                if lock_status is not None and lock_status != item.lock_status:
                    movement_id = self._record(item, MOVEMENT_STATUS_CHANGED, SOURCE_MANUAL, note, actor,
                                               from_status=item.status, to_status=item.status,
                                               from_lock_status=item.lock_status,
                                               to_lock_status=lock_status)
                    movements.append({"movement_id": movement_id, "field": "lock_status",
                                      "from": item.lock_status, "to": lock_status})
                    self.repo.update_item(item, lock_status=lock_status)
        except PreconditionViolation as e:
            log.warning("update_status %s rejected: %s", key, e)
            return {"success": False, "key": key, "changes_applied": 0, "movements": [],
                    "errors": [_error(e)]}

        if movements:
            log.info("Status of %s updated: %s", key, ", ".join(m["field"] for m in movements))
        return {"success": True, "key": key, "changes_applied": len(movements),
                "movements": movements, "errors": []}

    # ── Helpers ──────────────────────────────────────────────────────

    def _load(self, key: str) -> Item:
        item = self.repo.get_item(key)
        if item is None:
            raise ItemNotFound(key)
        return item

    def _record(self, item: Item, movement_type: str, source: str, note, actor, **values) -> int:
        """Append a movement carrying the item's attributes before the change."""
        return self.ledger.append(Movement(
            item_id=item.id,
            movement_type=movement_type,
            source=source,
            performed_by=actor,
            notes=note,
            snapshot_data=snapshot_item(item),
            performed_at=utcnow(),
            **values,
        ))

    def _per_key(self, keys: list[str], op: Callable[[str], dict], action: str):
        cleaned = clean_keys(keys)
        if not cleaned:
            raise ValueError("At least one item key is required")

        successes, errors = [], []
        for key in cleaned:
            try:
                with self.repo.transaction():
                    successes.append(op(key))
            except PreconditionViolation as e:
                log.warning("%s %s rejected: %s", action, key, e)
                errors.append(_error(e))
        log.info("%s: %d succeeded, %d failed", action, len(successes), len(errors))
        return successes, errors


def _error(e: PreconditionViolation) -> dict:
    return {"key": e.key, "error": str(e), "code": e.code}
