"""
repositories/base.py — Storage contract shared by every store backend.

Services talk to an ``InventoryRepository`` and never to a session or a
dict directly, so the database/in-memory choice is made once at process
start (see ``repositories.create_repository_factory``) and nowhere else.

Business Rules:
- Writes happen inside ``transaction()``; leaving the block commits, an
  exception rolls back everything done inside it and re-raises
- Item state changes go through ``update_item`` so both backends can track
  and undo them
- The ledger is append-only: there is no update or delete for movements
- Snapshots are upserted on (snapshot_date, location_key)
- Shipped keys are a set: adding a listed key is a no-op

Called by: services/*, routers via dependency
Depends on: models
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime

from ..models import DailySnapshot, Item, Location, Movement, SyncRun


class InventoryRepository(ABC):
    backend: str = "abstract"

    @abstractmethod
    def transaction(self) -> AbstractContextManager["InventoryRepository"]:
        """Unit of work: commit on clean exit, roll back and re-raise on error."""

    # ── Locations ────────────────────────────────────────────────────

    @abstractmethod
    def get_location(self, location_id: int) -> Location | None: ...

    @abstractmethod
    def get_location_by_code(self, code: str) -> Location | None: ...

    @abstractmethod
    def add_location(self, location: Location) -> Location: ...

    @abstractmethod
    def get_locations(self, location_ids: list[int]) -> dict[int, Location]: ...

    # ── Items ────────────────────────────────────────────────────────

    @abstractmethod
    def get_item(self, key: str) -> Item | None: ...

    @abstractmethod
    def get_items_by_keys(self, keys: list[str]) -> dict[str, Item]:
        """Bulk lookup, key → Item for the keys that exist."""

    @abstractmethod
    def get_items_by_ids(self, item_ids: list[int]) -> dict[int, Item]: ...

    @abstractmethod
    def add_items(self, items: list[Item]) -> list[Item]:
        """Insert new items; ids are assigned on return."""

    @abstractmethod
    def update_item(self, item: Item, **fields) -> Item: ...

    @abstractmethod
    def count_items(self, status: str | None = None) -> int: ...

    @abstractmethod
    def list_items(self, status: str | None = None, location_id: int | None = None) -> list[Item]: ...

    # ── Movements (append-only) ──────────────────────────────────────

    @abstractmethod
    def add_movements(self, movements: list[Movement]) -> list[Movement]: ...

    @abstractmethod
    def movements_for_item(self, item_id: int, limit: int) -> list[Movement]:
        """Newest first."""

    @abstractmethod
    def query_movements(
        self,
        movement_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        item_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Movement], int]:
        """Filtered page, newest first, plus the unpaginated total."""

    @abstractmethod
    def movements_between(
        self, start: datetime, end: datetime, location_id: int | None = None
    ) -> list[Movement]:
        """Movements with start <= performed_at < end, optionally touching a location."""

    @abstractmethod
    def last_movements(self, item_ids: list[int]) -> dict[int, Movement]: ...

    @abstractmethod
    def count_movements(self, item_id: int | None = None) -> int: ...

    # ── Sync runs ────────────────────────────────────────────────────

    @abstractmethod
    def add_run(self, run: SyncRun) -> SyncRun: ...

    @abstractmethod
    def update_run(self, run: SyncRun, **fields) -> SyncRun: ...

    @abstractmethod
    def get_run(self, run_id: int) -> SyncRun | None: ...

    @abstractmethod
    def latest_run(self, source: str | None = None) -> SyncRun | None: ...

    @abstractmethod
    def runs_with_status(
        self,
        status: str,
        source: str | None = None,
        started_before: datetime | None = None,
    ) -> list[SyncRun]: ...

    # ── Daily snapshots ──────────────────────────────────────────────

    @abstractmethod
    def get_snapshot(self, snapshot_date: date, location_key: str) -> DailySnapshot | None: ...

    @abstractmethod
    def upsert_snapshot(self, snapshot_date: date, location_key: str, **fields) -> DailySnapshot: ...

    @abstractmethod
    def snapshots_between(self, start: date, end: date, location_key: str) -> list[DailySnapshot]:
        """Inclusive on both ends, ordered by date."""

    # ── Shipped-key list ─────────────────────────────────────────────

    @abstractmethod
    def list_shipped_keys(self) -> list[str]:
        """In the order they were added."""

    @abstractmethod
    def add_shipped_keys(self, keys: list[str]) -> int:
        """Add keys not already listed; returns how many were new."""

    @abstractmethod
    def delete_shipped_keys(self, keys: list[str] | None = None) -> int:
        """Remove the given keys, or every key when ``keys`` is None."""
