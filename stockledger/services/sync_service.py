"""
Inventory Sync — reconcile the primary row source into the item store.

Each run: open a SyncRun, fetch the source with a timeout, bulk-load the
stored items for every fetched key, then walk the rows in fixed-size
batches. Each batch is its own transaction, so a failure in batch N leaves
batches 0..N-1 committed.

Business Rules:
- Tracked drift fields are grade and lock status; each differing field is
  one movement (grade_changed / status_changed)
- Descriptive attributes (model, capacity, color, sku) are refreshed
  silently and never count as an update on their own
- A blank source value never overwrites a stored value
- New keys are always inserted with an ``added`` movement, never merged
- Shipped and removed items are not put back in stock by a sync
- last_seen_at only moves forward
- Duplicate keys in one fetch: the last row wins, earlier ones are skipped
- Movement snapshots show the stored item after the row is applied

The fetch is awaited on the event loop; the store writes run in the default
executor so a long sync does not stall other requests.

Called by: routers/sync.py
Depends on: connectors (RowSource), repositories, services/ledger.py,
            services/sync_tracker.py, services/locations.py
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime

from ..config import settings
from ..connectors.row_source import RowSource, SourceRecord
from ..errors import SourceUnavailable, StockLedgerError, TransactionFailure
from ..models import (
    IN_STOCK,
    MOVEMENT_ADDED,
    MOVEMENT_GRADE_CHANGED,
    MOVEMENT_STATUS_CHANGED,
    SOURCE_EXTERNAL_SYNC,
    Item,
    Movement,
    utcnow,
)
from ..repositories import InventoryRepository
from ..utils import iter_chunks
from .ledger import MovementLedger, snapshot_item
from .locations import get_or_create_location
from .sync_tracker import SyncRunTracker

log = logging.getLogger("stockledger.sync")

DESCRIPTIVE_FIELDS = ("model", "capacity", "color", "sku")


@dataclass
class SyncResult:
    run_id: int
    processed: int = 0
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    movements: int = 0
    rows_skipped: int = 0
    source_row_count: int = 0

    def counters(self) -> dict:
        return {
            "items_processed": self.processed,
            "items_added": self.added,
            "items_updated": self.updated,
            "items_unchanged": self.unchanged,
            "movements_created": self.movements,
            "rows_skipped": self.rows_skipped,
        }

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _BatchOutcome:
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    movements: list = field(default_factory=list)


def dedupe_last_wins(records: list[SourceRecord]) -> tuple[list[SourceRecord], int]:
    """Collapse duplicate keys, keeping the last row per key at its first position."""
    by_key: dict[str, SourceRecord] = {}
    for rec in records:
        by_key[rec.key] = rec
    return list(by_key.values()), len(records) - len(by_key)


def tracked_changes(item: Item, rec: SourceRecord) -> dict:
    """Tracked fields whose non-blank source value differs from the store."""
    changes = {}
    if rec.grade and rec.grade != item.grade:
        changes["grade"] = (item.grade, rec.grade)
    if rec.lock_status and rec.lock_status != item.lock_status:
        changes["lock_status"] = (item.lock_status, rec.lock_status)
    return changes


class SyncOrchestrator:
    """Pulls one RowSource into the store. One instance per run is fine."""

    def __init__(
        self,
        repo: InventoryRepository,
        source: RowSource,
        batch_size: int | None = None,
        progress_interval: int | None = None,
        fetch_timeout: float | None = None,
        tracker: SyncRunTracker | None = None,
    ):
        self.repo = repo
        self.source = source
        self.batch_size = batch_size or settings.sync_batch_size
        self.progress_interval = progress_interval or settings.sync_progress_interval
        self.fetch_timeout = fetch_timeout or settings.sync_fetch_timeout_seconds
        self.tracker = tracker or SyncRunTracker(repo)
        self.ledger = MovementLedger(repo)

    async def run(self, now: datetime | None = None) -> SyncResult:
        """Run one full sync. Raises after recording the failure on the run."""
        source_id = self.source.source_id
        run = self.tracker.start(source_id, now=now)
        now = now or utcnow()
        result = SyncResult(run_id=run.id)

        try:
            log.debug("Sync run %s: fetching %s", run.id, source_id)
            records = await self._fetch()
            result.source_row_count = len(records)
            self.tracker.record_source_count(run, len(records))

            log.debug("Sync run %s: diffing %d rows", run.id, len(records))
            unique, duplicates = dedupe_last_wins(records)
            result.rows_skipped = self.source.last_stats.rows_skipped + duplicates
            if duplicates:
                log.warning("Sync run %s: %d duplicate key rows skipped", run.id, duplicates)

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._write, run, unique, result, now)
        except Exception as e:
            self.tracker.fail(run, e, **result.counters())
            raise

        log.info(
            "Sync %s done: %d processed (%d added, %d updated, %d unchanged), %d movements",
            source_id, result.processed, result.added, result.updated, result.unchanged, result.movements,
        )
        return result

    async def _fetch(self) -> list[SourceRecord]:
        try:
            return await asyncio.wait_for(self.source.fetch(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            raise SourceUnavailable(
                self.source.source_id, f"fetch timed out after {self.fetch_timeout}s"
            ) from None

    def _write(self, run, unique: list[SourceRecord], result: SyncResult, now: datetime) -> None:
        """Blocking write phase; runs in a worker thread."""
        existing = self.repo.get_items_by_keys([rec.key for rec in unique])
        location = get_or_create_location(self.repo)

        log.debug("Sync run %s: writing %d items in batches of %d", run.id, len(unique), self.batch_size)
        reported = 0
        for index, batch in enumerate(iter_chunks(unique, self.batch_size)):
            outcome = self._apply_batch(index, batch, existing, location.id, now)
            result.added += outcome.added
            result.updated += outcome.updated
            result.unchanged += outcome.unchanged
            result.movements += len(outcome.movements)
            result.processed += len(batch)

            if result.processed - reported >= self.progress_interval:
                reported = result.processed
                self.tracker.progress(run, **result.counters())
                log.info("Sync run %s: %d/%d processed", run.id, result.processed, len(unique))

        self.tracker.complete(run, store_item_count=self.repo.count_items(), **result.counters())

    def _apply_batch(self, index: int, batch: list[SourceRecord], existing: dict[str, Item],
                     location_id: int, now: datetime) -> _BatchOutcome:
        outcome = _BatchOutcome()
        try:
            with self.repo.transaction():
                new_items: list[Item] = []
                for rec in batch:
                    item = existing.get(rec.key)
                    if item is None:
                        new_items.append(self._new_item(rec, location_id, now))
                        continue
                    movements = self._reconcile(item, rec, now)
                    if movements:
                        outcome.updated += 1
                        outcome.movements.extend(movements)
                    else:
                        outcome.unchanged += 1

                if new_items:
                    self.repo.add_items(new_items)
                    outcome.movements.extend(self._added_movement(item, now) for item in new_items)
                    outcome.added = len(new_items)

                self.ledger.append_many(outcome.movements)
        except StockLedgerError:
            raise
        except Exception as e:
            log.exception("Sync batch %d failed, rolled back", index)
            raise TransactionFailure(f"Batch {index} failed: {e}", batch_index=index) from e

        for item in new_items:
            existing[item.item_key] = item
        return outcome

    def _new_item(self, rec: SourceRecord, location_id: int, now: datetime) -> Item:
        return Item(
            item_key=rec.key,
            model=rec.model,
            capacity=rec.capacity,
            color=rec.color,
            sku=rec.sku,
            grade=rec.grade,
            lock_status=rec.lock_status,
            location_id=location_id,
            status=IN_STOCK,
            first_seen_at=now,
            last_seen_at=now,
        )

    def _added_movement(self, item: Item, now: datetime) -> Movement:
        return Movement(
            item_id=item.id,
            movement_type=MOVEMENT_ADDED,
            to_status=IN_STOCK,
            to_grade=item.grade,
            to_lock_status=item.lock_status,
            to_location_id=item.location_id,
            source=SOURCE_EXTERNAL_SYNC,
            notes="First seen in source",
            snapshot_data=snapshot_item(item),
            performed_at=now,
        )

    def _reconcile(self, item: Item, rec: SourceRecord, now: datetime) -> list[Movement]:
        """Apply source values to a stored item; return the movements it needs."""
        changes = tracked_changes(item, rec)
        updates = {
            name: getattr(rec, name)
            for name in DESCRIPTIVE_FIELDS
            if getattr(rec, name) and getattr(rec, name) != getattr(item, name)
        }
        for name, (_, new) in changes.items():
            updates[name] = new
        if item.last_seen_at is None or now > item.last_seen_at:
            updates["last_seen_at"] = now

        if updates:
            self.repo.update_item(item, **updates)

        # Snapshots describe the item after this run's values are applied.
        movements = []
        if "grade" in changes:
            old, new = changes["grade"]
            movements.append(self._change_movement(item, now, MOVEMENT_GRADE_CHANGED,
                                                   from_grade=old, to_grade=new))
        if "lock_status" in changes:
            old, new = changes["lock_status"]
            movements.append(self._change_movement(item, now, MOVEMENT_STATUS_CHANGED,
                                                   from_lock_status=old, to_lock_status=new))
        return movements

    def _change_movement(self, item: Item, now: datetime, movement_type: str, **values) -> Movement:
        return Movement(
            item_id=item.id,
            movement_type=movement_type,
            from_status=item.status,
            to_status=item.status,
            from_location_id=item.location_id,
            to_location_id=item.location_id,
            source=SOURCE_EXTERNAL_SYNC,
            snapshot_data=snapshot_item(item),
            performed_at=now,
            **values,
        )
