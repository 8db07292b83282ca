"""In-memory repository — same contract as the SQL store, held in process dicts.

Used for local runs without a database and as the second backend the test
suite exercises every repository contract against. Rows are ordinary
(transient) ORM instances, so services see the same types either way.

Transactions keep an undo journal: each write registers how to reverse
itself, and an exception inside ``transaction()`` replays the journal
backwards before re-raising. Nested blocks join the outermost one.
"""

import logging
import threading
from contextlib import contextmanager

from ..models import DailySnapshot, Item, Location, Movement, ShippedKey, SyncRun, utcnow
from .base import InventoryRepository

log = logging.getLogger("stockledger.repo.memory")


def _apply_defaults(obj) -> None:
    """Fill unset columns from their Column(default=...) the way a flush would."""
    for col in obj.__table__.columns:
        if col.primary_key or col.default is None:
            continue
        if getattr(obj, col.key) is not None:
            continue
        default = col.default
        if default.is_callable:
            setattr(obj, col.key, default.arg(None))
        elif default.is_scalar:
            setattr(obj, col.key, default.arg)


def _newest_first(rows):
    return sorted(rows, key=lambda m: (m.performed_at, m.id), reverse=True)


class MemoryRepository(InventoryRepository):
    backend = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._locations: dict[int, Location] = {}
        self._items: dict[int, Item] = {}
        self._items_by_key: dict[str, Item] = {}
        self._movements: list[Movement] = []
        self._runs: dict[int, SyncRun] = {}
        self._snapshots: dict[tuple, DailySnapshot] = {}
        self._shipped: dict[str, ShippedKey] = {}
        self._ids = {"location": 0, "item": 0, "movement": 0, "run": 0, "snapshot": 0, "shipped": 0}
        self._journal: list | None = None
        self._depth = 0

    def _next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    def _record(self, undo) -> None:
        if self._journal is not None:
            self._journal.append(undo)

    def _set_fields(self, obj, fields: dict, bump_updated: bool = False) -> None:
        previous = {name: getattr(obj, name) for name in fields}
        if bump_updated and hasattr(obj, "updated_at"):
            previous["updated_at"] = obj.updated_at
            fields = {**fields, "updated_at": utcnow()}

        def undo():
            for name, value in previous.items():
                setattr(obj, name, value)

        for name, value in fields.items():
            setattr(obj, name, value)
        self._record(undo)

    @contextmanager
    def transaction(self):
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._journal = []
            self._depth += 1
            try:
                yield self
            except Exception:
                if outermost:
                    undone = len(self._journal)
                    for undo in reversed(self._journal):
                        undo()
                    log.debug("Rolled back %d in-memory writes", undone)
                raise
            finally:
                self._depth -= 1
                if outermost:
                    self._journal = None

    # ── Locations ────────────────────────────────────────────────────

    def get_location(self, location_id):
        with self._lock:
            return self._locations.get(location_id)

    def get_location_by_code(self, code):
        with self._lock:
            return next((loc for loc in self._locations.values() if loc.code == code), None)

    def add_location(self, location):
        with self._lock:
            _apply_defaults(location)
            location.id = self._next_id("location")
            self._locations[location.id] = location
            self._record(lambda: self._locations.pop(location.id, None))
            return location

    def get_locations(self, location_ids):
        with self._lock:
            return {i: self._locations[i] for i in set(location_ids) if i in self._locations}

    # ── Items ────────────────────────────────────────────────────────

    def get_item(self, key):
        with self._lock:
            return self._items_by_key.get(key)

    def get_items_by_keys(self, keys):
        with self._lock:
            return {k: self._items_by_key[k] for k in keys if k in self._items_by_key}

    def get_items_by_ids(self, item_ids):
        with self._lock:
            return {i: self._items[i] for i in set(item_ids) if i in self._items}

    def add_items(self, items):
        with self._lock:
            for item in items:
                if item.item_key in self._items_by_key:
                    raise ValueError(f"Duplicate item key {item.item_key}")
            for item in items:
                _apply_defaults(item)
                item.id = self._next_id("item")
                self._items[item.id] = item
                self._items_by_key[item.item_key] = item

            def undo():
                for item in items:
                    self._items.pop(item.id, None)
                    self._items_by_key.pop(item.item_key, None)

            self._record(undo)
            return items

    def update_item(self, item, **fields):
        with self._lock:
            self._set_fields(item, fields, bump_updated=True)
            return item

    def count_items(self, status=None):
        with self._lock:
            if not status:
                return len(self._items)
            return sum(1 for item in self._items.values() if item.status == status)

    def list_items(self, status=None, location_id=None):
        with self._lock:
            return [
                item for item in sorted(self._items.values(), key=lambda i: i.id)
                if (not status or item.status == status)
                and (location_id is None or item.location_id == location_id)
            ]

    # ── Movements ────────────────────────────────────────────────────

    def add_movements(self, movements):
        with self._lock:
            mark = len(self._movements)
            for m in movements:
                if m.item_id not in self._items:
                    raise ValueError(f"Movement references unknown item {m.item_id}")
                _apply_defaults(m)
                m.id = self._next_id("movement")
                self._movements.append(m)
            self._record(lambda: self._movements.__delitem__(slice(mark, None)))
            return movements

    def movements_for_item(self, item_id, limit):
        with self._lock:
            rows = [m for m in self._movements if m.item_id == item_id]
        return _newest_first(rows)[:limit]

    def query_movements(self, movement_type=None, start=None, end=None, item_id=None,
                        limit=100, offset=0):
        with self._lock:
            rows = [
                m for m in self._movements
                if (not movement_type or m.movement_type == movement_type)
                and (not start or m.performed_at >= start)
                and (not end or m.performed_at <= end)
                and (item_id is None or m.item_id == item_id)
            ]
        rows = _newest_first(rows)
        return rows[offset:offset + limit], len(rows)

    def movements_between(self, start, end, location_id=None):
        with self._lock:
            return [
                m for m in self._movements
                if start <= m.performed_at < end
                and (location_id is None or location_id in (m.from_location_id, m.to_location_id))
            ]

    def last_movements(self, item_ids):
        wanted = set(item_ids)
        latest: dict[int, Movement] = {}
        with self._lock:
            rows = [m for m in self._movements if m.item_id in wanted]
        for m in _newest_first(rows):
            latest.setdefault(m.item_id, m)
        return latest

    def count_movements(self, item_id=None):
        with self._lock:
            if item_id is None:
                return len(self._movements)
            return sum(1 for m in self._movements if m.item_id == item_id)

    # ── Sync runs ────────────────────────────────────────────────────

    def add_run(self, run):
        with self._lock:
            _apply_defaults(run)
            run.id = self._next_id("run")
            self._runs[run.id] = run
            self._record(lambda: self._runs.pop(run.id, None))
            return run

    def update_run(self, run, **fields):
        with self._lock:
            self._set_fields(run, fields)
            return run

    def get_run(self, run_id):
        with self._lock:
            return self._runs.get(run_id)

    def latest_run(self, source=None):
        with self._lock:
            runs = [r for r in self._runs.values() if not source or r.source == source]
        if not runs:
            return None
        return max(runs, key=lambda r: (r.started_at, r.id))

    def runs_with_status(self, status, source=None, started_before=None):
        with self._lock:
            runs = [
                r for r in self._runs.values()
                if r.status == status
                and (not source or r.source == source)
                and (started_before is None or r.started_at < started_before)
            ]
        return sorted(runs, key=lambda r: (r.started_at, r.id))

    # ── Daily snapshots ──────────────────────────────────────────────

    def get_snapshot(self, snapshot_date, location_key):
        with self._lock:
            return self._snapshots.get((snapshot_date, location_key))

    def upsert_snapshot(self, snapshot_date, location_key, **fields):
        with self._lock:
            slot = (snapshot_date, location_key)
            snap = self._snapshots.get(slot)
            if snap is None:
                snap = DailySnapshot(snapshot_date=snapshot_date, location_key=location_key, **fields)
                _apply_defaults(snap)
                snap.id = self._next_id("snapshot")
                self._snapshots[slot] = snap
                self._record(lambda: self._snapshots.pop(slot, None))
            else:
                self._set_fields(snap, fields, bump_updated=True)
            return snap

    def snapshots_between(self, start, end, location_key):
        with self._lock:
            rows = [
                s for (d, key), s in self._snapshots.items()
                if key == location_key and start <= d <= end
            ]
        return sorted(rows, key=lambda s: s.snapshot_date)

    # ── Shipped-key list ─────────────────────────────────────────────

    def list_shipped_keys(self):
        with self._lock:
            return [row.item_key for row in sorted(self._shipped.values(), key=lambda r: r.id)]

    def add_shipped_keys(self, keys):
        added = 0
        with self._lock:
            for key in dict.fromkeys(keys):
                if key in self._shipped:
                    continue
                row = ShippedKey(item_key=key)
                _apply_defaults(row)
                row.id = self._next_id("shipped")
                self._shipped[key] = row
                self._record(lambda key=key: self._shipped.pop(key, None))
                added += 1
        return added

    def delete_shipped_keys(self, keys=None):
        with self._lock:
            doomed = list(self._shipped) if keys is None else [k for k in set(keys) if k in self._shipped]
            for key in doomed:
                row = self._shipped.pop(key)
                self._record(lambda key=key, row=row: self._shipped.setdefault(key, row))
            return len(doomed)
