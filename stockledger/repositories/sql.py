"""SQLAlchemy-backed repository — the production store."""

from contextlib import contextmanager
from datetime import date

from sqlalchemy import func as sqlfunc, or_
from sqlalchemy.orm import Session

from ..utils import iter_chunks
from ..models import DailySnapshot, Item, Location, Movement, ShippedKey, SyncRun
from .base import InventoryRepository


# Bound on bind parameters per IN (...) clause
_IN_CHUNK = 5000
# Shipped-key inserts are pasted in bulk; keep each round trip small
_SHIPPED_CHUNK = 500


class SqlRepository(InventoryRepository):
    backend = "database"

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # ── Locations ────────────────────────────────────────────────────

    def get_location(self, location_id):
        if location_id is None:
            return None
        return self.db.get(Location, location_id)

    def get_location_by_code(self, code):
        return self.db.query(Location).filter(Location.code == code).first()

    def add_location(self, location):
        self.db.add(location)
        self.db.flush()
        return location

    def get_locations(self, location_ids):
        ids = [i for i in set(location_ids) if i is not None]
        if not ids:
            return {}
        return {loc.id: loc for loc in self.db.query(Location).filter(Location.id.in_(ids))}

    # ── Items ────────────────────────────────────────────────────────

    def get_item(self, key):
        return self.db.query(Item).filter(Item.item_key == key).first()

    def get_items_by_keys(self, keys):
        found = {}
        for chunk in iter_chunks(list(keys), _IN_CHUNK):
            for item in self.db.query(Item).filter(Item.item_key.in_(chunk)):
                found[item.item_key] = item
        return found

    def get_items_by_ids(self, item_ids):
        found = {}
        for chunk in iter_chunks(list(set(item_ids)), _IN_CHUNK):
            for item in self.db.query(Item).filter(Item.id.in_(chunk)):
                found[item.id] = item
        return found

    def add_items(self, items):
        self.db.add_all(items)
        self.db.flush()
        return items

    def update_item(self, item, **fields):
        for name, value in fields.items():
            setattr(item, name, value)
        self.db.flush()
        return item

    def count_items(self, status=None):
        q = self.db.query(sqlfunc.count(Item.id))
        if status:
            q = q.filter(Item.status == status)
        return q.scalar() or 0

    def list_items(self, status=None, location_id=None):
        q = self.db.query(Item)
        if status:
            q = q.filter(Item.status == status)
        if location_id is not None:
            q = q.filter(Item.location_id == location_id)
        return q.order_by(Item.id).all()

    # ── Movements ────────────────────────────────────────────────────

    def add_movements(self, movements):
        self.db.add_all(movements)
        self.db.flush()
        return movements

    def movements_for_item(self, item_id, limit):
        return (
            self.db.query(Movement)
            .filter(Movement.item_id == item_id)
            .order_by(Movement.performed_at.desc(), Movement.id.desc())
            .limit(limit)
            .all()
        )

    def _movement_filters(self, movement_type, start, end, item_id):
        conditions = []
        if movement_type:
            conditions.append(Movement.movement_type == movement_type)
        if start:
            conditions.append(Movement.performed_at >= start)
        if end:
            conditions.append(Movement.performed_at <= end)
        if item_id is not None:
            conditions.append(Movement.item_id == item_id)
        return conditions

    def query_movements(self, movement_type=None, start=None, end=None, item_id=None,
                        limit=100, offset=0):
        conditions = self._movement_filters(movement_type, start, end, item_id)
        rows = (
            self.db.query(Movement)
            .filter(*conditions)
            .order_by(Movement.performed_at.desc(), Movement.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        total = self.db.query(sqlfunc.count(Movement.id)).filter(*conditions).scalar() or 0
        return rows, total

    def movements_between(self, start, end, location_id=None):
        q = self.db.query(Movement).filter(
            Movement.performed_at >= start, Movement.performed_at < end
        )
        if location_id is not None:
            q = q.filter(
                or_(Movement.from_location_id == location_id, Movement.to_location_id == location_id)
            )
        return q.all()

    def last_movements(self, item_ids):
        latest: dict[int, Movement] = {}
        for chunk in iter_chunks(list(set(item_ids)), _IN_CHUNK):
            rows = (
                self.db.query(Movement)
                .filter(Movement.item_id.in_(chunk))
                .order_by(Movement.performed_at.desc(), Movement.id.desc())
            )
            for m in rows:
                latest.setdefault(m.item_id, m)
        return latest

    def count_movements(self, item_id=None):
        q = self.db.query(sqlfunc.count(Movement.id))
        if item_id is not None:
            q = q.filter(Movement.item_id == item_id)
        return q.scalar() or 0

    # ── Sync runs ────────────────────────────────────────────────────

    def add_run(self, run):
        self.db.add(run)
        self.db.flush()
        return run

    def update_run(self, run, **fields):
        for name, value in fields.items():
            setattr(run, name, value)
        self.db.flush()
        return run

    def get_run(self, run_id):
        return self.db.get(SyncRun, run_id)

    def latest_run(self, source=None):
        q = self.db.query(SyncRun)
        if source:
            q = q.filter(SyncRun.source == source)
        return q.order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).first()

    def runs_with_status(self, status, source=None, started_before=None):
        q = self.db.query(SyncRun).filter(SyncRun.status == status)
        if source:
            q = q.filter(SyncRun.source == source)
        if started_before is not None:
            q = q.filter(SyncRun.started_at < started_before)
        return q.order_by(SyncRun.started_at).all()

    # ── Daily snapshots ──────────────────────────────────────────────

    def get_snapshot(self, snapshot_date: date, location_key: str):
        return (
            self.db.query(DailySnapshot)
            .filter(
                DailySnapshot.snapshot_date == snapshot_date,
                DailySnapshot.location_key == location_key,
            )
            .first()
        )

    def upsert_snapshot(self, snapshot_date, location_key, **fields):
        snap = self.get_snapshot(snapshot_date, location_key)
        if snap is None:
            snap = DailySnapshot(snapshot_date=snapshot_date, location_key=location_key, **fields)
            self.db.add(snap)
        else:
            for name, value in fields.items():
                setattr(snap, name, value)
        self.db.flush()
        return snap

    def snapshots_between(self, start, end, location_key):
        return (
            self.db.query(DailySnapshot)
            .filter(
                DailySnapshot.snapshot_date >= start,
                DailySnapshot.snapshot_date <= end,
                DailySnapshot.location_key == location_key,
            )
            .order_by(DailySnapshot.snapshot_date)
            .all()
        )

    # ── Shipped-key list ─────────────────────────────────────────────

    def list_shipped_keys(self):
        return [key for (key,) in self.db.query(ShippedKey.item_key).order_by(ShippedKey.id)]

    def add_shipped_keys(self, keys):
        added = 0
        for chunk in iter_chunks(list(dict.fromkeys(keys)), _SHIPPED_CHUNK):
            listed = {
                key for (key,) in
                self.db.query(ShippedKey.item_key).filter(ShippedKey.item_key.in_(chunk))
            }
            fresh = [ShippedKey(item_key=key) for key in chunk if key not in listed]
            self.db.add_all(fresh)
            self.db.flush()
            added += len(fresh)
        return added

    def delete_shipped_keys(self, keys=None):
        if keys is None:
            return self.db.query(ShippedKey).delete(synchronize_session=False)
        removed = 0
        for chunk in iter_chunks(list(set(keys)), _IN_CHUNK):
            removed += (
                self.db.query(ShippedKey)
                .filter(ShippedKey.item_key.in_(chunk))
                .delete(synchronize_session=False)
            )
        return removed
