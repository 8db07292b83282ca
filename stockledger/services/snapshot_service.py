"""
Snapshot Generator — dated inventory summaries for reporting.

Business Rules:
- A snapshot counts in-stock items only, optionally for one location
- Breakdowns by grade / model / lock status; missing values count as "Unknown"
- Daily activity comes from that day's movements, UTC [00:00, 24:00)
- Status changes = grade_changed + status_changed movements
- One snapshot per (date, location): regenerating the same day overwrites

Called by: routers/reports.py
Depends on: repositories, models
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone

from ..models import (
    ALL_LOCATIONS,
    IN_STOCK,
    MOVEMENT_ADDED,
    MOVEMENT_GRADE_CHANGED,
    MOVEMENT_SHIPPED,
    MOVEMENT_STATUS_CHANGED,
    MOVEMENT_TRANSFERRED,
    DailySnapshot,
)
from ..repositories import InventoryRepository
from .locations import location_to_dict

log = logging.getLogger("stockledger.snapshots")

UNKNOWN_BUCKET = "Unknown"


def location_key(location_id: int | None) -> str:
    return ALL_LOCATIONS if location_id is None else str(location_id)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _breakdown(values) -> dict[str, int]:
    return dict(Counter(v or UNKNOWN_BUCKET for v in values))


class SnapshotGenerator:
    def __init__(self, repo: InventoryRepository):
        self.repo = repo

    def generate(self, snapshot_date: date, location_id: int | None = None) -> dict:
        """Compute and upsert the snapshot for one day (and location)."""
        location = None
        if location_id is not None:
            location = self.repo.get_location(location_id)
            if location is None:
                raise ValueError(f"Location {location_id} not found")

        items = self.repo.list_items(status=IN_STOCK, location_id=location_id)
        start, end = day_bounds(snapshot_date)
        moves = Counter(m.movement_type for m in self.repo.movements_between(start, end, location_id))

        fields = {
            "location_id": location_id,
            "total_items": len(items),
            "grade_breakdown": _breakdown(i.grade for i in items),
            "model_breakdown": _breakdown(i.model for i in items),
            "lock_status_breakdown": _breakdown(i.lock_status for i in items),
            "daily_added": moves[MOVEMENT_ADDED],
            "daily_shipped": moves[MOVEMENT_SHIPPED],
            "daily_transferred": moves[MOVEMENT_TRANSFERRED],
            "daily_status_changes": moves[MOVEMENT_GRADE_CHANGED] + moves[MOVEMENT_STATUS_CHANGED],
            "full_snapshot": [
                {
                    "key": i.item_key,
                    "model": i.model,
                    "capacity": i.capacity,
                    "color": i.color,
                    "grade": i.grade,
                    "lock_status": i.lock_status,
                    "location_id": i.location_id,
                }
                for i in items
            ],
        }
        with self.repo.transaction():
            snap = self.repo.upsert_snapshot(snapshot_date, location_key(location_id), **fields)

        log.info(
            "Snapshot %s (%s): %d items, +%d / -%d shipped",
            snapshot_date, location_key(location_id), len(items),
            fields["daily_added"], fields["daily_shipped"],
        )
        return self._to_dict(snap, location)

    def get_by_date(self, snapshot_date: date, location_id: int | None = None,
                    include_items: bool = False) -> dict | None:
        """Stored snapshot for one day; ``include_items`` adds the per-item listing."""
        snap = self.repo.get_snapshot(snapshot_date, location_key(location_id))
        if snap is None:
            return None
        result = self._to_dict(snap, self.repo.get_location(location_id))
        if include_items:
            result["items"] = snap.full_snapshot or []
        return result

    def get_range(self, start: date, end: date, location_id: int | None = None) -> list[dict]:
        if start > end:
            raise ValueError("start date must not be after end date")
        location = self.repo.get_location(location_id)
        return [
            self._to_dict(snap, location)
            for snap in self.repo.snapshots_between(start, end, location_key(location_id))
        ]

    def get_range_summary(self, start: date, end: date, location_id: int | None = None) -> dict:
        snapshots = self.get_range(start, end, location_id)
        base = {"start_date": start.isoformat(), "end_date": end.isoformat(),
                "total_snapshots": len(snapshots)}
        if not snapshots:
            return {
                **base,
                "daily_snapshots": [],
                "summary": {
                    "total_added": 0,
                    "total_shipped": 0,
                    "total_transferred": 0,
                    "total_status_changes": 0,
                    "net_change": 0,
                    "starting_inventory": 0,
                    "ending_inventory": 0,
                },
            }

        starting = snapshots[0]["total_items"]
        ending = snapshots[-1]["total_items"]
        return {
            **base,
            "daily_snapshots": snapshots,
            "summary": {
                "total_added": sum(s["daily_activity"]["added"] for s in snapshots),
                "total_shipped": sum(s["daily_activity"]["shipped"] for s in snapshots),
                "total_transferred": sum(s["daily_activity"]["transferred"] for s in snapshots),
                "total_status_changes": sum(s["daily_activity"]["status_changes"] for s in snapshots),
                "net_change": ending - starting,
                "starting_inventory": starting,
                "ending_inventory": ending,
            },
        }

    @staticmethod
    def _to_dict(snap: DailySnapshot, location) -> dict:
        return {
            "date": snap.snapshot_date.isoformat(),
            "location_key": snap.location_key,
            "location": location_to_dict(location),
            "total_items": snap.total_items,
            "by_grade": snap.grade_breakdown or {},
            "by_model": snap.model_breakdown or {},
            "by_lock_status": snap.lock_status_breakdown or {},
            "daily_activity": {
                "added": snap.daily_added,
                "shipped": snap.daily_shipped,
                "transferred": snap.daily_transferred,
                "status_changes": snap.daily_status_changes,
            },
        }
