"""
Sync Run Tracker — lifecycle of each synchronization attempt.

Business Rules:
- A run row is written before any I/O, so every failure is attributable
- At most one run per source may be in progress; a second start is rejected
- Runs left in progress past the stale threshold are repaired (completed
  with the store's real item count) before a new run is allowed to start
- Counters are written periodically while a run is writing, not only at the end

Called by: services/sync_service.py, routers/sync.py, main.py (startup repair)
Depends on: repositories, models
"""

import logging
import traceback
from datetime import datetime, timedelta

from ..config import settings
from ..errors import SyncAlreadyRunning
from ..models import RUN_COMPLETED, RUN_FAILED, RUN_IN_PROGRESS, SyncRun, utcnow
from ..repositories import InventoryRepository

log = logging.getLogger("stockledger.sync.tracker")

COUNTER_FIELDS = (
    "items_processed",
    "items_added",
    "items_updated",
    "items_unchanged",
    "rows_skipped",
    "movements_created",
)


class SyncRunTracker:
    def __init__(self, repo: InventoryRepository, stale_after_minutes: int | None = None):
        self.repo = repo
        self.stale_after_minutes = (
            settings.stale_run_minutes if stale_after_minutes is None else stale_after_minutes
        )

    def start(self, source: str, now: datetime | None = None) -> SyncRun:
        """Open a new in-progress run, or raise SyncAlreadyRunning."""
        now = now or utcnow()
        self.fix_stale(self.stale_after_minutes, now=now, source=source)

        with self.repo.transaction():
            active = self.repo.runs_with_status(RUN_IN_PROGRESS, source=source)
            if active:
                raise SyncAlreadyRunning(source, active[-1].id)
            run = self.repo.add_run(SyncRun(source=source, status=RUN_IN_PROGRESS, started_at=now))
        log.info("Sync run %s started for %s", run.id, source)
        return run

    def record_source_count(self, run: SyncRun, count: int) -> None:
        with self.repo.transaction():
            self.repo.update_run(run, source_row_count=count)

    def progress(self, run: SyncRun, **counters) -> None:
        fields = {k: v for k, v in counters.items() if k in COUNTER_FIELDS}
        with self.repo.transaction():
            self.repo.update_run(run, **fields)
        log.debug("Sync run %s progress: %s", run.id, fields)

    def complete(self, run: SyncRun, store_item_count: int | None = None,
                 now: datetime | None = None, **counters) -> SyncRun:
        fields = {k: v for k, v in counters.items() if k in COUNTER_FIELDS}
        with self.repo.transaction():
            self.repo.update_run(
                run,
                status=RUN_COMPLETED,
                completed_at=now or utcnow(),
                store_item_count=store_item_count,
                **fields,
            )
        log.info(
            "Sync run %s completed: %s processed, %s added, %s updated, %s unchanged",
            run.id, run.items_processed, run.items_added, run.items_updated, run.items_unchanged,
        )
        return run

    def fail(self, run: SyncRun, exc: BaseException, now: datetime | None = None, **counters) -> SyncRun:
        fields = {k: v for k, v in counters.items() if k in COUNTER_FIELDS}
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        with self.repo.transaction():
            self.repo.update_run(
                run,
                status=RUN_FAILED,
                completed_at=now or utcnow(),
                error_message=str(exc)[:1000],
                error_details={"type": type(exc).__name__, "code": getattr(exc, "code", None),
                               "stack": stack},
                **fields,
            )
        log.error("Sync run %s failed: %s", run.id, exc)
        return run

    def latest_run(self, source: str | None = None) -> SyncRun | None:
        return self.repo.latest_run(source)

    def fix_stale(self, threshold_minutes: int | None = None, now: datetime | None = None,
                  source: str | None = None) -> dict:
        """Complete runs stuck in progress past the threshold.

        The store's actual item count becomes the run's processed figure;
        unchanged is backfilled as processed minus added and updated.
        """
        threshold = self.stale_after_minutes if threshold_minutes is None else threshold_minutes
        if threshold < 0:
            raise ValueError("threshold_minutes must be non-negative")
        now = now or utcnow()
        cutoff = now - timedelta(minutes=threshold)

        stale = self.repo.runs_with_status(RUN_IN_PROGRESS, source=source, started_before=cutoff)
        total_items = self.repo.count_items()
        if not stale:
            return {"fixed": 0, "total_items_in_store": total_items, "fixed_runs": []}

        fixed_runs = []
        with self.repo.transaction():
            for run in stale:
                added = run.items_added or 0
                updated = run.items_updated or 0
                minutes = int((now - run.started_at).total_seconds() // 60)
                self.repo.update_run(
                    run,
                    status=RUN_COMPLETED,
                    completed_at=now,
                    items_processed=total_items,
                    items_unchanged=max(0, total_items - added - updated),
                    store_item_count=total_items,
                    error_message=f"Auto-completed: run was stuck in progress for {minutes} minutes",
                )
                fixed_runs.append(run.id)
        log.warning("Repaired %d stale sync run(s): %s", len(fixed_runs), fixed_runs)
        return {"fixed": len(fixed_runs), "total_items_in_store": total_items, "fixed_runs": fixed_runs}


def run_to_dict(run: SyncRun | None) -> dict | None:
    if run is None:
        return None
    duration = None
    if run.completed_at and run.started_at:
        duration = round((run.completed_at - run.started_at).total_seconds(), 1)
    drift = None
    if run.source_row_count is not None and run.store_item_count is not None:
        drift = run.store_item_count - run.source_row_count
    return {
        "id": run.id,
        "source": run.source,
        "status": run.status,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
        "duration_seconds": duration,
        "items_processed": run.items_processed or 0,
        "items_added": run.items_added or 0,
        "items_updated": run.items_updated or 0,
        "items_unchanged": run.items_unchanged or 0,
        "rows_skipped": run.rows_skipped or 0,
        "movements_created": run.movements_created or 0,
        "source_row_count": run.source_row_count,
        "store_item_count": run.store_item_count,
        "drift": drift,
        "error_message": run.error_message,
    }
