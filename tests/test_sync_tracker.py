"""
test_sync_tracker.py — Tests for stockledger/services/sync_tracker.py

Covers: run start/exclusivity, complete/fail bookkeeping, stale-run repair
(fixStale), and the run serializer used by the status endpoint.

Called by: pytest
Depends on: stockledger.services.sync_tracker, conftest fixtures
"""

from datetime import datetime, timedelta, timezone

import pytest

from stockledger.errors import SyncAlreadyRunning
from stockledger.models import RUN_COMPLETED, RUN_FAILED, RUN_IN_PROGRESS, SyncRun
from stockledger.services.sync_tracker import SyncRunTracker, run_to_dict

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _stuck_run(repo, minutes_ago, source="physical", **counters):
    with repo.transaction():
        return repo.add_run(SyncRun(source=source, status=RUN_IN_PROGRESS,
                                    started_at=NOW - timedelta(minutes=minutes_ago), **counters))


def test_start_creates_in_progress_run(repo):
    run = SyncRunTracker(repo).start("physical", now=NOW)
    assert run.id is not None
    assert run.status == RUN_IN_PROGRESS
    assert repo.latest_run("physical").id == run.id


def test_start_rejects_second_run_for_same_source(repo):
    tracker = SyncRunTracker(repo)
    first = tracker.start("physical", now=NOW)
    with pytest.raises(SyncAlreadyRunning) as exc:
        tracker.start("physical", now=NOW + timedelta(minutes=1))
    assert exc.value.run_id == first.id
    assert exc.value.code == "SYNC_ALREADY_RUNNING"


def test_other_sources_do_not_block(repo):
    tracker = SyncRunTracker(repo)
    tracker.start("physical", now=NOW)
    assert tracker.start("outbound", now=NOW).status == RUN_IN_PROGRESS


def test_complete_records_counts_and_store_size(repo):
    tracker = SyncRunTracker(repo)
    run = tracker.start("physical", now=NOW)
    tracker.complete(run, store_item_count=10, now=NOW + timedelta(seconds=30),
                     items_processed=4, items_added=1, items_updated=2, items_unchanged=1)

    run = repo.get_run(run.id)
    assert run.status == RUN_COMPLETED
    assert (run.items_processed, run.items_added, run.items_updated, run.items_unchanged) == (4, 1, 2, 1)
    assert run.store_item_count == 10


def test_fail_captures_message_and_stack(repo):
    tracker = SyncRunTracker(repo)
    run = tracker.start("physical", now=NOW)
    try:
        raise RuntimeError("sheet exploded")
    except RuntimeError as e:
        tracker.fail(run, e)

    run = repo.get_run(run.id)
    assert run.status == RUN_FAILED
    assert run.error_message == "sheet exploded"
    assert run.error_details["type"] == "RuntimeError"
    assert "sheet exploded" in run.error_details["stack"]


# ── fixStale ─────────────────────────────────────────────────────────


def test_fix_stale_completes_run_with_store_count(repo, make_item):
    for key in ("K1", "K2", "K3"):
        make_item(key)
    run = _stuck_run(repo, 15, items_added=1, items_updated=1)

    result = SyncRunTracker(repo).fix_stale(10, now=NOW)

    assert result == {"fixed": 1, "total_items_in_store": 3, "fixed_runs": [run.id]}
    run = repo.get_run(run.id)
    assert run.status == RUN_COMPLETED
    assert run.items_processed == 3
    assert run.items_unchanged == 1
    assert run.completed_at is not None
    assert "Auto-completed" in run.error_message


def test_fix_stale_twice_is_noop(repo):
    _stuck_run(repo, 15)
    tracker = SyncRunTracker(repo)
    assert tracker.fix_stale(10, now=NOW)["fixed"] == 1
    assert tracker.fix_stale(10, now=NOW)["fixed"] == 0


def test_fix_stale_leaves_recent_runs_alone(repo):
    run = _stuck_run(repo, 5)
    assert SyncRunTracker(repo).fix_stale(10, now=NOW)["fixed"] == 0
    assert repo.get_run(run.id).status == RUN_IN_PROGRESS


def test_fix_stale_rejects_negative_threshold(repo):
    with pytest.raises(ValueError):
        SyncRunTracker(repo).fix_stale(-1, now=NOW)


def test_run_to_dict_reports_duration_and_drift(repo):
    tracker = SyncRunTracker(repo)
    run = tracker.start("physical", now=NOW)
    tracker.record_source_count(run, 8)
    tracker.complete(run, store_item_count=10, now=NOW + timedelta(seconds=90), items_processed=8)

    data = run_to_dict(repo.get_run(run.id))
    assert data["status"] == RUN_COMPLETED
    assert data["duration_seconds"] == 90.0
    assert data["drift"] == 2
    assert run_to_dict(None) is None
