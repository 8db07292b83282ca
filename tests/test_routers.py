"""
test_routers.py — HTTP-level tests for the API routers

Exercises every endpoint through the FastAPI TestClient with the SQLite
session and fake row sources from conftest. Data is seeded with the
``sql_repo`` fixture so the client and the test share one session.

Called by: pytest
Depends on: stockledger.main (app), conftest fixtures
"""

from datetime import date, datetime, timezone

import pytest

from conftest import FakeRowSource
from stockledger.connectors.row_source import OUTBOUND_SCHEMA
from stockledger.errors import SourceUnavailable
from stockledger.models import IN_STOCK, RUN_IN_PROGRESS, Item, Location, SyncRun, utcnow


@pytest.fixture()
def seeded(sql_repo):
    """MAIN and BACK locations plus two in-stock items at MAIN."""
    with sql_repo.transaction():
        main = sql_repo.add_location(Location(code="MAIN", name="Main Warehouse"))
        back = sql_repo.add_location(Location(code="BACK", name="Back Room"))
        sql_repo.add_items([
            Item(item_key=key, model="iPhone 13", grade="A", lock_status="Unlocked",
                 status=IN_STOCK, location_id=main.id,
                 first_seen_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
            for key in ("K1", "K2")
        ])
    return {"main": main, "back": back}


# ── Health ───────────────────────────────────────────────────────────


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ── Sync ─────────────────────────────────────────────────────────────


def test_sync_run_and_status(client):
    resp = client.post("/api/sync/run")
    assert resp.status_code == 200
    body = resp.json()
    assert body["added"] == 1
    assert body["processed"] == 1

    status = client.get("/api/sync/status").json()
    assert status["total_items"] == 1
    assert status["in_stock"] == 1
    assert status["latest_run"]["status"] == "completed"
    assert status["latest_run"]["drift"] == 0


def test_sync_run_conflicts_with_active_run(client, sql_repo):
    with sql_repo.transaction():
        sql_repo.add_run(SyncRun(source="physical", status=RUN_IN_PROGRESS, started_at=utcnow()))
    resp = client.post("/api/sync/run")
    assert resp.status_code == 409
    assert resp.json()["code"] == "SYNC_ALREADY_RUNNING"


def test_sync_run_source_failure_is_502(client, fake_sources):
    fake_sources["primary"] = FakeRowSource(error=SourceUnavailable("physical", "HTTP 403"))
    resp = client.post("/api/sync/run")
    assert resp.status_code == 502
    assert resp.json()["code"] == "SOURCE_UNAVAILABLE"

    latest = client.get("/api/sync/status").json()["latest_run"]
    assert latest["status"] == "failed"


def test_fix_stale_endpoint(client):
    resp = client.post("/api/sync/fix-stale", params={"threshold_minutes": 10})
    assert resp.status_code == 200
    assert resp.json()["fixed"] == 0

    assert client.post("/api/sync/fix-stale", params={"threshold_minutes": 0}).status_code == 422


def test_outbound_sync_endpoint(client, fake_sources, seeded):
    fake_sources["outbound"] = FakeRowSource([["IMEI", "INVNO"], ["K1", "INV-1"], ["K404", ""]])
    resp = client.post("/api/sync/outbound")
    assert resp.status_code == 200
    body = resp.json()
    assert body["shipped"] == 1
    assert body["not_found"] == 1


# ── Search / validate ────────────────────────────────────────────────


def test_search_key(client, seeded):
    body = client.get("/api/search/K1").json()
    assert body["found"] is True
    assert body["location"]["code"] == "MAIN"
    assert client.get("/api/search/NOPE").json() == {"found": False, "key": "NOPE"}


def test_search_batch(client, seeded):
    body = client.post("/api/search/batch", json={"keys": ["K1", "NOPE"]}).json()
    assert body["summary"] == {"total": 2, "found": 1, "not_found": 1}


def test_validate(client, seeded):
    resp = client.post("/api/validate", json={"keys": ["K1", "K9", "K404"]})
    assert resp.status_code == 200
    body = resp.json()
    assert [r["source"] for r in body["results"]] == ["primary", "secondary", "unknown"]
    assert body["summary"]["total"] == 3


def test_validate_requires_keys(client):
    resp = client.post("/api/validate", json={"keys": []})
    assert resp.status_code == 422
    assert resp.json()["error"] == "Validation error"


# ── Movements ────────────────────────────────────────────────────────


def test_ship_then_history(client, seeded):
    resp = client.post("/api/movements/ship", json={"keys": ["K1", "K1", "NOPE"], "performed_by": "alice"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert body["items_shipped"] == 1
    assert body["errors"][0]["code"] == "ITEM_NOT_FOUND"

    history = client.get("/api/movements/K1/history").json()
    assert history["status"] == "shipped"
    assert history["movements"][0]["performed_by"] == "alice"


def test_ship_blank_keys_is_400(client):
    resp = client.post("/api/movements/ship", json={"keys": ["", "  "]})
    assert resp.status_code == 400


def test_transfer_and_remove(client, seeded):
    back = seeded["back"]
    resp = client.post("/api/movements/transfer", json={"keys": ["K1"], "to_location_id": back.id})
    assert resp.json()["items_transferred"] == 1

    resp = client.post("/api/movements/remove", json={"keys": ["K2"], "note": "water damage"})
    assert resp.json()["items_removed"] == 1


def test_update_status(client, seeded):
    resp = client.post("/api/movements/update-status", json={"key": "K1", "grade": "C"})
    assert resp.status_code == 200
    assert resp.json()["changes_applied"] == 1

    assert client.post("/api/movements/update-status", json={"key": "K1"}).status_code == 422


def test_list_movements(client, seeded):
    client.post("/api/movements/ship", json={"keys": ["K1", "K2"]})
    body = client.get("/api/movements", params={"type": "shipped", "limit": 1}).json()
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["has_more"] is True

    assert client.get("/api/movements", params={"type": "teleported"}).status_code == 400


# ── Reports ──────────────────────────────────────────────────────────


def test_snapshot_generate_and_read(client, seeded):
    resp = client.post("/api/reports/snapshot", json={"date": "2026-03-01"})
    assert resp.status_code == 200
    assert resp.json()["total_items"] == 2

    daily = client.get("/api/reports/daily/2026-03-01").json()
    assert daily["by_grade"] == {"A": 2}
    assert daily["items"] is None

    listed = client.get("/api/reports/daily/2026-03-01", params={"include_items": "true"}).json()
    assert sorted(row["key"] for row in listed["items"]) == ["K1", "K2"]

    summary = client.get("/api/reports/summary", params={"start": "2026-03-01", "end": "2026-03-31"}).json()
    assert summary["total_snapshots"] == 1

    rows = client.get("/api/reports/range", params={"start": "2026-03-01", "end": "2026-03-02"}).json()
    assert len(rows) == 1


def test_snapshot_unknown_location_is_404(client):
    resp = client.post("/api/reports/snapshot", json={"date": date(2026, 3, 1).isoformat(), "location_id": 999})
    assert resp.status_code == 404


def test_missing_daily_snapshot_is_404(client):
    assert client.get("/api/reports/daily/2026-03-01").status_code == 404


def test_inverted_range_is_400(client):
    resp = client.get("/api/reports/range", params={"start": "2026-03-02", "end": "2026-03-01"})
    assert resp.status_code == 400


# ── Cache ────────────────────────────────────────────────────────────


def test_cache_stats_and_clear(client, cache):
    cache.set("secondary-inventory", {"K9": {}})
    assert client.get("/api/cache/stats").json()["count"] == 1

    resp = client.delete("/api/cache")
    assert resp.json() == {"ok": True, "cleared": "all"}
    assert client.get("/api/cache/stats").json()["count"] == 0


# ── Shipped-key list ─────────────────────────────────────────────────


def test_shipped_keys_add_list_and_delete(client):
    resp = client.post("/api/shipped-keys", json={"keys": [" K1 ", "K2", "K1", ""]})
    assert resp.status_code == 200
    body = resp.json()
    assert (body["added"], body["ignored"], body["keys"]) == (2, 0, ["K1", "K2"])

    again = client.post("/api/shipped-keys", json={"keys": ["K2", "K3"]}).json()
    assert (again["added"], again["ignored"], again["total"]) == (1, 1, 3)
    assert client.get("/api/shipped-keys").json()["keys"] == ["K1", "K2", "K3"]

    one = client.delete("/api/shipped-keys/K2").json()
    assert (one["removed"], one["keys"]) == (1, ["K1", "K3"])

    cleared = client.delete("/api/shipped-keys").json()
    assert (cleared["removed"], cleared["total"]) == (2, 0)


def test_shipped_keys_reject_blank_submissions(client):
    assert client.post("/api/shipped-keys", json={"keys": ["  ", ""]}).status_code == 400
    assert client.post("/api/shipped-keys", json={"keys": []}).status_code == 422


# ── Outbound listing ─────────────────────────────────────────────────


def _outbound_rows(fake_sources, n=5):
    header = ["IMEI", "MODEL", "INVNO", "INVTYPE"]
    rows = [[f"35{i:04d}", "iPhone 13" if i % 2 else "Pixel 7", f"INV-{i}", "SO"] for i in range(n)]
    fake_sources["outbound"] = FakeRowSource([header] + rows, schema=OUTBOUND_SCHEMA)
    return fake_sources["outbound"]


def test_outbound_listing_pages_and_searches(client, fake_sources):
    _outbound_rows(fake_sources)

    page = client.get("/api/outbound/items", params={"limit": 2, "offset": 2}).json()
    assert [row["key"] for row in page["items"]] == ["350002", "350003"]
    assert page["pagination"] == {"total": 5, "limit": 2, "offset": 2, "has_more": True}
    assert page["items"][0]["invno"] == "INV-2"

    found = client.get("/api/outbound/items", params={"search": "PIXEL"}).json()
    assert [row["key"] for row in found["items"]] == ["350000", "350002", "350004"]
    assert found["pagination"]["has_more"] is False
    assert found["used_cache"] is True


def test_outbound_listing_ignores_short_search(client, fake_sources):
    _outbound_rows(fake_sources)
    body = client.get("/api/outbound/items", params={"search": "35"}).json()
    assert body["pagination"]["total"] == 5
    assert body["search"] is None


def test_outbound_listing_rejects_bad_paging(client, fake_sources):
    _outbound_rows(fake_sources)
    assert client.get("/api/outbound/items", params={"limit": 0}).status_code == 422
    assert client.get("/api/outbound/items", params={"offset": -1}).status_code == 422


def test_outbound_listing_without_source_is_503(client, fake_sources):
    del fake_sources["outbound"]
    assert client.get("/api/outbound/items").status_code == 503
