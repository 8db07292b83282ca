"""
test_database.py — Tests for stockledger/database.py session settings

Covers: batched syncs through the production session factory do not reload
stored items after each per-batch commit.

Called by: pytest
Depends on: stockledger.database, conftest engine
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import event

from conftest import FakeRowSource, engine, primary_grid
from stockledger.database import make_session_factory
from stockledger.models import IN_STOCK, Item, Location
from stockledger.repositories import SqlRepository
from stockledger.services.sync_service import SyncOrchestrator

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_session_factory_keeps_objects_loaded_after_commit():
    session = make_session_factory(engine)()
    try:
        assert session.expire_on_commit is False
        assert session.autoflush is False
    finally:
        session.close()


@pytest.mark.asyncio
async def test_batched_sync_loads_stored_items_once(sql_repo):
    with sql_repo.transaction():
        location = sql_repo.add_location(Location(code="MAIN", name="Main Warehouse"))
        sql_repo.add_items([
            Item(item_key=f"K{i}", model="iPhone 13", grade="A", lock_status="Unlocked",
                 status=IN_STOCK, location_id=location.id)
            for i in range(6)
        ])
    rows = [(f"K{i}", "iPhone 13", "128", "Blue", "", "B", "Unlocked") for i in range(6)]

    statements = []

    def _record(conn, cursor, statement, params, context, executemany):
        statements.append(statement)

    session = make_session_factory(engine)()
    event.listen(engine, "before_cursor_execute", _record)
    try:
        sync = SyncOrchestrator(SqlRepository(session), FakeRowSource(primary_grid(*rows)),
                                batch_size=2, progress_interval=2)
        result = await sync.run(now=NOW)
    finally:
        event.remove(engine, "before_cursor_execute", _record)
        session.close()

    assert result.updated == 6
    item_selects = [s for s in statements if s.lstrip().startswith("SELECT inventory_items.id")]
    assert len(item_selects) == 1
