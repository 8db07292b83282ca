"""
test_outbound_sync.py — Tests for stockledger/services/outbound_sync.py

Called by: pytest
Depends on: stockledger.services.outbound_sync, conftest fixtures
"""

import threading

import pytest

from conftest import FakeRowSource
from stockledger.connectors.row_source import OUTBOUND_SCHEMA
from stockledger.errors import SourceUnavailable
from stockledger.models import MOVEMENT_SHIPPED, REMOVED, SHIPPED, SOURCE_EXTERNAL_SYNC
from stockledger.services.outbound_sync import sync_outbound

HEADER = ["IMEI", "MODEL", "INVNO", "INVTYPE"]


def _outbound(*rows, **kw) -> FakeRowSource:
    return FakeRowSource([HEADER] + [list(r) for r in rows], schema=OUTBOUND_SCHEMA, **kw)


@pytest.mark.asyncio
async def test_ships_listed_items(repo, make_item):
    item = make_item("K1")
    make_item("K2")

    result = await sync_outbound(repo, _outbound(("K1", "iPhone 13", "INV-9", "SO")))

    assert result.processed == 1
    assert result.shipped == 1
    assert repo.get_item("K1").status == SHIPPED
    assert repo.get_item("K2").status == "in_stock"
    (movement,) = repo.movements_for_item(item.id, 10)
    assert movement.movement_type == MOVEMENT_SHIPPED
    assert movement.source == SOURCE_EXTERNAL_SYNC
    assert movement.notes == "Synced from outbound sheet (invno: INV-9, invtype: SO)"
    assert movement.snapshot_data["row"]["INVNO"] == "INV-9"


@pytest.mark.asyncio
async def test_reports_already_shipped_unknown_and_invalid(repo, make_item):
    make_item("K1", status=SHIPPED)
    make_item("K2", status=REMOVED)

    result = await sync_outbound(repo, _outbound(("K1",), ("K2",), ("K404",)), batch_size=2)

    assert result.shipped == 0
    assert result.already_shipped == 1
    assert result.not_found == 1
    errors = {e["key"]: e["error"] for e in result.errors}
    assert errors == {"K2": "Item is removed", "K404": "Item not found in inventory"}
    assert repo.count_movements() == 0


@pytest.mark.asyncio
async def test_second_pass_is_idempotent(repo, make_item):
    make_item("K1")
    source = _outbound(("K1", "", "", ""))

    await sync_outbound(repo, source)
    again = await sync_outbound(repo, source)

    assert again.shipped == 0
    assert again.already_shipped == 1
    assert repo.count_movements() == 1


@pytest.mark.asyncio
async def test_empty_sheet(repo):
    result = await sync_outbound(repo, _outbound())
    assert result.to_dict() == {"processed": 0, "shipped": 0, "already_shipped": 0,
                                "not_found": 0, "errors": []}


@pytest.mark.asyncio
async def test_source_failure_propagates(repo):
    with pytest.raises(SourceUnavailable):
        await sync_outbound(repo, _outbound(error=SourceUnavailable("outbound", "HTTP 500")))


@pytest.mark.asyncio
async def test_shipping_writes_run_off_the_event_loop_thread(repo, make_item):
    make_item("K1")
    loop_thread = threading.get_ident()
    seen = []
    original = repo.update_item

    def spy(item, **fields):
        seen.append(threading.get_ident())
        return original(item, **fields)

    repo.update_item = spy
    result = await sync_outbound(repo, _outbound(("K1",)))

    assert result.shipped == 1
    assert seen and loop_thread not in seen
