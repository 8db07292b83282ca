"""Outbound Sync — mark items listed on the outbound sheet as shipped.

The outbound source lists keys that have left the building. Each in-stock
item found there is shipped with an ``external_sync`` movement whose note
names the invoice (INVNO / INVTYPE columns) when the sheet has them.
Keys already shipped are counted and skipped; unknown keys are reported.

Called by: routers/sync.py
Depends on: connectors (RowSource), repositories, services/ledger.py
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field

from ..config import settings
from ..connectors.row_source import RowSource, SourceRecord
from ..errors import SourceUnavailable
from ..models import IN_STOCK, MOVEMENT_SHIPPED, SHIPPED, SOURCE_EXTERNAL_SYNC, Movement, utcnow
from ..repositories import InventoryRepository
from ..utils import iter_chunks
from .ledger import MovementLedger

log = logging.getLogger("stockledger.outbound")


@dataclass
class OutboundResult:
    processed: int = 0
    shipped: int = 0
    already_shipped: int = 0
    not_found: int = 0
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def _note(rec: SourceRecord) -> str:
    invno, invtype = rec.raw.get("INVNO"), rec.raw.get("INVTYPE")
    if invno or invtype:
        return f"Synced from outbound sheet (invno: {invno or '-'}, invtype: {invtype or '-'})"
    return "Synced from outbound sheet"


async def sync_outbound(repo: InventoryRepository, source: RowSource,
                        batch_size: int | None = None, fetch_timeout: float | None = None) -> OutboundResult:
    batch_size = batch_size or settings.sync_batch_size
    timeout = fetch_timeout or settings.sync_fetch_timeout_seconds
    try:
        records = await asyncio.wait_for(source.fetch(), timeout=timeout)
    except asyncio.TimeoutError:
        raise SourceUnavailable(source.source_id, f"fetch timed out after {timeout}s") from None

    result = OutboundResult(processed=len(records))
    if not records:
        log.info("Outbound sync: no rows in %s", source.source_id)
        return result

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, _ship_records, repo, records, batch_size, result)

    log.info(
        "Outbound sync: %d processed, %d shipped, %d already shipped, %d not found",
        result.processed, result.shipped, result.already_shipped, result.not_found,
    )
    return result


def _ship_records(repo: InventoryRepository, records: list[SourceRecord], batch_size: int,
                  result: OutboundResult) -> None:
    ledger = MovementLedger(repo)
    for batch in iter_chunks(records, batch_size):
        existing = repo.get_items_by_keys([rec.key for rec in batch])
        now = utcnow()
        with repo.transaction():
            movements = []
            for rec in batch:
                item = existing.get(rec.key)
                if item is None:
                    result.not_found += 1
                    result.errors.append({"key": rec.key, "error": "Item not found in inventory"})
                    continue
                if item.status == SHIPPED:
                    result.already_shipped += 1
                    continue
                if item.status != IN_STOCK:
                    result.errors.append({"key": rec.key, "error": f"Item is {item.status}"})
                    continue
                movements.append(Movement(
                    item_id=item.id,
                    movement_type=MOVEMENT_SHIPPED,
                    from_status=item.status,
                    to_status=SHIPPED,
                    from_location_id=item.location_id,
                    source=SOURCE_EXTERNAL_SYNC,
                    notes=_note(rec),
                    snapshot_data={**rec.attributes(), "row": rec.raw},
                    performed_at=now,
                ))
                repo.update_item(item, status=SHIPPED)
            ledger.append_many(movements)
        result.shipped += len(movements)
