"""Outbound Listing — browse the rows of the outbound source.

Read-only view for operators checking what the outbound sheet lists
before (or after) an outbound sync. The parsed rows are cached for the
reconciliation-cache TTL so paging does not refetch the sheet.

Business Rules:
- Search matches key, model or invoice number, case-insensitive substring
- Searches shorter than 3 characters are ignored (full listing)
- Pages are limit/offset over the filtered rows, in sheet order

Called by: routers/outbound.py
Depends on: connectors (RowSource), cache/inventory_cache.py
"""

import asyncio
import logging

from ..cache.inventory_cache import OUTBOUND_ROWS_KEY, ReconciliationCache
from ..config import settings
from ..connectors.row_source import RowSource, SourceRecord
from ..errors import SourceUnavailable

log = logging.getLogger("stockledger.outbound")

MIN_SEARCH_LENGTH = 3
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000
SEARCH_FIELDS = ("key", "model", "invno")


def outbound_row(rec: SourceRecord) -> dict:
    return {
        "key": rec.key,
        "model": rec.model,
        "capacity": rec.capacity,
        "color": rec.color,
        "grade": rec.grade,
        "lock_status": rec.lock_status,
        "invno": rec.raw.get("INVNO") or None,
        "invtype": rec.raw.get("INVTYPE") or None,
    }


def matches(row: dict, term: str) -> bool:
    return any(term in (row.get(name) or "").lower() for name in SEARCH_FIELDS)


async def list_outbound(
    source: RowSource,
    cache: ReconciliationCache,
    search: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    fetch_timeout: float | None = None,
) -> dict:
    """One page of outbound rows plus pagination totals."""
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        raise ValueError("offset must not be negative")

    rows, used_cache = await _outbound_rows(source, cache, fetch_timeout)

    term = (search or "").strip().lower()
    searched = len(term) >= MIN_SEARCH_LENGTH
    if searched:
        rows = [row for row in rows if matches(row, term)]

    total = len(rows)
    return {
        "items": rows[offset:offset + limit],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
        "search": term if searched else None,
        "used_cache": used_cache,
    }


async def _outbound_rows(source: RowSource, cache: ReconciliationCache,
                         fetch_timeout: float | None) -> tuple[list[dict], bool]:
    cached = cache.get(OUTBOUND_ROWS_KEY)
    if cached:
        return cached, True

    timeout = fetch_timeout or settings.sync_fetch_timeout_seconds
    try:
        records = await asyncio.wait_for(source.fetch(), timeout=timeout)
    except asyncio.TimeoutError:
        raise SourceUnavailable(source.source_id, f"fetch timed out after {timeout}s") from None

    rows = [outbound_row(rec) for rec in records]
    if rows:
        cache.set(OUTBOUND_ROWS_KEY, rows)
    log.debug("Outbound listing: fetched %d rows from %s", len(rows), source.source_id)
    return rows, False
