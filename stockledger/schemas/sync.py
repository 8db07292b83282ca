"""
schemas/sync.py — Pydantic models for sync endpoints

Business Rules:
- fix-stale threshold is at least one minute
- Counts are never negative

Called by: routers/sync.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SyncRunOut(BaseModel):
    id: int
    source: str
    status: str
    started_at: str | None = None
    completed_at: str | None = None
    duration_seconds: float | None = None
    items_processed: int = 0
    items_added: int = 0
    items_updated: int = 0
    items_unchanged: int = 0
    rows_skipped: int = 0
    movements_created: int = 0
    source_row_count: int | None = None
    store_item_count: int | None = None
    drift: int | None = None
    error_message: str | None = None


class SyncStatusResponse(BaseModel):
    latest_run: SyncRunOut | None = None
    total_items: int = 0
    in_stock: int = 0


class SyncResultResponse(BaseModel):
    run_id: int
    processed: int = Field(ge=0)
    added: int = Field(ge=0)
    updated: int = Field(ge=0)
    unchanged: int = Field(ge=0)
    movements: int = Field(ge=0)
    rows_skipped: int = 0
    source_row_count: int = 0


class FixStaleResponse(BaseModel):
    fixed: int
    total_items_in_store: int
    fixed_runs: list[int] = Field(default_factory=list)


class OutboundSyncResponse(BaseModel):
    processed: int = 0
    shipped: int = 0
    already_shipped: int = 0
    not_found: int = 0
    errors: list[dict] = Field(default_factory=list)
