"""
schemas/lists.py — Pydantic models for the shipped-key list and outbound listing

Business Rules:
- Shipped-key submissions carry at least one key, at most 10,000
- Outbound pages report totals for the filtered rows, not the whole sheet

Called by: routers/shipped_keys.py, routers/outbound.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ShippedKeysResponse(BaseModel):
    keys: list[str] = Field(default_factory=list)
    total: int = 0
    added: int | None = None
    ignored: int | None = None
    removed: int | None = None


class OutboundRow(BaseModel):
    key: str
    model: str | None = None
    capacity: str | None = None
    color: str | None = None
    grade: str | None = None
    lock_status: str | None = None
    invno: str | None = None
    invtype: str | None = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class OutboundListResponse(BaseModel):
    items: list[OutboundRow] = Field(default_factory=list)
    pagination: Pagination
    search: str | None = None
    used_cache: bool = False
