"""
schemas/reports.py — Pydantic models for snapshot endpoints

Called by: routers/reports.py
Depends on: pydantic
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class SnapshotRequest(BaseModel):
    date: dt.date | None = None
    location_id: int | None = None


class DailyActivity(BaseModel):
    added: int = 0
    shipped: int = 0
    transferred: int = 0
    status_changes: int = 0


class SnapshotOut(BaseModel):
    date: str
    location_key: str
    location: dict | None = None
    total_items: int = 0
    by_grade: dict[str, int] = Field(default_factory=dict)
    by_model: dict[str, int] = Field(default_factory=dict)
    by_lock_status: dict[str, int] = Field(default_factory=dict)
    daily_activity: DailyActivity
    items: list[dict] | None = None
