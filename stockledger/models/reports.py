"""Reporting models — dated inventory snapshots."""

from sqlalchemy import JSON, Column, Date, ForeignKey, Index, Integer, String

from .base import Base, UTCDateTime, utcnow

ALL_LOCATIONS = "all"


class DailySnapshot(Base):
    """End-of-day inventory summary. Unique per (snapshot_date, location_key)."""

    __tablename__ = "daily_snapshots"
    id = Column(Integer, primary_key=True)
    snapshot_date = Column(Date, nullable=False)
    # location id as text, or "all"; NULL location ids would defeat the unique index
    location_key = Column(String(50), nullable=False, default=ALL_LOCATIONS)
    location_id = Column(Integer, ForeignKey("inventory_locations.id"))

    total_items = Column(Integer, nullable=False, default=0)
    grade_breakdown = Column(JSON, nullable=False, default=dict)
    model_breakdown = Column(JSON, nullable=False, default=dict)
    lock_status_breakdown = Column(JSON, nullable=False, default=dict)

    daily_added = Column(Integer, nullable=False, default=0)
    daily_shipped = Column(Integer, nullable=False, default=0)
    daily_transferred = Column(Integer, nullable=False, default=0)
    daily_status_changes = Column(Integer, nullable=False, default=0)

    full_snapshot = Column(JSON, nullable=False, default=list)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_snapshot_date_location", "snapshot_date", "location_key", unique=True),
    )
