"""Sync models — one row per synchronization attempt."""

from sqlalchemy import JSON, Column, Index, Integer, String, Text

from .base import Base, UTCDateTime, utcnow

RUN_IN_PROGRESS = "in_progress"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"


class SyncRun(Base):
    """Lifecycle and counters of one sync run against one source."""

    __tablename__ = "sync_runs"
    id = Column(Integer, primary_key=True)
    source = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False)  # in_progress, completed, failed
    started_at = Column(UTCDateTime, nullable=False, default=utcnow)
    completed_at = Column(UTCDateTime)

    items_processed = Column(Integer, default=0)
    items_added = Column(Integer, default=0)
    items_updated = Column(Integer, default=0)
    items_unchanged = Column(Integer, default=0)
    rows_skipped = Column(Integer, default=0)
    movements_created = Column(Integer, default=0)

    # Drift detection: what the source said vs. what the store holds
    source_row_count = Column(Integer)
    store_item_count = Column(Integer)

    error_message = Column(Text)
    error_details = Column(JSON)
    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (
        Index("ix_sync_runs_status", "status"),
        Index("ix_sync_runs_started", "started_at"),
        Index("ix_sync_runs_source_started", "source", "started_at"),
    )
