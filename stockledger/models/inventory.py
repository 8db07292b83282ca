"""Inventory models — locations, current-state items, and the movement ledger."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)

from ..errors import ImmutableRecordError
from .base import Base, UTCDateTime, utcnow

# Item status values
IN_STOCK = "in_stock"
SHIPPED = "shipped"
TRANSFERRED = "transferred"
REMOVED = "removed"
ITEM_STATUSES = (IN_STOCK, SHIPPED, TRANSFERRED, REMOVED)

# Movement types
MOVEMENT_ADDED = "added"
MOVEMENT_SHIPPED = "shipped"
MOVEMENT_TRANSFERRED = "transferred"
MOVEMENT_GRADE_CHANGED = "grade_changed"
MOVEMENT_STATUS_CHANGED = "status_changed"
MOVEMENT_REMOVED = "removed"
MOVEMENT_TYPES = (
    MOVEMENT_ADDED,
    MOVEMENT_SHIPPED,
    MOVEMENT_TRANSFERRED,
    MOVEMENT_GRADE_CHANGED,
    MOVEMENT_STATUS_CHANGED,
    MOVEMENT_REMOVED,
)

# Movement source tags
SOURCE_MANUAL = "manual"
SOURCE_EXTERNAL_SYNC = "external_sync"
SOURCE_BULK_IMPORT = "bulk_import"


class Location(Base):
    __tablename__ = "inventory_locations"
    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    address = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(UTCDateTime, default=utcnow)


class Item(Base):
    """Current state of one physical asset, one row per asset key."""

    __tablename__ = "inventory_items"
    id = Column(Integer, primary_key=True)
    item_key = Column(String(64), nullable=False, unique=True, index=True)

    # Descriptive attributes, refreshed from the external source
    model = Column(String(255))
    capacity = Column(String(50))
    color = Column(String(100))
    sku = Column(String(255))

    # Mutable state
    grade = Column(String(50))
    lock_status = Column(String(50))
    location_id = Column(Integer, ForeignKey("inventory_locations.id"))
    status = Column(String(20), nullable=False, default=IN_STOCK)  # in_stock, shipped, transferred, removed

    first_seen_at = Column(UTCDateTime, nullable=False, default=utcnow)
    last_seen_at = Column(UTCDateTime, nullable=False, default=utcnow)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_items_status", "status"),
        Index("ix_items_location", "location_id"),
    )


class Movement(Base):
    """Append-only ledger row. One per state transition of an Item."""

    __tablename__ = "inventory_movements"
    id = Column(Integer, primary_key=True)
    item_id = Column(
        Integer, ForeignKey("inventory_items.id"), nullable=False
    )
    movement_type = Column(String(30), nullable=False)

    from_status = Column(String(20))
    to_status = Column(String(20))
    from_grade = Column(String(50))
    to_grade = Column(String(50))
    from_lock_status = Column(String(50))
    to_lock_status = Column(String(50))
    from_location_id = Column(Integer, ForeignKey("inventory_locations.id"))
    to_location_id = Column(Integer, ForeignKey("inventory_locations.id"))

    source = Column(String(30), nullable=False)  # manual, external_sync, bulk_import
    performed_by = Column(String(255))
    notes = Column(Text)
    snapshot_data = Column(JSON)  # item attributes at transition time

    performed_at = Column(UTCDateTime, nullable=False, default=utcnow)
    created_at = Column(UTCDateTime, default=utcnow)

    __table_args__ = (
        Index("ix_movements_item_time", "item_id", "performed_at"),
        Index("ix_movements_type", "movement_type"),
        Index("ix_movements_performed_at", "performed_at"),
    )


@event.listens_for(Movement, "before_update")
def _prevent_movement_update(mapper, connection, target):
    raise ImmutableRecordError("Movement", target.id, "ledger rows cannot be modified")


@event.listens_for(Movement, "before_delete")
def _prevent_movement_delete(mapper, connection, target):
    raise ImmutableRecordError("Movement", target.id, "ledger rows cannot be deleted")
