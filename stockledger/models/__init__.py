"""Database models — re-exports all models.

Import from here:  from stockledger.models import Item, Movement, ...
Or from submodules: from stockledger.models.inventory import Item
"""

from .base import Base, UTCDateTime, utcnow  # noqa: F401

# Inventory: locations, items, movement ledger
from .inventory import (  # noqa: F401
    IN_STOCK,
    ITEM_STATUSES,
    MOVEMENT_ADDED,
    MOVEMENT_GRADE_CHANGED,
    MOVEMENT_REMOVED,
    MOVEMENT_SHIPPED,
    MOVEMENT_STATUS_CHANGED,
    MOVEMENT_TRANSFERRED,
    MOVEMENT_TYPES,
    REMOVED,
    SHIPPED,
    SOURCE_BULK_IMPORT,
    SOURCE_EXTERNAL_SYNC,
    SOURCE_MANUAL,
    TRANSFERRED,
    Item,
    Location,
    Movement,
)

# Sync runs
from .sync import RUN_COMPLETED, RUN_FAILED, RUN_IN_PROGRESS, SyncRun  # noqa: F401

# Reporting
from .reports import ALL_LOCATIONS, DailySnapshot  # noqa: F401

# Operator-maintained shipped-key list
from .shipped import ShippedKey  # noqa: F401
