"""In-process caches."""

from .inventory_cache import (  # noqa: F401
    OUTBOUND_ROWS_KEY,
    SECONDARY_INVENTORY_KEY,
    ReconciliationCache,
    reconciliation_cache,
)
