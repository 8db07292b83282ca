"""Shipped-Key List — operator-maintained list of keys known to have shipped.

An audit aid: keys pasted in from shipping paperwork so they can be
compared against the store. Nothing here touches items or the ledger.

Business Rules:
- Keys are trimmed; blanks are dropped
- A key already on the list is ignored, never an error
- Every write returns the full list so the caller can redraw it

Called by: routers/shipped_keys.py
Depends on: repositories
"""

import logging

from ..repositories import InventoryRepository
from ..utils import clean_keys

log = logging.getLogger("stockledger.shipped_keys")


class ShippedKeyList:
    def __init__(self, repo: InventoryRepository):
        self.repo = repo

    def _listing(self, **counts) -> dict:
        keys = self.repo.list_shipped_keys()
        return {**counts, "total": len(keys), "keys": keys}

    def list_keys(self) -> dict:
        return self._listing()

    def add(self, keys: list[str]) -> dict:
        cleaned = clean_keys(keys)
        if not cleaned:
            raise ValueError("At least one key is required")

        with self.repo.transaction():
            added = self.repo.add_shipped_keys(cleaned)
        log.info("Shipped-key list: %d submitted, %d new", len(cleaned), added)
        return self._listing(added=added, ignored=len(cleaned) - added)

    def remove(self, key: str) -> dict:
        key = (key or "").strip()
        if not key:
            raise ValueError("Item key is required")

        with self.repo.transaction():
            removed = self.repo.delete_shipped_keys([key])
        return self._listing(removed=removed)

    def clear(self) -> dict:
        with self.repo.transaction():
            removed = self.repo.delete_shipped_keys()
        log.info("Shipped-key list cleared (%d keys)", removed)
        return self._listing(removed=removed)
