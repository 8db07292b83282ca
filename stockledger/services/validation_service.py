"""
Validation Service — classify scanned keys against both inventories.

Used at physical audit: a list of scanned keys comes in, each comes back
tagged with where it was found.

Business Rules:
- Keys are trimmed, blanks dropped, duplicates collapsed (first occurrence order)
- The item store is checked first, in one query; hits are ``primary``
- Remaining keys are looked up in the secondary row source, read through
  the reconciliation cache (fresh fetch on miss, re-cached with a new TTL)
- Keys found nowhere are ``unknown``
- A failed secondary fetch never fails the call: the leftover keys come back
  ``unknown`` and a warning says why
- An empty secondary result is not cached

Called by: routers/search.py
Depends on: repositories, connectors (RowSource), cache/inventory_cache.py
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field

from ..cache.inventory_cache import SECONDARY_INVENTORY_KEY, ReconciliationCache
from ..config import settings
from ..connectors.row_source import RowSource
from ..errors import SourceUnavailable
from ..repositories import InventoryRepository
from ..utils import clean_keys

log = logging.getLogger("stockledger.validation")

PRIMARY = "primary"
SECONDARY = "secondary"
UNKNOWN = "unknown"


@dataclass
class ValidationResult:
    key: str
    found: bool = False
    source: str = UNKNOWN
    model: str | None = None
    capacity: str | None = None
    color: str | None = None
    grade: str | None = None
    lock_status: str | None = None
    supplier: str | None = None
    status: str | None = None


@dataclass
class ValidationReport:
    results: list[ValidationResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    used_cache: bool = False

    @property
    def summary(self) -> dict:
        counts = {PRIMARY: 0, SECONDARY: 0, UNKNOWN: 0}
        for r in self.results:
            counts[r.source] += 1
        return {"total": len(self.results), **counts}

    def to_dict(self) -> dict:
        return {
            "results": [asdict(r) for r in self.results],
            "warnings": list(self.warnings),
            "summary": self.summary,
            "used_cache": self.used_cache,
        }


class ValidationService:
    def __init__(self, repo: InventoryRepository, secondary: RowSource, cache: ReconciliationCache,
                 fetch_timeout: float | None = None):
        self.repo = repo
        self.secondary = secondary
        self.cache = cache
        self.fetch_timeout = fetch_timeout or settings.sync_fetch_timeout_seconds

    async def validate(self, keys: list[str]) -> ValidationReport:
        report = ValidationReport()
        cleaned = clean_keys(keys)
        if not cleaned:
            return report

        results = {key: ValidationResult(key=key) for key in cleaned}

        stored = self.repo.get_items_by_keys(cleaned)
        for key, item in stored.items():
            results[key] = ValidationResult(
                key=key,
                found=True,
                source=PRIMARY,
                model=item.model,
                capacity=item.capacity,
                color=item.color,
                grade=item.grade,
                lock_status=item.lock_status,
                status=item.status,
            )

        remaining = [key for key in cleaned if not results[key].found]
        if remaining:
            secondary = await self._secondary_inventory(report)
            for key in remaining:
                row = secondary.get(key)
                if row is None:
                    continue
                results[key] = ValidationResult(
                    key=key,
                    found=True,
                    source=SECONDARY,
                    model=row.get("model"),
                    capacity=row.get("capacity"),
                    color=row.get("color"),
                    grade=row.get("grade"),
                    lock_status=row.get("lock_status"),
                    supplier=row.get("supplier"),
                )

        report.results = [results[key] for key in cleaned]
        summary = report.summary
        log.info(
            "Validated %d keys: %d primary, %d secondary, %d unknown%s",
            summary["total"], summary[PRIMARY], summary[SECONDARY], summary[UNKNOWN],
            " (cached secondary)" if report.used_cache else "",
        )
        return report

    async def _secondary_inventory(self, report: ValidationReport) -> dict[str, dict]:
        """Key → attributes of the secondary source, from cache or a fresh fetch."""
        cached = self.cache.get(SECONDARY_INVENTORY_KEY)
        if cached:
            report.used_cache = True
            return cached

        try:
            records = await asyncio.wait_for(self.secondary.fetch(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            return self._degraded(report, f"timed out after {self.fetch_timeout}s")
        except SourceUnavailable as e:
            return self._degraded(report, e.reason)

        if self.secondary.last_error is not None:
            return self._degraded(report, self.secondary.last_error.reason)

        inventory = {rec.key: rec.attributes() for rec in records}
        if inventory:
            self.cache.set(SECONDARY_INVENTORY_KEY, inventory)
        return inventory

    def _degraded(self, report: ValidationReport, reason: str) -> dict:
        log.warning("Secondary inventory unavailable, unmatched keys reported unknown: %s", reason)
        report.warnings.append(f"Secondary inventory unavailable: {reason}")
        return {}
