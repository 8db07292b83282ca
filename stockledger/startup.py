"""
startup.py — Idempotent boot-time work

Tables and indexes are defined in the ORM models and created with
Base.metadata.create_all(checkfirst=True); Alembic owns real migrations.
After the schema is in place, runs left in progress by a crashed process
are repaired so the next sync is not blocked.

Called by: main.py lifespan
Depends on: database.py (engine), models, services/sync_tracker.py
"""

import logging
import os

from .repositories import RepositoryFactory

log = logging.getLogger("stockledger.startup")


def run_startup_migrations(backend: str) -> None:
    """Create missing tables. Safe to call on every app boot."""
    if os.environ.get("TESTING"):
        log.info("TESTING mode — skipping startup migrations")
        return
    if backend != "database":
        return

    from .database import engine
    from .models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("ORM schema sync complete (create_all checkfirst=True)")


def repair_stale_runs(repository_factory: RepositoryFactory, threshold_minutes: int) -> dict:
    from .services.sync_tracker import SyncRunTracker

    with repository_factory() as repo:
        result = SyncRunTracker(repo).fix_stale(threshold_minutes)
    if result["fixed"]:
        log.warning("Startup: auto-completed %d stale sync run(s)", result["fixed"])
    return result
