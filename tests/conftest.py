"""
conftest.py — Shared Test Fixtures for Stock Ledger

Provides an in-memory SQLite database, a repository fixture that runs each
service test against both store backends, fake row sources, and a FastAPI
TestClient with dependency overrides.

Business Rules:
- All tests run against an isolated in-memory DB (no prod data risk)
- Service tests using ``repo`` run twice: database and memory backends
- Row sources are faked; no test touches the network or Google Sheets

Called by: all test files via pytest autodiscovery
Depends on: stockledger.models (Base), stockledger.repositories, stockledger.connectors
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing stockledger modules
os.environ.setdefault("DATABASE_URL", "sqlite://")

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger.cache.inventory_cache import ReconciliationCache
from stockledger.connectors.row_source import PRIMARY_SCHEMA, SECONDARY_SCHEMA, RowSource, SheetSchema
from stockledger.models import IN_STOCK, Base, Item, Location
from stockledger.repositories import InventoryRepository, MemoryRepository, SqlRepository

# ── In-memory SQLite engine ──────────────────────────────────────────

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


PRIMARY_HEADER = ["IMEI", "MODEL", "GB", "COLOR", "SKU", "GRADE", "LOCK STATUS"]
SECONDARY_HEADER = ["IMEI/SERIAL", "DEVICE", "STORAGE", "COLOUR", "GRADED", "CARRIER STATUS", "SUPPLIER"]


class FakeRowSource(RowSource):
    """RowSource serving a fixed cell grid, or raising / stalling on demand."""

    def __init__(self, values=None, schema: SheetSchema = PRIMARY_SCHEMA, error: Exception | None = None,
                 delay: float = 0, best_effort: bool = False, chunk_size: int = 5000):
        super().__init__(schema, best_effort=best_effort, chunk_size=chunk_size)
        self.values = values or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def _fetch_values(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.values


def primary_grid(*rows) -> list[list]:
    """Header plus rows of (key, model, gb, color, sku, grade, lock)."""
    return [PRIMARY_HEADER] + [list(r) for r in rows]


def secondary_grid(*rows, banner_rows: int = 2) -> list[list]:
    """Banner rows, header, then rows of (key, device, storage, colour, graded, carrier, supplier)."""
    banner = [["RAW INVENTORY EXPORT"], []][:banner_rows]
    return banner + [SECONDARY_HEADER] + [list(r) for r in rows]


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(params=["database", "memory"])
def repo(request, db_session: Session) -> InventoryRepository:
    """Each test using this fixture runs once per store backend."""
    if request.param == "database":
        return SqlRepository(db_session)
    return MemoryRepository()


@pytest.fixture()
def sql_repo(db_session: Session) -> SqlRepository:
    return SqlRepository(db_session)


@pytest.fixture()
def location(repo: InventoryRepository) -> Location:
    with repo.transaction():
        return repo.add_location(Location(code="MAIN", name="Main Warehouse"))


@pytest.fixture()
def make_item(repo: InventoryRepository, location: Location):
    """Factory: insert an Item directly (no movement) and return it."""

    def _make(key: str, **fields) -> Item:
        values = {
            "model": "iPhone 13",
            "capacity": "128GB",
            "color": "Blue",
            "grade": "A",
            "lock_status": "Unlocked",
            "status": IN_STOCK,
            "location_id": location.id,
            "first_seen_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
            "last_seen_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        }
        values.update(fields)
        with repo.transaction():
            (item,) = repo.add_items([Item(item_key=key, **values)])
        return item

    return _make


@pytest.fixture()
def cache() -> ReconciliationCache:
    return ReconciliationCache(default_ttl=300)


@pytest.fixture()
def fake_sources() -> dict:
    return {
        "primary": FakeRowSource(primary_grid(("K1", "iPhone 13", "128", "Blue", "SKU1", "A", "Unlocked"))),
        "secondary": FakeRowSource(
            secondary_grid(("K9", "Galaxy S22", "256", "Black", "B", "Locked", "Acme")),
            schema=SECONDARY_SCHEMA,
            best_effort=True,
        ),
        "outbound": FakeRowSource([["IMEI", "INVNO", "INVTYPE"]]),
    }


@pytest.fixture()
def client(db_session: Session, fake_sources: dict, cache: ReconciliationCache) -> TestClient:
    """FastAPI TestClient backed by the SQLite session and fake sources."""
    from stockledger.dependencies import get_cache, get_repository, get_sources
    from stockledger.main import app

    def _override_repo():
        yield SqlRepository(db_session)

    app.dependency_overrides[get_repository] = _override_repo
    app.dependency_overrides[get_sources] = lambda: fake_sources
    app.dependency_overrides[get_cache] = lambda: cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
