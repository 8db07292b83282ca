"""Store backends and the factory that picks one at startup.

``create_repository_factory(backend)`` is called once from the app lifespan
and stored on ``app.state``; request handlers receive a repository through
the ``get_repository`` dependency and never choose a backend themselves.
"""

from contextlib import contextmanager
from typing import Callable, ContextManager

from fastapi import Request

from .base import InventoryRepository
from .memory import MemoryRepository
from .sql import SqlRepository

RepositoryFactory = Callable[[], ContextManager[InventoryRepository]]

BACKENDS = ("database", "memory")


def create_repository_factory(backend: str, session_factory=None) -> RepositoryFactory:
    """Return a context-manager factory yielding a repository per unit of work."""
    if backend == "memory":
        shared = MemoryRepository()

        @contextmanager
        def memory_factory():
            yield shared

        return memory_factory

    if backend == "database":
        if session_factory is None:
            from ..database import SessionLocal

            session_factory = SessionLocal

        @contextmanager
        def sql_factory():
            db = session_factory()
            try:
                yield SqlRepository(db)
            finally:
                db.close()

        return sql_factory

    raise ValueError(f"Unknown store backend {backend!r}; expected one of {', '.join(BACKENDS)}")


def get_repository(request: Request):
    """FastAPI dependency: one repository for the lifetime of the request."""
    with request.app.state.repository_factory() as repo:
        yield repo


__all__ = [
    "BACKENDS",
    "InventoryRepository",
    "MemoryRepository",
    "RepositoryFactory",
    "SqlRepository",
    "create_repository_factory",
    "get_repository",
]
