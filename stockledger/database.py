"""Database connection and session factory.

Datetimes are stored as naive UTC and tagged back to UTC on load by
``models.base.UTCDateTime``, so services only ever see aware values.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from .config import settings


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "connect_args": {"connect_timeout": 10},
    }


def make_session_factory(bind):
    # Sync batches commit per batch while holding loaded items; expiring them
    # on commit would reload every row one SELECT at a time.
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = make_session_factory(engine)


@event.listens_for(engine, "connect")
def _set_timezone(dbapi_conn, connection_record):
    if engine.dialect.name != "postgresql":
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("SET timezone = 'UTC'")
    cursor.close()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
