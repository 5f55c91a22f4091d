"""
SQLAlchemy engines and sessions.

The order API runs on PostgreSQL; the station mirror and the tests run on
SQLite. create_db_engine() picks engine options for either.
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from shared.config.settings import DATABASE_URL

# One venue, a handful of counters and stations
POOL_SIZE = 5
MAX_OVERFLOW = 10


def is_sqlite_memory(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def create_db_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if is_sqlite_memory(url):
            # Every checkout must see the same in-memory database
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_recycle=1800,
        connect_args={"connect_timeout": 10},
    )


engine = create_db_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """Commit, rolling back and re-raising on failure."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
