"""Database session management with connection pooling"""

import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from lendbook.config import settings
from lendbook.domain.exceptions import PersistenceError
from lendbook.infrastructure.observability.metrics import persistence_failure_counter


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite gets thread sharing, server databases get a pool"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_rollback(db: Session, operation: str) -> None:
    """
    Commit the unit of work or undo all of it.

    On failure the session is rolled back, which expunges new objects and
    expires every loaded one, so in-memory entities reload their committed
    values. The caller sees a single PersistenceError.
    """
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        persistence_failure_counter.labels(operation=operation).inc()
        logging.error(f"Commit failed during {operation}: {e}", extra={"operation": operation})
        raise PersistenceError(operation) from e


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables (SQLite deployments have no separate migration step)"""
    from lendbook.infrastructure.database.models import Base

    Base.metadata.create_all(bind=bind or engine)
