"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.

The engine is created on first use so that importing the data-access
layer never requires a reachable database or an installed driver.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import settings


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20 for reasonable limits.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


@lru_cache
def get_engine() -> Engine:
    """Create the process-wide engine with connection pooling and timeouts."""
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=_calculate_pool_size(),
        max_overflow=15,
        pool_timeout=settings.database_pool_timeout,
        pool_recycle=settings.database_pool_recycle,
        connect_args={"connect_timeout": 10},
        echo=False,  # Set to True for SQL logging in development
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the process-wide engine."""
    return sessionmaker(
        bind=get_engine(),
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/drug-lots")
        def list_drug_lots(db: Session = Depends(get_db)):
            return DrugLotRepository(db).list(query)

    The session is automatically closed after the request completes.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction_scope(db: Session) -> Generator[Session, None, None]:
    """
    Run a block of work as one transaction on the given session.

    Commits when the block exits normally and rolls back on any
    exception, which is re-raised unchanged.

    Usage:
        with transaction_scope(db) as tx:
            tx.execute(insert(DrugLot).values(...))
    """
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
