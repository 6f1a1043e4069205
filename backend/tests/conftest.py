"""
Pytest configuration and fixtures for backend tests.
"""

import uuid
from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, insert
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from erp_api.main import app
from erp_api.models import Article, Base, DrugLot, ReturnReason
from erp_api.services.crud.identifiers import IdentifierValidationConfig, IdentifierValidationStrategy
from shared.infrastructure.db import get_db


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def statements(db_session):
    """
    Record every SQL statement sent to the database during a test.

    Usage:
        statements.clear()
        repo.find_by_id("not-a-uuid")
        assert statements == []
    """
    issued: list[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        issued.append(statement)

    event.listen(engine, "before_cursor_execute", before_cursor_execute)
    try:
        yield issued
    finally:
        event.remove(engine, "before_cursor_execute", before_cursor_execute)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.

    The application lifespan is not run: tables come from db_session.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# Identifier policies
# =============================================================================


@pytest.fixture
def strict_config():
    return IdentifierValidationConfig(strategy=IdentifierValidationStrategy.STRICT)


@pytest.fixture
def graceful_config():
    return IdentifierValidationConfig(strategy=IdentifierValidationStrategy.GRACEFUL)


@pytest.fixture
def warn_config():
    return IdentifierValidationConfig(strategy=IdentifierValidationStrategy.WARN)


# =============================================================================
# Seed helpers
# =============================================================================


def insert_row(session, model, **values) -> uuid.UUID:
    """Insert one row directly (bypassing repositories) and commit."""
    values.setdefault("id", uuid.uuid4())
    session.execute(insert(model.__table__).values(**values))
    session.commit()
    return values["id"]


@pytest.fixture
def seed_articles(db_session):
    """
    Three articles with controlled creation times:
        ("B", t1), ("A", t1), ("A", t2) with t2 later than t1
    """
    t1 = datetime(2024, 1, 1, 9, 0, 0)
    t2 = t1 + timedelta(hours=1)
    author = uuid.uuid4()
    ids = {
        "B-t1": insert_row(db_session, Article, title="B", created_at=t1, author_id=author, view_count=5),
        "A-t1": insert_row(db_session, Article, title="A", created_at=t1, view_count=50),
        "A-t2": insert_row(db_session, Article, title="A", created_at=t2, author_id=author, view_count=500),
    }
    return {"ids": ids, "author_id": author, "t1": t1, "t2": t2}


@pytest.fixture
def seed_drug_lots(db_session):
    """Two drugs, three lots."""
    drug_a = uuid.uuid4()
    drug_b = uuid.uuid4()
    lots = {
        "A-1": insert_row(
            db_session, DrugLot, drug_id=drug_a, lot_number="A-1",
            expiry_date=date(2025, 1, 31), quantity_available=10, unit_cost=1.5,
        ),
        "A-2": insert_row(
            db_session, DrugLot, drug_id=drug_a, lot_number="A-2",
            expiry_date=date(2025, 6, 30), quantity_available=0, unit_cost=1.7,
        ),
        "B-1": insert_row(
            db_session, DrugLot, drug_id=drug_b, lot_number="B-1",
            expiry_date=date(2026, 3, 15), quantity_available=200, unit_cost=12.0,
            is_active=False,
        ),
    }
    return {"lots": lots, "drug_a": drug_a, "drug_b": drug_b}


@pytest.fixture
def seed_return_reasons(db_session):
    """Return reasons including LIKE wildcard characters in names."""
    return {
        "DMG": insert_row(db_session, ReturnReason, reason_code="DMG", reason_name="Damaged"),
        "EXP": insert_row(db_session, ReturnReason, reason_code="EXP", reason_name="Expired"),
        "PCT": insert_row(db_session, ReturnReason, reason_code="PCT", reason_name="100% recall"),
    }
