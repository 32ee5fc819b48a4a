"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from lendbook.api.main import create_app
from lendbook.domain.events import EventBus, LedgerEvent
from lendbook.infrastructure.database.models import Base
from lendbook.infrastructure.database.session import get_db
from lendbook.services.credit import CreditProfileService
from lendbook.services.ledger import LedgerService


# Test database: one shared in-memory connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def today() -> date:
    return date.today()


@pytest.fixture
def published() -> List[LedgerEvent]:
    """Events delivered through the ledger's bus"""
    return []


@pytest.fixture
def ledger(db: Session, today: date, published: List[LedgerEvent]) -> LedgerService:
    bus = EventBus()
    bus.subscribe(published.append)
    return LedgerService(db, bus, today=lambda: today)


@pytest.fixture
def credit(db: Session, today: date) -> CreditProfileService:
    return CreditProfileService(db, ttl=timedelta(minutes=5), today=lambda: today)


@pytest.fixture
def debtor(ledger: LedgerService):
    return ledger.create_debtor("Maria Souza", phone="+55 11 99999-0000")


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
