"""Pytest fixtures for testing"""

import os

# Must be set before split_gateway.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from split_gateway.api.main import create_app
from split_gateway.infrastructure.database.models import Base
from split_gateway.infrastructure.database.session import get_db
from split_gateway.domain.models import Participant, Transaction


# Test database: one shared in-memory connection
TEST_DATABASE_URL = "sqlite://"
engine = create_engine(
    TEST_DATABASE_URL,
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


@pytest.fixture
def participants() -> list[Participant]:
    """Three friends splitting a bill"""
    return [
        Participant("alice", "Alice", "bg-blue-500"),
        Participant("bob", "Bob", "bg-green-500"),
        Participant("carol", "Carol", "bg-pink-500"),
    ]


@pytest.fixture
def dinner() -> Transaction:
    """A $50 restaurant bill owned by alice"""
    return Transaction(
        transaction_id="txn-dinner",
        owner_id="alice",
        amount=Decimal("50.00"),
        merchant="Trattoria",
        date=date(2026, 10, 1),
        category="Food & Drink",
    )