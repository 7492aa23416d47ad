"""
Test Configuration and Fixtures
Shared testing infrastructure for Shisha
"""

import os

# Settings are read at import time; point them at test values first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("STATUS_SWEEP_ENABLED", "false")

import pytest
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from shisha.core.database import Base, create_db_engine, get_db
from shisha.main import app
from shisha.models.auth import User
from shisha.models.beneficiary import Beneficiary
from shisha.models.stock import Product
from shisha.services.beneficiaries import BeneficiaryService
from shisha.services.program_days import ProgramDayService
from shisha.services.stock import StockService

# In-memory SQLite shared by every session of a test
engine = create_db_engine("sqlite://", poolclass=StaticPool)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test"""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database dependency override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def manager(db_session: Session) -> User:
    user = User(name="Program Manager", email="manager@test.org", phone="+250700000001", role="manager")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def worker(db_session: Session) -> User:
    """Field worker (umunyabuzima)"""
    user = User(name="Field Worker", email="worker@test.org", phone="+250700000002", role="umunyabuzima")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def other_worker(db_session: Session) -> User:
    user = User(name="Second Worker", email="worker2@test.org", phone="+250700000003", role="umunyabuzima")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def product(db_session: Session) -> Product:
    product = Product(name="Shisha Kibondo", description="Fortified blended flour")
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def worker_stock(db_session: Session, worker: User, product: Product):
    """Worker holding 10kg of the test product"""
    return StockService(db_session).create_worker_stock(worker.id, product.id, Decimal("10"))


@pytest.fixture
def sample_beneficiary_data(worker: User) -> dict:
    return {
        "user_id": worker.id,
        "national_id": "1199880012345678",
        "first_name": "Aline",
        "last_name": "Uwase",
        "village": "Kimironko",
        "type": "pregnant",
    }


@pytest.fixture
def beneficiary(db_session: Session, sample_beneficiary_data: dict) -> Beneficiary:
    return BeneficiaryService(db_session).create_beneficiary(sample_beneficiary_data)


@pytest.fixture
def enrolled_beneficiary(db_session: Session, beneficiary: Beneficiary) -> Beneficiary:
    """Beneficiary with program days 1-5 enrolled, none attended"""
    service = ProgramDayService(db_session)
    for day_number in range(1, 6):
        service.add_day(beneficiary.id, day_number)
    db_session.refresh(beneficiary)
    return beneficiary
