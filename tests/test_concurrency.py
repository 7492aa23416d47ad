"""
Concurrent distribution tests
Real threads against a file-backed SQLite database, one session per thread
"""

import pytest
import threading
from decimal import Decimal
from sqlalchemy.orm import sessionmaker

from shisha.core.database import Base, create_db_engine
from shisha.core.exceptions import OutOfStock, ProgramOverrun
from shisha.models.auth import User
from shisha.models.beneficiary import Beneficiary
from shisha.models.distribution import Distribution
from shisha.models.stock import Product, Stock
from shisha.services.beneficiaries import BeneficiaryService
from shisha.services.distribution import DistributionService
from shisha.services.program_days import ProgramDayService
from shisha.services.stock import StockService


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


def seed(factory, program_days: int, stock: Decimal):
    """One worker, one product, one beneficiary enrolled for program_days days"""
    db = factory()
    try:
        worker = User(name="Field Worker", email="worker@test.org", role="umunyabuzima")
        product = Product(name="Shisha Kibondo")
        db.add_all([worker, product])
        db.commit()

        StockService(db).create_worker_stock(worker.id, product.id, stock)
        beneficiary = BeneficiaryService(db).create_beneficiary({
            "user_id": worker.id,
            "national_id": "1199880012345678",
            "first_name": "Aline",
            "last_name": "Uwase",
            "village": "Kimironko",
            "type": "child",
        })
        for day_number in range(1, program_days + 1):
            ProgramDayService(db).add_day(beneficiary.id, day_number)
        return worker.id, product.id, beneficiary.id
    finally:
        db.close()


def run_concurrently(factory, attempts: int, target):
    """Start every attempt together and collect each outcome"""
    barrier = threading.Barrier(attempts)
    outcomes = []
    lock = threading.Lock()

    def worker_thread():
        db = factory()
        try:
            barrier.wait()
            target(db)
            result = "ok"
        except Exception as e:
            result = e
        finally:
            db.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker_thread) for _ in range(attempts)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


class TestConcurrentDistribution:
    """Stock and progress counters stay consistent under concurrent distributions"""

    def test_stock_is_never_overdrawn(self, file_session_factory):
        """Eight workers racing for 10kg in 3kg lots: exactly three succeed"""
        user_id, product_id, beneficiary_id = seed(file_session_factory, program_days=8, stock=Decimal("10"))

        outcomes = run_concurrently(
            file_session_factory,
            attempts=8,
            target=lambda db: DistributionService(db).distribute(beneficiary_id, product_id, Decimal("3"), user_id),
        )

        successes = [outcome for outcome in outcomes if outcome == "ok"]
        failures = [outcome for outcome in outcomes if outcome != "ok"]
        assert len(successes) == 3
        assert all(isinstance(failure, OutOfStock) for failure in failures), failures

        db = file_session_factory()
        try:
            stock = db.query(Stock).one()
            assert stock.total_stock == Decimal("1")
            assert db.query(Distribution).count() == 3
            assert db.get(Beneficiary, beneficiary_id).completed_days == 3
        finally:
            db.close()

    def test_completed_days_never_exceed_total(self, file_session_factory):
        user_id, product_id, beneficiary_id = seed(file_session_factory, program_days=2, stock=Decimal("100"))

        outcomes = run_concurrently(
            file_session_factory,
            attempts=6,
            target=lambda db: DistributionService(db).distribute(beneficiary_id, product_id, Decimal("1"), user_id),
        )

        assert outcomes.count("ok") == 2
        assert all(isinstance(outcome, ProgramOverrun) for outcome in outcomes if outcome != "ok"), outcomes

        db = file_session_factory()
        try:
            beneficiary = db.get(Beneficiary, beneficiary_id)
            assert beneficiary.completed_days == 2
            assert beneficiary.attendance_rate == 100
            assert db.query(Stock).one().total_stock == Decimal("98")
        finally:
            db.close()
