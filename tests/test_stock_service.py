"""
Tests for Stock Service
Central restocking, worker stock and allocation
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import Session

from shisha.core.exceptions import Conflict, InvalidArgument, NotFound, OutOfStock
from shisha.models.stock import MainStock, Stock, StockAllocation, StockTransaction
from shisha.services.stock import StockService


class TestMainStock:
    """Test suite for StockService.create_main_stock"""

    def test_first_restock_creates_row(self, db_session: Session, product):
        main_stock, transaction = StockService(db_session).create_main_stock(product.id, Decimal("10"))

        assert main_stock.product_id == product.id
        assert main_stock.total_stock == Decimal("10")
        assert transaction.type == "IN"
        assert transaction.quantity == Decimal("10")
        assert transaction.user_id is None

    def test_restock_accumulates_with_ledger_entries(self, db_session: Session, product):
        service = StockService(db_session)

        service.create_main_stock(product.id, Decimal("10"))
        main_stock, _ = service.create_main_stock(product.id, Decimal("5"))

        assert main_stock.total_stock == Decimal("15")
        assert db_session.query(MainStock).count() == 1
        entries, total = service.list_transactions(product_id=product.id)
        assert total == 2
        assert sorted(entry.quantity for entry in entries) == [Decimal("5"), Decimal("10")]
        assert {entry.type for entry in entries} == {"IN"}

    def test_unknown_product(self, db_session: Session):
        with pytest.raises(NotFound, match="Product not found"):
            StockService(db_session).create_main_stock(999, Decimal("10"))

        assert db_session.query(StockTransaction).count() == 0

    @pytest.mark.parametrize("amount", [None, 0, -5, "lots"])
    def test_invalid_amount(self, db_session: Session, product, amount):
        with pytest.raises(InvalidArgument):
            StockService(db_session).create_main_stock(product.id, amount)

        assert db_session.query(MainStock).count() == 0

    def test_invalid_product_id(self, db_session: Session):
        with pytest.raises(InvalidArgument):
            StockService(db_session).create_main_stock("abc", Decimal("1"))

    def test_list_transactions_by_type(self, db_session: Session, worker, product):
        service = StockService(db_session)
        service.create_main_stock(product.id, Decimal("10"))
        service.allocate_to_worker(worker.id, product.id, Decimal("4"))

        outgoing, total = service.list_transactions(transaction_type="OUT")

        assert total == 1
        assert outgoing[0].user_id == worker.id
        with pytest.raises(InvalidArgument):
            service.list_transactions(transaction_type="SIDEWAYS")


class TestWorkerStock:
    """Test suite for worker stock rows"""

    def test_create_worker_stock(self, db_session: Session, worker, product):
        stock = StockService(db_session).create_worker_stock(worker.id, product.id)

        assert stock.total_stock == Decimal("0")

    def test_duplicate_worker_stock(self, db_session: Session, worker, product, worker_stock):
        with pytest.raises(Conflict):
            StockService(db_session).create_worker_stock(worker.id, product.id, Decimal("3"))

        assert db_session.query(Stock).count() == 1

    def test_negative_opening_balance(self, db_session: Session, worker, product):
        with pytest.raises(InvalidArgument, match="cannot be negative"):
            StockService(db_session).create_worker_stock(worker.id, product.id, Decimal("-1"))

    def test_unknown_worker(self, db_session: Session, product):
        with pytest.raises(NotFound, match="User not found"):
            StockService(db_session).create_worker_stock(999, product.id)

    def test_list_filtered_by_worker(self, db_session: Session, worker, other_worker, product, worker_stock):
        service = StockService(db_session)
        service.create_worker_stock(other_worker.id, product.id, Decimal("1"))

        assert len(service.list_worker_stock()) == 2
        assert [stock.user_id for stock in service.list_worker_stock(other_worker.id)] == [other_worker.id]


class TestAllocation:
    """Test suite for StockService.allocate_to_worker"""

    def test_allocation_moves_stock(self, db_session: Session, worker, product):
        service = StockService(db_session)
        service.create_main_stock(product.id, Decimal("20"))

        allocation, stock, transaction = service.allocate_to_worker(worker.id, product.id, Decimal("7.5"))

        main_stock = db_session.query(MainStock).filter(MainStock.product_id == product.id).one()
        assert main_stock.total_stock == Decimal("12.5")
        assert stock.total_stock == Decimal("7.5")
        assert allocation.quantity == Decimal("7.5")
        assert transaction.type == "OUT"
        assert transaction.user_id == worker.id

    def test_allocation_adds_to_existing_worker_stock(self, db_session: Session, worker, product, worker_stock):
        service = StockService(db_session)
        service.create_main_stock(product.id, Decimal("20"))

        _, stock, _ = service.allocate_to_worker(worker.id, product.id, Decimal("5"))

        assert stock.id == worker_stock.id
        assert stock.total_stock == Decimal("15")

    def test_allocation_exceeding_main_stock(self, db_session: Session, worker, product):
        service = StockService(db_session)
        service.create_main_stock(product.id, Decimal("3"))

        with pytest.raises(OutOfStock, match="Not enough stock in main stock"):
            service.allocate_to_worker(worker.id, product.id, Decimal("4"))

        main_stock = db_session.query(MainStock).populate_existing().one()
        assert main_stock.total_stock == Decimal("3")
        assert db_session.query(Stock).count() == 0
        assert db_session.query(StockAllocation).count() == 0

    def test_allocation_without_main_stock(self, db_session: Session, worker, product):
        with pytest.raises(OutOfStock):
            StockService(db_session).allocate_to_worker(worker.id, product.id, Decimal("1"))


    def test_fractional_allocations_drain_main_stock_exactly(self, db_session: Session, worker, product):
        """Ten 0.1kg lots empty 1kg of central stock; the eleventh is refused"""
        service = StockService(db_session)
        service.create_main_stock(product.id, Decimal("1"))

        for _ in range(10):
            service.allocate_to_worker(worker.id, product.id, Decimal("0.1"))
        with pytest.raises(OutOfStock):
            service.allocate_to_worker(worker.id, product.id, Decimal("0.1"))

        main_stock = db_session.query(MainStock).populate_existing().one()
        stock = db_session.query(Stock).populate_existing().one()
        assert main_stock.total_stock == Decimal("0")
        assert stock.total_stock == Decimal("1")
        assert db_session.query(StockAllocation).count() == 10


class TestAllocationQueries:
    """Test suite for single allocation lookup and allocation stats"""

    def test_get_allocation(self, db_session: Session, worker, product):
        service = StockService(db_session)
        service.create_main_stock(product.id, Decimal("5"))
        allocation, _, _ = service.allocate_to_worker(worker.id, product.id, Decimal("1.5"))

        found = service.get_allocation(allocation.id)

        assert found.id == allocation.id
        assert found.quantity == Decimal("1.5")
        with pytest.raises(NotFound, match="Allocation not found"):
            service.get_allocation(999)

    def test_stats_without_allocations(self, db_session: Session):
        stats = StockService(db_session).get_allocation_stats()

        assert stats["total_records"] == 0
        assert stats["total_quantity"] == Decimal("0")
        assert stats["average_quantity"] == Decimal("0")
        assert stats["by_product"] == []
        assert stats["by_user"] == []

    def test_stats_totals_per_product_and_worker(self, db_session: Session, worker, other_worker, product):
        service = StockService(db_session)
        service.create_main_stock(product.id, Decimal("10"))
        service.allocate_to_worker(worker.id, product.id, Decimal("0.1"))
        service.allocate_to_worker(worker.id, product.id, Decimal("0.2"))
        service.allocate_to_worker(other_worker.id, product.id, Decimal("3"))

        stats = service.get_allocation_stats()

        assert stats["total_records"] == 3
        assert stats["total_quantity"] == Decimal("3.3")
        assert stats["average_quantity"] == Decimal("1.1")
        assert stats["max_quantity"] == Decimal("3")
        assert stats["min_quantity"] == Decimal("0.1")
        assert stats["by_product"] == [
            {"product_id": product.id, "total_records": 3, "total_quantity": Decimal("3.3")}
        ]
        assert stats["by_user"] == [
            {"user_id": worker.id, "total_records": 2, "total_quantity": Decimal("0.3")},
            {"user_id": other_worker.id, "total_records": 1, "total_quantity": Decimal("3")},
        ]

class TestTakeFromWorkerStock:
    """Test suite for the conditional worker stock decrement"""

    def test_take_never_goes_negative(self, db_session: Session, worker, product, worker_stock):
        service = StockService(db_session)

        service.take_from_worker_stock(worker.id, product.id, Decimal("6"))
        with pytest.raises(OutOfStock) as exc_info:
            service.take_from_worker_stock(worker.id, product.id, Decimal("6"))
        db_session.commit()

        assert exc_info.value.available == Decimal("4")
        stock = db_session.query(Stock).populate_existing().one()
        assert stock.total_stock == Decimal("4")
