"""
Stock Service
Central restock, field worker stock and the hand-over between them

Quantities only ever leave a stock row through a conditional UPDATE
("subtract N where total >= N"), so concurrent withdrawals cannot overdraw
a row: the request that would take it below zero matches nothing and is
rejected with OutOfStock.
"""
from typing import Any, Dict, List, Optional, Tuple
from decimal import Decimal, ROUND_HALF_UP
import logging

from sqlalchemy import func, type_coerce
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shisha.core.config import settings
from shisha.core.exceptions import Conflict, NotFound, OutOfStock, ShishaException
from shisha.models.auth import User
from shisha.models.stock import MainStock, Product, Stock, StockAllocation, StockTransaction
from shisha.models.types import Kilograms
from shisha.services.validation import normalise_quantity, require_choice, require_id, require_present

logger = logging.getLogger(__name__)


class StockService:
    """Stock custody: central stock, worker stock and the stock ledger"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Central stock
    # ------------------------------------------------------------------

    def create_main_stock(self, product_id: int, total_stock) -> Tuple[MainStock, StockTransaction]:
        """
        Add quantity to a product's central stock, creating the row if needed

        Every call appends its own IN entry to the ledger.

        Raises:
            InvalidArgument: productId malformed or quantity not positive
            NotFound: product does not exist
        """
        require_present(productId=product_id)
        product_id = require_id(product_id, "productId")
        quantity = normalise_quantity(total_stock, "totalStock")

        try:
            self._require_product(product_id)

            main_stock = self._increment_main_stock(product_id, quantity)

            transaction = StockTransaction(product_id=product_id, quantity=quantity, type="IN")
            self.db.add(transaction)
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Restock rejected for product {product_id}: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(main_stock)
        self.db.refresh(transaction)
        logger.info(f"Main stock for product {product_id} increased by {quantity}, now {main_stock.total_stock}")
        return main_stock, transaction

    def list_main_stock(self) -> List[MainStock]:
        return self.db.query(MainStock).order_by(MainStock.created_at.desc(), MainStock.id.desc()).all()

    def list_transactions(
        self,
        product_id: Optional[int] = None,
        transaction_type: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[StockTransaction], int]:
        """Ledger entries, newest first"""
        query = self.db.query(StockTransaction)
        if product_id is not None:
            query = query.filter(StockTransaction.product_id == product_id)
        if transaction_type is not None:
            query = query.filter(
                StockTransaction.type == require_choice(transaction_type, ("IN", "OUT"), "type")
            )
        total = query.count()
        items = (
            query.order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    # ------------------------------------------------------------------
    # Worker stock
    # ------------------------------------------------------------------

    def create_worker_stock(self, user_id: int, product_id: int, total_stock=0) -> Stock:
        """Open a stock row for a (worker, product) pair"""
        require_present(userId=user_id, productId=product_id)
        user_id = require_id(user_id, "userId")
        product_id = require_id(product_id, "productId")
        quantity = normalise_quantity(total_stock, "totalStock", allow_zero=True)

        try:
            self._require_user(user_id)
            self._require_product(product_id)

            if self._find_worker_stock(user_id, product_id):
                raise Conflict("Stock for this user and product already exists")

            stock = Stock(user_id=user_id, product_id=product_id, total_stock=quantity)
            self.db.add(stock)
            try:
                self.db.flush()
            except IntegrityError:
                raise Conflict("Stock for this user and product already exists")
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Worker stock creation rejected for user {user_id}, product {product_id}: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(stock)
        return stock

    def list_worker_stock(self, user_id: Optional[int] = None) -> List[Stock]:
        query = self.db.query(Stock)
        if user_id is not None:
            query = query.filter(Stock.user_id == user_id)
        return query.order_by(Stock.user_id, Stock.product_id).all()

    def take_from_worker_stock(self, user_id: int, product_id: int, quantity: Decimal) -> Stock:
        """
        Withdraw quantity from a worker's stock inside the caller's transaction

        Raises:
            OutOfStock: no stock row for the pair, or not enough on hand
        """
        updated = (
            self.db.query(Stock)
            .filter(
                Stock.user_id == user_id,
                Stock.product_id == product_id,
                Stock.total_stock >= quantity,
            )
            .update({Stock.total_stock: Stock.total_stock - quantity}, synchronize_session=False)
        )
        stock = self._find_worker_stock(user_id, product_id)

        if updated == 0:
            if stock is None:
                raise OutOfStock("No stock available for this product.", requested=quantity, available=Decimal("0"))
            raise OutOfStock(
                "Not enough stock available.", requested=quantity, available=stock.total_stock
            )
        return stock

    # ------------------------------------------------------------------
    # Central -> worker hand-over
    # ------------------------------------------------------------------

    def allocate_to_worker(
        self, user_id: int, product_id: int, quantity
    ) -> Tuple[StockAllocation, Stock, StockTransaction]:
        """
        Move quantity from central stock to a field worker's stock

        One unit of work: central decrement, worker increment, allocation
        record and OUT ledger entry all land or none do.
        """
        require_present(userId=user_id, productId=product_id, quantity=quantity)
        user_id = require_id(user_id, "userId")
        product_id = require_id(product_id, "productId")
        quantity = normalise_quantity(quantity, "quantity")

        try:
            self._require_user(user_id)
            self._require_product(product_id)

            updated = (
                self.db.query(MainStock)
                .filter(MainStock.product_id == product_id, MainStock.total_stock >= quantity)
                .update({MainStock.total_stock: MainStock.total_stock - quantity}, synchronize_session=False)
            )
            if updated == 0:
                main_stock = self.db.query(MainStock).filter(MainStock.product_id == product_id).first()
                available = main_stock.total_stock if main_stock else Decimal("0")
                raise OutOfStock("Not enough stock in main stock", requested=quantity, available=available)

            stock = self._add_to_worker_stock(user_id, product_id, quantity)

            allocation = StockAllocation(user_id=user_id, product_id=product_id, quantity=quantity)
            transaction = StockTransaction(product_id=product_id, quantity=quantity, type="OUT", user_id=user_id)
            self.db.add_all([allocation, transaction])
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(f"Allocation rejected for user {user_id}, product {product_id}: {e}")
            raise
        except Exception:
            self.db.rollback()
            raise

        for record in (allocation, stock, transaction):
            self.db.refresh(record)
        logger.info(f"Allocated {quantity} of product {product_id} to user {user_id}")
        return allocation, stock, transaction

    def list_allocations(
        self, user_id: Optional[int] = None, product_id: Optional[int] = None, skip: int = 0, limit: int = 100
    ) -> Tuple[List[StockAllocation], int]:
        query = self.db.query(StockAllocation)
        if user_id is not None:
            query = query.filter(StockAllocation.user_id == user_id)
        if product_id is not None:
            query = query.filter(StockAllocation.product_id == product_id)
        total = query.count()
        items = (
            query.order_by(StockAllocation.created_at.desc(), StockAllocation.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def get_allocation(self, allocation_id: int) -> StockAllocation:
        allocation = self.db.get(StockAllocation, require_id(allocation_id, "allocation ID"))
        if allocation is None:
            raise NotFound("Allocation not found")
        return allocation

    def get_allocation_stats(self) -> Dict[str, Any]:
        """
        Totals over every central-to-worker allocation

        Returns overall count, total, average, largest and smallest lot,
        plus the same count and total broken down by product and by worker.
        """
        total_quantity = type_coerce(func.sum(StockAllocation.quantity), Kilograms())
        count, total, largest, smallest = self.db.query(
            func.count(StockAllocation.id),
            total_quantity,
            type_coerce(func.max(StockAllocation.quantity), Kilograms()),
            type_coerce(func.min(StockAllocation.quantity), Kilograms()),
        ).one()

        total = total if total is not None else Decimal("0")
        average = Decimal("0")
        if count:
            step = Decimal(1).scaleb(-settings.QUANTITY_DECIMAL_PLACES)
            average = (total / count).quantize(step, rounding=ROUND_HALF_UP)

        by_product = (
            self.db.query(StockAllocation.product_id, func.count(StockAllocation.id), total_quantity)
            .group_by(StockAllocation.product_id)
            .order_by(StockAllocation.product_id)
            .all()
        )
        by_user = (
            self.db.query(StockAllocation.user_id, func.count(StockAllocation.id), total_quantity)
            .group_by(StockAllocation.user_id)
            .order_by(StockAllocation.user_id)
            .all()
        )

        return {
            "total_records": count,
            "total_quantity": total,
            "average_quantity": average,
            "max_quantity": largest if largest is not None else Decimal("0"),
            "min_quantity": smallest if smallest is not None else Decimal("0"),
            "by_product": [
                {"product_id": product_id, "total_records": records, "total_quantity": quantity}
                for product_id, records, quantity in by_product
            ],
            "by_user": [
                {"user_id": user_id, "total_records": records, "total_quantity": quantity}
                for user_id, records, quantity in by_user
            ],
        }

        return items, total

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _increment_main_stock(self, product_id: int, quantity: Decimal) -> MainStock:
        """Atomic add to the product's central row, inserting it on first restock"""
        updated = (
            self.db.query(MainStock)
            .filter(MainStock.product_id == product_id)
            .update({MainStock.total_stock: MainStock.total_stock + quantity}, synchronize_session=False)
        )
        if updated == 0:
            try:
                with self.db.begin_nested():
                    self.db.add(MainStock(product_id=product_id, total_stock=quantity))
            except IntegrityError:
                # Another restock created the row first
                self.db.query(MainStock).filter(MainStock.product_id == product_id).update(
                    {MainStock.total_stock: MainStock.total_stock + quantity}, synchronize_session=False
                )
        return (
            self.db.query(MainStock)
            .filter(MainStock.product_id == product_id)
            .populate_existing()
            .one()
        )

    def _add_to_worker_stock(self, user_id: int, product_id: int, quantity: Decimal) -> Stock:
        updated = (
            self.db.query(Stock)
            .filter(Stock.user_id == user_id, Stock.product_id == product_id)
            .update({Stock.total_stock: Stock.total_stock + quantity}, synchronize_session=False)
        )
        if updated == 0:
            try:
                with self.db.begin_nested():
                    self.db.add(Stock(user_id=user_id, product_id=product_id, total_stock=quantity))
            except IntegrityError:
                self.db.query(Stock).filter(Stock.user_id == user_id, Stock.product_id == product_id).update(
                    {Stock.total_stock: Stock.total_stock + quantity}, synchronize_session=False
                )
        return self._find_worker_stock(user_id, product_id)

    def _find_worker_stock(self, user_id: int, product_id: int) -> Optional[Stock]:
        return (
            self.db.query(Stock)
            .filter(Stock.user_id == user_id, Stock.product_id == product_id)
            .populate_existing()
            .first()
        )

    def _require_product(self, product_id: int) -> Product:
        product = self.db.get(Product, product_id)
        if product is None:
            raise NotFound("Product not found")
        return product

    def _require_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user
