"""
Distribution Service
Hands product to a beneficiary from the distributing field worker's stock
and credits the beneficiary with one completed program day.

Ordering inside the unit of work:
  1. validate every argument
  2. check the beneficiary exists and still has program capacity
  3. conditional decrement of the worker's stock (OutOfStock if short)
  4. conditional increment of completedDays (ProgramOverrun if a concurrent
     request took the last slot)
  5. insert the distribution record, refresh attendanceRate, commit

A failure at any step rolls the whole transaction back, so a rejected
distribution never leaves a stock decrement behind.
"""
from typing import List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from shisha.core.exceptions import NotFound, ProgramOverrun, ShishaException
from shisha.models.beneficiary import Beneficiary
from shisha.models.distribution import Distribution
from shisha.services import counters
from shisha.services.stock import StockService
from shisha.services.validation import normalise_quantity, require_id, require_present

logger = logging.getLogger(__name__)

OVERRUN_MESSAGE = "Attendance exceeds total program days. Progress update blocked."


class DistributionService:
    """Beneficiary distributions"""

    def __init__(self, db: Session):
        self.db = db
        self.stock_service = StockService(db)

    def distribute(
        self, beneficiary_id: int, product_id: int, quantity_kg, user_id: int
    ) -> Tuple[Distribution, Beneficiary]:
        """
        Distribute quantity_kg of a product to a beneficiary

        Stock is taken from the distributing worker's own (user, product)
        row, never from another worker's or the central pool.

        Returns:
            The distribution record and the updated beneficiary

        Raises:
            InvalidArgument: a field is missing or malformed
            NotFound: beneficiary does not exist
            OutOfStock: the worker holds no stock row or not enough quantity
            ProgramOverrun: completedDays already equals totalProgramDays
        """
        require_present(
            beneficiaryId=beneficiary_id, productId=product_id, quantityKg=quantity_kg, userId=user_id
        )
        beneficiary_id = require_id(beneficiary_id, "beneficiaryId")
        product_id = require_id(product_id, "productId")
        user_id = require_id(user_id, "userId")
        quantity = normalise_quantity(quantity_kg, "quantityKg")

        try:
            beneficiary = counters.lock_beneficiary(self.db, beneficiary_id)
            if beneficiary is None:
                raise NotFound("Beneficiary not found")
            if beneficiary.completed_days >= beneficiary.total_program_days:
                raise ProgramOverrun(OVERRUN_MESSAGE)

            self.stock_service.take_from_worker_stock(user_id, product_id, quantity)

            if not counters.mark_day_completed(self.db, beneficiary_id):
                raise ProgramOverrun(OVERRUN_MESSAGE)

            distribution = Distribution(
                beneficiary_id=beneficiary_id,
                product_id=product_id,
                user_id=user_id,
                quantity_kg=quantity,
            )
            self.db.add(distribution)
            self.db.flush()

            counters.sync_attendance_rate(self.db, beneficiary)
            self.db.commit()

        except ShishaException as e:
            self.db.rollback()
            logger.warning(
                f"Distribution rejected: beneficiary={beneficiary_id} product={product_id} "
                f"user={user_id} quantity={quantity}: {e}"
            )
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(distribution)
        self.db.refresh(beneficiary)
        logger.info(
            f"Distributed {quantity}kg of product {product_id} to beneficiary {beneficiary_id} "
            f"by user {user_id}; progress {beneficiary.completed_days}/{beneficiary.total_program_days}"
        )
        return distribution, beneficiary

    def list_distributions(
        self,
        beneficiary_id: Optional[int] = None,
        user_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Distribution], int]:
        """Distributions, newest first"""
        query = self.db.query(Distribution)
        if beneficiary_id is not None:
            query = query.filter(Distribution.beneficiary_id == beneficiary_id)
        if user_id is not None:
            query = query.filter(Distribution.user_id == user_id)
        total = query.count()
        items = (
            query.order_by(Distribution.distribution_date.desc(), Distribution.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total
