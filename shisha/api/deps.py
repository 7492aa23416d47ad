"""
API Dependencies
Common dependencies for API endpoints
"""

from dataclasses import dataclass
import logging

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from shisha.core.config import settings
from shisha.core.database import get_db
from shisha.services.status_reconciliation import reconcile_statuses

logger = logging.getLogger(__name__)

__all__ = ["get_db", "Pagination", "get_pagination", "reconcile_beneficiary_statuses"]


@dataclass
class Pagination:
    page: int
    page_size: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size


def get_pagination(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE,
        alias="pageSize", description="Items per page",
    ),
) -> Pagination:
    return Pagination(page=page, page_size=page_size)


def reconcile_beneficiary_statuses(db: Session = Depends(get_db)) -> None:
    """
    Inline status check run before every beneficiary request

    A failed sweep is logged and the request still proceeds.
    """
    try:
        reconcile_statuses(db)
    except Exception as e:
        db.rollback()
        logger.error(f"Inline status check failed: {e}", exc_info=True)
