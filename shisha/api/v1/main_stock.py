"""
Main Stock API endpoints
Central warehouse restocking and the stock ledger
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shisha.api import deps
from shisha.schemas.common import PaginatedResponse
from shisha.schemas.stock import (
    MainStockCreate,
    MainStockRead,
    RestockResponse,
    StockTransactionRead,
    TransactionType,
)
from shisha.services.stock import StockService

router = APIRouter()


@router.post(
    "",
    response_model=RestockResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def restock(payload: MainStockCreate, db: Session = Depends(deps.get_db)):
    """
    Add quantity to a product's central stock.

    Creates the stock record on first use and always writes an IN ledger entry.
    """
    main_stock, transaction = StockService(db).create_main_stock(payload.product_id, payload.total_stock)
    return {"main_stock": main_stock, "transaction": transaction}


@router.get("", response_model=List[MainStockRead], response_model_by_alias=True)
def list_main_stock(db: Session = Depends(deps.get_db)):
    return StockService(db).list_main_stock()


@router.get(
    "/transactions",
    response_model=PaginatedResponse[StockTransactionRead],
    response_model_by_alias=True,
)
def list_transactions(
    product_id: Optional[int] = Query(None, alias="productId", ge=1),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    pagination: deps.Pagination = Depends(deps.get_pagination),
    db: Session = Depends(deps.get_db),
):
    """
    Retrieve stock ledger entries, newest first.
    """
    items, total = StockService(db).list_transactions(
        product_id=product_id,
        transaction_type=transaction_type.value if transaction_type else None,
        skip=pagination.skip,
        limit=pagination.page_size,
    )
    return PaginatedResponse[StockTransactionRead].build(
        items=[StockTransactionRead.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )
