"""
Field Worker Stock API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shisha.api import deps
from shisha.schemas.common import PaginatedResponse
from shisha.schemas.stock import (
    AllocationCreate,
    AllocationRead,
    AllocationResponse,
    AllocationStats,
    WorkerStockCreate,
    WorkerStockRead,
)
from shisha.services.stock import StockService

router = APIRouter()


@router.post(
    "",
    response_model=WorkerStockRead,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def create_worker_stock(payload: WorkerStockCreate, db: Session = Depends(deps.get_db)):
    return StockService(db).create_worker_stock(payload.user_id, payload.product_id, payload.total_stock)


@router.get("", response_model=List[WorkerStockRead], response_model_by_alias=True)
def list_worker_stock(
    user_id: Optional[int] = Query(None, alias="userId", ge=1),
    db: Session = Depends(deps.get_db),
):
    return StockService(db).list_worker_stock(user_id)


@router.post(
    "/allocations",
    response_model=AllocationResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def allocate_to_worker(payload: AllocationCreate, db: Session = Depends(deps.get_db)):
    """
    Move quantity from central stock into a field worker's stock.
    """
    allocation, stock, transaction = StockService(db).allocate_to_worker(
        payload.user_id, payload.product_id, payload.quantity
    )
    return {"allocation": allocation, "stock": stock, "transaction": transaction}


@router.get(
    "/allocations",
    response_model=PaginatedResponse[AllocationRead],
    response_model_by_alias=True,
)
def list_allocations(
    user_id: Optional[int] = Query(None, alias="userId", ge=1),
    product_id: Optional[int] = Query(None, alias="productId", ge=1),
    pagination: deps.Pagination = Depends(deps.get_pagination),
    db: Session = Depends(deps.get_db),
):
    items, total = StockService(db).list_allocations(
        user_id=user_id, product_id=product_id, skip=pagination.skip, limit=pagination.page_size
    )
    return PaginatedResponse[AllocationRead].build(
        items=[AllocationRead.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.get("/allocations/stats", response_model=AllocationStats, response_model_by_alias=True)
def get_allocation_stats(db: Session = Depends(deps.get_db)):
    """
    Allocation totals, overall and per product and worker.
    """
    return StockService(db).get_allocation_stats()


@router.get("/allocations/{allocation_id}", response_model=AllocationRead, response_model_by_alias=True)
def get_allocation(allocation_id: int, db: Session = Depends(deps.get_db)):
    return StockService(db).get_allocation(allocation_id)
