"""
Distribution API endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shisha.api import deps
from shisha.schemas.common import PaginatedResponse
from shisha.schemas.distribution import DistributionCreate, DistributionRead, DistributionResult
from shisha.services.distribution import DistributionService

router = APIRouter()


@router.post(
    "",
    response_model=DistributionResult,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def distribute(payload: DistributionCreate, db: Session = Depends(deps.get_db)):
    """
    Hand product to a beneficiary from the field worker's stock.

    Credits the beneficiary with one completed program day.
    """
    distribution, beneficiary = DistributionService(db).distribute(
        payload.beneficiary_id, payload.product_id, payload.quantity_kg, payload.user_id
    )
    return {"distribution": distribution, "beneficiary": beneficiary}


@router.get("", response_model=PaginatedResponse[DistributionRead], response_model_by_alias=True)
def list_distributions(
    user_id: Optional[int] = Query(None, alias="userId", ge=1),
    pagination: deps.Pagination = Depends(deps.get_pagination),
    db: Session = Depends(deps.get_db),
):
    items, total = DistributionService(db).list_distributions(
        user_id=user_id, skip=pagination.skip, limit=pagination.page_size
    )
    return PaginatedResponse[DistributionRead].build(
        items=[DistributionRead.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.get(
    "/beneficiary/{beneficiary_id}",
    response_model=PaginatedResponse[DistributionRead],
    response_model_by_alias=True,
)
def list_beneficiary_distributions(
    beneficiary_id: int,
    pagination: deps.Pagination = Depends(deps.get_pagination),
    db: Session = Depends(deps.get_db),
):
    items, total = DistributionService(db).list_distributions(
        beneficiary_id=beneficiary_id, skip=pagination.skip, limit=pagination.page_size
    )
    return PaginatedResponse[DistributionRead].build(
        items=[DistributionRead.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )
