"""
Beneficiary API endpoints
Registry CRUD plus program-day enrolment and attendance
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shisha.api import deps
from shisha.schemas.beneficiary import (
    BeneficiaryCreate,
    BeneficiaryDisplay,
    BeneficiaryStats,
    BeneficiaryStatus,
    BeneficiaryType,
    BeneficiaryUpdate,
    ProgramDayAttendanceUpdate,
    ProgramDayCreate,
    ProgramDayRead,
)
from shisha.schemas.common import MessageResponse, PaginatedResponse
from shisha.services.beneficiaries import BeneficiaryService
from shisha.services.enrichment import enrich
from shisha.services.program_days import ProgramDayService

router = APIRouter(dependencies=[Depends(deps.reconcile_beneficiary_statuses)])


def _paginated_beneficiaries(items, total, pagination: deps.Pagination):
    return PaginatedResponse[BeneficiaryDisplay].build(
        items=enrich(items),
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post(
    "",
    response_model=BeneficiaryDisplay,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def create_beneficiary(payload: BeneficiaryCreate, db: Session = Depends(deps.get_db)):
    """Register a beneficiary, active with no program days"""
    beneficiary = BeneficiaryService(db).create_beneficiary(payload.model_dump())
    return enrich(beneficiary)


@router.get("", response_model=PaginatedResponse[BeneficiaryDisplay], response_model_by_alias=True)
def list_beneficiaries(
    status_filter: Optional[BeneficiaryStatus] = Query(None, alias="status"),
    beneficiary_type: Optional[BeneficiaryType] = Query(None, alias="type"),
    village: Optional[str] = None,
    user_id: Optional[int] = Query(None, alias="userId", ge=1),
    pagination: deps.Pagination = Depends(deps.get_pagination),
    db: Session = Depends(deps.get_db),
):
    """
    Retrieve beneficiaries with optional filtering.
    """
    items, total = BeneficiaryService(db).list_beneficiaries(
        status=status_filter.value if status_filter else None,
        beneficiary_type=beneficiary_type.value if beneficiary_type else None,
        village=village,
        user_id=user_id,
        skip=pagination.skip,
        limit=pagination.page_size,
    )
    return _paginated_beneficiaries(items, total, pagination)


@router.get("/stats", response_model=BeneficiaryStats, response_model_by_alias=True)
def beneficiary_stats(db: Session = Depends(deps.get_db)):
    return BeneficiaryService(db).get_stats()


@router.get("/user/{user_id}", response_model=PaginatedResponse[BeneficiaryDisplay], response_model_by_alias=True)
def list_beneficiaries_for_user(
    user_id: int,
    pagination: deps.Pagination = Depends(deps.get_pagination),
    db: Session = Depends(deps.get_db),
):
    """Beneficiaries assigned to one field worker"""
    items, total = BeneficiaryService(db).list_beneficiaries(
        user_id=user_id, skip=pagination.skip, limit=pagination.page_size
    )
    return _paginated_beneficiaries(items, total, pagination)


@router.get("/{beneficiary_id}", response_model=BeneficiaryDisplay, response_model_by_alias=True)
def get_beneficiary(beneficiary_id: int, db: Session = Depends(deps.get_db)):
    return enrich(BeneficiaryService(db).get_beneficiary(beneficiary_id))


@router.put("/{beneficiary_id}", response_model=BeneficiaryDisplay, response_model_by_alias=True)
def update_beneficiary(beneficiary_id: int, payload: BeneficiaryUpdate, db: Session = Depends(deps.get_db)):
    """
    Update identity, classification or active/inactive status.

    Progress counters cannot be set through this endpoint.
    """
    beneficiary = BeneficiaryService(db).update_beneficiary(
        beneficiary_id, payload.model_dump(exclude_unset=True)
    )
    return enrich(beneficiary)


@router.delete("/{beneficiary_id}", response_model=MessageResponse)
def delete_beneficiary(beneficiary_id: int, db: Session = Depends(deps.get_db)):
    BeneficiaryService(db).delete_beneficiary(beneficiary_id)
    return {"message": "Beneficiary deleted successfully"}


# Program days

@router.post(
    "/{beneficiary_id}/days",
    response_model=ProgramDayRead,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
def add_program_day(beneficiary_id: int, payload: ProgramDayCreate, db: Session = Depends(deps.get_db)):
    """
    Enrol a program day; the beneficiary's total program days grows by one.
    """
    return ProgramDayService(db).add_day(
        beneficiary_id,
        payload.day_number,
        date=payload.date,
        activity_type=payload.activity_type.value,
        notes=payload.notes,
    )


@router.get(
    "/{beneficiary_id}/days",
    response_model=PaginatedResponse[ProgramDayRead],
    response_model_by_alias=True,
)
def list_program_days(
    beneficiary_id: int,
    pagination: deps.Pagination = Depends(deps.get_pagination),
    db: Session = Depends(deps.get_db),
):
    days, total = ProgramDayService(db).list_days(
        beneficiary_id, skip=pagination.skip, limit=pagination.page_size
    )
    return PaginatedResponse[ProgramDayRead].build(
        items=[ProgramDayRead.model_validate(day) for day in days],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.put(
    "/{beneficiary_id}/days/{day_id}",
    response_model=ProgramDayRead,
    response_model_by_alias=True,
)
def set_attendance(
    beneficiary_id: int,
    day_id: int,
    payload: ProgramDayAttendanceUpdate,
    db: Session = Depends(deps.get_db),
):
    """
    Mark a program day attended or not attended.
    """
    return ProgramDayService(db).set_attendance(
        beneficiary_id, day_id, payload.attended, notes=payload.notes
    )


@router.delete("/{beneficiary_id}/days/{day_id}", response_model=MessageResponse)
def remove_program_day(beneficiary_id: int, day_id: int, db: Session = Depends(deps.get_db)):
    ProgramDayService(db).remove_day(beneficiary_id, day_id)
    return {"message": "Program day removed successfully"}
