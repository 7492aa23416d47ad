"""
Admin API endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shisha.api import deps
from shisha.schemas.beneficiary import ReconciliationResult
from shisha.services.status_reconciliation import reconcile_statuses

router = APIRouter()


@router.post("/reconcile-statuses", response_model=ReconciliationResult, response_model_by_alias=True)
def run_status_reconciliation(db: Session = Depends(deps.get_db)):
    """
    Run the beneficiary status sweep now instead of waiting for the schedule.
    """
    completed_ids = reconcile_statuses(db)
    return {"updated": len(completed_ids), "beneficiary_ids": completed_ids}
