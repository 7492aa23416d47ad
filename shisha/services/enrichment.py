"""
Beneficiary read model

Derived display fields are computed on the way out and never written back
to the beneficiary row.
"""
from typing import List, Union

from shisha.schemas.beneficiary import BeneficiaryDisplay, BeneficiaryRead
from shisha.services.progress import days_remaining, program_progress


def to_display(beneficiary) -> BeneficiaryDisplay:
    """Beneficiary (ORM row or read schema) -> payload with daysRemaining and programProgress"""
    base = BeneficiaryRead.model_validate(beneficiary)
    return BeneficiaryDisplay(
        **base.model_dump(),
        days_remaining=days_remaining(base),
        program_progress=program_progress(base),
    )


def enrich(payload) -> Union[BeneficiaryDisplay, List[BeneficiaryDisplay]]:
    """Apply to_display to a single beneficiary or to each item of a collection"""
    if isinstance(payload, (list, tuple)):
        return [to_display(item) for item in payload]
    return to_display(payload)
