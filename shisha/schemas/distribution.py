"""Distribution Schemas"""

from typing import Optional
from datetime import datetime
from decimal import Decimal

from shisha.schemas.beneficiary import BeneficiaryRead
from shisha.schemas.common import CamelModel, Quantity


class DistributionCreate(CamelModel):
    """Fields are optional here so the service reports every missing one"""
    beneficiary_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity_kg: Optional[Decimal] = None
    user_id: Optional[int] = None


class DistributionRead(CamelModel):
    id: int
    beneficiary_id: int
    product_id: int
    user_id: int
    quantity_kg: Quantity
    distribution_date: Optional[datetime] = None


class DistributionResult(CamelModel):
    distribution: DistributionRead
    beneficiary: BeneficiaryRead
