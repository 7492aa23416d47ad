"""Beneficiary and Program Day Schemas"""

from pydantic import ConfigDict, Field
from typing import List, Optional
import datetime as dt
from datetime import datetime
from enum import Enum

from shisha.schemas.common import CamelModel


# Enums
class BeneficiaryType(str, Enum):
    PREGNANT = "pregnant"
    BREASTFEEDING = "breastfeeding"
    CHILD = "child"


class BeneficiaryStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class ActivityType(str, Enum):
    CHECK_IN = "check-in"
    ATTENDANCE = "attendance"
    ACTIVITY = "activity"
    ASSESSMENT = "assessment"


# Beneficiary Schemas
class BeneficiaryCreate(CamelModel):
    user_id: int = Field(..., gt=0, description="Assigned field worker")
    national_id: str = Field(..., min_length=1, max_length=30)
    first_name: str = Field(..., min_length=1, max_length=60)
    last_name: str = Field(..., min_length=1, max_length=60)
    village: str = Field(..., min_length=1, max_length=100)
    type: BeneficiaryType


class BeneficiaryUpdate(CamelModel):
    """Counters are deliberately absent; unknown fields are rejected"""
    model_config = ConfigDict(extra="forbid")

    user_id: Optional[int] = Field(None, gt=0)
    national_id: Optional[str] = Field(None, min_length=1, max_length=30)
    first_name: Optional[str] = Field(None, min_length=1, max_length=60)
    last_name: Optional[str] = Field(None, min_length=1, max_length=60)
    village: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[BeneficiaryType] = None
    status: Optional[BeneficiaryStatus] = None


class BeneficiaryRead(CamelModel):
    id: int
    user_id: int
    national_id: str
    first_name: str
    last_name: str
    village: str
    type: BeneficiaryType
    status: BeneficiaryStatus
    total_program_days: int
    completed_days: int
    attendance_rate: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BeneficiaryDisplay(BeneficiaryRead):
    """Outbound beneficiary payload with derived progress fields"""
    days_remaining: int
    program_progress: int


class BeneficiaryStats(CamelModel):
    total: int
    active: int
    inactive: int
    completed: int
    pregnant: int
    breastfeeding: int
    child: int
    average_attendance: float


# Program Day Schemas
class ProgramDayCreate(CamelModel):
    day_number: int = Field(..., ge=1)
    date: Optional[dt.date] = None
    activity_type: ActivityType = ActivityType.CHECK_IN
    notes: Optional[str] = Field(None, max_length=500)


class ProgramDayAttendanceUpdate(CamelModel):
    attended: bool
    notes: Optional[str] = Field(None, max_length=500)


class ProgramDayRead(CamelModel):
    id: int
    beneficiary_id: int
    day_number: int
    date: dt.date
    attended: bool
    activity_type: ActivityType
    notes: Optional[str] = None


class ReconciliationResult(CamelModel):
    updated: int
    beneficiary_ids: List[int]
