"""
Beneficiary Models
Program enrolment, progress counters and per-day attendance
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shisha.core.database import Base


BENEFICIARY_TYPES = ("pregnant", "breastfeeding", "child")
BENEFICIARY_STATUSES = ("active", "inactive", "completed")
ACTIVITY_TYPES = ("check-in", "attendance", "activity", "assessment")


class Beneficiary(Base):
    """
    Beneficiary enrolled in the support program

    Progress counters are only ever changed by the program-day and
    distribution services, through conditional UPDATE statements, so the
    CHECK constraints below are a backstop rather than the primary guard.
    """
    __tablename__ = "beneficiaries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True, doc="Assigned field worker")
    national_id = Column(String(30), unique=True, nullable=False, index=True)
    first_name = Column(String(60), nullable=False)
    last_name = Column(String(60), nullable=False)
    village = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="active")

    # Progress counters
    total_program_days = Column(Integer, nullable=False, default=0)
    completed_days = Column(Integer, nullable=False, default=0)
    attendance_rate = Column(Integer, nullable=False, default=0, doc="Derived: round(completed / total * 100)")

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    # Relationships
    assigned_user = relationship("User", back_populates="beneficiaries")
    program_days = relationship(
        "ProgramDay",
        back_populates="beneficiary",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ProgramDay.day_number",
    )
    distributions = relationship("Distribution", back_populates="beneficiary")

    __table_args__ = (
        CheckConstraint("type IN ('pregnant', 'breastfeeding', 'child')", name="valid_type"),
        CheckConstraint("status IN ('active', 'inactive', 'completed')", name="valid_status"),
        CheckConstraint("total_program_days >= 0", name="total_days_non_negative"),
        CheckConstraint("completed_days >= 0", name="completed_days_non_negative"),
        CheckConstraint("completed_days <= total_program_days", name="completed_within_total"),
        CheckConstraint("attendance_rate BETWEEN 0 AND 100", name="attendance_rate_range"),
        Index("idx_beneficiary_status", "status"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return (
            f"<Beneficiary(id={self.id}, national_id='{self.national_id}', status='{self.status}', "
            f"days={self.completed_days}/{self.total_program_days})>"
        )


class ProgramDay(Base):
    """One scheduled day of a beneficiary's program"""
    __tablename__ = "program_days"

    id = Column(Integer, primary_key=True, index=True)
    beneficiary_id = Column(
        Integer, ForeignKey("beneficiaries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_number = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    attended = Column(Boolean, nullable=False, default=False)
    activity_type = Column(String(20), nullable=False, default="check-in")
    notes = Column(String(500))

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    # Relationships
    beneficiary = relationship("Beneficiary", back_populates="program_days")

    __table_args__ = (
        UniqueConstraint("beneficiary_id", "day_number", name="uq_program_day_beneficiary_day"),
        CheckConstraint("day_number >= 1", name="day_number_positive"),
        CheckConstraint(
            "activity_type IN ('check-in', 'attendance', 'activity', 'assessment')",
            name="valid_activity_type"
        ),
        Index("idx_program_day_date", "date"),
    )

    def __repr__(self):
        return f"<ProgramDay(beneficiary_id={self.beneficiary_id}, day={self.day_number}, attended={self.attended})>"
