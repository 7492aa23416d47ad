"""
User Directory Model
Field workers and managers referenced by beneficiaries, stock and distributions.
Credential issuance lives outside this service.
"""
from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shisha.core.database import Base


class User(Base):
    """System users"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, nullable=False, index=True)
    phone = Column(String(30), unique=True)
    role = Column(String(20), nullable=False, default="umunyabuzima", doc="manager or umunyabuzima (field worker)")

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    # Relationships
    beneficiaries = relationship("Beneficiary", back_populates="assigned_user")
    stocks = relationship("Stock", back_populates="user")

    __table_args__ = (
        CheckConstraint("role IN ('manager', 'umunyabuzima')", name="valid_role"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role='{self.role}')>"
