"""
Distribution Model
A quantity of product handed to a beneficiary from a field worker's stock
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shisha.core.database import Base
from shisha.models.types import Kilograms


class Distribution(Base):
    """Distribution record"""
    __tablename__ = "distributions"

    id = Column(Integer, primary_key=True, index=True)
    beneficiary_id = Column(Integer, ForeignKey("beneficiaries.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    quantity_kg = Column(Kilograms(), nullable=False)
    distribution_date = Column(DateTime(timezone=True), nullable=False, server_default=func.current_timestamp())

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    beneficiary = relationship("Beneficiary", back_populates="distributions")
    product = relationship("Product")
    user = relationship("User")

    __table_args__ = (
        CheckConstraint("quantity_kg > 0", name="quantity_positive"),
    )

    def __repr__(self):
        return f"<Distribution(id={self.id}, beneficiary_id={self.beneficiary_id}, quantity_kg={self.quantity_kg})>"
