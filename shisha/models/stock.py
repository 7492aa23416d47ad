"""
Stock Models
Product catalogue reference, central stock, field worker stock and the stock ledger
"""
from sqlalchemy import (
    Column, String, Integer, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shisha.core.database import Base
from shisha.models.types import Kilograms


class Product(Base):
    """Product catalogue entry (flour, supplement...)"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(String(255))

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"


class MainStock(Base):
    """Central stock, one row per product"""
    __tablename__ = "main_stock"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, unique=True)
    total_stock = Column(Kilograms(), nullable=False, default=0, doc="Quantity on hand (kg)")

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("total_stock >= 0", name="main_stock_non_negative"),
    )


class Stock(Base):
    """Field worker stock, one row per (worker, product) pair"""
    __tablename__ = "stock"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    total_stock = Column(Kilograms(), nullable=False, default=0, doc="Quantity on hand (kg)")

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    user = relationship("User", back_populates="stocks")
    product = relationship("Product")

    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_stock_user_product"),
        CheckConstraint("total_stock >= 0", name="stock_non_negative"),
    )


class StockTransaction(Base):
    """
    Append-only ledger of central stock movements

    IN rows are written on restock, OUT rows when central stock is
    allocated to a field worker. Rows are never updated or deleted.
    """
    __tablename__ = "stock_transactions"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Kilograms(), nullable=False)
    type = Column(String(3), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), doc="Receiving worker for OUT movements")

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("type IN ('IN', 'OUT')", name="valid_type"),
        CheckConstraint("quantity > 0", name="quantity_positive"),
        Index("idx_stock_transaction_created", "created_at"),
    )


class StockAllocation(Base):
    """Hand-over of central stock to a field worker"""
    __tablename__ = "stock_allocations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Kilograms(), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    user = relationship("User")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
    )
