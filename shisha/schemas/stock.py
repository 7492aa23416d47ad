"""Stock Custody Schemas"""

from pydantic import Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

from shisha.schemas.common import CamelModel, Quantity


class TransactionType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class ProductRead(CamelModel):
    id: int
    name: str
    description: Optional[str] = None


# Central stock
class MainStockCreate(CamelModel):
    product_id: Optional[int] = None
    total_stock: Optional[Decimal] = Field(None, description="Quantity to add (kg)")


class MainStockRead(CamelModel):
    id: int
    product_id: int
    product: Optional[ProductRead] = None
    total_stock: Quantity
    updated_at: Optional[datetime] = None


class StockTransactionRead(CamelModel):
    id: int
    product_id: int
    quantity: Quantity
    type: TransactionType
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None


class RestockResponse(CamelModel):
    main_stock: MainStockRead
    transaction: StockTransactionRead


# Field worker stock
class WorkerStockCreate(CamelModel):
    user_id: Optional[int] = None
    product_id: Optional[int] = None
    total_stock: Decimal = Field(default=Decimal("0"))


class WorkerStockRead(CamelModel):
    id: int
    user_id: int
    product_id: int
    product: Optional[ProductRead] = None
    total_stock: Quantity
    updated_at: Optional[datetime] = None


# Central -> worker allocation
class AllocationCreate(CamelModel):
    user_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[Decimal] = None


class AllocationRead(CamelModel):
    id: int
    user_id: int
    product_id: int
    quantity: Quantity
    created_at: Optional[datetime] = None


class AllocationResponse(CamelModel):
    allocation: AllocationRead
    stock: WorkerStockRead
    transaction: StockTransactionRead


class ProductAllocationTotal(CamelModel):
    product_id: int
    total_records: int
    total_quantity: Quantity


class WorkerAllocationTotal(CamelModel):
    user_id: int
    total_records: int
    total_quantity: Quantity


class AllocationStats(CamelModel):
    """Allocation totals overall, per product and per worker"""
    total_records: int
    total_quantity: Quantity
    average_quantity: Quantity
    max_quantity: Quantity
    min_quantity: Quantity
    by_product: List[ProductAllocationTotal] = Field(default_factory=list)
    by_user: List[WorkerAllocationTotal] = Field(default_factory=list)
