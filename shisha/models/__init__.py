"""
Shisha Database Models
SQLAlchemy models for beneficiaries, program days and stock custody
"""

from .auth import User
from .beneficiary import Beneficiary, ProgramDay
from .stock import Product, MainStock, Stock, StockTransaction, StockAllocation
from .distribution import Distribution

__all__ = [
    "User",
    "Beneficiary",
    "ProgramDay",
    "Product",
    "MainStock",
    "Stock",
    "StockTransaction",
    "StockAllocation",
    "Distribution",
]
