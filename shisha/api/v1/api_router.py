"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter
from shisha.api.v1 import admin, beneficiaries, distributions, main_stock, stock
from shisha.schemas.common import ErrorResponse

# Documented error shape for every module route
error_responses = {
    400: {"model": ErrorResponse, "description": "Invalid input, conflict or stock/program limit"},
    404: {"model": ErrorResponse, "description": "Referenced entity not found"},
}

api_router = APIRouter(responses=error_responses)

# Beneficiary registry and program days
api_router.include_router(beneficiaries.router, prefix="/beneficiaries", tags=["beneficiaries"])

# Stock custody
api_router.include_router(main_stock.router, prefix="/main-stock", tags=["main-stock"])
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])

# Distributions
api_router.include_router(distributions.router, prefix="/distributions", tags=["distributions"])

# Administration
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
