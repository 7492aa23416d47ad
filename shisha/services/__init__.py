"""
Shisha Business Services
Program-day tracking, stock custody and status reconciliation
"""

from .beneficiaries import BeneficiaryService
from .program_days import ProgramDayService
from .stock import StockService
from .distribution import DistributionService
from .status_reconciliation import StatusReconciliationScheduler, reconcile_statuses

__all__ = [
    "BeneficiaryService",
    "ProgramDayService",
    "StockService",
    "DistributionService",
    "StatusReconciliationScheduler",
    "reconcile_statuses",
]
