"""Refi Agent: mortgage refinance savings calculator.

Common imports:
    from refi_agent import LoanScenario, compute_monthly_payment, compute_savings, format_currency

HTTP service (FastAPI application):
    refi_agent.api:app
"""

from .calculator import (
    LoanScenario,
    SavingsResult,
    calculate_savings,
    compute_monthly_payment,
    compute_savings,
)
from .formatting import classify_savings, format_currency

__all__ = [
    "LoanScenario",
    "SavingsResult",
    "calculate_savings",
    "compute_monthly_payment",
    "compute_savings",
    "classify_savings",
    "format_currency",
]
