"""Pure finance calculators (tax estimates and paycheck allocation)."""

from .allocation import (
    Allocation,
    allocate,
    monthly_interest,
    validate_allocation_percentages,
)
from .tax import PayEstimate, annual_income_tax, fortnightly_net_pay, medicare_levy
from .utils import format_percentage, non_negative, round_currency

__all__ = [
    "Allocation",
    "PayEstimate",
    "allocate",
    "annual_income_tax",
    "format_percentage",
    "fortnightly_net_pay",
    "medicare_levy",
    "monthly_interest",
    "non_negative",
    "round_currency",
    "validate_allocation_percentages",
]
