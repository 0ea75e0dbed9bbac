"""Split a paycheck across savings, spending and investing buckets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .utils import round_currency

PERCENT_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Allocation:
    to_saving: float
    to_spending: float
    to_investing: float

    @property
    def total(self) -> float:
        return self.to_saving + self.to_spending + self.to_investing

    def as_dict(self) -> dict[str, Any]:
        return {
            "toSaving": round_currency(self.to_saving),
            "toSpending": round_currency(self.to_spending),
            "toInvesting": round_currency(self.to_investing),
            "total": round_currency(self.total),
        }


def allocate(
    paycheck_amount: float,
    saving_percent: float,
    spending_percent: float,
    investing_percent: float,
    previous_period_overspend: float = 0.0,
) -> Allocation:
    """Allocate ``paycheck_amount`` using the configured percentage split.

    Last fortnight's spending is credited to savings and taken out of the new
    spending allowance, which never drops below zero. The percentages are used
    as given; a split that does not add up to 100 simply over- or
    under-allocates the paycheck (see :func:`validate_allocation_percentages`).
    """

    to_saving = paycheck_amount * saving_percent / 100 + previous_period_overspend
    to_spending = max(0.0, paycheck_amount * spending_percent / 100 - previous_period_overspend)
    to_investing = paycheck_amount * investing_percent / 100
    return Allocation(to_saving=to_saving, to_spending=to_spending, to_investing=to_investing)


def validate_allocation_percentages(
    saving_percent: float,
    spending_percent: float,
    investing_percent: float,
) -> None:
    """Raise ``ValueError`` unless the split is within range and sums to 100."""

    named = {
        "saving_percent": saving_percent,
        "spending_percent": spending_percent,
        "investing_percent": investing_percent,
    }
    for name, value in named.items():
        if not 0 <= value <= 100:
            raise ValueError(f"{name} must be between 0 and 100")

    total = sum(named.values())
    if abs(total - 100) > PERCENT_TOLERANCE:
        raise ValueError(f"Allocation percentages must sum to 100 (got {total:g})")


def monthly_interest(balance: float, rate_pa: float) -> float:
    """Simple monthly interest earned on ``balance`` at ``rate_pa`` percent per annum."""

    return balance * (rate_pa / 100) / 12


__all__ = ["Allocation", "allocate", "monthly_interest", "validate_allocation_percentages"]
