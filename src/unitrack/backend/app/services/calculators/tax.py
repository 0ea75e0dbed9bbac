"""Resident income tax and Medicare levy estimates.

These figures are estimates only. They assume a resident taxpayer claiming the
tax-free threshold and deliberately ignore tax offsets, HELP/HECS repayments,
the Medicare levy surcharge and any other real-world adjustments.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from unitrack.backend.config.tax_tables import TaxTable, load_tax_table

from .utils import non_negative, round_currency


def _resolve_table(table: TaxTable | None) -> TaxTable:
    return table if table is not None else load_tax_table()


def annual_income_tax(taxable_income: float | None, table: TaxTable | None = None) -> float:
    """Return annual income tax for ``taxable_income`` using progressive brackets."""

    income = non_negative(taxable_income)
    brackets = _resolve_table(table).brackets

    applicable = brackets[0]
    for bracket in brackets:
        if income > bracket.threshold:
            applicable = bracket
        else:
            break

    return applicable.base + (income - applicable.threshold) * applicable.rate


def medicare_levy(
    taxable_income: float | None,
    apply_low_income_reduction: bool = True,
    table: TaxTable | None = None,
) -> float:
    """Return the annual Medicare levy, optionally phased in for low incomes."""

    income = non_negative(taxable_income)
    levy = _resolve_table(table).medicare_levy
    flat = levy.rate * income
    if not apply_low_income_reduction:
        return flat

    if income <= levy.low_income_threshold:
        return 0.0
    phased = levy.phase_in_rate * (income - levy.low_income_threshold)
    return min(flat, phased)


@dataclass(frozen=True)
class PayEstimate:
    """Fortnightly gross/tax/net breakdown for an hourly wage."""

    gross: float
    tax: float
    net: float
    income_tax: float
    medicare_levy: float
    annualised_gross: float

    def as_dict(self) -> dict[str, Any]:
        return {key: round_currency(value) for key, value in asdict(self).items()}


def fortnightly_net_pay(
    hours: float | None,
    hourly_wage: float | None,
    apply_low_income_reduction: bool = True,
    table: TaxTable | None = None,
) -> PayEstimate:
    """Estimate take-home pay for ``hours`` worked at ``hourly_wage`` in one fortnight."""

    resolved = _resolve_table(table)
    periods = resolved.pay_periods_per_year

    gross = non_negative(non_negative(hours) * non_negative(hourly_wage))
    annualised = gross * periods
    annual_tax = annual_income_tax(annualised, resolved)
    annual_levy = medicare_levy(annualised, apply_low_income_reduction, resolved)

    income_tax = annual_tax / periods
    levy = annual_levy / periods
    tax = income_tax + levy
    net = max(0.0, gross - tax)

    return PayEstimate(
        gross=gross,
        tax=tax,
        net=net,
        income_tax=income_tax,
        medicare_levy=levy,
        annualised_gross=annualised,
    )


__all__ = ["PayEstimate", "annual_income_tax", "fortnightly_net_pay", "medicare_levy"]
