"""Take-home pay and paycheck allocation estimates.

These endpoints expose the pure calculators so the dashboard can preview a
fortnight's pay and split without persisting anything.
"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, g, request

from unitrack.backend.app.auth import require_user
from unitrack.backend.app.http import NotFoundError
from unitrack.backend.app.models import AllocationRequest, PayEstimateRequest
from unitrack.backend.app.services.calculators import (
    allocate,
    format_percentage,
    fortnightly_net_pay,
    validate_allocation_percentages,
)
from unitrack.backend.app.state import get_services
from unitrack.backend.config.tax_tables import (
    TaxTable,
    available_tables,
    default_table_label,
    load_tax_table,
)
from unitrack.backend.services import build_json_response, parse_json_object

blueprint = Blueprint("estimates", __name__, url_prefix="/api/v1/finance")


def _table_or_404(label: str | None) -> TaxTable:
    resolved = label or get_services().settings.tax_table
    try:
        return load_tax_table(resolved)
    except FileNotFoundError as exc:
        raise NotFoundError(str(exc)) from exc


def _serialise_table(table: TaxTable) -> dict[str, Any]:
    levy = table.medicare_levy
    return {
        "label": table.label,
        "description": table.description,
        "payPeriodsPerYear": table.pay_periods_per_year,
        "brackets": [
            {
                "over": bracket.threshold,
                "base": bracket.base,
                "rate": bracket.rate,
                "rateLabel": format_percentage(bracket.rate),
            }
            for bracket in table.brackets
        ],
        "medicareLevy": {
            "rate": levy.rate,
            "lowIncomeThreshold": levy.low_income_threshold,
            "phaseInRate": levy.phase_in_rate,
            "phaseInUpperThreshold": levy.phase_in_upper_threshold,
        },
    }


@blueprint.get("/tax-tables")
def list_tax_tables() -> tuple[Any, int]:
    """List the configured tax tables and the default label."""

    return build_json_response(
        {"tables": list(available_tables()), "default": default_table_label()}
    )


@blueprint.get("/tax-tables/<string:label>")
def get_tax_table(label: str) -> tuple[Any, int]:
    return build_json_response(_serialise_table(_table_or_404(label)))


@blueprint.post("/estimates/pay")
@require_user
def estimate_pay() -> tuple[Any, int]:
    """Estimate gross, tax and net pay for one fortnight of hourly work."""

    estimate_request = PayEstimateRequest.model_validate(parse_json_object(request))
    table = _table_or_404(estimate_request.table)
    estimate = fortnightly_net_pay(
        estimate_request.hours,
        estimate_request.hourly_wage,
        estimate_request.apply_low_income_reduction,
        table,
    )
    payload = estimate.as_dict()
    payload["table"] = table.label
    return build_json_response(payload)


@blueprint.post("/estimates/allocation")
@require_user
def estimate_allocation() -> tuple[Any, int]:
    """Split a paycheck using the stored (or supplied) percentages.

    When no overspend is given, last fortnight's recorded spending is used.
    """

    allocation_request = AllocationRequest.model_validate(parse_json_object(request))
    services = get_services()
    profile = services.repository.get_or_create_profile(g.user_id)

    saving = _first_set(allocation_request.saving_percent, profile.saving_percent)
    spending = _first_set(allocation_request.spending_percent, profile.spending_percent)
    investing = _first_set(allocation_request.investing_percent, profile.investing_percent)
    if allocation_request.strict:
        validate_allocation_percentages(saving, spending, investing)

    overspend = allocation_request.previous_period_overspend
    if overspend is None:
        previous_start = services.calculator.previous_period_start(services.now())
        records = services.repository.spending_for_periods(g.user_id, (previous_start,))
        record = records.get(previous_start)
        overspend = record.amount_spent if record else 0.0

    allocation = allocate(allocation_request.paycheck, saving, spending, investing, overspend)
    payload = allocation.as_dict()
    payload.update(
        {
            "paycheck": allocation_request.paycheck,
            "previousPeriodOverspend": overspend,
            "percentages": {
                "saving": saving,
                "spending": spending,
                "investing": investing,
            },
        }
    )
    return build_json_response(payload)


def _first_set(value: float | None, fallback: float) -> float:
    return fallback if value is None else value


__all__ = ["blueprint"]
