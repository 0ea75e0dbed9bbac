"""REST endpoints for the finance profile and fortnight spending."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, g, request
from pydantic import ValidationError

from unitrack.backend.app.auth import require_user
from unitrack.backend.app.http import problem_response
from unitrack.backend.app.models import SpendingUpdateRequest, format_validation_error
from unitrack.backend.app.services.finance_service import (
    NothingToUpdateError,
    finance_summary,
    fortnight_overview,
    record_spending,
    update_profile,
)
from unitrack.backend.app.state import get_services
from unitrack.backend.services import build_json_response, parse_json_object

blueprint = Blueprint("finance", __name__, url_prefix="/api/v1/finance")


@blueprint.get("")
@require_user
def get_profile() -> tuple[Any, int]:
    """Return the user's finance profile, creating it on first access."""

    profile = get_services().repository.get_or_create_profile(g.user_id)
    return build_json_response(profile.as_dict())


@blueprint.patch("")
@require_user
def patch_profile() -> tuple[Any, int]:
    """Apply a sparse update; invalid fields are skipped and reported."""

    payload = parse_json_object(request)
    try:
        profile, update = update_profile(get_services().repository, g.user_id, payload)
    except NothingToUpdateError as exc:
        return problem_response(
            "nothing_to_update",
            status=HTTPStatus.BAD_REQUEST,
            message=str(exc),
            ignored=sorted(payload),
        ).to_response()

    return build_json_response(
        {
            "profile": profile.as_dict(),
            "applied": list(update.applied),
            "ignored": list(update.ignored),
        }
    )


@blueprint.get("/fortnight")
@require_user
def get_fortnight() -> tuple[Any, int]:
    services = get_services()
    overview = fortnight_overview(
        services.repository, services.calculator, g.user_id, services.now()
    )
    return build_json_response(overview)


@blueprint.post("/fortnight")
@require_user
def post_fortnight() -> tuple[Any, int]:
    """Record the amount spent in the current or previous fortnight."""

    payload = parse_json_object(request)
    try:
        spending = SpendingUpdateRequest.model_validate(payload)
    except ValidationError as error:
        amount_failed = any(issue["loc"][:1] == ("amount",) for issue in error.errors())
        return problem_response(
            "invalid_amount" if amount_failed else "validation_error",
            status=HTTPStatus.BAD_REQUEST,
            message=format_validation_error(error, subject="spending update"),
        ).to_response()

    services = get_services()
    record = record_spending(
        services.repository,
        services.calculator,
        g.user_id,
        spending.amount,
        spending.period,
        services.now(),
    )
    return build_json_response(record.as_dict())


@blueprint.get("/summary")
@require_user
def get_summary() -> tuple[Any, int]:
    """Return balances, interest and live holding values in one payload."""

    services = get_services()
    summary = finance_summary(services.repository, services.quote_provider, g.user_id)
    return build_json_response(summary)


__all__ = ["blueprint"]
