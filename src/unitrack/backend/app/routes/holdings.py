"""CRUD endpoints for stock holdings plus live quote lookup and search."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Blueprint, g, request
from werkzeug.exceptions import BadRequest

from unitrack.backend.app.auth import require_user
from unitrack.backend.app.http import NotFoundError, UpstreamError
from unitrack.backend.app.models import HoldingCreateRequest
from unitrack.backend.app.services.finance_service import sanitise_holding_update
from unitrack.backend.app.services.quotes import QuoteNotFoundError, QuoteUnavailableError
from unitrack.backend.app.state import get_services
from unitrack.backend.services import build_json_response, parse_int_arg, parse_json_object

logger = logging.getLogger(__name__)

blueprint = Blueprint("holdings", __name__, url_prefix="/api/v1/finance")


@blueprint.get("/holdings")
@require_user
def list_holdings() -> tuple[Any, int]:
    holdings = get_services().repository.list_holdings(g.user_id)
    return build_json_response([holding.as_dict() for holding in holdings])


@blueprint.post("/holdings")
@require_user
def create_holding() -> tuple[Any, int]:
    holding_request = HoldingCreateRequest.model_validate(parse_json_object(request))
    holding = get_services().repository.create_holding(
        g.user_id,
        ticker=holding_request.ticker,
        exchange=holding_request.exchange,
        shares=holding_request.shares,
        average_price=holding_request.average_price,
        currency=holding_request.currency,
    )
    return build_json_response(holding.as_dict(), HTTPStatus.CREATED)


@blueprint.patch("/holdings")
@require_user
def update_holding() -> tuple[Any, int]:
    payload = parse_json_object(request)
    holding_id = payload.get("id")
    if not isinstance(holding_id, int) or isinstance(holding_id, bool):
        raise BadRequest("Invalid body")

    try:
        holding = get_services().repository.update_holding(
            g.user_id, holding_id, sanitise_holding_update(payload)
        )
    except KeyError as exc:
        raise NotFoundError("Holding not found") from exc
    return build_json_response(holding.as_dict())


@blueprint.delete("/holdings")
@require_user
def delete_holding() -> tuple[Any, int]:
    holding_id = parse_int_arg(request, "id")
    try:
        get_services().repository.delete_holding(g.user_id, holding_id)
    except KeyError as exc:
        raise NotFoundError("Holding not found") from exc
    return build_json_response({"success": True})


@blueprint.get("/quote")
@require_user
def get_quote() -> tuple[Any, int]:
    """Return the latest price for ``ticker`` (ASX listings via ``exchange=asx``)."""

    ticker = (request.args.get("ticker") or "").strip().upper()
    if not ticker:
        raise BadRequest("ticker required")

    try:
        quote = get_services().quote_provider.quote(ticker, request.args.get("exchange"))
    except QuoteNotFoundError as exc:
        raise NotFoundError("Quote not found") from exc
    except QuoteUnavailableError as exc:
        raise UpstreamError("Could not fetch quote") from exc
    return build_json_response(quote.as_dict())


@blueprint.get("/stock-search")
@require_user
def search_stocks() -> tuple[Any, int]:
    """Suggest listings for the add-holding form; failures yield no suggestions."""

    query = (request.args.get("q") or "").strip()
    if not query:
        return build_json_response({"quotes": []})

    try:
        results = get_services().quote_provider.search(query, request.args.get("exchange"))
    except QuoteUnavailableError as exc:
        logger.warning("Stock search for %r failed: %s", query, exc)
        results = []
    return build_json_response({"quotes": [result.as_dict() for result in results]})


__all__ = ["blueprint"]
