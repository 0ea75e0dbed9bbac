"""Coordinate fortnight bookkeeping, profile updates and portfolio totals.

This is the only layer where period semantics meet storage. Route handlers
stay thin: they authenticate, parse JSON and hand off to the functions here.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from numbers import Real
from typing import Any

from .calculators import monthly_interest, round_currency
from .finance_store import (
    PROFILE_FIELDS,
    FinanceProfile,
    FinanceRepository,
    FortnightSpendingRecord,
    StockHolding,
)
from .fortnight import FortnightCalculator
from .quotes import Quote, QuoteNotFoundError, QuoteProvider, QuoteUnavailableError

logger = logging.getLogger(__name__)

PERCENT_FIELDS = frozenset({"savingPercent", "spendingPercent", "investingPercent"})


class NothingToUpdateError(ValueError):
    """Raised when a partial update carries no acceptable field."""


def _is_number(value: Any) -> bool:
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        # JSON integers are unbounded; anything past float range is rejected.
        return False


def record_spending(
    repository: FinanceRepository,
    calculator: FortnightCalculator,
    user_id: int,
    amount: Any,
    period: str | None,
    now: datetime,
) -> FortnightSpendingRecord:
    """Store ``amount`` as the spending total for the resolved fortnight.

    Repeated calls overwrite the stored amount rather than accumulating it.
    """

    if not _is_number(amount) or amount < 0:
        raise ValueError("Invalid amount")

    period_start = calculator.period_for(period, now)
    record = repository.upsert_spending(user_id, period_start, float(amount))
    logger.info(
        "Recorded fortnight spending for user %s period %s",
        user_id,
        period_start.date().isoformat(),
    )
    return record


def fortnight_overview(
    repository: FinanceRepository,
    calculator: FortnightCalculator,
    user_id: int,
    now: datetime,
) -> dict[str, Any]:
    """Return current/previous period starts with their recorded amounts."""

    current_start = calculator.current_period_start(now)
    previous_start = calculator.previous_period_start(now)
    records = repository.spending_for_periods(user_id, (current_start, previous_start))

    current = records.get(current_start)
    previous = records.get(previous_start)
    return {
        "currentPeriodStart": current_start.isoformat(),
        "currentPeriodEnd": calculator.period_end(now).isoformat(),
        "previousPeriodStart": previous_start.isoformat(),
        "currentAmount": current.amount_spent if current else 0,
        "previousAmount": previous.amount_spent if previous else 0,
    }


@dataclass(frozen=True)
class ProfileUpdate:
    """Validated subset of a profile patch plus the keys that were dropped."""

    changes: Mapping[str, float]
    applied: tuple[str, ...]
    ignored: tuple[str, ...] = field(default_factory=tuple)


def sanitise_profile_update(payload: Mapping[str, Any]) -> ProfileUpdate:
    """Keep each recognised field that passes its own range check.

    Invalid or unknown fields are dropped individually instead of failing the
    whole request; they are reported back through ``ignored``.
    """

    changes: dict[str, float] = {}
    applied: list[str] = []
    ignored: list[str] = []

    for key, value in payload.items():
        column = PROFILE_FIELDS.get(key)
        valid = column is not None and _is_number(value) and value >= 0
        if valid and key in PERCENT_FIELDS and value > 100:
            valid = False
        if valid:
            changes[column] = float(value)
            applied.append(key)
        else:
            ignored.append(key)

    return ProfileUpdate(changes=changes, applied=tuple(applied), ignored=tuple(ignored))


def update_profile(
    repository: FinanceRepository, user_id: int, payload: Mapping[str, Any]
) -> tuple[FinanceProfile, ProfileUpdate]:
    """Apply the valid part of ``payload`` to the user's profile."""

    update = sanitise_profile_update(payload)
    if not update.changes:
        raise NothingToUpdateError("Nothing to update")

    profile = repository.update_profile(user_id, update.changes)
    if update.ignored:
        logger.info(
            "Profile update for user %s ignored fields: %s",
            user_id,
            ", ".join(update.ignored),
        )
    return profile, update


def sanitise_holding_update(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Return the holding columns a PATCH payload may change.

    Mirrors the lenient profile update: malformed values are skipped.
    """

    changes: dict[str, Any] = {}
    ticker = payload.get("ticker")
    if isinstance(ticker, str) and ticker.strip():
        changes["ticker"] = ticker.strip().upper()
    exchange = payload.get("exchange")
    if isinstance(exchange, str):
        changes["exchange"] = exchange.strip() or None
    shares = payload.get("shares")
    if _is_number(shares) and shares > 0:
        changes["shares"] = float(shares)
    average_price = payload.get("averagePrice", payload.get("average_price"))
    if _is_number(average_price) and average_price > 0:
        changes["average_price"] = float(average_price)
    currency = payload.get("currency")
    if currency in {"AUD", "USD"}:
        changes["currency"] = currency
    return changes


@dataclass(frozen=True)
class HoldingValuation:
    holding: StockHolding
    quote: Quote | None

    @property
    def value_aud(self) -> float:
        if self.quote is None:
            return 0.0
        return self.holding.shares * self.quote.price_aud

    def as_dict(self) -> dict[str, Any]:
        payload = self.holding.as_dict()
        payload["quote"] = self.quote.as_dict() if self.quote else None
        payload["valueAud"] = round_currency(self.value_aud)
        return payload


def value_holdings(
    holdings: list[StockHolding], provider: QuoteProvider
) -> list[HoldingValuation]:
    """Price each holding; holdings without a quote are valued at zero."""

    valuations: list[HoldingValuation] = []
    for holding in holdings:
        try:
            quote: Quote | None = provider.quote(holding.ticker, holding.exchange)
        except (QuoteNotFoundError, QuoteUnavailableError) as exc:
            logger.warning("No quote for holding %s (%s): %s", holding.id, holding.ticker, exc)
            quote = None
        valuations.append(HoldingValuation(holding=holding, quote=quote))
    return valuations


def finance_summary(
    repository: FinanceRepository, provider: QuoteProvider, user_id: int
) -> dict[str, Any]:
    """Combine balances, savings interest and live holding values."""

    profile = repository.get_or_create_profile(user_id)
    valuations = value_holdings(repository.list_holdings(user_id), provider)
    stocks_value = sum(valuation.value_aud for valuation in valuations)

    return {
        "profile": profile.as_dict(),
        "balancesTotal": round_currency(profile.balances_total),
        "stocksValueAud": round_currency(stocks_value),
        "investingTotal": round_currency(profile.investing_cash_balance + stocks_value),
        "total": round_currency(profile.balances_total + stocks_value),
        "monthlyInterest": round_currency(
            monthly_interest(profile.savings_balance, profile.savings_interest_rate_pa)
        ),
        "holdings": [valuation.as_dict() for valuation in valuations],
        "unpricedHoldings": [
            valuation.holding.id for valuation in valuations if valuation.quote is None
        ],
    }


__all__ = [
    "HoldingValuation",
    "NothingToUpdateError",
    "ProfileUpdate",
    "finance_summary",
    "fortnight_overview",
    "record_spending",
    "sanitise_holding_update",
    "sanitise_profile_update",
    "update_profile",
    "value_holdings",
]
