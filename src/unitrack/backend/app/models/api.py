"""Pydantic models describing the public API surface."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "AllocationRequest",
    "HoldingCreateRequest",
    "PayEstimateRequest",
    "SpendingUpdateRequest",
    "format_validation_error",
]


class ApiModel(BaseModel):
    """Request models accept both camelCase and snake_case keys."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class SpendingUpdateRequest(ApiModel):
    """Amount spent during the current or previous fortnight."""

    model_config = ConfigDict(extra="ignore")

    amount: float = Field(..., ge=0, strict=True, allow_inf_nan=False)
    period: Literal["current", "previous"] = "current"

    @field_validator("period", mode="before")
    @classmethod
    def _default_period(cls, value: Any) -> Any:
        return "current" if value is None else value


class HoldingCreateRequest(ApiModel):
    """A new stock holding."""

    model_config = ConfigDict(extra="ignore")

    ticker: str
    exchange: str | None = None
    shares: float = Field(..., gt=0, strict=True, allow_inf_nan=False)
    average_price: float = Field(..., gt=0, strict=True, allow_inf_nan=False)
    currency: str = "AUD"

    @field_validator("ticker", mode="before")
    @classmethod
    def _normalise_ticker(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Ticker is required")
        return value.strip().upper()

    @field_validator("exchange", mode="before")
    @classmethod
    def _normalise_exchange(cls, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator("currency", mode="before")
    @classmethod
    def _normalise_currency(cls, value: Any) -> str:
        return "USD" if value == "USD" else "AUD"


class PayEstimateRequest(ApiModel):
    """Hours and wage for a single fortnight."""

    hours: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    hourly_wage: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    apply_low_income_reduction: bool = True
    table: str | None = None


class AllocationRequest(ApiModel):
    """Paycheck split request; missing percentages come from the stored profile."""

    paycheck: float = Field(..., ge=0, allow_inf_nan=False)
    previous_period_overspend: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    saving_percent: float | None = Field(default=None, ge=0, le=100)
    spending_percent: float | None = Field(default=None, ge=0, le=100)
    investing_percent: float | None = Field(default=None, ge=0, le=100)
    strict: bool = False


def format_validation_error(error: ValidationError, *, subject: str = "request") -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if "greater than or equal to 0" in message.lower():
            message = "value cannot be negative"
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid {subject}: {details}"
