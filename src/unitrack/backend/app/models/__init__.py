"""Typed request models shared by the finance routes."""

from .api import (
    AllocationRequest,
    HoldingCreateRequest,
    PayEstimateRequest,
    SpendingUpdateRequest,
    format_validation_error,
)

__all__ = [
    "AllocationRequest",
    "HoldingCreateRequest",
    "PayEstimateRequest",
    "SpendingUpdateRequest",
    "format_validation_error",
]
