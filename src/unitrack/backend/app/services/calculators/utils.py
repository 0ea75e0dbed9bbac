"""Utility helpers for calculator modules."""

from __future__ import annotations

from numbers import Real
from typing import Any


def format_percentage(value: float) -> str:
    """Return a human-readable percentage label for a ``0..1`` rate."""

    percentage = round(value * 100, 6)
    if float(int(percentage)) == percentage:
        return f"{int(percentage)}%"
    return f"{percentage:.2f}%"


def non_negative(value: Any) -> float:
    """Clamp ``value`` to a non-negative float, treating ``None`` as zero."""

    if value is None or isinstance(value, bool) or not isinstance(value, Real):
        return 0.0
    number = float(value)
    return number if number > 0 else 0.0


def round_currency(value: float) -> float:
    """Round monetary amounts to two decimals."""

    return round(value, 2)
