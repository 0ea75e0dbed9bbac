"""Fortnightly period bucketing anchored to a fixed UTC date.

Every fortnight starts on ``anchor + 14k`` days (``k`` may be negative) at UTC
midnight and is the half-open interval ``[start, start + 14 days)``. All
inputs are normalised to UTC before truncation so the bucket a timestamp lands
in never depends on the server's local timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal

DEFAULT_ANCHOR = datetime(2026, 2, 15, tzinfo=timezone.utc)
PERIOD_DAYS = 14
PERIOD_LENGTH = timedelta(days=PERIOD_DAYS)

PeriodLabel = Literal["current", "previous"]
PERIOD_LABELS: tuple[PeriodLabel, ...] = ("current", "previous")


def to_utc_midnight(value: datetime | date) -> datetime:
    """Return ``value`` truncated to midnight in UTC.

    Naive datetimes are interpreted as UTC; plain dates map to their own UTC
    midnight.
    """

    if isinstance(value, datetime):
        if value.tzinfo is None:
            moment = value.replace(tzinfo=timezone.utc)
        else:
            moment = value.astimezone(timezone.utc)
        return datetime.combine(moment.date(), time.min, tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


@dataclass(frozen=True)
class FortnightPeriod:
    """A single fortnight beginning at ``start``."""

    start: datetime

    @property
    def end(self) -> datetime:
        """Last instant of the period (day 13 at 23:59:59.999)."""

        return self.start + PERIOD_LENGTH - timedelta(milliseconds=1)

    @property
    def next_start(self) -> datetime:
        return self.start + PERIOD_LENGTH

    def contains(self, moment: datetime) -> bool:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return self.start <= moment < self.next_start

    def previous(self) -> FortnightPeriod:
        return FortnightPeriod(self.start - PERIOD_LENGTH)


class FortnightCalculator:
    """Resolve fortnight boundaries relative to an injected anchor date."""

    def __init__(self, anchor: datetime | date = DEFAULT_ANCHOR) -> None:
        self._anchor = to_utc_midnight(anchor)

    @property
    def anchor(self) -> datetime:
        return self._anchor

    def period_index(self, when: datetime | date) -> int:
        """Return the number of whole fortnights between the anchor and ``when``.

        Floor division keeps dates before the anchor in the right (negative)
        bucket.
        """

        elapsed_days = (to_utc_midnight(when) - self._anchor).days
        return elapsed_days // PERIOD_DAYS

    def period_start(self, when: datetime | date) -> datetime:
        return self._anchor + PERIOD_LENGTH * self.period_index(when)

    def period(self, when: datetime | date) -> FortnightPeriod:
        return FortnightPeriod(self.period_start(when))

    def current_period_start(self, now: datetime | date) -> datetime:
        return self.period_start(now)

    def previous_period_start(self, now: datetime | date) -> datetime:
        return self.current_period_start(now) - PERIOD_LENGTH

    def period_end(self, now: datetime | date) -> datetime:
        return self.period(now).end

    def period_for(self, label: str | None, now: datetime | date) -> datetime:
        """Resolve a ``"current"``/``"previous"`` label into a period start.

        A missing label means the current period.
        """

        if label is None or label == "current":
            return self.current_period_start(now)
        if label == "previous":
            return self.previous_period_start(now)
        raise ValueError("period must be 'current' or 'previous'")


__all__ = [
    "DEFAULT_ANCHOR",
    "FortnightCalculator",
    "FortnightPeriod",
    "PERIOD_DAYS",
    "PERIOD_LABELS",
    "PERIOD_LENGTH",
    "PeriodLabel",
    "to_utc_midnight",
]
