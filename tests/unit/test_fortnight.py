"""Unit coverage for fortnight period bucketing."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from unitrack.backend.app.services.fortnight import (
    DEFAULT_ANCHOR,
    PERIOD_LENGTH,
    FortnightCalculator,
    FortnightPeriod,
    to_utc_midnight,
)

UTC = timezone.utc


@pytest.fixture()
def calculator() -> FortnightCalculator:
    return FortnightCalculator()


def _sample_instants() -> list[datetime]:
    start = DEFAULT_ANCHOR - timedelta(days=90)
    return [start + timedelta(hours=7 * step, minutes=13) for step in range(0, 620)]


def test_anchor_is_its_own_period_start(calculator: FortnightCalculator) -> None:
    assert calculator.current_period_start(DEFAULT_ANCHOR) == DEFAULT_ANCHOR
    assert calculator.period_index(DEFAULT_ANCHOR) == 0


def test_instant_before_anchor_belongs_to_previous_block(
    calculator: FortnightCalculator,
) -> None:
    just_before = DEFAULT_ANCHOR - timedelta(milliseconds=1)

    assert calculator.period_index(just_before) == -1
    assert calculator.current_period_start(just_before) == DEFAULT_ANCHOR - PERIOD_LENGTH


@pytest.mark.parametrize(
    ("when", "expected_start"),
    [
        (datetime(2026, 2, 20, tzinfo=UTC), datetime(2026, 2, 15, tzinfo=UTC)),
        (datetime(2026, 3, 1, tzinfo=UTC), datetime(2026, 3, 1, tzinfo=UTC)),
        (datetime(2026, 2, 28, 23, 59, tzinfo=UTC), datetime(2026, 2, 15, tzinfo=UTC)),
        (datetime(2026, 2, 1, tzinfo=UTC), datetime(2026, 2, 1, tzinfo=UTC)),
        (datetime(2026, 1, 31, 12, tzinfo=UTC), datetime(2026, 1, 18, tzinfo=UTC)),
        (datetime(2025, 12, 25, tzinfo=UTC), datetime(2025, 12, 21, tzinfo=UTC)),
    ],
)
def test_period_start_scenarios(
    calculator: FortnightCalculator, when: datetime, expected_start: datetime
) -> None:
    assert calculator.period_start(when) == expected_start


def test_previous_period_start_on_boundary(calculator: FortnightCalculator) -> None:
    now = datetime(2026, 3, 1, tzinfo=UTC)

    assert calculator.previous_period_start(now) == datetime(2026, 2, 15, tzinfo=UTC)


def test_every_instant_falls_inside_its_period(calculator: FortnightCalculator) -> None:
    for instant in _sample_instants():
        current = calculator.current_period_start(instant)
        previous = calculator.previous_period_start(instant)

        assert previous + PERIOD_LENGTH == current
        assert current <= instant < current + PERIOD_LENGTH
        assert (current - DEFAULT_ANCHOR).days % 14 == 0


def test_period_start_is_monotonic(calculator: FortnightCalculator) -> None:
    instants = _sample_instants()
    starts = [calculator.current_period_start(instant) for instant in instants]

    assert starts == sorted(starts)


def test_period_end_is_last_millisecond_of_day_thirteen(
    calculator: FortnightCalculator,
) -> None:
    end = calculator.period_end(datetime(2026, 2, 20, tzinfo=UTC))

    assert end == datetime(2026, 2, 28, 23, 59, 59, 999000, tzinfo=UTC)
    assert calculator.period_start(end) == datetime(2026, 2, 15, tzinfo=UTC)
    assert calculator.period_start(end + timedelta(milliseconds=1)) == datetime(
        2026, 3, 1, tzinfo=UTC
    )


def test_aware_datetimes_are_bucketed_in_utc(calculator: FortnightCalculator) -> None:
    # 05:00 on 1 March in Sydney is still 28 February in UTC.
    sydney = timezone(timedelta(hours=10))
    when = datetime(2026, 3, 1, 5, 0, tzinfo=sydney)

    assert calculator.period_start(when) == datetime(2026, 2, 15, tzinfo=UTC)


def test_naive_datetimes_and_dates_are_treated_as_utc(
    calculator: FortnightCalculator,
) -> None:
    assert calculator.period_start(datetime(2026, 3, 1, 0, 0)) == datetime(2026, 3, 1, tzinfo=UTC)
    assert calculator.period_start(date(2026, 3, 14)) == datetime(2026, 3, 1, tzinfo=UTC)


def test_custom_anchor_is_normalised_to_midnight() -> None:
    calculator = FortnightCalculator(datetime(2024, 1, 6, 15, 45, tzinfo=UTC))

    assert calculator.anchor == datetime(2024, 1, 6, tzinfo=UTC)
    assert calculator.period_start(datetime(2024, 1, 19, tzinfo=UTC)) == datetime(
        2024, 1, 6, tzinfo=UTC
    )
    assert calculator.period_start(datetime(2024, 1, 20, tzinfo=UTC)) == datetime(
        2024, 1, 20, tzinfo=UTC
    )


def test_period_for_resolves_labels(calculator: FortnightCalculator) -> None:
    now = datetime(2026, 2, 20, tzinfo=UTC)

    assert calculator.period_for(None, now) == datetime(2026, 2, 15, tzinfo=UTC)
    assert calculator.period_for("current", now) == datetime(2026, 2, 15, tzinfo=UTC)
    assert calculator.period_for("previous", now) == datetime(2026, 2, 1, tzinfo=UTC)

    with pytest.raises(ValueError):
        calculator.period_for("next", now)


def test_fortnight_period_contains_is_half_open() -> None:
    period = FortnightPeriod(datetime(2026, 2, 15, tzinfo=UTC))

    assert period.contains(datetime(2026, 2, 15, tzinfo=UTC))
    assert period.contains(datetime(2026, 2, 28, 12))
    assert not period.contains(datetime(2026, 3, 1, tzinfo=UTC))
    assert period.previous().start == datetime(2026, 2, 1, tzinfo=UTC)


def test_to_utc_midnight_truncates() -> None:
    assert to_utc_midnight(datetime(2026, 5, 4, 23, 59, tzinfo=UTC)) == datetime(
        2026, 5, 4, tzinfo=UTC
    )
