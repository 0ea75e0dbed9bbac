"""Utilities for validating tax table data and surfacing issues."""

from __future__ import annotations

import argparse
from typing import Sequence

from .schema import BASE_TOLERANCE, MedicareLevyConfig, TaxBracket
from .tax_tables import ConfigurationError, TaxTable, available_tables, load_tax_table

EXPECTED_BRACKET_COUNT = 5


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_brackets(brackets: Sequence[TaxBracket]) -> list[str]:
    errors: list[str] = []

    if len(brackets) != EXPECTED_BRACKET_COUNT:
        errors.append(
            _format_scope(
                "brackets",
                f"expected {EXPECTED_BRACKET_COUNT} brackets, found {len(brackets)}",
            )
        )
    if not brackets:
        return errors

    if brackets[0].threshold != 0 or brackets[0].base != 0:
        errors.append(_format_scope("brackets[0]", "first bracket must start at zero"))

    for index, bracket in enumerate(brackets):
        if not 0 <= bracket.rate <= 1:
            errors.append(
                _format_scope(
                    f"brackets[{index}]",
                    f"rate {bracket.rate} must be between 0 and 1",
                )
            )

    for index in range(1, len(brackets)):
        previous, current = brackets[index - 1], brackets[index]
        scope = f"brackets[{index}]"
        if current.threshold <= previous.threshold:
            errors.append(_format_scope(scope, "thresholds must be strictly increasing"))
            continue
        if current.rate < previous.rate:
            errors.append(_format_scope(scope, "marginal rates should not decrease"))
        expected = previous.base + (current.threshold - previous.threshold) * previous.rate
        if abs(current.base - expected) > BASE_TOLERANCE:
            errors.append(
                _format_scope(
                    scope,
                    f"base {current.base:g} does not continue the previous bracket "
                    f"(expected {expected:g})",
                )
            )

    return errors


def _validate_medicare(levy: MedicareLevyConfig) -> list[str]:
    errors: list[str] = []

    if not 0 <= levy.rate <= 1:
        errors.append(_format_scope("medicare_levy", "rate must be between 0 and 1"))
    if levy.low_income_threshold < 0:
        errors.append(
            _format_scope("medicare_levy", "low income threshold must be non-negative")
        )
    if levy.phase_in_rate <= levy.rate:
        errors.append(
            _format_scope(
                "medicare_levy",
                "phase-in rate must exceed the flat rate or the levy never phases in",
            )
        )

    return errors


def validate_tax_table(table: TaxTable) -> list[str]:
    """Return human-readable issues detected in ``table``."""

    errors: list[str] = []
    errors.extend(_validate_brackets(table.brackets))
    errors.extend(_validate_medicare(table.medicare_levy))
    if table.pay_periods_per_year <= 0:
        errors.append(_format_scope("pay_periods_per_year", "must be positive"))
    return errors


def validate_all_tables(labels: Sequence[str] | None = None) -> dict[str, list[str]]:
    """Validate all configured tables and return issues keyed by label."""

    targets = labels or available_tables()
    return {label: validate_tax_table(load_tax_table(label)) for label in targets}


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate the configured income tax tables."
    )
    parser.add_argument(
        "labels",
        nargs="*",
        help="Specific table labels to validate (defaults to all configured tables)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    labels = args.labels or available_tables()

    if not labels:
        parser.print_help()
        return 1

    exit_code = 0

    for label in labels:
        try:
            table = load_tax_table(label)
        except (FileNotFoundError, ConfigurationError) as error:
            print(f"[{label}] failed to load tax table: {error}")
            exit_code = 1
            continue

        issues = validate_tax_table(table)
        if issues:
            exit_code = 1
            print(f"[{label}] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"[{label}] OK")

    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
