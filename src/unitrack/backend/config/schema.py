"""Pydantic models describing the income tax table configuration schema."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self

# Bracket bases are published rounded to the dollar, so allow for cent drift.
BASE_TOLERANCE = 0.5


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class TaxBracket(ImmutableModel):
    """A contiguous income range taxed at ``rate`` above a cumulative ``base``."""

    threshold: float = Field(alias="over")
    base: float = 0.0
    rate: float

    @model_validator(mode="after")
    def _validate_values(self) -> TaxBracket:
        if self.threshold < 0:
            raise ConfigurationError("Bracket thresholds must be non-negative")
        if self.base < 0:
            raise ConfigurationError("Bracket base amounts must be non-negative")
        if not 0 <= self.rate <= 1:
            raise ConfigurationError("Bracket rates must be between 0 and 1")
        return self


class MedicareLevyConfig(ImmutableModel):
    """Flat-rate levy with an optional low-income phase-in."""

    rate: float = Field(ge=0, le=1)
    low_income_threshold: float = Field(ge=0)
    phase_in_rate: float = Field(ge=0, le=1)

    @property
    def phase_in_upper_threshold(self) -> float | None:
        """Income at which the phase-in amount catches up with the flat levy."""

        if self.phase_in_rate <= self.rate:
            return None
        return (
            self.phase_in_rate
            * self.low_income_threshold
            / (self.phase_in_rate - self.rate)
        )


class TaxTable(ImmutableModel):
    """Complete income tax configuration for a single financial year."""

    label: str
    description: str | None = None
    pay_periods_per_year: int = Field(default=26, gt=0)
    brackets: tuple[TaxBracket, ...]
    medicare_levy: MedicareLevyConfig

    @field_validator("brackets", mode="before")
    @classmethod
    def _coerce_brackets(cls, value: object) -> object:
        if isinstance(value, Sequence) and not isinstance(value, str):
            return tuple(value)
        raise ConfigurationError("Tax tables require a list of brackets")

    @model_validator(mode="after")
    def _validate_brackets(self) -> Self:
        if not self.brackets:
            raise ConfigurationError("Tax tables require at least one bracket")
        if self.brackets[0].threshold != 0:
            raise ConfigurationError("The first bracket must start at zero income")
        if self.brackets[0].base != 0:
            raise ConfigurationError("The first bracket must have a zero base amount")

        for previous, current in zip(self.brackets, self.brackets[1:]):
            if current.threshold <= previous.threshold:
                raise ConfigurationError("Bracket thresholds must be strictly increasing")
            expected = previous.base + (current.threshold - previous.threshold) * previous.rate
            if abs(current.base - expected) > BASE_TOLERANCE:
                raise ConfigurationError(
                    f"Bracket over {current.threshold:g} has base {current.base:g}, "
                    f"expected {expected:g}"
                )
        return self

    @property
    def thresholds(self) -> tuple[float, ...]:
        return tuple(bracket.threshold for bracket in self.brackets)


class TaxTableManifestEntry(ImmutableModel):
    """Manifest entry describing a tax table file."""

    label: str
    filename: str | None = None

    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.label}.yaml"


class TaxTableManifest(ImmutableModel):
    """Top-level manifest enumerating the shipped tax tables."""

    tables: tuple[TaxTableManifestEntry, ...]
    default: str | None = None

    @model_validator(mode="after")
    def _validate_entries(self) -> Self:
        labels = [entry.label for entry in self.tables]
        if len(labels) != len(set(labels)):
            raise ConfigurationError("Manifest contains duplicate table labels")
        if self.default is not None and self.default not in labels:
            raise ConfigurationError(
                f"Default table {self.default!r} is not declared in the manifest"
            )
        return self

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(entry.label for entry in self.tables)

    @property
    def default_label(self) -> str | None:
        if self.default is not None:
            return self.default
        return self.tables[-1].label if self.tables else None

    def get_entry(self, label: str) -> TaxTableManifestEntry:
        for entry in self.tables:
            if entry.label == label:
                return entry
        raise KeyError(label)


__all__ = [
    "BASE_TOLERANCE",
    "ConfigurationError",
    "ImmutableModel",
    "MedicareLevyConfig",
    "TaxBracket",
    "TaxTable",
    "TaxTableManifest",
    "TaxTableManifestEntry",
]
