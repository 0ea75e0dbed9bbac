"""Configuration loader wrapping the tax table schema models."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence

import yaml
from pydantic import ValidationError

from .schema import (
    ConfigurationError,
    MedicareLevyConfig,
    TaxBracket,
    TaxTable,
    TaxTableManifest,
    TaxTableManifestEntry,
)

CONFIG_DIRECTORY = Path(__file__).resolve().parent / "data"
MANIFEST_FILE = CONFIG_DIRECTORY / "manifest.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must define a mapping at the top level")
    return data


@lru_cache(maxsize=1)
def load_manifest() -> TaxTableManifest:
    """Load and cache the tax table manifest."""

    if not MANIFEST_FILE.exists():
        raise FileNotFoundError("Tax table manifest not found")

    raw_manifest = _load_yaml(MANIFEST_FILE)

    try:
        return TaxTableManifest.model_validate(raw_manifest)
    except ValidationError as error:
        raise ConfigurationError(f"Manifest validation failed: {error}") from error


def available_tables() -> Sequence[str]:
    """Return the table labels declared in the manifest."""

    return load_manifest().labels


def default_table_label() -> str:
    """Return the label used when callers do not request a specific table."""

    label = load_manifest().default_label
    if label is None:
        raise ConfigurationError("Manifest does not declare any tax tables")
    return label


@lru_cache(maxsize=8)
def load_tax_table(label: str | None = None) -> TaxTable:
    """Load the tax table named ``label`` (or the default table) from disk."""

    resolved = label or default_table_label()
    try:
        manifest_entry = load_manifest().get_entry(resolved)
    except KeyError as exc:
        raise FileNotFoundError(f"Tax table {resolved} not declared in manifest") from exc

    config_file = CONFIG_DIRECTORY / manifest_entry.resolved_filename
    if not config_file.exists():
        raise FileNotFoundError(f"Tax table file for {resolved} missing: {config_file.name}")

    raw_config = _load_yaml(config_file)
    raw_config.setdefault("label", resolved)

    try:
        table = TaxTable.model_validate(raw_config)
    except ValidationError as error:
        raise ConfigurationError(f"Tax table validation failed for {resolved}: {error}") from error

    if table.label != resolved:
        raise ConfigurationError(
            f"Tax table label mismatch: expected {resolved}, found {table.label}"
        )

    return table


__all__ = [
    "CONFIG_DIRECTORY",
    "ConfigurationError",
    "MANIFEST_FILE",
    "MedicareLevyConfig",
    "TaxBracket",
    "TaxTable",
    "TaxTableManifest",
    "TaxTableManifestEntry",
    "available_tables",
    "default_table_label",
    "load_manifest",
    "load_tax_table",
]
