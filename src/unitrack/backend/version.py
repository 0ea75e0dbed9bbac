"""Expose the installed project version, also from a plain source checkout."""

from __future__ import annotations

import re
from functools import lru_cache
from importlib import metadata
from pathlib import Path
from typing import Final

PACKAGE_NAME: Final = "unitrack"
PYPROJECT_FILE: Final = Path(__file__).resolve().parents[3] / "pyproject.toml"

# ``version = "..."`` inside the ``[project]`` table, before any later table header.
_PROJECT_VERSION = re.compile(
    r'^\[project\]\s*$(?:(?!^\[).)*?^version\s*=\s*"(?P<version>[^"]+)"',
    re.MULTILINE | re.DOTALL,
)


@lru_cache(maxsize=1)
def get_project_version() -> str:
    """Return the distribution version, reading ``pyproject.toml`` when not installed."""

    try:
        return metadata.version(PACKAGE_NAME)
    except metadata.PackageNotFoundError:
        pass

    match = _PROJECT_VERSION.search(PYPROJECT_FILE.read_text(encoding="utf-8"))
    if match is None:
        raise RuntimeError(f"No [project] version found in {PYPROJECT_FILE}")
    return match.group("version")


__all__ = ["PACKAGE_NAME", "get_project_version"]
