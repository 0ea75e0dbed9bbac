"""Runtime settings sourced from ``UNITRACK_*`` environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Mapping

from unitrack.backend.app.services.fortnight import DEFAULT_ANCHOR

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_MAX_AGE = 7 * 24 * 60 * 60


def _parse_allowed_origins(raw: str | None) -> frozenset[str]:
    """Convert an environment variable into a normalised set of origins."""

    if not raw:
        return frozenset()

    return frozenset(origin.strip() for origin in raw.split(",") if origin.strip())


def _parse_positive_int(value: str | None, *, env: str) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if parsed <= 0:
        logger.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


def _parse_anchor(value: str | None, *, env: str) -> datetime | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = date.fromisoformat(value.strip()[:10])
    except ValueError:
        logger.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Settings:
    """Resolved application settings."""

    secret_key: str | None = None
    database_path: str | None = None
    allowed_origins: frozenset[str] = field(default_factory=frozenset)
    fortnight_anchor: datetime = DEFAULT_ANCHOR
    token_max_age: int = DEFAULT_TOKEN_MAX_AGE
    tax_table: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        anchor = _parse_anchor(
            env.get("UNITRACK_FORTNIGHT_ANCHOR"), env="UNITRACK_FORTNIGHT_ANCHOR"
        )
        max_age = _parse_positive_int(
            env.get("UNITRACK_TOKEN_MAX_AGE"), env="UNITRACK_TOKEN_MAX_AGE"
        )
        database_path = (env.get("UNITRACK_DB") or "").strip() or None
        tax_table = (env.get("UNITRACK_TAX_TABLE") or "").strip() or None

        return cls(
            secret_key=env.get("UNITRACK_SECRET_KEY") or None,
            database_path=database_path,
            allowed_origins=_parse_allowed_origins(env.get("UNITRACK_ALLOWED_ORIGINS")),
            fortnight_anchor=anchor or DEFAULT_ANCHOR,
            token_max_age=max_age or DEFAULT_TOKEN_MAX_AGE,
            tax_table=tax_table,
        )


__all__ = ["DEFAULT_TOKEN_MAX_AGE", "Settings"]
