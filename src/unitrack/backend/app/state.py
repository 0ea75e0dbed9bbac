"""Per-application service wiring stored on ``app.extensions``."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from flask import Flask, current_app

from unitrack.backend.app.services.finance_store import FinanceRepository
from unitrack.backend.app.services.fortnight import FortnightCalculator
from unitrack.backend.app.services.quotes import QuoteProvider
from unitrack.backend.app.settings import Settings

EXTENSION_KEY = "unitrack"


@dataclass(frozen=True)
class AppServices:
    settings: Settings
    repository: FinanceRepository
    calculator: FortnightCalculator
    quote_provider: QuoteProvider
    clock: Callable[[], datetime]

    def now(self) -> datetime:
        return self.clock()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def install_services(
    app: Flask,
    *,
    settings: Settings,
    repository: FinanceRepository,
    quote_provider: QuoteProvider,
    clock: Callable[[], datetime] | None = None,
) -> AppServices:
    services = AppServices(
        settings=settings,
        repository=repository,
        calculator=FortnightCalculator(settings.fortnight_anchor),
        quote_provider=quote_provider,
        clock=clock or _utcnow,
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> AppServices:
    """Return the services bound to the active Flask application."""

    return current_app.extensions[EXTENSION_KEY]


__all__ = ["AppServices", "EXTENSION_KEY", "get_services", "install_services"]
