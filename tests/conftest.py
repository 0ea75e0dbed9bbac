"""Test configuration utilities and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure the ``src`` directory is importable when tests are executed without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402
from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from unitrack.backend.app import create_app  # noqa: E402
from unitrack.backend.app.auth import issue_token  # noqa: E402
from unitrack.backend.app.services.finance_store import InMemoryFinanceRepository  # noqa: E402
from unitrack.backend.app.services.quotes import (  # noqa: E402
    Quote,
    QuoteNotFoundError,
    SearchResult,
    matches_exchange,
)
from unitrack.backend.app.settings import Settings  # noqa: E402

SECRET_KEY = "test-secret"
USER_ID = 7
# 20 Feb 2026 falls in the fortnight starting on the 15 Feb anchor.
FIXED_NOW = datetime(2026, 2, 20, 9, 30, tzinfo=timezone.utc)


class FakeQuoteProvider:
    """Quote provider serving canned prices keyed by ticker."""

    def __init__(
        self,
        quotes: dict[str, Quote] | None = None,
        listings: list[SearchResult] | None = None,
    ) -> None:
        self.quotes = dict(quotes or {})
        self.listings = list(listings or [])
        self.calls: list[tuple[str, str | None]] = []
        self.searches: list[tuple[str, str | None]] = []

    def quote(self, ticker: str, exchange: str | None = None) -> Quote:
        self.calls.append((ticker, exchange))
        try:
            return self.quotes[ticker]
        except KeyError as exc:
            raise QuoteNotFoundError(ticker) from exc

    def search(self, query: str, exchange: str | None = None) -> list[SearchResult]:
        self.searches.append((query, exchange))
        term = query.lower()
        return [
            listing
            for listing in self.listings
            if term in listing.symbol.lower() and matches_exchange(listing.symbol, exchange)
        ]


class FixedClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture()
def repository() -> InMemoryFinanceRepository:
    return InMemoryFinanceRepository()


@pytest.fixture()
def quote_provider() -> FakeQuoteProvider:
    return FakeQuoteProvider(
        {
            "VAS": Quote(ticker="VAS.AX", price=100.0, currency="AUD", price_aud=100.0),
            "AAPL": Quote(
                ticker="AAPL", price=200.0, currency="USD", price_aud=300.0, name="Apple"
            ),
        },
        [
            SearchResult("VAS.AX", "Vanguard Australian Shares", "ASX", "ETF"),
            SearchResult("VAS", "Vaso Corp", "PNK", "EQUITY"),
        ],
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture()
def app(
    repository: InMemoryFinanceRepository,
    quote_provider: FakeQuoteProvider,
    clock: FixedClock,
) -> Flask:
    """Return a configured Flask application for integration tests."""

    application = create_app(
        Settings(secret_key=SECRET_KEY),
        repository=repository,
        quote_provider=quote_provider,
        clock=clock,
    )
    application.config.update(TESTING=True)
    return application


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Provide a test client bound to the configured Flask app."""

    return app.test_client()


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    """Authorization header for ``USER_ID``."""

    return {"Authorization": f"Bearer {issue_token(USER_ID, SECRET_KEY)}"}


@pytest.fixture()
def user_id() -> int:
    return USER_ID
