"""Live share price lookups used to value stock holdings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from time import monotonic
from typing import Any, Callable, Protocol

import requests

logger = logging.getLogger(__name__)

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
YAHOO_SEARCH_URL = "https://query2.finance.yahoo.com/v1/finance/search"
EXCHANGE_RATE_URL = "https://api.exchangerate-api.com/v4/latest/USD"
FALLBACK_USD_TO_AUD = 1.5
FX_CACHE_SECONDS = 60 * 60
REQUEST_TIMEOUT = 10
MAX_SEARCH_RESULTS = 15
_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; unitrack/1.0)"}


class QuoteNotFoundError(KeyError):
    """Raised when the upstream service has no price for a ticker."""


class QuoteUnavailableError(RuntimeError):
    """Raised when the upstream quote service cannot be reached."""


@dataclass(frozen=True)
class Quote:
    ticker: str
    price: float
    currency: str
    price_aud: float
    name: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "price": self.price,
            "priceAud": self.price_aud,
            "currency": self.currency,
            "name": self.name,
        }


@dataclass(frozen=True)
class SearchResult:
    symbol: str
    name: str
    exchange: str | None = None
    type: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "exchange": self.exchange,
            "type": self.type,
        }


class QuoteProvider(Protocol):
    def quote(self, ticker: str, exchange: str | None = None) -> Quote: ...

    def search(self, query: str, exchange: str | None = None) -> list[SearchResult]: ...


def matches_exchange(symbol: str, exchange: str | None) -> bool:
    """ASX listings carry the ``.AX`` suffix; ``nasdaq`` means anything else."""

    venue = (exchange or "").strip().lower()
    if venue == "asx":
        return symbol.endswith(".AX")
    if venue == "nasdaq":
        return not symbol.endswith(".AX")
    return True


def resolve_symbol(ticker: str, exchange: str | None = None) -> str:
    """Return the upstream symbol, appending ``.AX`` for ASX listings."""

    base = ticker.strip().upper()
    if base.endswith(".AX"):
        base = base[: -len(".AX")]
    if exchange and exchange.strip().lower() == "asx":
        return f"{base}.AX"
    return base


class YahooQuoteProvider:
    """Fetch delayed quotes from Yahoo Finance and convert USD prices to AUD."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.update(_HEADERS)
        self._clock = clock or monotonic
        self._fx_lock = Lock()
        self._fx_cache: tuple[float, float] | None = None

    def usd_to_aud(self) -> float:
        """Return the USD→AUD rate, cached for an hour with a fixed fallback."""

        with self._fx_lock:
            now = self._clock()
            if self._fx_cache is not None and now - self._fx_cache[1] < FX_CACHE_SECONDS:
                return self._fx_cache[0]

            rate = FALLBACK_USD_TO_AUD
            try:
                response = self._session.get(EXCHANGE_RATE_URL, timeout=REQUEST_TIMEOUT)
                response.raise_for_status()
                fetched = response.json().get("rates", {}).get("AUD")
                if isinstance(fetched, (int, float)) and fetched > 0:
                    rate = float(fetched)
                else:
                    logger.warning("Exchange rate payload missing AUD; using fallback")
            except (requests.RequestException, ValueError) as exc:
                logger.warning("USD/AUD rate fetch failed, using fallback: %s", exc)

            self._fx_cache = (rate, now)
            return rate

    def quote(self, ticker: str, exchange: str | None = None) -> Quote:
        symbol = resolve_symbol(ticker, exchange)
        try:
            response = self._session.get(
                YAHOO_CHART_URL.format(symbol=symbol),
                params={"interval": "1d", "range": "1d"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise QuoteUnavailableError(f"Could not fetch quote for {symbol}") from exc

        if response.status_code == 404:
            raise QuoteNotFoundError(symbol)
        try:
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise QuoteUnavailableError(f"Could not fetch quote for {symbol}") from exc

        results = (payload.get("chart") or {}).get("result") or []
        meta = results[0].get("meta", {}) if results else {}
        price = meta.get("regularMarketPrice")
        if price is None:
            raise QuoteNotFoundError(symbol)

        currency = str(meta.get("currency") or "USD").upper()
        price = float(price)
        price_aud = price * self.usd_to_aud() if currency == "USD" else price
        name = meta.get("shortName") or meta.get("longName")
        return Quote(
            ticker=str(meta.get("symbol") or symbol),
            price=price,
            currency=currency,
            price_aud=price_aud,
            name=name,
        )

    def search(self, query: str, exchange: str | None = None) -> list[SearchResult]:
        """Return up to ``MAX_SEARCH_RESULTS`` named listings matching ``query``."""

        term = query.strip()
        if not term:
            return []
        try:
            response = self._session.get(
                YAHOO_SEARCH_URL,
                params={"q": term, "quotesCount": 25, "newsCount": 0},
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise QuoteUnavailableError(f"Could not search for {term!r}") from exc

        if not isinstance(payload, dict):
            return []

        results: list[SearchResult] = []
        for item in payload.get("quotes") or []:
            symbol = item.get("symbol")
            name = item.get("shortname")
            if not symbol or not name or not matches_exchange(symbol, exchange):
                continue
            results.append(
                SearchResult(
                    symbol=symbol,
                    name=name,
                    exchange=item.get("exchange"),
                    type=item.get("quoteType"),
                )
            )
            if len(results) == MAX_SEARCH_RESULTS:
                break
        return results


__all__ = [
    "EXCHANGE_RATE_URL",
    "FALLBACK_USD_TO_AUD",
    "MAX_SEARCH_RESULTS",
    "Quote",
    "QuoteNotFoundError",
    "QuoteProvider",
    "QuoteUnavailableError",
    "SearchResult",
    "YAHOO_CHART_URL",
    "YAHOO_SEARCH_URL",
    "YahooQuoteProvider",
    "matches_exchange",
    "resolve_symbol",
]
