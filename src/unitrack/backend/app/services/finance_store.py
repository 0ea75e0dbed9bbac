"""Persistence for finance profiles, fortnight spending and stock holdings.

Two interchangeable repositories are provided: an in-memory store used by
default and in tests, and a SQLite store for deployments. Both key spending on
``(user_id, period_start)`` and rely on a single atomic upsert rather than a
read-then-write sequence.
"""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol, Sequence

# Public (camelCase) profile keys mapped to storage columns.
PROFILE_FIELDS: Mapping[str, str] = {
    "savingsBalance": "savings_balance",
    "spendingBalance": "spending_balance",
    "investingCashBalance": "investing_cash_balance",
    "investingCashBalanceUsd": "investing_cash_balance_usd",
    "savingPercent": "saving_percent",
    "spendingPercent": "spending_percent",
    "investingPercent": "investing_percent",
    "savingsInterestRatePA": "savings_interest_rate_pa",
}

PROFILE_DEFAULTS: Mapping[str, float] = {
    "savings_balance": 0.0,
    "spending_balance": 0.0,
    "investing_cash_balance": 0.0,
    "investing_cash_balance_usd": 0.0,
    "saving_percent": 70.0,
    "spending_percent": 10.0,
    "investing_percent": 20.0,
    "savings_interest_rate_pa": 0.0,
}

HOLDING_FIELDS = ("ticker", "exchange", "shares", "average_price", "currency")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _parse_timestamp(raw: str) -> datetime:
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class FinanceProfile:
    """Per-user balances, interest rate and allocation split."""

    user_id: int
    savings_balance: float
    spending_balance: float
    investing_cash_balance: float
    investing_cash_balance_usd: float
    saving_percent: float
    spending_percent: float
    investing_percent: float
    savings_interest_rate_pa: float
    created_at: datetime
    updated_at: datetime

    @property
    def balances_total(self) -> float:
        return self.savings_balance + self.spending_balance + self.investing_cash_balance

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"userId": self.user_id}
        for public, column in PROFILE_FIELDS.items():
            payload[public] = getattr(self, column)
        payload["createdAt"] = _isoformat(self.created_at)
        payload["updatedAt"] = _isoformat(self.updated_at)
        return payload


@dataclass(frozen=True)
class FortnightSpendingRecord:
    """Amount spent by a user during the fortnight starting at ``period_start``."""

    id: int
    user_id: int
    period_start: datetime
    amount_spent: float
    updated_at: datetime

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "periodStart": _isoformat(self.period_start),
            "amountSpent": self.amount_spent,
            "updatedAt": _isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class StockHolding:
    id: int
    user_id: int
    ticker: str
    exchange: str | None
    shares: float
    average_price: float
    currency: str

    @property
    def cost_basis(self) -> float:
        return self.shares * self.average_price

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "ticker": self.ticker,
            "exchange": self.exchange,
            "shares": self.shares,
            "averagePrice": self.average_price,
            "currency": self.currency,
        }


class FinanceRepository(Protocol):
    """Storage operations required by the finance services."""

    def get_or_create_profile(self, user_id: int) -> FinanceProfile: ...

    def update_profile(self, user_id: int, changes: Mapping[str, float]) -> FinanceProfile: ...

    def upsert_spending(
        self, user_id: int, period_start: datetime, amount: float
    ) -> FortnightSpendingRecord: ...

    def spending_for_periods(
        self, user_id: int, period_starts: Iterable[datetime]
    ) -> dict[datetime, FortnightSpendingRecord]: ...

    def list_holdings(self, user_id: int) -> list[StockHolding]: ...

    def get_holding(self, user_id: int, holding_id: int) -> StockHolding: ...

    def create_holding(
        self,
        user_id: int,
        *,
        ticker: str,
        exchange: str | None,
        shares: float,
        average_price: float,
        currency: str,
    ) -> StockHolding: ...

    def update_holding(
        self, user_id: int, holding_id: int, changes: Mapping[str, Any]
    ) -> StockHolding: ...

    def delete_holding(self, user_id: int, holding_id: int) -> None: ...


def _check_profile_columns(changes: Mapping[str, Any]) -> None:
    unknown = set(changes) - set(PROFILE_DEFAULTS)
    if unknown:
        raise KeyError(f"Unknown profile fields: {sorted(unknown)}")


def _check_holding_columns(changes: Mapping[str, Any]) -> None:
    unknown = set(changes) - set(HOLDING_FIELDS)
    if unknown:
        raise KeyError(f"Unknown holding fields: {sorted(unknown)}")


class InMemoryFinanceRepository:
    """Thread-safe in-memory storage for finance records."""

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow
        self._lock = Lock()
        self._profiles: dict[int, FinanceProfile] = {}
        self._spending: dict[tuple[int, datetime], FortnightSpendingRecord] = {}
        self._holdings: dict[int, StockHolding] = {}
        self._spending_ids = count(1)
        self._holding_ids = count(1)

    def _profile_locked(self, user_id: int) -> FinanceProfile:
        profile = self._profiles.get(user_id)
        if profile is None:
            now = self._clock()
            profile = FinanceProfile(
                user_id=user_id, created_at=now, updated_at=now, **PROFILE_DEFAULTS
            )
            self._profiles[user_id] = profile
        return profile

    def get_or_create_profile(self, user_id: int) -> FinanceProfile:
        with self._lock:
            return self._profile_locked(user_id)

    def update_profile(self, user_id: int, changes: Mapping[str, float]) -> FinanceProfile:
        _check_profile_columns(changes)
        with self._lock:
            profile = replace(
                self._profile_locked(user_id), updated_at=self._clock(), **changes
            )
            self._profiles[user_id] = profile
            return profile

    def upsert_spending(
        self, user_id: int, period_start: datetime, amount: float
    ) -> FortnightSpendingRecord:
        key = (user_id, period_start)
        with self._lock:
            existing = self._spending.get(key)
            if existing is None:
                record = FortnightSpendingRecord(
                    id=next(self._spending_ids),
                    user_id=user_id,
                    period_start=period_start,
                    amount_spent=amount,
                    updated_at=self._clock(),
                )
            else:
                record = replace(existing, amount_spent=amount, updated_at=self._clock())
            self._spending[key] = record
            return record

    def spending_for_periods(
        self, user_id: int, period_starts: Iterable[datetime]
    ) -> dict[datetime, FortnightSpendingRecord]:
        with self._lock:
            return {
                start: self._spending[(user_id, start)]
                for start in period_starts
                if (user_id, start) in self._spending
            }

    def list_holdings(self, user_id: int) -> list[StockHolding]:
        with self._lock:
            return sorted(
                (holding for holding in self._holdings.values() if holding.user_id == user_id),
                key=lambda holding: holding.id,
            )

    def _holding_locked(self, user_id: int, holding_id: int) -> StockHolding:
        holding = self._holdings.get(holding_id)
        if holding is None or holding.user_id != user_id:
            raise KeyError(holding_id)
        return holding

    def get_holding(self, user_id: int, holding_id: int) -> StockHolding:
        with self._lock:
            return self._holding_locked(user_id, holding_id)

    def create_holding(
        self,
        user_id: int,
        *,
        ticker: str,
        exchange: str | None,
        shares: float,
        average_price: float,
        currency: str,
    ) -> StockHolding:
        with self._lock:
            holding = StockHolding(
                id=next(self._holding_ids),
                user_id=user_id,
                ticker=ticker,
                exchange=exchange,
                shares=shares,
                average_price=average_price,
                currency=currency,
            )
            self._holdings[holding.id] = holding
            return holding

    def update_holding(
        self, user_id: int, holding_id: int, changes: Mapping[str, Any]
    ) -> StockHolding:
        _check_holding_columns(changes)
        with self._lock:
            holding = replace(self._holding_locked(user_id, holding_id), **changes)
            self._holdings[holding_id] = holding
            return holding

    def delete_holding(self, user_id: int, holding_id: int) -> None:
        with self._lock:
            self._holding_locked(user_id, holding_id)
            del self._holdings[holding_id]


class SQLiteFinanceRepository:
    """SQLite-backed repository; every write runs in its own transaction."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = str(path)
        self._clock = clock or _utcnow
        self._lock = Lock()
        self._initialise()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        return connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        connection = self._connect()
        try:
            with connection:
                yield connection
        finally:
            connection.close()

    def _initialise(self) -> None:
        with self._transaction() as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS finance_profiles (
                    user_id INTEGER PRIMARY KEY,
                    savings_balance REAL NOT NULL DEFAULT 0,
                    spending_balance REAL NOT NULL DEFAULT 0,
                    investing_cash_balance REAL NOT NULL DEFAULT 0,
                    investing_cash_balance_usd REAL NOT NULL DEFAULT 0,
                    saving_percent REAL NOT NULL DEFAULT 70,
                    spending_percent REAL NOT NULL DEFAULT 10,
                    investing_percent REAL NOT NULL DEFAULT 20,
                    savings_interest_rate_pa REAL NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS fortnight_spending (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    period_start TEXT NOT NULL,
                    amount_spent REAL NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (user_id, period_start)
                );
                CREATE TABLE IF NOT EXISTS stock_holdings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    ticker TEXT NOT NULL,
                    exchange TEXT,
                    shares REAL NOT NULL,
                    average_price REAL NOT NULL,
                    currency TEXT NOT NULL DEFAULT 'AUD'
                );
                CREATE INDEX IF NOT EXISTS stock_holdings_user_idx
                    ON stock_holdings (user_id);
                """
            )

    @staticmethod
    def _decode_profile(row: sqlite3.Row) -> FinanceProfile:
        values = {column: float(row[column]) for column in PROFILE_DEFAULTS}
        return FinanceProfile(
            user_id=int(row["user_id"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
            **values,
        )

    @staticmethod
    def _decode_spending(row: sqlite3.Row) -> FortnightSpendingRecord:
        return FortnightSpendingRecord(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            period_start=_parse_timestamp(row["period_start"]),
            amount_spent=float(row["amount_spent"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    @staticmethod
    def _decode_holding(row: sqlite3.Row) -> StockHolding:
        return StockHolding(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            ticker=row["ticker"],
            exchange=row["exchange"],
            shares=float(row["shares"]),
            average_price=float(row["average_price"]),
            currency=row["currency"],
        )

    def _ensure_profile(self, connection: sqlite3.Connection, user_id: int) -> None:
        now = _isoformat(self._clock())
        connection.execute(
            "INSERT OR IGNORE INTO finance_profiles (user_id, created_at, updated_at)"
            " VALUES (?, ?, ?)",
            (user_id, now, now),
        )

    def _select_profile(self, connection: sqlite3.Connection, user_id: int) -> FinanceProfile:
        row = connection.execute(
            "SELECT * FROM finance_profiles WHERE user_id = ?", (user_id,)
        ).fetchone()
        return self._decode_profile(row)

    def get_or_create_profile(self, user_id: int) -> FinanceProfile:
        with self._lock, self._transaction() as connection:
            self._ensure_profile(connection, user_id)
            return self._select_profile(connection, user_id)

    def update_profile(self, user_id: int, changes: Mapping[str, float]) -> FinanceProfile:
        _check_profile_columns(changes)
        columns = list(changes)
        assignments = ", ".join(f"{column} = ?" for column in [*columns, "updated_at"])
        values = [changes[column] for column in columns]
        with self._lock, self._transaction() as connection:
            self._ensure_profile(connection, user_id)
            connection.execute(
                f"UPDATE finance_profiles SET {assignments} WHERE user_id = ?",
                (*values, _isoformat(self._clock()), user_id),
            )
            return self._select_profile(connection, user_id)

    def upsert_spending(
        self, user_id: int, period_start: datetime, amount: float
    ) -> FortnightSpendingRecord:
        start = _isoformat(period_start)
        with self._lock, self._transaction() as connection:
            connection.execute(
                "INSERT INTO fortnight_spending (user_id, period_start, amount_spent, updated_at)"
                " VALUES (?, ?, ?, ?)"
                " ON CONFLICT (user_id, period_start) DO UPDATE SET"
                " amount_spent = excluded.amount_spent, updated_at = excluded.updated_at",
                (user_id, start, amount, _isoformat(self._clock())),
            )
            row = connection.execute(
                "SELECT * FROM fortnight_spending WHERE user_id = ? AND period_start = ?",
                (user_id, start),
            ).fetchone()
            return self._decode_spending(row)

    def spending_for_periods(
        self, user_id: int, period_starts: Iterable[datetime]
    ) -> dict[datetime, FortnightSpendingRecord]:
        starts: Sequence[str] = [_isoformat(start) for start in period_starts]
        if not starts:
            return {}
        placeholders = ", ".join("?" for _ in starts)
        with self._lock, self._transaction() as connection:
            rows = connection.execute(
                "SELECT * FROM fortnight_spending"
                f" WHERE user_id = ? AND period_start IN ({placeholders})",
                (user_id, *starts),
            ).fetchall()
        records = (self._decode_spending(row) for row in rows)
        return {record.period_start: record for record in records}

    def list_holdings(self, user_id: int) -> list[StockHolding]:
        with self._lock, self._transaction() as connection:
            rows = connection.execute(
                "SELECT * FROM stock_holdings WHERE user_id = ? ORDER BY id ASC",
                (user_id,),
            ).fetchall()
        return [self._decode_holding(row) for row in rows]

    def _select_holding(
        self, connection: sqlite3.Connection, user_id: int, holding_id: int
    ) -> StockHolding:
        row = connection.execute(
            "SELECT * FROM stock_holdings WHERE id = ? AND user_id = ?",
            (holding_id, user_id),
        ).fetchone()
        if row is None:
            raise KeyError(holding_id)
        return self._decode_holding(row)

    def get_holding(self, user_id: int, holding_id: int) -> StockHolding:
        with self._lock, self._transaction() as connection:
            return self._select_holding(connection, user_id, holding_id)

    def create_holding(
        self,
        user_id: int,
        *,
        ticker: str,
        exchange: str | None,
        shares: float,
        average_price: float,
        currency: str,
    ) -> StockHolding:
        with self._lock, self._transaction() as connection:
            cursor = connection.execute(
                "INSERT INTO stock_holdings"
                " (user_id, ticker, exchange, shares, average_price, currency)"
                " VALUES (?, ?, ?, ?, ?, ?)",
                (user_id, ticker, exchange, shares, average_price, currency),
            )
            return self._select_holding(connection, user_id, int(cursor.lastrowid))

    def update_holding(
        self, user_id: int, holding_id: int, changes: Mapping[str, Any]
    ) -> StockHolding:
        _check_holding_columns(changes)
        with self._lock, self._transaction() as connection:
            self._select_holding(connection, user_id, holding_id)
            if changes:
                columns = list(changes)
                assignments = ", ".join(f"{column} = ?" for column in columns)
                connection.execute(
                    f"UPDATE stock_holdings SET {assignments} WHERE id = ? AND user_id = ?",
                    (*(changes[column] for column in columns), holding_id, user_id),
                )
            return self._select_holding(connection, user_id, holding_id)

    def delete_holding(self, user_id: int, holding_id: int) -> None:
        with self._lock, self._transaction() as connection:
            self._select_holding(connection, user_id, holding_id)
            connection.execute(
                "DELETE FROM stock_holdings WHERE id = ? AND user_id = ?",
                (holding_id, user_id),
            )


__all__ = [
    "FinanceProfile",
    "FinanceRepository",
    "FortnightSpendingRecord",
    "HOLDING_FIELDS",
    "InMemoryFinanceRepository",
    "PROFILE_DEFAULTS",
    "PROFILE_FIELDS",
    "SQLiteFinanceRepository",
    "StockHolding",
]
