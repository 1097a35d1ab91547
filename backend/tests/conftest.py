# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- File storage fixtures (temporary storage root)
- Mock chart fetcher fixtures
- Sample data factories
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_NAME", "Test App")

from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import pytest

from price_history.schemas.transactions import Transaction
from price_history.services.coverage import CoverageAnalyzer
from price_history.services.exceptions import FetchError
from price_history.services.market_data.base import (
    ChartFetchResult,
    DividendEvent,
    HistoryFetcher,
    PriceRecord,
    SplitEvent,
)
from price_history.services.market_data.sync_service import PriceSyncService
from price_history.services.positions import PositionService
from price_history.services.splits import make_split
from price_history.services.storage import (
    CorporateActionStore,
    FileStorage,
    PriceStore,
    ProviderMetadataStore,
    SnapshotStore,
)
from price_history.services.symbols import SymbolResolver
from price_history.services.transactions import TransactionSource


# =============================================================================
# STORAGE FIXTURES
# =============================================================================

@pytest.fixture
def storage(tmp_path) -> FileStorage:
    """File storage rooted at a fresh temporary directory."""
    return FileStorage(tmp_path / "data")


@pytest.fixture
def price_store(storage) -> PriceStore:
    return PriceStore(storage)


@pytest.fixture
def action_store(storage) -> CorporateActionStore:
    return CorporateActionStore(storage)


@pytest.fixture
def metadata_store(storage) -> ProviderMetadataStore:
    return ProviderMetadataStore(storage)


@pytest.fixture
def snapshot_store(storage) -> SnapshotStore:
    return SnapshotStore(storage)


# =============================================================================
# MOCK CHART FETCHER
# =============================================================================

class MockChartFetcher(HistoryFetcher):
    """
    Mock implementation of HistoryFetcher for testing.

    Allows configuring results for specific provider symbols and simulating
    errors. Unconfigured symbols get generated weekday bars.
    """

    def __init__(self):
        self._results: dict[str, ChartFetchResult] = {}
        self._errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str, date, date]] = []

    @property
    def name(self) -> str:
        return "mock"

    def add_result(self, provider_symbol: str, result: ChartFetchResult) -> None:
        """Configure a successful response for a provider symbol."""
        self._results[provider_symbol] = result

    def add_error(self, provider_symbol: str, error: Exception | None = None) -> None:
        """Configure an error response for a provider symbol."""
        self._errors[provider_symbol] = error or FetchError(
            self.name, provider_symbol, "HTTP 404: No data found"
        )

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def fetch_history(
            self,
            provider_symbol: str,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> ChartFetchResult:
        self.calls.append((provider_symbol, symbol, start_date, end_date))

        if provider_symbol in self._errors:
            raise self._errors[provider_symbol]

        if provider_symbol in self._results:
            return self._results[provider_symbol]

        return ChartFetchResult(
            symbol=symbol,
            provider_symbol=provider_symbol,
            start_date=start_date,
            end_date=end_date,
            prices=create_price_series(symbol, start_date, end_date),
        )


@pytest.fixture
def mock_fetcher() -> MockChartFetcher:
    return MockChartFetcher()


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def transactions() -> list[Transaction]:
    """Default portfolio: one US and one Taiwan holding."""
    return [
        create_transaction("NASDAQ:AAPL", "2024-01-02", "buy", "10", "185", currency="USD"),
        create_transaction("2330:TWSE", "2024-01-03", "buy", "1000", "580", currency="TWD"),
    ]


@pytest.fixture
def transaction_source(storage, transactions) -> TransactionSource:
    return TransactionSource(storage, transactions=transactions)


@pytest.fixture
def sync_service(price_store, action_store, mock_fetcher, transaction_source) -> PriceSyncService:
    return PriceSyncService(
        price_store=price_store,
        action_store=action_store,
        fetcher=mock_fetcher,
        resolver=SymbolResolver(),
        transaction_source=transaction_source,
    )


@pytest.fixture
def coverage_analyzer(price_store, action_store, transaction_source, snapshot_store) -> CoverageAnalyzer:
    return CoverageAnalyzer(
        price_store=price_store,
        action_store=action_store,
        transaction_source=transaction_source,
        snapshot_store=snapshot_store,
        lookback_years=15,
    )


@pytest.fixture
def position_service(price_store, action_store, snapshot_store, transaction_source) -> PositionService:
    return PositionService(
        price_store=price_store,
        action_store=action_store,
        snapshot_store=snapshot_store,
        transaction_source=transaction_source,
    )


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def create_price(
        symbol: str = "NASDAQ:AAPL",
        on: date = date(2024, 1, 2),
        close: str | Decimal = "100",
        **overrides: Any,
) -> PriceRecord:
    """Create a price record with sensible defaults."""
    close = Decimal(close)
    fields = {
        "open": close,
        "high": close,
        "low": close,
        "volume": 1000,
        "adjusted_close": close,
    }
    fields.update(overrides)
    return PriceRecord(symbol=symbol, date=on, close=close, **fields)


def create_price_series(
        symbol: str,
        start_date: date,
        end_date: date,
        base_price: str = "100",
) -> list[PriceRecord]:
    """Weekday records from start_date to end_date, oldest first, price rising by 1 per day."""
    records = []
    price = Decimal(base_price)
    current = start_date
    while current <= end_date:
        if current.weekday() < 5:
            records.append(create_price(symbol, current, price))
            price += 1
        current += timedelta(days=1)
    return records


def create_split(on: date, numerator: int | str = 2, denominator: int | str = 1) -> SplitEvent:
    return make_split(on, numerator, denominator)


def create_dividend(on: date, amount: str = "0.25", currency: str = "USD") -> DividendEvent:
    return DividendEvent(ex_date=on, amount=Decimal(amount), currency=currency)


def create_transaction(
        symbol: str,
        on: str,
        transaction_type: str = "buy",
        quantity: str = "10",
        price: str = "100",
        **extra: Any,
) -> Transaction:
    """Create a transaction from export-style string fields."""
    return Transaction.model_validate({
        "stock": symbol,
        "date": on,
        "type": transaction_type,
        "quantity": quantity,
        "price": price,
        **extra,
    })
