# backend/tests/services/test_sync_service.py
"""
Tests for the PriceSyncService.

This module tests:
- Fetch ranges derived from the earliest transaction
- Idempotent passes (up_to_date without refetching)
- Partial success handling and overall status
- Unsupported exchanges reported as skipped
- Split and dividend persistence
- Progress reporting
"""

from datetime import date
from decimal import Decimal

import pytest

from price_history.services.exceptions import ProviderUnavailableError, TransactionsNotFoundError
from price_history.services.market_data.base import ChartFetchResult
from price_history.services.market_data.sync_service import PriceSyncService, SyncSummary
from price_history.services.symbols import SymbolResolver
from price_history.services.transactions import TransactionSource
from tests.conftest import (
    create_dividend,
    create_price,
    create_price_series,
    create_split,
    create_transaction,
)

TODAY = date(2024, 1, 12)


def outcomes_by_symbol(summary: SyncSummary) -> dict:
    return {o.symbol: o for o in summary.outcomes}


# =============================================================================
# SYNC ALL
# =============================================================================

class TestSyncAll:
    """Tests for PriceSyncService.sync_all()."""

    def test_first_pass_fetches_from_earliest_transaction(self, sync_service, mock_fetcher, price_store):
        summary = sync_service.sync_all(today=TODAY)

        assert summary.status == "completed"
        assert sorted(mock_fetcher.calls) == [
            ("2330.TW", "2330:TWSE", date(2024, 1, 3), TODAY),
            ("AAPL", "NASDAQ:AAPL", date(2024, 1, 2), TODAY),
        ]
        outcomes = outcomes_by_symbol(summary)
        assert outcomes["NASDAQ:AAPL"].status == "synced"
        assert outcomes["NASDAQ:AAPL"].provider_symbol == "AAPL"
        assert outcomes["NASDAQ:AAPL"].records_fetched == 9
        assert outcomes["NASDAQ:AAPL"].from_date == date(2024, 1, 2)
        assert outcomes["NASDAQ:AAPL"].to_date == TODAY
        assert summary.records_fetched == 17
        assert summary.finished_at is not None
        assert price_store.list_symbols() == ["2330:TWSE", "NASDAQ:AAPL"]

    def test_second_pass_is_up_to_date(self, sync_service, mock_fetcher):
        sync_service.sync_all(today=TODAY)
        calls_after_first = mock_fetcher.call_count

        summary = sync_service.sync_all(today=TODAY)

        assert mock_fetcher.call_count == calls_after_first
        assert summary.count("up_to_date") == 2
        assert summary.records_fetched == 0
        assert summary.status == "completed"

    def test_backfills_when_stored_history_starts_too_late(self, sync_service, mock_fetcher, price_store):
        price_store.save_series("NASDAQ:AAPL", [create_price("NASDAQ:AAPL", date(2024, 1, 5))])

        sync_service.sync_all(today=TODAY)

        assert ("AAPL", "NASDAQ:AAPL", date(2024, 1, 2), TODAY) in mock_fetcher.calls

    def test_slash_ticker_is_up_to_date_on_second_pass(self, storage, price_store, action_store, mock_fetcher):
        source = TransactionSource(storage, transactions=[create_transaction("BRK/B", "2024-01-08")])
        service = PriceSyncService(
            price_store=price_store,
            action_store=action_store,
            fetcher=mock_fetcher,
            resolver=SymbolResolver(),
            transaction_source=source,
        )
        service.sync_all(today=TODAY)

        summary = service.sync_all(today=TODAY)

        assert mock_fetcher.call_count == 1
        assert outcomes_by_symbol(summary)["BRK/B"].status == "up_to_date"
        assert len(price_store.load_series("BRK/B")) == 5

    def test_refresh_recent_fetches_from_latest_stored(self, sync_service, mock_fetcher):
        sync_service.sync_all(today=TODAY)
        later = date(2024, 1, 16)

        summary = sync_service.sync_all(refresh_recent=True, today=later)

        assert ("AAPL", "NASDAQ:AAPL", TODAY, later) in mock_fetcher.calls
        assert summary.count("synced") == 2

    def test_refresh_recent_skips_current_history(self, sync_service, mock_fetcher):
        sync_service.sync_all(today=TODAY)
        calls_after_first = mock_fetcher.call_count

        summary = sync_service.sync_all(refresh_recent=True, today=TODAY)

        assert mock_fetcher.call_count == calls_after_first
        assert summary.count("up_to_date") == 2

    def test_one_failure_does_not_abort_the_pass(self, sync_service, mock_fetcher, price_store):
        mock_fetcher.add_error("2330.TW")

        summary = sync_service.sync_all(today=TODAY)

        outcomes = outcomes_by_symbol(summary)
        assert summary.status == "partial"
        assert outcomes["2330:TWSE"].status == "failed"
        assert "No data found" in outcomes["2330:TWSE"].reason
        assert outcomes["NASDAQ:AAPL"].status == "synced"
        assert price_store.list_symbols() == ["NASDAQ:AAPL"]

    def test_all_failed(self, sync_service, mock_fetcher):
        mock_fetcher.add_error("2330.TW")
        mock_fetcher.add_error("AAPL", ProviderUnavailableError("mock", "AAPL", "timeout"))

        summary = sync_service.sync_all(today=TODAY)

        assert summary.status == "failed"
        assert len(summary.failed) == 2

    def test_unsupported_exchange_is_skipped(self, price_store, action_store, mock_fetcher, transaction_source):
        service = PriceSyncService(
            price_store=price_store,
            action_store=action_store,
            fetcher=mock_fetcher,
            resolver=SymbolResolver(unsupported_exchanges=["TWSE"]),
            transaction_source=transaction_source,
        )

        summary = service.sync_all(today=TODAY)

        outcomes = outcomes_by_symbol(summary)
        assert outcomes["2330:TWSE"].status == "skipped"
        assert "TWSE" in outcomes["2330:TWSE"].reason
        assert summary.status == "completed"
        assert [call[0] for call in mock_fetcher.calls] == ["AAPL"]

    def test_malformed_transaction_date_fails_symbol(self, storage, price_store, action_store, mock_fetcher):
        source = TransactionSource(storage, transactions=[
            create_transaction("NASDAQ:AAPL", "2024-01-02"),
            create_transaction("NASDAQ:MSFT", "yesterday"),
        ])
        service = PriceSyncService(price_store, action_store, mock_fetcher, SymbolResolver(), source)

        summary = service.sync_all(today=TODAY)

        outcomes = outcomes_by_symbol(summary)
        assert outcomes["NASDAQ:MSFT"].status == "failed"
        assert outcomes["NASDAQ:AAPL"].status == "synced"

    def test_no_transactions_raises(self, storage, price_store, action_store, mock_fetcher):
        service = PriceSyncService(
            price_store, action_store, mock_fetcher, SymbolResolver(), TransactionSource(storage)
        )

        with pytest.raises(TransactionsNotFoundError):
            service.sync_all(today=TODAY)

    def test_progress_callbacks(self, sync_service):
        progress = []

        sync_service.sync_all(today=TODAY, on_progress=progress.append)

        assert [(p.completed, p.total, p.current_symbol, p.next_symbol) for p in progress] == [
            (0, 2, "2330:TWSE", "NASDAQ:AAPL"),
            (1, 2, "NASDAQ:AAPL", None),
            (2, 2, None, None),
        ]


# =============================================================================
# CORPORATE ACTIONS
# =============================================================================

class TestCorporateActions:
    """Tests for split and dividend persistence during a sync."""

    @pytest.fixture
    def split_result(self):
        return ChartFetchResult(
            symbol="NASDAQ:AAPL",
            provider_symbol="AAPL",
            start_date=date(2024, 1, 2),
            end_date=TODAY,
            prices=create_price_series("NASDAQ:AAPL", date(2024, 1, 2), date(2024, 1, 5)),
            splits=[create_split(date(2024, 1, 4), 2, 1)],
            dividends=[create_dividend(date(2024, 1, 3), "0.25")],
            currency="USD",
        )

    def test_splits_are_annotated_and_saved(self, sync_service, mock_fetcher, action_store, split_result):
        mock_fetcher.add_result("AAPL", split_result)

        sync_service.sync_all(today=TODAY)

        splits = action_store.load_splits("NASDAQ:AAPL")
        assert len(splits) == 1
        assert splits[0].ratio == "2:1"
        assert splits[0].before_price == Decimal(202)
        assert splits[0].after_price == Decimal(102)

    def test_unadjusted_close_is_stored(self, sync_service, mock_fetcher, price_store, split_result):
        mock_fetcher.add_result("AAPL", split_result)

        sync_service.sync_all(today=TODAY)

        stored = {r.date: r for r in price_store.load_series("NASDAQ:AAPL")}
        assert stored[date(2024, 1, 2)].close == Decimal(100)
        assert stored[date(2024, 1, 2)].split_unadjusted_close == Decimal(200)
        assert stored[date(2024, 1, 5)].split_unadjusted_close == Decimal(103)

    def test_dividends_are_saved(self, sync_service, mock_fetcher, action_store, split_result):
        mock_fetcher.add_result("AAPL", split_result)

        sync_service.sync_all(today=TODAY)

        assert [d.ex_date for d in action_store.load_dividends("NASDAQ:AAPL")] == [date(2024, 1, 3)]


# =============================================================================
# SYNC SYMBOL
# =============================================================================

class TestSyncSymbol:
    """Tests for PriceSyncService.sync_symbol()."""

    def test_syncs_and_saves_one_symbol(self, sync_service, mock_fetcher, price_store):
        outcome = sync_service.sync_symbol("nasdaq:aapl", today=TODAY)

        assert outcome.status == "synced"
        assert mock_fetcher.call_count == 1
        assert price_store.list_symbols() == ["NASDAQ:AAPL"]

    def test_unknown_symbol_raises(self, sync_service):
        with pytest.raises(TransactionsNotFoundError):
            sync_service.sync_symbol("NYSE:IBM", today=TODAY)

    def test_failure_is_an_outcome(self, sync_service, mock_fetcher, price_store):
        mock_fetcher.add_error("AAPL")

        outcome = sync_service.sync_symbol("NASDAQ:AAPL", today=TODAY)

        assert outcome.status == "failed"
        assert price_store.list_symbols() == []
