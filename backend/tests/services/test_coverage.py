# backend/tests/services/test_coverage.py
"""
Tests for CoverageAnalyzer.

Covers:
- Window start and weekday counting
- Status thresholds
- Monotonicity when prices are added
- Readiness stats, saved reports and split history
"""

from datetime import date
from decimal import Decimal

import pytest

from price_history.services.coverage import CoverageAnalyzer, coverage_percent, coverage_status
from price_history.services.exceptions import ConfigError
from price_history.services.transactions import TransactionSource
from tests.conftest import create_price, create_price_series, create_split, create_transaction

TODAY = date(2024, 1, 12)  # Friday


@pytest.fixture
def seeded_store(price_store):
    """AAPL fully covered from its first transaction, 2330:TWSE empty."""
    price_store.save_series(
        "NASDAQ:AAPL", create_price_series("NASDAQ:AAPL", date(2024, 1, 2), TODAY)
    )
    return price_store


class TestCoverageMath:
    """Tests for the percentage and status helpers."""

    def test_percent(self):
        assert coverage_percent(10, 1) == Decimal(90)
        assert coverage_percent(0, 0) == Decimal(0)

    @pytest.mark.parametrize("percent,expected", [
        (Decimal(100), "complete"),
        (Decimal(95), "complete"),
        (Decimal("94.9"), "partial"),
        (Decimal(50), "partial"),
        (Decimal("49.9"), "missing"),
        (Decimal(0), "missing"),
    ])
    def test_status(self, percent, expected):
        assert coverage_status(percent) == expected


class TestCompute:
    """Tests for CoverageAnalyzer.compute()."""

    def test_records_sorted_by_ticker(self, coverage_analyzer, seeded_store):
        records = coverage_analyzer.compute(today=TODAY)

        assert [r.ticker for r in records] == ["2330:TWSE", "NASDAQ:AAPL"]

    def test_full_coverage(self, coverage_analyzer, seeded_store):
        record = {r.ticker: r for r in coverage_analyzer.compute(today=TODAY)}["NASDAQ:AAPL"]

        assert record.earliest_transaction == date(2024, 1, 2)
        assert record.total_days == 9
        assert record.missing_days == 0
        assert record.coverage_percent == 100.0
        assert record.status == "complete"
        assert record.exchange == "NASDAQ"
        assert record.currency == "USD"
        assert record.earliest_price == date(2024, 1, 2)
        assert record.latest_price == TODAY

    def test_no_prices_is_missing(self, coverage_analyzer, seeded_store):
        record = {r.ticker: r for r in coverage_analyzer.compute(today=TODAY)}["2330:TWSE"]

        assert record.total_days == 8
        assert record.missing_days == 8
        assert record.coverage_percent == 0.0
        assert record.status == "missing"
        assert record.earliest_price is None

    def test_partial_coverage(self, coverage_analyzer, price_store):
        price_store.save_series(
            "2330:TWSE", create_price_series("2330:TWSE", date(2024, 1, 3), date(2024, 1, 9))
        )

        record = {r.ticker: r for r in coverage_analyzer.compute(today=TODAY)}["2330:TWSE"]

        assert record.missing_days == 3
        assert record.coverage_percent == 62.5
        assert record.status == "partial"

    def test_coverage_is_monotonic(self, coverage_analyzer, price_store):
        before = {r.ticker: r for r in coverage_analyzer.compute(today=TODAY)}

        price_store.save_prices([create_price("2330:TWSE", date(2024, 1, 4))])
        after = {r.ticker: r for r in coverage_analyzer.compute(today=TODAY)}

        for ticker, record in before.items():
            assert after[ticker].coverage_percent >= record.coverage_percent
        assert after["2330:TWSE"].missing_days == before["2330:TWSE"].missing_days - 1

    def test_transactions_outside_window_are_ignored(self, storage, price_store, action_store):
        source = TransactionSource(storage, transactions=[
            create_transaction("OLD", "1990-01-02"),
            create_transaction("MIX", "1990-01-02"),
            create_transaction("MIX", "2024-01-08"),
        ])
        analyzer = CoverageAnalyzer(price_store, action_store, source, lookback_years=15)

        records = analyzer.compute(today=TODAY)

        assert [r.ticker for r in records] == ["MIX"]
        assert records[0].earliest_transaction == date(2024, 1, 8)

    def test_malformed_date_skips_symbol(self, storage, price_store, action_store):
        source = TransactionSource(storage, transactions=[
            create_transaction("BAD", "not a date"),
            create_transaction("GOOD", "2024-01-08"),
        ])
        analyzer = CoverageAnalyzer(price_store, action_store, source)

        assert [r.ticker for r in analyzer.compute(today=TODAY)] == ["GOOD"]

    def test_slash_ticker_finds_its_prices(self, storage, price_store, action_store):
        price_store.save_series("BRK/B", create_price_series("BRK/B", date(2024, 1, 8), TODAY))
        source = TransactionSource(storage, transactions=[create_transaction("BRK/B", "2024-01-08")])
        analyzer = CoverageAnalyzer(price_store, action_store, source)

        records = analyzer.compute(today=TODAY)

        assert records[0].ticker == "BRK/B"
        assert records[0].status == "complete"
        assert records[0].missing_days == 0

    def test_no_transactions_file_is_empty(self, storage, price_store, action_store):
        analyzer = CoverageAnalyzer(price_store, action_store, TransactionSource(storage))

        assert analyzer.compute(today=TODAY) == []

    def test_without_completeness_any_price_is_complete(self, coverage_analyzer, price_store):
        price_store.save_prices([create_price("2330:TWSE", date(2024, 1, 4))])

        record = {
            r.ticker: r for r in coverage_analyzer.compute(include_completeness=False, today=TODAY)
        }["2330:TWSE"]

        assert record.status == "complete"
        assert record.missing_days == 0

    def test_split_summary(self, coverage_analyzer, seeded_store, action_store):
        action_store.save_splits("NASDAQ:AAPL", [
            create_split(date(2014, 6, 9), 7, 1),
            create_split(date(2020, 8, 31), 4, 1),
        ])

        record = {r.ticker: r for r in coverage_analyzer.compute(today=TODAY)}["NASDAQ:AAPL"]

        assert record.split_count == 2
        assert record.last_split == date(2020, 8, 31)


class TestReports:
    """Tests for readiness stats, saved reports and split history."""

    def test_readiness_stats(self, coverage_analyzer, seeded_store):
        stats = coverage_analyzer.report(today=TODAY).stats

        assert stats.total_stocks == 2
        assert stats.complete_data == 1
        assert stats.missing_data == 1
        assert stats.partial_data == 0
        assert stats.total_price_records == 9
        assert stats.oldest_date == date(2024, 1, 2)
        assert stats.newest_date == TODAY

    def test_save_reports(self, coverage_analyzer, seeded_store, snapshot_store):
        report = coverage_analyzer.report(today=TODAY)

        written = coverage_analyzer.save_reports(report)

        assert written == ["reports/coverage.json", "reports/readiness.json"]
        assert snapshot_store.load_report("readiness")["total_stocks"] == 2
        assert len(snapshot_store.load_report("coverage")["records"]) == 2

    def test_save_reports_requires_snapshot_store(self, price_store, action_store, transaction_source):
        analyzer = CoverageAnalyzer(price_store, action_store, transaction_source)

        with pytest.raises(ConfigError, match="no snapshot store"):
            analyzer.save_reports(analyzer.report(today=TODAY))

    def test_split_history(self, coverage_analyzer, action_store):
        action_store.save_splits("NASDAQ:AAPL", [create_split(date(2020, 8, 31), 4, 1)])

        history = coverage_analyzer.split_history()

        assert history[0].ticker == "NASDAQ:AAPL"
        assert history[0].ratio == "4:1"
        assert history[0].ratio_factor == 4.0
