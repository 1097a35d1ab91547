# backend/tests/services/test_price_store.py
"""
Tests for the file-backed price store.

Covers:
- merge() union and last-write-wins
- CSV round trip, newest-first layout and tolerant parsing
- latest_price() head reads
- flush() of an in-memory store
- FileStorage naming and atomic writes
"""

from datetime import date
from decimal import Decimal

import pytest

from price_history.services.constants import PRICE_FILE_HEADER
from price_history.services.exceptions import ConfigError, PriceHistoryNotFoundError
from price_history.services.storage import FileStorage, safe_name, symbol_from_name
from price_history.services.storage.price_store import (
    earliest_date,
    latest_date,
    merge,
    parse_price_rows,
)
from tests.conftest import create_price


# =============================================================================
# MERGE
# =============================================================================

class TestMerge:
    """Tests for merge()."""

    def test_union_of_dates(self):
        existing = [create_price(on=date(2024, 1, 2)), create_price(on=date(2024, 1, 3))]
        new = [create_price(on=date(2024, 1, 4))]

        merged = merge(existing, new)

        assert [r.date for r in merged] == [date(2024, 1, 4), date(2024, 1, 3), date(2024, 1, 2)]

    def test_new_record_wins_on_same_date(self):
        existing = [create_price(on=date(2024, 1, 2), close="100")]
        new = [create_price(on=date(2024, 1, 2), close="101")]

        merged = merge(existing, new)

        assert len(merged) == 1
        assert merged[0].close == Decimal("101")

    def test_merge_with_empty(self):
        existing = [create_price(on=date(2024, 1, 2))]

        assert merge(existing, []) == existing
        assert merge([], existing) == existing

    def test_date_bounds(self):
        series = [create_price(on=date(2024, 1, 3)), create_price(on=date(2024, 1, 2))]

        assert earliest_date(series) == date(2024, 1, 2)
        assert latest_date(series) == date(2024, 1, 3)
        assert earliest_date([]) is None


# =============================================================================
# PARSING
# =============================================================================

class TestParsePriceRows:
    """Tests for parse_price_rows()."""

    def test_skips_bad_rows(self):
        content = "\n".join([
            PRICE_FILE_HEADER,
            "2024-01-03,101,,,,,,,yahoo_finance,",
            "not-a-date,100,,,,,,,yahoo_finance,",
            "2024-01-02,,,,,,,,yahoo_finance,",
        ])

        records = parse_price_rows("NASDAQ:AAPL", content)

        assert len(records) == 1
        assert records[0].close == Decimal("101")
        assert records[0].open is None

    def test_tolerates_missing_columns(self):
        records = parse_price_rows("AAPL", "date,close\n2024-01-02,99.5\n")

        assert records[0].close == Decimal("99.5")
        assert records[0].source == "yahoo_finance"
        assert records[0].split_unadjusted_close is None


# =============================================================================
# STORE
# =============================================================================

class TestPriceStore:
    """Tests for PriceStore reads and writes."""

    def test_save_and_load_round_trip(self, price_store):
        records = [
            create_price(on=date(2024, 1, 2), close="100.5", split_unadjusted_close=Decimal("201")),
            create_price(on=date(2024, 1, 3), close="101"),
        ]

        price_store.save_series("2330:TWSE", records)
        loaded = price_store.load_series("2330:TWSE")

        assert [r.date for r in loaded] == [date(2024, 1, 3), date(2024, 1, 2)]
        assert loaded[1].close == Decimal("100.5")
        assert loaded[1].split_unadjusted_close == Decimal("201")
        assert loaded[0].updated_at is not None

    def test_file_is_newest_first(self, price_store, storage):
        price_store.save_series("AAPL", [
            create_price("AAPL", date(2024, 1, 2)),
            create_price("AAPL", date(2024, 1, 4)),
        ])

        lines = storage.read_text("prices/AAPL.csv").splitlines()

        assert lines[0] == PRICE_FILE_HEADER
        assert lines[1].startswith("2024-01-04")
        assert lines[2].startswith("2024-01-02")

    def test_missing_symbol_raises(self, price_store):
        with pytest.raises(PriceHistoryNotFoundError):
            price_store.load_series("NOPE")

    def test_file_without_rows_raises(self, price_store, storage):
        storage.write_text("prices/EMPTY.csv", PRICE_FILE_HEADER + "\n")

        with pytest.raises(PriceHistoryNotFoundError):
            price_store.load_series("EMPTY")

    def test_list_symbols_restores_delimiter(self, price_store):
        price_store.save_series("2330:TWSE", [create_price("2330:TWSE")])
        price_store.save_series("AAPL", [create_price("AAPL")])

        assert price_store.list_symbols() == ["2330:TWSE", "AAPL"]

    def test_load_all_skips_empty_files(self, price_store, storage):
        price_store.save_series("AAPL", [create_price("AAPL")])
        storage.write_text("prices/EMPTY.csv", PRICE_FILE_HEADER + "\n")

        assert list(price_store.load_all()) == ["AAPL"]

    def test_load_all_keys_by_known_symbols(self, price_store):
        price_store.save_series("BRK/B", [create_price("BRK/B", date(2024, 1, 2))])

        assert list(price_store.load_all()) == ["BRK:B"]

        store = price_store.load_all(["BRK/B"])

        assert list(store) == ["BRK/B"]
        assert store["BRK/B"][0].symbol == "BRK/B"

    def test_latest_price(self, price_store):
        price_store.save_series("AAPL", [
            create_price("AAPL", date(2024, 1, 2), "100"),
            create_price("AAPL", date(2024, 1, 5), "105"),
        ])

        latest = price_store.latest_price("AAPL")

        assert latest.date == date(2024, 1, 5)
        assert latest.close == Decimal("105")

    def test_latest_price_missing(self, price_store):
        assert price_store.latest_price("NOPE") is None

    def test_price_on(self, price_store):
        price_store.save_series("AAPL", [create_price("AAPL", date(2024, 1, 2), "100")])

        assert price_store.price_on("AAPL", date(2024, 1, 2)).close == Decimal("100")
        assert price_store.price_on("AAPL", date(2024, 1, 3)) is None

    def test_save_prices_merges_per_symbol(self, price_store):
        price_store.save_series("AAPL", [create_price("AAPL", date(2024, 1, 2), "100")])

        written = price_store.save_prices([
            create_price("AAPL", date(2024, 1, 2), "99"),
            create_price("AAPL", date(2024, 1, 3), "101"),
            create_price("MSFT", date(2024, 1, 3), "370"),
        ])

        assert written == 2
        assert [r.close for r in price_store.load_series("AAPL")] == [Decimal("101"), Decimal("99")]
        assert price_store.count_records() == 3

    def test_flush_skips_empty_series(self, price_store):
        written = price_store.flush({
            "AAPL": [create_price("AAPL")],
            "EMPTY": [],
        })

        assert written == 1
        assert price_store.list_symbols() == ["AAPL"]


# =============================================================================
# FILE STORAGE
# =============================================================================

class TestFileStorage:
    """Tests for FileStorage and symbol file names."""

    def test_safe_name_round_trip(self):
        assert safe_name("2330:TWSE") == "2330_TWSE"
        assert symbol_from_name("2330_TWSE") == "2330:TWSE"

    def test_creates_missing_root(self, tmp_path):
        root = tmp_path / "nested" / "root"

        FileStorage(root)

        assert root.is_dir()

    def test_root_that_is_a_file_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        with pytest.raises(ConfigError) as exc_info:
            FileStorage(blocker)

        assert exc_info.value.setting == "storage_root"

    def test_write_leaves_no_temp_files(self, storage):
        storage.write_text("prices/AAPL.csv", "a")
        storage.write_text("prices/AAPL.csv", "b")

        assert storage.read_text("prices/AAPL.csv") == "b"
        assert storage.list_names("prices") == ["AAPL.csv"]
        assert [p.name for p in storage.path("prices").iterdir()] == ["AAPL.csv"]

    def test_read_head(self, storage):
        storage.write_text("x.txt", "1\n2\n3\n")

        assert storage.read_head("x.txt", 2) == ["1", "2"]
        assert storage.read_head("missing.txt", 2) is None
