# backend/tests/services/test_splits.py
"""
Tests for split reconciliation.

Covers:
- Ratio parsing and clamping
- Forward adjustment
- Reconstruction of the quoted close
- Split price annotation
"""

from datetime import date
from decimal import Decimal

import pytest

from price_history.services.splits import (
    annotate_split_prices,
    backfill_unadjusted_close,
    clamp_ratio,
    forward_adjust,
    make_split,
    parse_ratio_text,
    quoted_close,
    split_factor_after,
    split_unadjusted_close,
)
from tests.conftest import create_price, create_split


# =============================================================================
# RATIO PARSING
# =============================================================================

class TestParseRatioText:
    """Tests for parse_ratio_text()."""

    @pytest.mark.parametrize("text,expected", [
        ("2", (Decimal(2), Decimal(1))),
        ("0.5", (Decimal(1), Decimal(2))),
        ("", (Decimal(1), Decimal(1))),
        (None, (Decimal(1), Decimal(1))),
        ("3:2", (Decimal(3), Decimal(2))),
        ("1/10", (Decimal(1), Decimal(10))),
        ("2.5", (Decimal(3), Decimal(1))),
        ("1", (Decimal(1), Decimal(1))),
        ("abc", (Decimal(1), Decimal(1))),
        ("-2", (Decimal(1), Decimal(1))),
    ])
    def test_forms(self, text, expected):
        assert parse_ratio_text(text) == expected

    def test_malformed_fraction_clamps(self):
        assert parse_ratio_text("0:2") == (Decimal(1), Decimal(1))


class TestClampRatio:
    """Tests for clamp_ratio() and make_split()."""

    def test_valid_parts_kept(self):
        assert clamp_ratio("4", 1) == (Decimal(4), Decimal(1))

    @pytest.mark.parametrize("numerator,denominator", [
        (0, 1), (-2, 1), (2, 0), ("", 1), (None, 1), ("x", "y"),
    ])
    def test_unusable_parts_become_one_to_one(self, numerator, denominator):
        assert clamp_ratio(numerator, denominator) == (Decimal(1), Decimal(1))

    def test_make_split_clamps(self):
        split = make_split(date(2024, 6, 10), 0, 1)

        assert split.factor == Decimal(1)
        assert split.ratio == "1:1"

    def test_ratio_string(self):
        assert make_split(date(2024, 6, 10), 1, 10).ratio == "1:10"


# =============================================================================
# ADJUSTMENT
# =============================================================================

class TestForwardAdjust:
    """Tests for forward_adjust()."""

    def test_no_splits_is_noop(self):
        series = [create_price(on=date(2024, 1, 2), close="100")]

        assert forward_adjust(series, []) == series

    def test_two_for_one_doubles_pre_split_closes_only(self):
        split_day = date(2024, 6, 10)
        before = create_price(on=date(2024, 6, 7), close="50")
        on_day = create_price(on=split_day, close="51")
        after = create_price(on=date(2024, 6, 11), close="52")

        adjusted = forward_adjust([after, on_day, before], [create_split(split_day, 2, 1)])

        assert [r.date for r in adjusted] == [after.date, on_day.date, before.date]
        assert adjusted[0].close == Decimal("52")
        assert adjusted[1].close == Decimal("51")
        assert adjusted[2].close == Decimal("100")
        assert adjusted[2].open == Decimal("100")
        assert adjusted[2].high == Decimal("100")
        assert adjusted[2].low == Decimal("100")

    def test_unchanged_records_are_returned_as_is(self):
        record = create_price(on=date(2024, 7, 1))

        assert forward_adjust([record], [create_split(date(2024, 6, 10))])[0] is record

    def test_volume_and_adjusted_close_untouched(self):
        record = create_price(on=date(2024, 1, 2), close="10", volume=500)

        adjusted = forward_adjust([record], [create_split(date(2024, 6, 10), 2, 1)])[0]

        assert adjusted.volume == 500
        assert adjusted.adjusted_close == Decimal("10")

    def test_cumulative_factor_for_multiple_splits(self):
        record = create_price(on=date(2020, 1, 2), close="10")
        splits = [create_split(date(2022, 1, 3), 2, 1), create_split(date(2021, 1, 4), 3, 1)]

        assert forward_adjust([record], splits)[0].close == Decimal("60")

    def test_does_not_mutate_input(self):
        record = create_price(on=date(2024, 1, 2), close="10")

        forward_adjust([record], [create_split(date(2024, 6, 10))])

        assert record.close == Decimal("10")


class TestUnadjustedClose:
    """Tests for the quoted-close reconstruction."""

    def test_factor_counts_only_later_splits(self):
        splits = [create_split(date(2024, 6, 10), 2, 1), create_split(date(2020, 1, 2), 5, 1)]

        assert split_factor_after(date(2024, 1, 2), splits) == Decimal(2)
        assert split_factor_after(date(2024, 6, 10), splits) == Decimal(1)

    def test_reconstruction_matches_forward_adjustment(self):
        splits = [create_split(date(2024, 6, 10), 2, 1), create_split(date(2023, 6, 12), 1, 4)]
        series = [
            create_price(on=date(2023, 1, 3), close="40"),
            create_price(on=date(2024, 1, 2), close="50"),
            create_price(on=date(2024, 7, 1), close="60"),
        ]

        adjusted = forward_adjust(series, splits)

        for record, expected in zip(series, adjusted):
            assert split_unadjusted_close(record.close, record.date, splits) == expected.close

    def test_backfill_fills_only_missing(self):
        splits = [create_split(date(2024, 6, 10), 2, 1)]
        missing = create_price(on=date(2024, 1, 2), close="50")
        present = create_price(on=date(2024, 1, 3), close="50", split_unadjusted_close=Decimal("99"))

        filled = backfill_unadjusted_close([missing, present], splits)

        assert filled[0].split_unadjusted_close == Decimal("100")
        assert filled[1].split_unadjusted_close == Decimal("99")

    def test_quoted_close_prefers_stored_value(self):
        splits = [create_split(date(2024, 6, 10), 2, 1)]
        record = create_price(on=date(2024, 1, 2), close="50", split_unadjusted_close=Decimal("101"))

        assert quoted_close(record, splits) == Decimal("101")


class TestAnnotateSplitPrices:
    """Tests for annotate_split_prices()."""

    def test_before_and_after_prices(self):
        split_day = date(2024, 6, 10)
        series = [
            create_price(on=date(2024, 6, 6), close="48"),
            create_price(on=date(2024, 6, 7), close="50"),
            create_price(on=date(2024, 6, 10), close="25"),
            create_price(on=date(2024, 6, 11), close="26"),
        ]

        annotated = annotate_split_prices([create_split(split_day, 2, 1)], series)

        assert annotated[0].before_price == Decimal("100")
        assert annotated[0].after_price == Decimal("25")

    def test_without_series_returns_sorted_splits(self):
        splits = [create_split(date(2024, 6, 10)), create_split(date(2020, 1, 2))]

        annotated = annotate_split_prices(splits, [])

        assert [s.date for s in annotated] == [date(2020, 1, 2), date(2024, 6, 10)]
        assert annotated[0].before_price is None
