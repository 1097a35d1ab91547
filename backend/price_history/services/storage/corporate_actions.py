# backend/price_history/services/storage/corporate_actions.py
"""
File-backed store for splits and dividends.

Dividends live in dividends/{symbol}.csv:

    ex_date,amount,currency,updated_at

Splits live in splits/{symbol}.csv and are written in fractional form:

    date,numerator,denominator,ratio,before_price,after_price,updated_at

Older split files carry a free-text ratio column instead of the fractional
parts ("date,ratio,..."). The form is detected from the header and both
normalize to SplitEvent. Malformed split rows clamp to 1:1 rather than
rejecting the file.
"""

import csv
import io
import logging
from datetime import date
from typing import Iterable

from price_history.services.constants import (
    DIVIDEND_FILE_COLUMNS,
    DIVIDENDS_DIR,
    SPLIT_FILE_COLUMNS,
    SPLITS_DIR,
)
from price_history.services.exceptions import ParseError
from price_history.services.market_data.base import DividendEvent, SplitEvent
from price_history.services.splits import make_split, parse_ratio_text
from price_history.services.storage.files import FileStorage, safe_name, symbol_from_name
from price_history.utils.date_utils import parse_date, utc_now_iso
from price_history.utils.numbers import format_decimal, to_decimal

logger = logging.getLogger(__name__)

CSV_SUFFIX = ".csv"


class CorporateActionStore:
    """
    Reads and writes per-symbol split and dividend files.

    Args:
        storage: File storage rooted at the configured storage location
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    @staticmethod
    def _dividend_path(symbol: str) -> str:
        return f"{DIVIDENDS_DIR}/{safe_name(symbol)}{CSV_SUFFIX}"

    @staticmethod
    def _split_path(symbol: str) -> str:
        return f"{SPLITS_DIR}/{safe_name(symbol)}{CSV_SUFFIX}"

    # =========================================================================
    # DIVIDENDS
    # =========================================================================

    def load_dividends(self, symbol: str) -> list[DividendEvent]:
        """Stored dividends for a symbol, newest first. Empty when none are stored."""
        content = self.storage.read_text(self._dividend_path(symbol))
        if not content:
            return []

        dividends: list[DividendEvent] = []
        for row in csv.DictReader(io.StringIO(content)):
            amount = to_decimal(row.get("amount"))
            try:
                ex_date = parse_date(row.get("ex_date"), source=symbol)
            except ParseError:
                continue
            if amount is None:
                continue
            dividends.append(DividendEvent(
                ex_date=ex_date,
                amount=amount,
                currency=(row.get("currency") or "").strip(),
                updated_at=(row.get("updated_at") or "").strip() or None,
            ))

        return sorted(dividends, key=lambda d: d.ex_date, reverse=True)

    def save_dividends(self, symbol: str, dividends: Iterable[DividendEvent]) -> list[DividendEvent]:
        """
        Merge dividends into the stored file.

        Rows are deduplicated by ex-date; incoming rows win.

        Returns:
            The merged list, newest first
        """
        by_date: dict[date, DividendEvent] = {d.ex_date: d for d in self.load_dividends(symbol)}
        for dividend in dividends:
            by_date[dividend.ex_date] = dividend

        merged = sorted(by_date.values(), key=lambda d: d.ex_date, reverse=True)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(DIVIDEND_FILE_COLUMNS)
        stamp = utc_now_iso()
        for dividend in merged:
            writer.writerow([
                dividend.ex_date.isoformat(),
                format_decimal(dividend.amount),
                dividend.currency,
                dividend.updated_at or stamp,
            ])

        self.storage.write_text(self._dividend_path(symbol), buffer.getvalue())
        logger.debug(f"Stored {len(merged)} dividends for {symbol}")
        return merged

    # =========================================================================
    # SPLITS
    # =========================================================================

    def load_splits(self, symbol: str) -> list[SplitEvent]:
        """Stored splits for a symbol, oldest first. Empty when none are stored."""
        content = self.storage.read_text(self._split_path(symbol))
        if not content:
            return []

        reader = csv.DictReader(io.StringIO(content))
        columns = set(reader.fieldnames or [])
        fractional = {"numerator", "denominator"} <= columns
        if not fractional and "ratio" not in columns:
            logger.warning(f"Unrecognized split file header for {symbol}: {sorted(columns)}")
            return []

        splits: list[SplitEvent] = []
        for row in reader:
            try:
                split_date = parse_date(row.get("date"), source=symbol)
            except ParseError:
                continue

            if fractional:
                numerator, denominator = row.get("numerator"), row.get("denominator")
            else:
                numerator, denominator = parse_ratio_text(row.get("ratio"))

            splits.append(make_split(
                split_date,
                numerator,
                denominator,
                before_price=to_decimal(row.get("before_price")),
                after_price=to_decimal(row.get("after_price")),
            ))

        return sorted(splits, key=lambda s: s.date)

    def save_splits(self, symbol: str, splits: Iterable[SplitEvent]) -> list[SplitEvent]:
        """
        Merge splits into the stored file, keyed by date; incoming rows win.

        The file is always written in fractional form, newest first.

        Returns:
            The merged list, oldest first
        """
        by_date: dict[date, SplitEvent] = {s.date: s for s in self.load_splits(symbol)}
        for split in splits:
            by_date[split.date] = split

        merged = sorted(by_date.values(), key=lambda s: s.date)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(SPLIT_FILE_COLUMNS)
        stamp = utc_now_iso()
        for split in reversed(merged):
            writer.writerow([
                split.date.isoformat(),
                format_decimal(split.numerator),
                format_decimal(split.denominator),
                split.ratio,
                format_decimal(split.before_price),
                format_decimal(split.after_price),
                stamp,
            ])

        self.storage.write_text(self._split_path(symbol), buffer.getvalue())
        logger.debug(f"Stored {len(merged)} splits for {symbol}")
        return merged

    def split_symbols(self) -> list[str]:
        """Symbols that have a split file, sorted."""
        return [
            symbol_from_name(name[: -len(CSV_SUFFIX)])
            for name in self.storage.list_names(SPLITS_DIR, CSV_SUFFIX)
        ]

    def split_history(self) -> list[tuple[str, SplitEvent]]:
        """Every stored split across all symbols, newest first."""
        history = [
            (symbol, split)
            for symbol in self.split_symbols()
            for split in self.load_splits(symbol)
        ]
        return sorted(history, key=lambda item: (item[1].date, item[0]), reverse=True)
