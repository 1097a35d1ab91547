# backend/price_history/services/storage/price_store.py
"""
File-backed daily price store.

One CSV per symbol under prices/, newest row first:

    date,close,open,high,low,volume,adjusted_close,split_unadjusted_close,source,updated_at

A series holds at most one record per date. Incoming records replace stored
records for the same date (last write wins); the file is always rewritten in
full, sorted descending, so the latest price can be read from the head of the
file without parsing the whole history.

Rows with an unparseable date or close are skipped. Missing optional columns
are tolerated, so older files with fewer columns still load.
"""

import csv
import io
import logging
from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Iterable, Mapping

from price_history.services.constants import (
    PRICE_FILE_COLUMNS,
    PRICE_HEAD_LINES,
    PRICES_DIR,
    SOURCE_YAHOO,
)
from price_history.services.exceptions import ParseError, PriceHistoryNotFoundError
from price_history.services.market_data.base import PriceRecord
from price_history.services.storage.files import FileStorage, safe_name, symbol_from_name
from price_history.utils.date_utils import parse_date, utc_now_iso
from price_history.utils.numbers import format_decimal, to_decimal, to_int

logger = logging.getLogger(__name__)

PRICE_FILE_SUFFIX = ".csv"


# =============================================================================
# SERIES HELPERS
# =============================================================================

def merge(
        existing: Iterable[PriceRecord],
        new: Iterable[PriceRecord],
) -> list[PriceRecord]:
    """
    Union two series keyed by date.

    Records from `new` replace records from `existing` on the same date.

    Returns:
        Merged series, newest first
    """
    by_date: dict[date, PriceRecord] = {record.date: record for record in existing}
    for record in new:
        by_date[record.date] = record
    return sorted(by_date.values(), key=lambda r: r.date, reverse=True)


def earliest_date(series: Iterable[PriceRecord]) -> date | None:
    """Oldest date in a series, or None when it is empty."""
    return min((record.date for record in series), default=None)


def latest_date(series: Iterable[PriceRecord]) -> date | None:
    """Newest date in a series, or None when it is empty."""
    return max((record.date for record in series), default=None)


def align_symbols(
        store: dict[str, list[PriceRecord]],
        symbols: Iterable[str],
) -> dict[str, list[PriceRecord]]:
    """
    Re-key loaded series under the symbols they were saved for.

    File names do not round-trip every symbol ("BRK/B" is stored as BRK_B
    and listed as "BRK:B"), so each known symbol takes over the entry that
    shares its file name. The store is updated in place.

    Returns:
        The same store
    """
    listed = {safe_name(key): key for key in store}
    for symbol in symbols:
        key = listed.get(safe_name(symbol))
        if key is None or key == symbol:
            continue
        store[symbol] = [replace(record, symbol=symbol) for record in store.pop(key)]
        listed[safe_name(symbol)] = symbol
    return store


def parse_price_rows(symbol: str, content: str) -> list[PriceRecord]:
    """
    Parse price CSV content into records.

    Unusable rows are skipped and counted in a debug log line.

    Returns:
        Records in file order
    """
    records: list[PriceRecord] = []
    skipped = 0

    for row in csv.DictReader(io.StringIO(content)):
        close = to_decimal(row.get("close"))
        try:
            record_date = parse_date(row.get("date"), source=symbol)
        except ParseError:
            skipped += 1
            continue
        if close is None:
            skipped += 1
            continue

        records.append(PriceRecord(
            symbol=symbol,
            date=record_date,
            close=close,
            open=to_decimal(row.get("open")),
            high=to_decimal(row.get("high")),
            low=to_decimal(row.get("low")),
            volume=to_int(row.get("volume")),
            adjusted_close=to_decimal(row.get("adjusted_close")),
            split_unadjusted_close=to_decimal(row.get("split_unadjusted_close")),
            source=(row.get("source") or "").strip() or SOURCE_YAHOO,
            updated_at=(row.get("updated_at") or "").strip() or None,
        ))

    if skipped:
        logger.debug(f"Skipped {skipped} unusable price rows for {symbol}")

    return records


def render_price_rows(series: Iterable[PriceRecord]) -> str:
    """Render records as price CSV content, newest first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(PRICE_FILE_COLUMNS)

    stamp = utc_now_iso()
    for record in sorted(series, key=lambda r: r.date, reverse=True):
        writer.writerow([
            record.date.isoformat(),
            format_decimal(record.close),
            format_decimal(record.open),
            format_decimal(record.high),
            format_decimal(record.low),
            "" if record.volume is None else record.volume,
            format_decimal(record.adjusted_close),
            format_decimal(record.split_unadjusted_close),
            record.source,
            record.updated_at or stamp,
        ])

    return buffer.getvalue()


# =============================================================================
# STORE
# =============================================================================

class PriceStore:
    """
    Reads and writes per-symbol price files.

    Args:
        storage: File storage rooted at the configured storage location
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    @staticmethod
    def _relative_path(symbol: str) -> str:
        return f"{PRICES_DIR}/{safe_name(symbol)}{PRICE_FILE_SUFFIX}"

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_symbols(self) -> list[str]:
        """Symbols that have a price file, sorted."""
        return [
            symbol_from_name(name[: -len(PRICE_FILE_SUFFIX)])
            for name in self.storage.list_names(PRICES_DIR, PRICE_FILE_SUFFIX)
        ]

    def load_series(self, symbol: str) -> list[PriceRecord]:
        """
        Load a symbol's full history, newest first.

        Raises:
            PriceHistoryNotFoundError: No file, or no usable rows in it
        """
        content = self.storage.read_text(self._relative_path(symbol))
        if content is None:
            raise PriceHistoryNotFoundError(symbol)

        records = parse_price_rows(symbol, content)
        if not records:
            raise PriceHistoryNotFoundError(symbol)

        return merge([], records)

    def load_all(self, symbols: Iterable[str] = ()) -> dict[str, list[PriceRecord]]:
        """
        Load every stored series into memory.

        Symbols whose file has no usable rows are left out.

        Args:
            symbols: Symbols to key their series by, see align_symbols()
        """
        store: dict[str, list[PriceRecord]] = {}
        for symbol in self.list_symbols():
            try:
                store[symbol] = self.load_series(symbol)
            except PriceHistoryNotFoundError:
                logger.debug(f"Ignoring empty price file for {symbol}")
        align_symbols(store, symbols)
        logger.info(f"Loaded price history for {len(store)} symbols")
        return store

    def latest_price(self, symbol: str) -> PriceRecord | None:
        """
        Most recent stored record for a symbol.

        Only the head of the file is read. Falls back to a full read when the
        head holds no usable row.
        """
        head = self.storage.read_head(self._relative_path(symbol), PRICE_HEAD_LINES)
        if head is None:
            return None

        records = parse_price_rows(symbol, "\n".join(head))
        if not records:
            try:
                records = self.load_series(symbol)
            except PriceHistoryNotFoundError:
                return None

        return max(records, key=lambda r: r.date)

    def price_on(self, symbol: str, on_date: date) -> PriceRecord | None:
        """Stored record for an exact date, or None."""
        try:
            series = self.load_series(symbol)
        except PriceHistoryNotFoundError:
            return None
        return next((record for record in series if record.date == on_date), None)

    def count_records(self, store: Mapping[str, list[PriceRecord]] | None = None) -> int:
        """Total number of stored rows across all symbols."""
        if store is None:
            store = self.load_all()
        return sum(len(series) for series in store.values())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def save_series(self, symbol: str, series: Iterable[PriceRecord]) -> int:
        """
        Rewrite a symbol's price file with the given series.

        Returns:
            Number of rows written
        """
        ordered = merge([], series)
        self.storage.write_text(self._relative_path(symbol), render_price_rows(ordered))
        return len(ordered)

    def save_prices(self, records: Iterable[PriceRecord]) -> int:
        """
        Merge records into their symbols' stored files.

        Returns:
            Number of symbols written
        """
        grouped: dict[str, list[PriceRecord]] = defaultdict(list)
        for record in records:
            grouped[record.symbol].append(record)

        for symbol, incoming in grouped.items():
            try:
                existing = self.load_series(symbol)
            except PriceHistoryNotFoundError:
                existing = []
            self.save_series(symbol, merge(existing, incoming))

        return len(grouped)

    def flush(self, store: Mapping[str, list[PriceRecord]]) -> int:
        """
        Persist a whole in-memory store, one full rewrite per symbol.

        Empty series are not written.

        Returns:
            Number of files written
        """
        written = 0
        for symbol, series in store.items():
            if not series:
                continue
            self.save_series(symbol, series)
            written += 1
        logger.info(f"Flushed price history for {written} symbols")
        return written
