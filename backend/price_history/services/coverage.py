# backend/price_history/services/coverage.py
"""
Coverage analysis of the price store.

For every symbol with transactions inside the lookback window, measures how
much of the window is covered by stored prices:

    window_start      earliest transaction date inside the window
    total_days        weekdays in [window_start, today]
    missing_days      those weekdays with no stored price
    coverage_percent  (total_days - missing_days) / total_days * 100

Weekdays stand in for trading days, so exchange holidays count as missing
and no symbol on a non-US calendar reaches exactly 100%. The status
thresholds leave room for that.

Everything here is read-only except save_reports().
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Mapping

from price_history.schemas.coverage import (
    CoverageRecord,
    CoverageReport,
    ReadinessStats,
    SplitHistoryEntry,
)
from price_history.services.constants import (
    COVERAGE_COMPLETE_THRESHOLD,
    COVERAGE_PARTIAL_THRESHOLD,
    DEFAULT_LOOKBACK_YEARS,
    STATUS_COMPLETE,
    STATUS_MISSING,
    STATUS_PARTIAL,
)
from price_history.services.exceptions import ConfigError, ParseError, TransactionsNotFoundError
from price_history.services.market_data.base import PriceRecord
from price_history.services.storage.corporate_actions import CorporateActionStore
from price_history.services.storage.price_store import PriceStore, align_symbols
from price_history.services.storage.snapshots import SnapshotStore
from price_history.services.symbols import split_exchange
from price_history.services.transactions import TransactionSource, group_by_symbol
from price_history.utils.date_utils import get_business_days, subtract_years

logger = logging.getLogger(__name__)

COVERAGE_REPORT_NAME = "coverage"
READINESS_REPORT_NAME = "readiness"

HUNDRED = Decimal(100)


def coverage_percent(total_days: int, missing_days: int) -> Decimal:
    """Covered share of total_days as a percentage; 0 when total_days is 0."""
    if total_days <= 0:
        return Decimal(0)
    return Decimal(total_days - missing_days) / Decimal(total_days) * HUNDRED


def coverage_status(percent: Decimal) -> str:
    if percent >= COVERAGE_COMPLETE_THRESHOLD:
        return STATUS_COMPLETE
    if percent >= COVERAGE_PARTIAL_THRESHOLD:
        return STATUS_PARTIAL
    return STATUS_MISSING


class CoverageAnalyzer:
    """
    Computes coverage records, readiness stats and split history.

    Args:
        price_store: Stored daily prices
        action_store: Stored splits and dividends
        transaction_source: Portfolio transactions
        snapshot_store: Where reports are saved (optional)
        lookback_years: Size of the window measured back from today
    """

    def __init__(
            self,
            price_store: PriceStore,
            action_store: CorporateActionStore,
            transaction_source: TransactionSource,
            snapshot_store: SnapshotStore | None = None,
            lookback_years: int = DEFAULT_LOOKBACK_YEARS,
    ) -> None:
        self.price_store = price_store
        self.action_store = action_store
        self.transaction_source = transaction_source
        self.snapshot_store = snapshot_store
        self.lookback_years = lookback_years

    # =========================================================================
    # COVERAGE
    # =========================================================================

    def compute(
            self,
            include_completeness: bool = True,
            today: date | None = None,
            store: dict[str, list[PriceRecord]] | None = None,
    ) -> list[CoverageRecord]:
        """
        Coverage record per symbol with transactions in the lookback window.

        Args:
            include_completeness: When False, skip the per-day scan; any
                symbol with at least one stored price counts as complete
            today: End of the window (defaults to the current date)
            store: Preloaded price store (loaded from disk when omitted).
                Re-keyed in place under the transaction symbols.

        Returns:
            Records sorted by ticker. Empty when no transactions exist.
        """
        today = today or date.today()
        window_floor = subtract_years(today, self.lookback_years)

        try:
            transactions = self.transaction_source.load()
        except TransactionsNotFoundError:
            logger.info("No transactions available, coverage report is empty")
            return []

        grouped = group_by_symbol(transactions)
        if store is None:
            store = self.price_store.load_all(grouped)
        else:
            align_symbols(store, grouped)

        records: list[CoverageRecord] = []
        for symbol, symbol_txns in sorted(grouped.items()):
            try:
                txn_dates = [txn.parsed_date() for txn in symbol_txns]
            except ParseError as e:
                logger.warning(f"Skipping coverage for {symbol}: {e}")
                continue

            in_window = [d for d in txn_dates if window_floor <= d <= today]
            if not in_window:
                continue

            currency = next((txn.currency for txn in symbol_txns if txn.currency), None)
            records.append(self._coverage_for(
                symbol,
                min(in_window),
                today,
                store.get(symbol) or [],
                currency,
                include_completeness,
            ))

        return records

    def _coverage_for(
            self,
            symbol: str,
            window_start: date,
            today: date,
            series: list[PriceRecord],
            currency: str | None,
            include_completeness: bool,
    ) -> CoverageRecord:
        stored_dates = {record.date for record in series}
        business_days = get_business_days(window_start, today)
        total_days = len(business_days)

        if include_completeness:
            missing_days = sum(1 for d in business_days if d not in stored_dates)
            percent = coverage_percent(total_days, missing_days)
            status = coverage_status(percent)
        elif stored_dates:
            missing_days, percent, status = 0, HUNDRED, STATUS_COMPLETE
        else:
            missing_days, percent, status = total_days, Decimal(0), STATUS_MISSING

        splits = self.action_store.load_splits(symbol)

        return CoverageRecord(
            ticker=symbol,
            exchange=split_exchange(symbol)[0],
            currency=currency,
            earliest_transaction=window_start,
            earliest_price=min(stored_dates) if stored_dates else None,
            latest_price=max(stored_dates) if stored_dates else None,
            total_days=total_days,
            missing_days=missing_days,
            coverage_percent=round(float(percent), 2),
            split_count=len(splits),
            last_split=splits[-1].date if splits else None,
            status=status,
        )

    # =========================================================================
    # READINESS
    # =========================================================================

    @staticmethod
    def readiness_stats(
            records: list[CoverageRecord],
            store: Mapping[str, list[PriceRecord]],
    ) -> ReadinessStats:
        """Counts per status plus row count and date bounds of the whole store."""
        all_dates = [record.date for series in store.values() for record in series]
        return ReadinessStats(
            total_stocks=len(records),
            complete_data=sum(1 for r in records if r.status == STATUS_COMPLETE),
            partial_data=sum(1 for r in records if r.status == STATUS_PARTIAL),
            missing_data=sum(1 for r in records if r.status == STATUS_MISSING),
            total_price_records=len(all_dates),
            oldest_date=min(all_dates, default=None),
            newest_date=max(all_dates, default=None),
        )

    def report(self, include_completeness: bool = True, today: date | None = None) -> CoverageReport:
        """Coverage records and readiness stats from a single store load."""
        store = self.price_store.load_all()
        records = self.compute(include_completeness, today=today, store=store)
        return CoverageReport(
            generated_at=datetime.now(timezone.utc),
            lookback_years=self.lookback_years,
            include_completeness=include_completeness,
            records=records,
            stats=self.readiness_stats(records, store),
        )

    def save_reports(self, report: CoverageReport) -> list[str]:
        """
        Persist reports/coverage.json and reports/readiness.json.

        Returns:
            Relative paths written
        """
        if self.snapshot_store is None:
            raise ConfigError(
                "CoverageAnalyzer has no snapshot store to save reports to",
                setting="snapshot_store",
            )

        written = [
            self.snapshot_store.save_report(COVERAGE_REPORT_NAME, report.model_dump(mode="json")),
            self.snapshot_store.save_report(
                READINESS_REPORT_NAME, report.stats.model_dump(mode="json")
            ),
        ]
        logger.info(f"Saved coverage report for {len(report.records)} symbols")
        return written

    # =========================================================================
    # SPLIT HISTORY
    # =========================================================================

    def split_history(self) -> list[SplitHistoryEntry]:
        """Every stored split across all symbols, newest first."""
        return [
            SplitHistoryEntry(
                ticker=symbol,
                date=split.date,
                ratio=split.ratio,
                numerator=split.numerator,
                denominator=split.denominator,
                ratio_factor=split.ratio_factor,
                before_price=split.before_price,
                after_price=split.after_price,
            )
            for symbol, split in self.action_store.split_history()
        ]
