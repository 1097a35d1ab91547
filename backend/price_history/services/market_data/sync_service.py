# backend/price_history/services/market_data/sync_service.py
"""
Price Sync Service for keeping the price store in step with the portfolio.

This service handles:
- Working out how far back each symbol's history must reach
- Fetching missing daily history, one symbol at a time
- Merging fetched records into the in-memory price store
- Persisting split and dividend events alongside the prices
- Flushing the whole store to disk once at the end of a pass

Design Principles:
- Dependency Injection: stores, fetcher and resolver injected via constructor
- No HTTP Knowledge: raises domain exceptions, not HTTPException
- Partial Success: each symbol ends in a tagged outcome; one failure never
  aborts the pass
- Idempotent: a symbol whose stored history already reaches its earliest
  transaction is not fetched again

Usage:
    from price_history.services.market_data.sync_service import PriceSyncService

    service = PriceSyncService(price_store, action_store, fetcher, resolver, source)
    summary = service.sync_all()

    if summary.status == "completed":
        print(f"Fetched {summary.records_fetched} records")
    else:
        print([o.reason for o in summary.failed])
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Literal

from price_history.schemas.transactions import Transaction
from price_history.services.exceptions import (
    MarketDataError,
    ParseError,
    PriceHistoryNotFoundError,
    TransactionsNotFoundError,
    UnsupportedExchangeError,
)
from price_history.services.market_data.base import ChartFetchResult, HistoryFetcher, PriceRecord
from price_history.services.splits import annotate_split_prices, backfill_unadjusted_close
from price_history.services.storage.corporate_actions import CorporateActionStore
from price_history.services.storage.price_store import (
    PriceStore,
    earliest_date,
    latest_date,
    merge,
)
from price_history.services.symbols import SymbolResolver
from price_history.services.transactions import (
    TransactionSource,
    earliest_transaction_date,
    group_by_symbol,
)

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["synced", "up_to_date", "skipped", "failed"]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class SymbolSyncOutcome:
    """Result of syncing a single symbol."""

    symbol: str
    status: OutcomeStatus
    provider_symbol: str | None = None
    records_fetched: int = 0
    from_date: date | None = None
    to_date: date | None = None
    reason: str | None = None


@dataclass
class SyncSummary:
    """Complete result of a sync pass."""

    started_at: datetime
    finished_at: datetime | None = None
    outcomes: list[SymbolSyncOutcome] = field(default_factory=list)

    @property
    def records_fetched(self) -> int:
        return sum(o.records_fetched for o in self.outcomes)

    @property
    def failed(self) -> list[SymbolSyncOutcome]:
        return [o for o in self.outcomes if o.status == "failed"]

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def status(self) -> str:
        """completed (nothing failed), failed (everything failed) or partial."""
        failed = len(self.failed)
        if failed == 0:
            return "completed"
        if failed == len(self.outcomes):
            return "failed"
        return "partial"


@dataclass
class SyncProgress:
    """Progress of a running pass, reported before each symbol and once at the end."""

    total: int
    completed: int
    current_symbol: str | None = None
    next_symbol: str | None = None


ProgressCallback = Callable[[SyncProgress], None]


# =============================================================================
# SERVICE
# =============================================================================

class PriceSyncService:
    """
    Orchestrates history fetches for every symbol in the portfolio.

    Args:
        price_store: Stored daily prices
        action_store: Stored splits and dividends
        fetcher: Upstream history fetcher
        resolver: Maps portfolio tickers to provider symbols
        transaction_source: Portfolio transactions
    """

    def __init__(
            self,
            price_store: PriceStore,
            action_store: CorporateActionStore,
            fetcher: HistoryFetcher,
            resolver: SymbolResolver,
            transaction_source: TransactionSource,
    ) -> None:
        self.price_store = price_store
        self.action_store = action_store
        self.fetcher = fetcher
        self.resolver = resolver
        self.transaction_source = transaction_source

        logger.info(f"PriceSyncService initialized with fetcher: {fetcher.name}")

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def sync_all(
            self,
            refresh_recent: bool = False,
            on_progress: ProgressCallback | None = None,
            today: date | None = None,
    ) -> SyncSummary:
        """
        Sync every symbol that appears in the transactions.

        For each symbol, sequentially:
        1. Resolve the provider symbol (unsupported exchange -> skipped)
        2. Skip the fetch if stored history already reaches the earliest
           transaction (up_to_date)
        3. Fetch [earliest transaction, today] and merge into the store
        4. Persist split and dividend events

        The merged store is flushed to disk once, after the last symbol.

        Args:
            refresh_recent: Also fetch [latest stored date, today] for
                symbols whose history already reaches back far enough
            on_progress: Called before each symbol and once at the end
            today: End of every fetch range (defaults to the current date)

        Returns:
            SyncSummary with one outcome per symbol

        Raises:
            TransactionsNotFoundError: No transactions to sync from
            ParseError: The transactions file is unreadable
        """
        today = today or date.today()
        summary = SyncSummary(started_at=datetime.now(timezone.utc))

        grouped = group_by_symbol(self.transaction_source.load())
        symbols = sorted(grouped)
        store = self.price_store.load_all(symbols)

        logger.info(f"Sync started for {len(symbols)} symbols (refresh_recent={refresh_recent})")

        for index, symbol in enumerate(symbols):
            if on_progress:
                on_progress(SyncProgress(
                    total=len(symbols),
                    completed=index,
                    current_symbol=symbol,
                    next_symbol=symbols[index + 1] if index + 1 < len(symbols) else None,
                ))
            summary.outcomes.append(
                self._sync_one(symbol, grouped[symbol], store, refresh_recent, today)
            )

        self.price_store.flush(store)

        if on_progress:
            on_progress(SyncProgress(total=len(symbols), completed=len(symbols)))

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Sync finished: status={summary.status}, "
            f"synced={summary.count('synced')}, "
            f"up_to_date={summary.count('up_to_date')}, "
            f"skipped={summary.count('skipped')}, "
            f"failed={summary.count('failed')}, "
            f"records={summary.records_fetched}"
        )
        return summary

    def sync_symbol(
            self,
            symbol: str,
            refresh_recent: bool = False,
            today: date | None = None,
    ) -> SymbolSyncOutcome:
        """
        Run the sync flow for one symbol and persist its series.

        Raises:
            TransactionsNotFoundError: The symbol has no transactions
        """
        symbol = symbol.strip().upper()
        today = today or date.today()

        transactions = group_by_symbol(self.transaction_source.load()).get(symbol)
        if not transactions:
            raise TransactionsNotFoundError(f"No transactions for '{symbol}'")

        try:
            store = {symbol: self.price_store.load_series(symbol)}
        except PriceHistoryNotFoundError:
            store = {symbol: []}

        outcome = self._sync_one(symbol, transactions, store, refresh_recent, today)
        if outcome.status == "synced":
            self.price_store.save_series(symbol, store[symbol])
        return outcome

    # =========================================================================
    # PER-SYMBOL FLOW
    # =========================================================================

    def _sync_one(
            self,
            symbol: str,
            transactions: list[Transaction],
            store: dict[str, list[PriceRecord]],
            refresh_recent: bool,
            today: date,
    ) -> SymbolSyncOutcome:
        """Sync one symbol into the in-memory store. Never raises for upstream or parse failures."""
        provider_symbol = None
        try:
            needed = earliest_transaction_date(transactions)
            resolved = self.resolver.resolve(symbol)
            provider_symbol = resolved.provider_symbol

            series = store.get(symbol, [])
            stored_from = earliest_date(series)

            if stored_from is not None and stored_from <= needed:
                stored_to = latest_date(series)
                if not refresh_recent or stored_to >= today:
                    logger.debug(f"{symbol}: stored history from {stored_from} covers {needed}")
                    return SymbolSyncOutcome(
                        symbol=symbol,
                        status="up_to_date",
                        provider_symbol=provider_symbol,
                    )
                start = stored_to
            else:
                start = needed

            result = self.fetcher.fetch_history(provider_symbol, symbol, start, today)
            merged = merge(series, result.prices)
            store[symbol] = self._persist_corporate_actions(symbol, result, merged)

            logger.info(
                f"{symbol}: fetched {result.days_fetched} days "
                f"({result.actual_from_date} to {result.actual_to_date})"
            )
            return SymbolSyncOutcome(
                symbol=symbol,
                status="synced",
                provider_symbol=provider_symbol,
                records_fetched=result.days_fetched,
                from_date=result.actual_from_date,
                to_date=result.actual_to_date,
            )

        except UnsupportedExchangeError as e:
            logger.info(f"{symbol}: skipped ({e})")
            return SymbolSyncOutcome(symbol=symbol, status="skipped", reason=str(e))

        except (MarketDataError, ParseError) as e:
            logger.error(f"{symbol}: sync failed: {e}")
            return SymbolSyncOutcome(
                symbol=symbol,
                status="failed",
                provider_symbol=provider_symbol,
                reason=str(e),
            )

    def _persist_corporate_actions(
            self,
            symbol: str,
            result: ChartFetchResult,
            series: list[PriceRecord],
    ) -> list[PriceRecord]:
        """
        Store fetched splits and dividends.

        Returns:
            The series with split_unadjusted_close filled in where it was missing
        """
        if result.dividends:
            self.action_store.save_dividends(symbol, result.dividends)

        splits = self.action_store.load_splits(symbol)
        if result.splits:
            by_date = {split.date: split for split in splits}
            by_date.update({split.date: split for split in result.splits})
            splits = self.action_store.save_splits(
                symbol, annotate_split_prices(list(by_date.values()), series)
            )

        return backfill_unadjusted_close(series, splits)
