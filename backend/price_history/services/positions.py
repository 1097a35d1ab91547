# backend/price_history/services/positions.py
"""
Position timelines, position summaries and NAV snapshots.

A position timeline replays a symbol's transactions against its price series:

    prices        2020-01-01 close=100    2020-06-01 close=120
    transactions  buy 10 @ 2020-01-01     sell 4 @ 2020-06-01
    timeline      (2020-01-01, 100, 10)   (2020-06-01, 120, 6)

Transactions dated on or before a price date are applied before that date is
emitted. Share counts come from the transactions as traded, so the timeline
pairs them with the close as quoted on each date, not the split-adjusted
close the provider returns.

Usage:
    service = PositionService(price_store, action_store, snapshot_store, source)
    rows = service.write_nav("2330:TWSE")
    name, snapshot = service.save_nav_snapshot()
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Sequence

from price_history.schemas.positions import (
    NavSnapshot,
    NavSnapshotEntry,
    PositionSnapshot,
    PositionSummary,
)
from price_history.schemas.transactions import Transaction
from price_history.services.exceptions import (
    ParseError,
    PriceHistoryNotFoundError,
    TransactionsNotFoundError,
)
from price_history.services.market_data.base import PriceRecord, SplitEvent
from price_history.services.splits import forward_adjust
from price_history.services.storage.corporate_actions import CorporateActionStore
from price_history.services.storage.price_store import PriceStore
from price_history.services.storage.snapshots import NavRow, SnapshotStore
from price_history.services.transactions import TransactionSource, group_by_symbol, sort_by_date

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
ONE = Decimal(1)


@dataclass(frozen=True)
class PositionTimelinePoint:
    """Shares held and the quoted close on one price date."""

    date: date
    close: Decimal
    shares: Decimal

    @property
    def position_value(self) -> Decimal:
        return self.close * self.shares


# =============================================================================
# TIMELINE
# =============================================================================

def apply_transaction(shares: Decimal, txn: Transaction) -> Decimal:
    """Share count after one transaction. Types other than buy/sell/split leave it unchanged."""
    if txn.is_buy:
        return shares + txn.quantity
    if txn.is_sell:
        return max(ZERO, shares - txn.quantity)
    if txn.is_split:
        ratio = txn.split_ratio if txn.split_ratio > 0 else ONE
        return shares * ratio
    return shares


def build_position_timeline(
        prices: Sequence[tuple[date, Decimal]],
        transactions: Sequence[tuple[date, Transaction]],
) -> list[PositionTimelinePoint]:
    """
    Walk prices and transactions in lockstep.

    Args:
        prices: (date, close) pairs, oldest first
        transactions: (date, transaction) pairs, oldest first

    Returns:
        One point per price date, oldest first
    """
    timeline: list[PositionTimelinePoint] = []
    shares = ZERO
    pending = 0

    for price_date, close in prices:
        while pending < len(transactions) and transactions[pending][0] <= price_date:
            shares = apply_transaction(shares, transactions[pending][1])
            pending += 1
        timeline.append(PositionTimelinePoint(date=price_date, close=close, shares=shares))

    return timeline


def quoted_closes(series: Sequence[PriceRecord], splits: Sequence[SplitEvent]) -> list[tuple[date, Decimal]]:
    """
    (date, close as quoted) pairs, oldest first.

    Uses the stored split_unadjusted_close and falls back to forward
    adjustment for records that lack one.
    """
    adjusted = {record.date: record.close for record in forward_adjust(series, splits)}
    pairs = [
        (
            record.date,
            record.split_unadjusted_close
            if record.split_unadjusted_close is not None
            else adjusted[record.date],
        )
        for record in series
    ]
    return sorted(pairs, key=lambda pair: pair[0])


# =============================================================================
# POSITION SUMMARY
# =============================================================================

def summarize_positions(transactions: Iterable[Transaction]) -> list[PositionSummary]:
    """
    Replay all transactions per symbol and currency.

    Average cost tracks the remaining cost basis; sells realize proceeds minus
    the average cost of the shares sold, dividends are realized as paid.
    Symbols with a malformed transaction date are left out.

    Returns:
        Summaries, most recently traded first
    """
    grouped: dict[tuple[str, str], list[Transaction]] = defaultdict(list)
    for txn in transactions:
        if txn.symbol:
            grouped[(txn.symbol, txn.currency)].append(txn)

    summaries: list[tuple[date, PositionSummary]] = []
    for (symbol, currency), txns in grouped.items():
        try:
            dated = sort_by_date(txns)
        except ParseError as e:
            logger.warning(f"Skipping position summary for {symbol}: {e}")
            continue

        shares = invested = remaining_cost = average_cost = realized = dividends = ZERO
        for _, txn in dated:
            if txn.is_buy:
                cost = txn.quantity * txn.price + txn.fees
                invested += cost
                remaining_cost += cost
                shares += txn.quantity
                average_cost = remaining_cost / shares if shares > 0 else ZERO
            elif txn.is_sell:
                cost_basis = min(remaining_cost, average_cost * txn.quantity)
                proceeds = txn.quantity * txn.price - txn.fees
                shares = max(ZERO, shares - txn.quantity)
                remaining_cost = max(ZERO, remaining_cost - cost_basis)
                average_cost = remaining_cost / shares if shares > 0 else ZERO
                realized += proceeds - cost_basis
            elif txn.is_dividend:
                payout = txn.quantity * txn.price
                realized += payout
                dividends += payout
            elif txn.is_split and txn.split_ratio > 0 and shares > 0:
                shares *= txn.split_ratio
                average_cost /= txn.split_ratio
                remaining_cost = average_cost * shares

        summaries.append((dated[-1][0], PositionSummary(
            symbol=symbol,
            currency=currency,
            shares=shares,
            invested=invested,
            remaining_cost=remaining_cost,
            average_cost=average_cost,
            realized_pnl=realized,
            dividends=dividends,
            last_transaction=dated[-1][1].date,
            status="Active" if shares > 0 else "Closed",
        )))

    summaries.sort(key=lambda item: (item[0], item[1].symbol), reverse=True)
    return [summary for _, summary in summaries]


# =============================================================================
# SERVICE
# =============================================================================

class PositionService:
    """
    Builds and persists NAV series and snapshots.

    Args:
        price_store: Stored daily prices
        action_store: Stored splits and dividends
        snapshot_store: Where NAV files and snapshots are written
        transaction_source: Portfolio transactions
    """

    def __init__(
            self,
            price_store: PriceStore,
            action_store: CorporateActionStore,
            snapshot_store: SnapshotStore,
            transaction_source: TransactionSource,
    ) -> None:
        self.price_store = price_store
        self.action_store = action_store
        self.snapshot_store = snapshot_store
        self.transaction_source = transaction_source

    def _transactions(self) -> list[Transaction]:
        try:
            return self.transaction_source.load()
        except TransactionsNotFoundError:
            return []

    def timeline_for_symbol(self, symbol: str) -> list[NavRow]:
        """
        A symbol's position timeline from its first transaction, oldest first.

        Empty when the symbol has no transactions or no stored prices.

        Raises:
            ParseError: If one of the symbol's transaction dates is malformed
        """
        symbol = symbol.strip().upper()
        symbol_txns = group_by_symbol(self._transactions()).get(symbol, [])
        if not symbol_txns:
            return []

        dated = sort_by_date(symbol_txns)
        first_date = dated[0][0]
        currency = next((txn.currency for _, txn in dated if txn.currency), "")

        try:
            series = self.price_store.load_series(symbol)
        except PriceHistoryNotFoundError:
            return []

        in_range = [record for record in series if record.date >= first_date]
        closes = quoted_closes(in_range, self.action_store.load_splits(symbol))

        return [
            NavRow(
                date=point.date,
                close=point.close,
                shares=point.shares,
                position_value=point.position_value,
                currency=currency,
                symbol=symbol,
            )
            for point in build_position_timeline(closes, dated)
        ]

    def write_nav(self, symbol: str) -> list[NavRow]:
        """Rebuild nav/{symbol}.csv and return the rows, oldest first."""
        rows = self.timeline_for_symbol(symbol)
        self.snapshot_store.write_nav(symbol, rows)
        logger.info(f"Wrote {len(rows)} NAV rows for {symbol}")
        return rows

    def read_nav(self, symbol: str) -> list[NavRow]:
        return self.snapshot_store.read_nav(symbol.strip().upper())

    def summarize(self) -> list[PositionSummary]:
        return summarize_positions(self._transactions())

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def _snapshot_entry(self, summary: PositionSummary) -> NavSnapshotEntry:
        latest = self.price_store.latest_price(summary.symbol)
        price = None
        if latest is not None:
            price = latest.split_unadjusted_close if latest.split_unadjusted_close is not None else latest.close

        return NavSnapshotEntry(
            symbol=summary.symbol,
            currency=summary.currency,
            shares=summary.shares,
            average_cost=summary.average_cost,
            latest_price=price,
            latest_price_date=latest.date if latest else None,
            market_value=summary.shares * price if price is not None else ZERO,
            status=summary.status,
            last_transaction=summary.last_transaction,
        )

    def build_nav_snapshot(self, now: datetime | None = None) -> NavSnapshot:
        """Current positions valued at their latest stored price."""
        entries = [self._snapshot_entry(summary) for summary in self.summarize()]

        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in entries:
            if entry.status == "Active":
                totals[entry.currency] += entry.market_value

        return NavSnapshot(
            timestamp=now or datetime.now(timezone.utc),
            entries=entries,
            total_value_by_currency=dict(totals),
        )

    def save_nav_snapshot(self, now: datetime | None = None) -> tuple[str, NavSnapshot]:
        """Build and store a NAV snapshot. Returns its name and content."""
        snapshot = self.build_nav_snapshot(now)
        name = self.snapshot_store.save_nav_snapshot(
            snapshot.model_dump(mode="json"), taken_at=snapshot.timestamp
        )
        return name, snapshot

    def save_position_snapshots(self, now: datetime | None = None) -> int:
        """Store one position snapshot per symbol. Returns the number written."""
        now = now or datetime.now(timezone.utc)
        written = 0
        for entry in self.build_nav_snapshot(now).entries:
            snapshot = PositionSnapshot(timestamp=now, **entry.model_dump())
            self.snapshot_store.save_position_snapshot(entry.symbol, snapshot.model_dump(mode="json"))
            written += 1
        logger.info(f"Saved {written} position snapshots")
        return written

    def load_position_snapshot(self, symbol: str) -> PositionSnapshot | None:
        payload = self.snapshot_store.load_position_snapshot(symbol.strip().upper())
        return PositionSnapshot.model_validate(payload) if payload else None
