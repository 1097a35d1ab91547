# backend/price_history/services/market_data/base.py
"""
Data classes and the abstract interface for history fetchers.

This module defines the records that flow between the fetcher, the stores and
the analytics services, plus the contract every history fetcher follows.
Using an abstract base class allows for:
- Mock implementations for testing
- Swapping the upstream chart API without touching the orchestrator

Records are immutable (frozen dataclasses). Services that adjust a record
build a new one with dataclasses.replace().
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from price_history.services.constants import SOURCE_YAHOO
from price_history.utils.numbers import format_decimal

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES - PRICES
# =============================================================================

@dataclass(frozen=True)
class PriceRecord:
    """
    One trading day of price data for a symbol.

    Attributes:
        symbol: Canonical portfolio symbol (e.g., "2330:TWSE")
        date: Trading date (no time component)
        close: Closing price as delivered by the provider (split-adjusted)
        open: Opening price (optional)
        high: Highest price (optional)
        low: Lowest price (optional)
        volume: Shares traded (optional)
        adjusted_close: Close adjusted for splits and dividends (optional)
        split_unadjusted_close: Close as actually quoted on that date (optional)
        source: Origin tag (e.g., "yahoo_finance", "manual")
        updated_at: ISO timestamp of the write that produced this record
    """

    symbol: str
    date: date
    close: Decimal
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    volume: int | None = None
    adjusted_close: Decimal | None = None
    split_unadjusted_close: Decimal | None = None
    source: str = SOURCE_YAHOO
    updated_at: str | None = None


# =============================================================================
# DATA CLASSES - CORPORATE ACTIONS
# =============================================================================

@dataclass(frozen=True)
class SplitEvent:
    """
    A stock split.

    A split of numerator:denominator multiplies the share count by
    numerator/denominator and divides pre-split prices by the same factor.
    Build instances with price_history.services.splits.make_split(), which
    clamps malformed parts to a 1:1 no-op.

    Attributes:
        date: Effective (ex) date
        numerator: New shares per `denominator` old shares
        denominator: Old shares
        before_price: Last quoted close before the split (optional)
        after_price: First quoted close on/after the split (optional)
    """

    date: date
    numerator: Decimal
    denominator: Decimal
    before_price: Decimal | None = None
    after_price: Decimal | None = None

    @property
    def factor(self) -> Decimal:
        """numerator / denominator."""
        return self.numerator / self.denominator

    @property
    def ratio(self) -> str:
        """Ratio as "numerator:denominator" (e.g., "2:1", "1:10")."""
        return f"{format_decimal(self.numerator)}:{format_decimal(self.denominator)}"

    @property
    def ratio_factor(self) -> float:
        return float(self.factor)


@dataclass(frozen=True)
class DividendEvent:
    """
    A cash dividend.

    Attributes:
        ex_date: Ex-dividend date
        amount: Amount per share
        currency: ISO 4217 currency of the amount
        updated_at: ISO timestamp of the write that produced this record
    """

    ex_date: date
    amount: Decimal
    currency: str
    updated_at: str | None = None


# =============================================================================
# DATA CLASSES - FETCH RESULTS
# =============================================================================

@dataclass
class ChartFetchResult:
    """
    Result of one history request.

    Attributes:
        symbol: Canonical portfolio symbol the records are labeled with
        provider_symbol: Symbol sent to the provider
        start_date: Requested start date (inclusive)
        end_date: Requested end date (inclusive)
        prices: Records within the range, oldest first
        dividends: Dividends within the range, newest first, one per ex-date
        splits: Split events from the payload, oldest first
        currency: Trading currency reported by the provider
        meta: Provider metadata blob, verbatim
    """

    symbol: str
    provider_symbol: str
    start_date: date
    end_date: date
    prices: list[PriceRecord] = field(default_factory=list)
    dividends: list[DividendEvent] = field(default_factory=list)
    splits: list[SplitEvent] = field(default_factory=list)
    currency: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def days_fetched(self) -> int:
        """Number of trading days fetched."""
        return len(self.prices)

    @property
    def actual_from_date(self) -> date | None:
        return min((p.date for p in self.prices), default=None)

    @property
    def actual_to_date(self) -> date | None:
        return max((p.date for p in self.prices), default=None)


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class HistoryFetcher(ABC):
    """
    Abstract base class for daily history fetchers.

    A fetcher issues exactly one upstream request per call; it never retries.
    Failures are raised as FetchError (or a subclass) and are handled by the
    caller per symbol.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this provider.

        Used for logging and error messages.
        """
        pass

    @abstractmethod
    def fetch_history(
            self,
            provider_symbol: str,
            symbol: str,
            start_date: date,
            end_date: date,
    ) -> ChartFetchResult:
        """
        Fetch daily history and corporate actions for one symbol.

        Args:
            provider_symbol: Symbol in the provider's notation (e.g., "2330.TW")
            symbol: Canonical portfolio symbol used to label the records
            start_date: Start date (inclusive)
            end_date: End date (inclusive)

        Returns:
            ChartFetchResult with prices, dividends, splits and metadata

        Raises:
            FetchError: Empty body, non-success status, schema mismatch
            ProviderUnavailableError: Transport failure or timeout
        """
        pass
