# backend/price_history/services/constants.py
"""
Centralized constants for the price history services.

This module provides a single source of truth for file layouts, coverage
thresholds and provider tags used across the application.

Usage:
    from price_history.services.constants import (
        PRICE_FILE_HEADER,
        COVERAGE_COMPLETE_THRESHOLD,
    )
"""

from decimal import Decimal


# =============================================================================
# STORAGE LAYOUT
# =============================================================================

PRICES_DIR = "prices"
SPLITS_DIR = "splits"
DIVIDENDS_DIR = "dividends"
META_DIR = "yahoo_metas"
NAV_DIR = "nav"
NAV_SNAPSHOTS_DIR = "nav_snapshots"
POSITION_SNAPSHOTS_DIR = "position_snapshots"
REPORTS_DIR = "reports"

PRICE_FILE_COLUMNS: tuple[str, ...] = (
    "date",
    "close",
    "open",
    "high",
    "low",
    "volume",
    "adjusted_close",
    "split_unadjusted_close",
    "source",
    "updated_at",
)
PRICE_FILE_HEADER = ",".join(PRICE_FILE_COLUMNS)

SPLIT_FILE_COLUMNS: tuple[str, ...] = (
    "date",
    "numerator",
    "denominator",
    "ratio",
    "before_price",
    "after_price",
    "updated_at",
)

DIVIDEND_FILE_COLUMNS: tuple[str, ...] = ("ex_date", "amount", "currency", "updated_at")

NAV_FILE_COLUMNS: tuple[str, ...] = (
    "date",
    "close",
    "shares",
    "position_value",
    "currency",
    "symbol",
)

# Rows read from the head of a newest-first price file for latest-price lookups
PRICE_HEAD_LINES: int = 8


# =============================================================================
# PROVIDER
# =============================================================================

PROVIDER_NAME = "yahoo"
SOURCE_YAHOO = "yahoo_finance"
SOURCE_MANUAL = "manual"

DEFAULT_REQUEST_TIMEOUT: float = 10.0


# =============================================================================
# COVERAGE
# =============================================================================

DEFAULT_LOOKBACK_YEARS: int = 15

# Coverage percent at or above which a symbol's history counts as complete
COVERAGE_COMPLETE_THRESHOLD: Decimal = Decimal("95")

# Coverage percent at or above which a symbol's history counts as partial
COVERAGE_PARTIAL_THRESHOLD: Decimal = Decimal("50")

STATUS_COMPLETE = "complete"
STATUS_PARTIAL = "partial"
STATUS_MISSING = "missing"


# =============================================================================
# TRANSACTIONS
# =============================================================================

BUY_TYPES = frozenset({"buy", "purchase"})
SELL_TYPES = frozenset({"sell", "sale"})
DIVIDEND_TYPES = frozenset({"dividend", "div"})
SPLIT_MARKER = "split"
