# backend/price_history/schemas/coverage.py
"""
Pydantic schemas for coverage and readiness reporting.

These schemas handle:
- Per-symbol coverage of the lookback window
- Store-wide readiness statistics
- Split history listings
"""

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

CoverageStatus = Literal["complete", "partial", "missing"]


# =============================================================================
# COVERAGE SCHEMAS
# =============================================================================

class CoverageRecord(BaseModel):
    """Coverage of one symbol's lookback window by stored prices."""

    ticker: str
    exchange: str | None = None
    currency: str | None = None
    earliest_transaction: dt.date = Field(
        ...,
        description="Earliest transaction inside the lookback window (window start)"
    )
    earliest_price: dt.date | None = Field(default=None, description="Oldest stored price date")
    latest_price: dt.date | None = Field(default=None, description="Newest stored price date")
    total_days: int = Field(..., ge=0, description="Weekdays from window start to today")
    missing_days: int = Field(..., ge=0, description="Weekdays without a stored price")
    coverage_percent: float = Field(..., ge=0, le=100)
    split_count: int = Field(default=0, ge=0)
    last_split: dt.date | None = None
    status: CoverageStatus


class ReadinessStats(BaseModel):
    """Store-wide summary of coverage."""

    total_stocks: int = 0
    complete_data: int = 0
    partial_data: int = 0
    missing_data: int = 0
    total_price_records: int = 0
    oldest_date: dt.date | None = None
    newest_date: dt.date | None = None


class CoverageReport(BaseModel):
    """Coverage records plus readiness stats, as persisted under reports/."""

    generated_at: dt.datetime
    lookback_years: int
    include_completeness: bool = True
    records: list[CoverageRecord] = Field(default_factory=list)
    stats: ReadinessStats


# =============================================================================
# SPLIT HISTORY SCHEMAS
# =============================================================================

class SplitHistoryEntry(BaseModel):
    """One stored split, for display."""

    ticker: str
    date: dt.date
    ratio: str = Field(..., examples=["2:1", "1:10"])
    numerator: Decimal
    denominator: Decimal
    ratio_factor: float
    before_price: Decimal | None = None
    after_price: Decimal | None = None
