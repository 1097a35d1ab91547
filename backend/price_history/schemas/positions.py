# backend/price_history/schemas/positions.py
"""
Pydantic schemas for positions, NAV series and snapshots.

Market values are in each position's own trading currency. Nothing here is
converted to a base currency.
"""

import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

PositionStatus = Literal["Active", "Closed"]


# =============================================================================
# TIMELINE SCHEMAS
# =============================================================================

class NavPointResponse(BaseModel):
    """One day of a symbol's position value."""

    date: dt.date
    close: Decimal = Field(..., description="Close as quoted on the date")
    shares: Decimal
    position_value: Decimal
    currency: str = ""
    symbol: str


class PositionTimelineResponse(BaseModel):
    """A symbol's position timeline, oldest first."""

    symbol: str
    currency: str = ""
    points: list[NavPointResponse] = Field(default_factory=list)


# =============================================================================
# POSITION SUMMARY SCHEMAS
# =============================================================================

class PositionSummary(BaseModel):
    """Replay of every transaction for one symbol and currency."""

    symbol: str
    currency: str = ""
    shares: Decimal = Decimal(0)
    invested: Decimal = Field(default=Decimal(0), description="Total cost of all buys, fees included")
    remaining_cost: Decimal = Field(default=Decimal(0), description="Cost basis of shares still held")
    average_cost: Decimal = Decimal(0)
    realized_pnl: Decimal = Field(default=Decimal(0), description="Sale gains plus dividends")
    dividends: Decimal = Decimal(0)
    last_transaction: str | None = None
    status: PositionStatus = "Closed"


# =============================================================================
# SNAPSHOT SCHEMAS
# =============================================================================

class NavSnapshotEntry(BaseModel):
    """One position inside a NAV snapshot."""

    symbol: str
    currency: str = ""
    shares: Decimal
    average_cost: Decimal
    latest_price: Decimal | None = None
    latest_price_date: dt.date | None = None
    market_value: Decimal = Decimal(0)
    status: PositionStatus
    last_transaction: str | None = None


class NavSnapshot(BaseModel):
    """Portfolio NAV at a point in time, totalled per currency."""

    timestamp: dt.datetime
    entries: list[NavSnapshotEntry] = Field(default_factory=list)
    total_value_by_currency: dict[str, Decimal] = Field(default_factory=dict)


class PositionSnapshot(NavSnapshotEntry):
    """A single position at a point in time."""

    timestamp: dt.datetime


class SnapshotSavedResponse(BaseModel):
    """Reference to a saved snapshot."""

    name: str
    entries: int = 0
