# backend/price_history/schemas/prices.py
"""
Pydantic schemas for stored prices and corporate actions.

IMPORTANT: All prices use Decimal for precision.
"""

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PriceRecordResponse(BaseModel):
    """One stored trading day."""

    date: dt.date
    close: Decimal = Field(..., description="Provider close (split-adjusted)")
    open: Decimal | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    volume: int | None = None
    adjusted_close: Decimal | None = None
    split_unadjusted_close: Decimal | None = Field(
        default=None,
        description="Close as quoted on the date"
    )
    source: str
    updated_at: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PriceSeriesResponse(BaseModel):
    """A symbol's stored history, newest first."""

    symbol: str
    count: int
    prices: list[PriceRecordResponse] = Field(default_factory=list)


class DividendResponse(BaseModel):
    ex_date: dt.date
    amount: Decimal
    currency: str
    updated_at: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SplitResponse(BaseModel):
    date: dt.date
    ratio: str
    numerator: Decimal
    denominator: Decimal
    ratio_factor: float
    before_price: Decimal | None = None
    after_price: Decimal | None = None

    model_config = ConfigDict(from_attributes=True)


class ProviderMetadataResponse(BaseModel):
    """The provider's metadata blob for a symbol, verbatim."""

    symbol: str
    meta: dict[str, Any] = Field(default_factory=dict)
