# backend/price_history/schemas/transactions.py
"""
Pydantic schema for portfolio transactions.

Transactions arrive already parsed from a brokerage export, with every field
as a string:

    {"date": "2024-01-15", "stock": "2330:TWSE", "type": "Buy",
     "quantity": "1000", "price": "580", "fees": "", "split_ratio": "",
     "currency": "TWD"}

Validation here is deliberately lenient:
- Blank or unparseable numbers degrade to defaults (0, split ratio 1)
- The date is kept as written and parsed on demand with parsed_date(), so a
  malformed date only affects the symbol it belongs to

IMPORTANT: All quantities and prices use Decimal for precision.
"""

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from price_history.services.constants import (
    BUY_TYPES,
    DIVIDEND_TYPES,
    SELL_TYPES,
    SPLIT_MARKER,
)
from price_history.utils.date_utils import parse_date
from price_history.utils.numbers import to_decimal


class Transaction(BaseModel):
    """A single portfolio transaction."""

    date: str = Field(
        default="",
        description="Trade date as written in the source (parsed per symbol)",
        examples=["2024-01-15"],
    )
    symbol: str = Field(
        ...,
        validation_alias=AliasChoices("stock", "symbol"),
        description="Portfolio ticker, optionally with an exchange code",
        examples=["NASDAQ:AAPL", "2330:TWSE"],
    )
    transaction_type: str = Field(
        default="",
        validation_alias=AliasChoices("type", "transaction_type"),
        description="buy, purchase, sell, sale, split, dividend, div, ...",
    )
    quantity: Decimal = Field(default=Decimal(0))
    price: Decimal = Field(default=Decimal(0))
    fees: Decimal = Field(default=Decimal(0))
    split_ratio: Decimal = Field(default=Decimal(1))
    currency: str = Field(default="")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # =========================================================================
    # VALIDATORS
    # =========================================================================

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("transaction_type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> str:
        return str(v or "").strip().lower()

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: Any) -> str:
        return str(v or "").strip().upper()

    @field_validator("date", mode="before")
    @classmethod
    def keep_raw_date(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, dt.date):
            return v.isoformat()
        return str(v).strip()

    @field_validator("quantity", "price", "fees", mode="before")
    @classmethod
    def lenient_number(cls, v: Any) -> Decimal:
        return to_decimal(v) or Decimal(0)

    @field_validator("split_ratio", mode="before")
    @classmethod
    def lenient_split_ratio(cls, v: Any) -> Decimal:
        return to_decimal(v) or Decimal(1)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def parsed_date(self) -> dt.date:
        """
        The trade date.

        Raises:
            ParseError: If the raw date matches no accepted format
        """
        return parse_date(self.date, source=self.symbol)

    @property
    def is_buy(self) -> bool:
        return self.transaction_type in BUY_TYPES

    @property
    def is_sell(self) -> bool:
        return self.transaction_type in SELL_TYPES

    @property
    def is_dividend(self) -> bool:
        return self.transaction_type in DIVIDEND_TYPES

    @property
    def is_split(self) -> bool:
        return SPLIT_MARKER in self.transaction_type
