# backend/price_history/services/symbols.py
"""
Symbol resolution for portfolio tickers.

Portfolio tickers carry an optional exchange code on either side of a colon:

    "NASDAQ:AAPL"  -> exchange NASDAQ, base AAPL
    "2330:TWSE"    -> exchange TWSE,   base 2330
    "AAPL"         -> no exchange,     base AAPL

The provider query symbol is the base symbol plus a per-exchange suffix
("2330.TW", "0700.HK", "7203.T"). US exchanges and unknown exchanges pass the
base symbol through unchanged.

Usage:
    from price_history.services.symbols import SymbolResolver

    resolver = SymbolResolver()
    resolved = resolver.resolve("2330:TWSE")
    resolved.provider_symbol  # "2330.TW"
"""

import logging
from dataclasses import dataclass

from price_history.services.exceptions import UnsupportedExchangeError

logger = logging.getLogger(__name__)

SYMBOL_DELIMITER = ":"

# =============================================================================
# EXCHANGE MAPPING
# =============================================================================
# Maps exchange codes to Yahoo Finance suffixes.
# US exchanges use no suffix.

EXCHANGE_SUFFIXES: dict[str, str] = {
    # US
    "NASDAQ": "",
    "NYSE": "",
    "NYSEARCA": "",
    "NYSEAMERICAN": "",
    "AMEX": "",
    "BATS": "",
    "OTC": "",

    # Taiwan
    "TWSE": ".TW",
    "TPE": ".TW",
    "TPEX": ".TWO",

    # Japan
    "TYO": ".T",
    "TSE": ".T",
    "JPX": ".T",

    # Hong Kong
    "HKEX": ".HK",
    "HKG": ".HK",

    # China
    "SHA": ".SS",
    "SSE": ".SS",
    "SHE": ".SZ",
    "SZSE": ".SZ",

    # UK
    "LSE": ".L",
    "LON": ".L",

    # Germany
    "XETRA": ".DE",
    "FRA": ".F",

    # France / Netherlands
    "EPA": ".PA",
    "AMS": ".AS",

    # Canada
    "TSX": ".TO",
    "CVE": ".V",

    # Australia
    "ASX": ".AX",

    # Korea
    "KRX": ".KS",
    "KOSDAQ": ".KQ",

    # Singapore
    "SGX": ".SI",
}

KNOWN_EXCHANGES: frozenset[str] = frozenset(EXCHANGE_SUFFIXES)


@dataclass(frozen=True)
class ResolvedSymbol:
    """
    A portfolio ticker broken into its parts.

    Attributes:
        canonical: The ticker as used in the portfolio (e.g., "2330:TWSE")
        exchange: Exchange code, or None when the ticker carries none
        base: The bare symbol (e.g., "2330")
        provider_symbol: Symbol to send to the provider (e.g., "2330.TW")
    """

    canonical: str
    exchange: str | None
    base: str
    provider_symbol: str


def split_exchange(ticker: str) -> tuple[str | None, str]:
    """
    Split a portfolio ticker into (exchange, base symbol).

    The prefix is checked first, then the suffix. When neither side is a
    known exchange code the whole string is the base symbol.
    """
    ticker = ticker.strip().upper()
    if SYMBOL_DELIMITER not in ticker:
        return None, ticker

    first, _, second = ticker.partition(SYMBOL_DELIMITER)
    first, second = first.strip(), second.strip()

    if first in KNOWN_EXCHANGES and second:
        return first, second
    if second in KNOWN_EXCHANGES and first:
        return second, first

    return None, ticker


def to_provider_symbol(exchange: str | None, base: str) -> str:
    """Append the provider suffix for the exchange, if it has one."""
    if not exchange:
        return base
    suffix = EXCHANGE_SUFFIXES.get(exchange.upper(), "")
    return f"{base}{suffix}"


class SymbolResolver:
    """
    Resolves portfolio tickers to provider query symbols.

    Args:
        unsupported_exchanges: Exchange codes the provider does not cover.
            Resolving a ticker on one of these raises UnsupportedExchangeError.
    """

    def __init__(self, unsupported_exchanges: list[str] | None = None) -> None:
        self._unsupported = frozenset(
            code.strip().upper() for code in (unsupported_exchanges or [])
        )

    def resolve(self, ticker: str) -> ResolvedSymbol:
        canonical = ticker.strip().upper()
        exchange, base = split_exchange(canonical)

        if exchange and exchange in self._unsupported:
            raise UnsupportedExchangeError(symbol=canonical, exchange=exchange)

        resolved = ResolvedSymbol(
            canonical=canonical,
            exchange=exchange,
            base=base,
            provider_symbol=to_provider_symbol(exchange, base),
        )
        logger.debug(f"Resolved {canonical} -> {resolved.provider_symbol}")
        return resolved
