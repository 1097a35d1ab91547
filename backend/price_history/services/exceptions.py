# backend/price_history/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ConfigError
    ├── ParseError
    ├── NotFoundError
    │   ├── PriceHistoryNotFoundError
    │   └── TransactionsNotFoundError
    └── MarketDataError
        ├── FetchError
        │   └── ProviderUnavailableError
        └── UnsupportedExchangeError

Locality:
    - ConfigError is fatal and surfaces immediately.
    - ParseError is confined to the row, record or symbol being processed.
    - MarketDataError is confined to the symbol being fetched; the sync
      orchestrator records it and moves on to the next symbol.
    - NotFoundError becomes an empty/default result in read-only queries.
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(ServiceError):
    """
    Raised when the runtime configuration cannot be used.

    The typical case is a storage root that does not exist and cannot be
    created, or that is not writable.

    Attributes:
        setting: Name of the offending setting (optional)
    """

    def __init__(self, message: str, setting: str | None = None) -> None:
        self.setting = setting
        super().__init__(message)


# =============================================================================
# PARSE ERRORS
# =============================================================================


class ParseError(ServiceError):
    """
    Raised when a date, number or JSON document cannot be parsed.

    Attributes:
        value: The raw value that failed to parse (optional)
        source: Where the value came from, e.g. a file name or symbol (optional)
    """

    def __init__(
            self,
            message: str,
            value: str | None = None,
            source: str | None = None,
    ) -> None:
        self.value = value
        self.source = source
        super().__init__(message)


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "PriceHistory", "Transactions")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class PriceHistoryNotFoundError(NotFoundError):
    """
    Raised when a symbol has no stored price file, or the file yields no rows.

    Attributes:
        symbol: Canonical portfolio symbol
    """

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(
            f"No price history stored for '{symbol}'",
            resource_type="PriceHistory",
            resource_id=symbol,
        )


class TransactionsNotFoundError(NotFoundError):
    """Raised when no transaction list is available."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message or "No transactions available",
            resource_type="Transactions",
        )


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
        symbol: Provider query symbol involved (optional)
    """

    def __init__(
            self,
            message: str,
            provider: str | None = None,
            symbol: str | None = None,
    ) -> None:
        self.provider = provider
        self.symbol = symbol
        super().__init__(message)


class FetchError(MarketDataError):
    """
    Raised when a history request fails upstream.

    Covers an empty response body, a non-success HTTP status, a payload that
    does not decode into the chart schema, and provider-reported errors.

    Attributes:
        reason: Specific reason for failure
        status_code: HTTP status code, when one was received
    """

    def __init__(
            self,
            provider: str,
            symbol: str,
            reason: str,
            status_code: int | None = None,
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        message = f"Failed to fetch '{symbol}' from {provider}: {reason}"
        super().__init__(message, provider=provider, symbol=symbol)


class ProviderUnavailableError(FetchError):
    """
    Raised when the provider cannot be reached at all.

    Examples:
    - Network timeout
    - Connection refused / DNS failure
    """

    def __init__(self, provider: str, symbol: str, reason: str) -> None:
        super().__init__(provider, symbol, f"provider unavailable ({reason})")


class UnsupportedExchangeError(MarketDataError):
    """
    Raised when a symbol trades on an exchange the provider does not cover.

    The sync orchestrator reports these symbols as skipped, not failed.

    Attributes:
        exchange: The exchange code that is not covered
    """

    def __init__(self, symbol: str, exchange: str, provider: str | None = None) -> None:
        self.exchange = exchange
        message = f"Exchange '{exchange}' is not covered by the price provider ({symbol})"
        super().__init__(message, provider=provider, symbol=symbol)


__all__ = [
    # Base
    "ServiceError",
    # Configuration
    "ConfigError",
    # Parsing
    "ParseError",
    # Not Found
    "NotFoundError",
    "PriceHistoryNotFoundError",
    "TransactionsNotFoundError",
    # Market Data
    "MarketDataError",
    "FetchError",
    "ProviderUnavailableError",
    "UnsupportedExchangeError",
]
