# backend/price_history/utils/__init__.py
"""
Utility modules for the price history service.

This package contains cross-cutting utilities used throughout the application:
- logging: Logging configuration and setup with correlation ID support
- context: Correlation ID storage for requests and worker runs
- date_utils: Date helpers (business days, parsing, timestamp bounds)

Usage:
    from price_history.utils import setup_logging
    from price_history.utils import get_correlation_id, set_correlation_id
    from price_history.utils.date_utils import get_business_days
"""

from price_history.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from price_history.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
]
