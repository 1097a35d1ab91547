# backend/price_history/middleware/__init__.py
"""
Middleware components for the price history service.

This package contains ASGI middleware for:
- Correlation ID tracking for request tracing

Usage:
    from price_history.middleware import CorrelationIdMiddleware

    app.add_middleware(CorrelationIdMiddleware)
"""

from price_history.middleware.correlation import CorrelationIdMiddleware

__all__ = [
    "CorrelationIdMiddleware",
]
