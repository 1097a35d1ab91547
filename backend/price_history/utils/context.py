# backend/price_history/utils/context.py
"""
Execution context management.

Provides context-local storage for the correlation ID used in log records.
HTTP requests get one from the correlation middleware; background sync runs
set their own at the start of the worker thread.

Uses Python's contextvars, so each request task and each worker thread sees
its own value.

Usage:
    from price_history.utils.context import get_correlation_id, set_correlation_id

    # In middleware or at the top of a worker thread
    set_correlation_id("abc-123")

    # In any service/handler
    correlation_id = get_correlation_id()  # Returns "abc-123"
"""

from contextvars import ContextVar

# Correlation ID for request/run tracing
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """
    Get the current correlation ID.

    Returns:
        The correlation ID for the current request or run, or None if not set.
    """
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current request or run.

    Args:
        correlation_id: Unique identifier for this request or run
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID."""
    _correlation_id_var.set(None)
