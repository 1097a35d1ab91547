# backend/price_history/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Data classes and the abstract fetcher interface (base.py)
- Yahoo Finance chart API implementation (yahoo.py)
- Sync orchestration (sync_service.py)
- One-shot background sync (worker.py)

Only the data classes are re-exported here. The split reconciler builds on
them, and the orchestrator builds on the split reconciler, so the concrete
modules are imported by path:

    from price_history.services.market_data import PriceRecord, SplitEvent
    from price_history.services.market_data.yahoo import YahooChartFetcher
    from price_history.services.market_data.sync_service import PriceSyncService
    from price_history.services.market_data.worker import SyncWorker

Architecture:
    HistoryFetcher (ABC)
    └── YahooChartFetcher (concrete)

    PriceSyncService
    └── Orchestrates per-symbol fetches into the price store
    └── SyncWorker runs it on a background thread
"""

from price_history.services.market_data.base import (
    ChartFetchResult,
    DividendEvent,
    HistoryFetcher,
    PriceRecord,
    SplitEvent,
)

__all__ = [
    # Abstract interface
    "HistoryFetcher",
    # Data classes - prices
    "PriceRecord",
    "ChartFetchResult",
    # Data classes - corporate actions
    "SplitEvent",
    "DividendEvent",
]
