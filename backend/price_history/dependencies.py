# backend/price_history/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton instances shared across all requests. The
background worker in particular must be a singleton: its status is polled
by later requests.

Everything is lazily initialized on first use to avoid import-time side
effects. The storage root is resolved exactly once, in get_file_storage().

Usage in routers:
    from price_history.dependencies import get_sync_service, get_sync_worker

    @router.post("/sync")
    def sync_once(service: PriceSyncService = Depends(get_sync_service)):
        ...

Tests replace any of these with app.dependency_overrides.
"""

import logging
from functools import lru_cache

from price_history.config import settings
from price_history.services.coverage import CoverageAnalyzer
from price_history.services.exceptions import ConfigError
from price_history.services.market_data.sync_service import PriceSyncService
from price_history.services.market_data.worker import SyncWorker
from price_history.services.market_data.yahoo import YahooChartFetcher
from price_history.services.positions import PositionService
from price_history.services.storage import (
    CorporateActionStore,
    FileStorage,
    PriceStore,
    ProviderMetadataStore,
    SnapshotStore,
)
from price_history.services.symbols import SymbolResolver
from price_history.services.transactions import TransactionSource

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_file_storage (settings only)
# 2. stores and transaction source (depend on storage)
# 3. get_history_fetcher (depends on metadata store)
# 4. services (depend on stores, fetcher, resolver)
# 5. get_sync_worker (depends on sync service)


@lru_cache(maxsize=1)
def get_file_storage() -> FileStorage:
    """
    Get the singleton file storage rooted at STORAGE_ROOT.

    Raises:
        ConfigError: If no storage root is configured or it is not writable
    """
    if settings.storage_root is None:
        raise ConfigError("STORAGE_ROOT is not configured", setting="storage_root")
    logger.debug(f"Initializing file storage at {settings.storage_root}")
    return FileStorage(settings.storage_root)


@lru_cache(maxsize=1)
def get_price_store() -> PriceStore:
    return PriceStore(get_file_storage())


@lru_cache(maxsize=1)
def get_corporate_action_store() -> CorporateActionStore:
    return CorporateActionStore(get_file_storage())


@lru_cache(maxsize=1)
def get_metadata_store() -> ProviderMetadataStore:
    return ProviderMetadataStore(get_file_storage())


@lru_cache(maxsize=1)
def get_snapshot_store() -> SnapshotStore:
    return SnapshotStore(get_file_storage())


@lru_cache(maxsize=1)
def get_transaction_source() -> TransactionSource:
    return TransactionSource(get_file_storage(), file_name=settings.transactions_file)


@lru_cache(maxsize=1)
def get_symbol_resolver() -> SymbolResolver:
    return SymbolResolver(unsupported_exchanges=settings.unsupported_exchanges)


@lru_cache(maxsize=1)
def get_history_fetcher() -> YahooChartFetcher:
    """
    Get the singleton chart fetcher.

    Shares one HTTP session (and its connection pool) across all syncs.
    """
    logger.debug("Initializing singleton YahooChartFetcher")
    return YahooChartFetcher(
        base_url=settings.chart_api_url,
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
        metadata_store=get_metadata_store(),
    )


@lru_cache(maxsize=1)
def get_sync_service() -> PriceSyncService:
    logger.debug("Initializing singleton PriceSyncService")
    return PriceSyncService(
        price_store=get_price_store(),
        action_store=get_corporate_action_store(),
        fetcher=get_history_fetcher(),
        resolver=get_symbol_resolver(),
        transaction_source=get_transaction_source(),
    )


@lru_cache(maxsize=1)
def get_sync_worker() -> SyncWorker:
    """Get the singleton background worker, whose status later requests poll."""
    logger.debug("Initializing singleton SyncWorker")
    return SyncWorker(
        service=get_sync_service(),
        storage=get_file_storage(),
        log_name=settings.worker_log_name,
    )


@lru_cache(maxsize=1)
def get_coverage_analyzer() -> CoverageAnalyzer:
    return CoverageAnalyzer(
        price_store=get_price_store(),
        action_store=get_corporate_action_store(),
        transaction_source=get_transaction_source(),
        snapshot_store=get_snapshot_store(),
        lookback_years=settings.lookback_years,
    )


@lru_cache(maxsize=1)
def get_position_service() -> PositionService:
    return PositionService(
        price_store=get_price_store(),
        action_store=get_corporate_action_store(),
        snapshot_store=get_snapshot_store(),
        transaction_source=get_transaction_source(),
    )
