# backend/price_history/routers/sync.py
"""
Price sync endpoints.

Provides endpoints for bringing the price store up to date with the
portfolio's transactions.

Key features:
- Run one sync pass in the foreground
- Sync a single symbol
- Start the background worker and poll its status and log
"""

import logging

from fastapi import APIRouter, Depends, Query

from price_history.dependencies import get_sync_service, get_sync_worker
from price_history.schemas.sync import (
    SymbolSyncOutcomeResponse,
    SyncRequest,
    SyncSummaryResponse,
    WorkerLogResponse,
    WorkerStartResponse,
    WorkerStatusResponse,
)
from price_history.services.market_data.sync_service import PriceSyncService
from price_history.services.market_data.worker import SyncWorker

logger = logging.getLogger(__name__)

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/sync",
    tags=["Price Sync"],
)


# =============================================================================
# FOREGROUND SYNC
# =============================================================================

@router.post(
    "",
    response_model=SyncSummaryResponse,
    summary="Sync all portfolio symbols",
    response_description="Pass summary with one outcome per symbol"
)
def sync_all(
        sync_request: SyncRequest = SyncRequest(),
        service: PriceSyncService = Depends(get_sync_service),
) -> SyncSummaryResponse:
    """
    Fetch missing price history for every symbol in the transactions.

    Symbols are fetched one at a time. A failing symbol is reported in the
    outcomes and never aborts the pass; the overall status is `completed`,
    `partial` or `failed`.

    Set `refresh_recent: true` to also fetch the days since the latest stored
    price for symbols that are already backfilled.

    **Note:** This may take a while for large portfolios. Use the worker
    endpoints to run it in the background.
    """
    logger.info(f"Foreground sync requested (refresh_recent={sync_request.refresh_recent})")
    summary = service.sync_all(refresh_recent=sync_request.refresh_recent)
    return SyncSummaryResponse.from_summary(summary)


@router.post(
    "/symbols/{symbol}",
    response_model=SymbolSyncOutcomeResponse,
    summary="Sync one symbol",
)
def sync_symbol(
        symbol: str,
        sync_request: SyncRequest = SyncRequest(),
        service: PriceSyncService = Depends(get_sync_service),
) -> SymbolSyncOutcomeResponse:
    """
    Run the sync flow for a single portfolio symbol (e.g. `NASDAQ:AAPL`).

    Raises **404** if the symbol has no transactions.
    """
    outcome = service.sync_symbol(symbol, refresh_recent=sync_request.refresh_recent)
    return SymbolSyncOutcomeResponse.model_validate(outcome)


# =============================================================================
# BACKGROUND WORKER
# =============================================================================

@router.post(
    "/worker/start",
    response_model=WorkerStartResponse,
    summary="Start a background sync pass",
)
def start_worker(
        sync_request: SyncRequest = SyncRequest(),
        worker: SyncWorker = Depends(get_sync_worker),
) -> WorkerStartResponse:
    """
    Start a one-shot sync pass on a background thread and return at once.

    `started` is false when a pass is already running; the current status is
    returned either way.
    """
    started = worker.start(refresh_recent=sync_request.refresh_recent)
    return WorkerStartResponse(
        started=started,
        status=WorkerStatusResponse.from_status(worker.status()),
    )


@router.get(
    "/worker/status",
    response_model=WorkerStatusResponse,
    summary="Poll the background worker",
)
def worker_status(worker: SyncWorker = Depends(get_sync_worker)) -> WorkerStatusResponse:
    """Current state, progress and (once finished) the pass summary."""
    return WorkerStatusResponse.from_status(worker.status())


@router.get(
    "/worker/log",
    response_model=WorkerLogResponse,
    summary="Read the worker log",
)
def worker_log(
        tail: int | None = Query(default=None, ge=1, description="Only the last N lines"),
        worker: SyncWorker = Depends(get_sync_worker),
) -> WorkerLogResponse:
    return WorkerLogResponse(lines=worker.read_log(tail=tail))
