"""
API routers for the portfolio price history service.

Each router handles a specific domain:
- sync: Foreground sync and the background worker
- coverage: Coverage, readiness and split history
- prices: Stored prices, dividends, splits and provider metadata
- positions: Position summaries, timelines, NAV files and snapshots
"""

from price_history.routers.coverage import router as coverage_router
from price_history.routers.positions import router as positions_router
from price_history.routers.prices import router as prices_router
from price_history.routers.sync import router as sync_router

__all__ = [
    "sync_router",
    "coverage_router",
    "prices_router",
    "positions_router",
]
