# backend/price_history/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- coverage: Coverage records, readiness stats, split history
- errors: Error response format
- positions: Position summaries, NAV series, snapshots
- prices: Stored prices and corporate actions
- sync: Sync requests, outcomes, worker status
- transactions: Portfolio transaction input

The sync schemas wrap service-layer result types, so they are imported by
path (price_history.schemas.sync) rather than re-exported here.

Usage:
    from price_history.schemas import CoverageRecord, ReadinessStats
    from price_history.schemas import Transaction
    from price_history.schemas.sync import SyncSummaryResponse
"""

from price_history.schemas.coverage import (
    CoverageRecord,
    CoverageReport,
    ReadinessStats,
    SplitHistoryEntry,
)
from price_history.schemas.errors import ErrorDetail
from price_history.schemas.positions import (
    NavPointResponse,
    NavSnapshot,
    NavSnapshotEntry,
    PositionSnapshot,
    PositionSummary,
    PositionTimelineResponse,
    SnapshotSavedResponse,
)
from price_history.schemas.prices import (
    DividendResponse,
    PriceRecordResponse,
    PriceSeriesResponse,
    ProviderMetadataResponse,
    SplitResponse,
)
from price_history.schemas.transactions import Transaction

__all__ = [
    # Coverage
    "CoverageRecord",
    "CoverageReport",
    "ReadinessStats",
    "SplitHistoryEntry",
    # Errors
    "ErrorDetail",
    # Positions
    "NavPointResponse",
    "NavSnapshot",
    "NavSnapshotEntry",
    "PositionSnapshot",
    "PositionSummary",
    "PositionTimelineResponse",
    "SnapshotSavedResponse",
    # Prices
    "DividendResponse",
    "PriceRecordResponse",
    "PriceSeriesResponse",
    "ProviderMetadataResponse",
    "SplitResponse",
    # Transactions
    "Transaction",
]
