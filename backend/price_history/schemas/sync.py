# backend/price_history/schemas/sync.py
"""
Pydantic schemas for price synchronization.

These schemas handle:
- Sync requests
- Per-symbol outcomes and pass summaries
- Background worker status and log
"""

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from price_history.services.market_data.sync_service import SyncSummary
from price_history.services.market_data.worker import WorkerStatus


# =============================================================================
# SYNC REQUEST SCHEMAS
# =============================================================================

class SyncRequest(BaseModel):
    """Schema for triggering a sync pass."""

    refresh_recent: bool = Field(
        default=False,
        description="Also fetch from the latest stored date for symbols that are already backfilled"
    )


# =============================================================================
# SYNC RESULT SCHEMAS
# =============================================================================

class SymbolSyncOutcomeResponse(BaseModel):
    """Outcome of syncing a single symbol."""

    symbol: str
    status: Literal["synced", "up_to_date", "skipped", "failed"]
    provider_symbol: str | None = None
    records_fetched: int = 0
    from_date: dt.date | None = None
    to_date: dt.date | None = None
    reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SyncSummaryResponse(BaseModel):
    """Result of a sync pass."""

    status: str = Field(..., description="completed, partial or failed")
    started_at: dt.datetime
    finished_at: dt.datetime | None = None
    records_fetched: int = 0
    synced: int = 0
    up_to_date: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: list[SymbolSyncOutcomeResponse] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: SyncSummary) -> "SyncSummaryResponse":
        return cls(
            status=summary.status,
            started_at=summary.started_at,
            finished_at=summary.finished_at,
            records_fetched=summary.records_fetched,
            synced=summary.count("synced"),
            up_to_date=summary.count("up_to_date"),
            skipped=summary.count("skipped"),
            failed=summary.count("failed"),
            outcomes=[SymbolSyncOutcomeResponse.model_validate(o) for o in summary.outcomes],
        )


# =============================================================================
# WORKER SCHEMAS
# =============================================================================

class WorkerStatusResponse(BaseModel):
    """Polled status of the background sync worker."""

    state: Literal["idle", "running", "completed", "failed"]
    started_at: dt.datetime | None = None
    finished_at: dt.datetime | None = None
    total: int = 0
    completed: int = 0
    current_symbol: str | None = None
    next_symbol: str | None = None
    summary: SyncSummaryResponse | None = None
    error: str | None = None

    @classmethod
    def from_status(cls, status: WorkerStatus) -> "WorkerStatusResponse":
        return cls(
            state=status.state,
            started_at=status.started_at,
            finished_at=status.finished_at,
            total=status.total,
            completed=status.completed,
            current_symbol=status.current_symbol,
            next_symbol=status.next_symbol,
            summary=SyncSummaryResponse.from_summary(status.summary) if status.summary else None,
            error=status.error,
        )


class WorkerStartResponse(BaseModel):
    """Response to a worker start request."""

    started: bool = Field(..., description="False when a run was already active")
    status: WorkerStatusResponse


class WorkerLogResponse(BaseModel):
    """Lines of the worker log, oldest first."""

    lines: list[str] = Field(default_factory=list)
