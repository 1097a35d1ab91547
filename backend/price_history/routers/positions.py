# backend/price_history/routers/positions.py
"""
Position and NAV endpoints.

Key features:
- Position summaries replayed from all transactions
- Per-symbol position timelines (shares x quoted close per day)
- NAV CSV files and NAV/position snapshots under the storage root

Values are in each position's trading currency; nothing is converted.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from price_history.dependencies import get_position_service
from price_history.schemas.positions import (
    NavPointResponse,
    NavSnapshot,
    PositionSnapshot,
    PositionSummary,
    PositionTimelineResponse,
    SnapshotSavedResponse,
)
from price_history.services.positions import PositionService
from price_history.services.storage import NavRow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/positions",
    tags=["Positions"],
)


def _timeline_response(symbol: str, rows: list[NavRow]) -> PositionTimelineResponse:
    return PositionTimelineResponse(
        symbol=symbol.strip().upper(),
        currency=rows[0].currency if rows else "",
        points=[
            NavPointResponse(
                date=row.date,
                close=row.close,
                shares=row.shares,
                position_value=row.position_value,
                currency=row.currency,
                symbol=row.symbol,
            )
            for row in rows
        ],
    )


# =============================================================================
# SUMMARIES
# =============================================================================

@router.get(
    "",
    response_model=list[PositionSummary],
    summary="Position summary per symbol",
)
def list_positions(service: PositionService = Depends(get_position_service)) -> list[PositionSummary]:
    """
    Shares, cost basis, realized P&L and dividends per symbol and currency,
    most recently traded first. Empty when no transactions exist.
    """
    return service.summarize()


# =============================================================================
# SNAPSHOTS
# =============================================================================

@router.get(
    "/snapshots/nav/current",
    response_model=NavSnapshot,
    summary="Current NAV, not saved",
)
def current_nav(service: PositionService = Depends(get_position_service)) -> NavSnapshot:
    return service.build_nav_snapshot()


@router.post(
    "/snapshots/nav",
    response_model=SnapshotSavedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a NAV snapshot",
)
def save_nav_snapshot(service: PositionService = Depends(get_position_service)) -> SnapshotSavedResponse:
    name, snapshot = service.save_nav_snapshot()
    return SnapshotSavedResponse(name=name, entries=len(snapshot.entries))


@router.post(
    "/snapshots/positions",
    response_model=SnapshotSavedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save one snapshot per position",
)
def save_position_snapshots(
        service: PositionService = Depends(get_position_service),
) -> SnapshotSavedResponse:
    written = service.save_position_snapshots()
    return SnapshotSavedResponse(name="positions", entries=written)


@router.get(
    "/{symbol}/snapshot",
    response_model=PositionSnapshot,
    summary="Latest saved snapshot of one position",
)
def get_position_snapshot(
        symbol: str,
        service: PositionService = Depends(get_position_service),
) -> PositionSnapshot:
    """Raises **404** if no snapshot has been saved for the symbol."""
    snapshot = service.load_position_snapshot(symbol)
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No position snapshot saved for '{symbol.strip().upper()}'",
        )
    return snapshot


# =============================================================================
# PER-SYMBOL TIMELINES
# =============================================================================

@router.get(
    "/{symbol}/timeline",
    response_model=PositionTimelineResponse,
    summary="Position timeline for one symbol",
)
def get_timeline(
        symbol: str,
        service: PositionService = Depends(get_position_service),
) -> PositionTimelineResponse:
    """
    Shares held and the quoted close on every stored price date from the
    first transaction onward, oldest first. Nothing is written.
    """
    return _timeline_response(symbol, service.timeline_for_symbol(symbol))


@router.post(
    "/{symbol}/nav",
    response_model=PositionTimelineResponse,
    summary="Rebuild a symbol's NAV file",
)
def write_nav(
        symbol: str,
        service: PositionService = Depends(get_position_service),
) -> PositionTimelineResponse:
    return _timeline_response(symbol, service.write_nav(symbol))


@router.get(
    "/{symbol}/nav",
    response_model=PositionTimelineResponse,
    summary="Read a symbol's NAV file",
)
def read_nav(
        symbol: str,
        service: PositionService = Depends(get_position_service),
) -> PositionTimelineResponse:
    return _timeline_response(symbol, service.read_nav(symbol))

