# backend/price_history/routers/coverage.py
"""
Coverage and readiness endpoints.

All endpoints are read-only except POST /coverage/reports, which writes
reports/coverage.json and reports/readiness.json under the storage root.
"""

import logging

from fastapi import APIRouter, Depends, Query

from price_history.dependencies import get_coverage_analyzer
from price_history.schemas.coverage import (
    CoverageRecord,
    CoverageReport,
    ReadinessStats,
    SplitHistoryEntry,
)
from price_history.services.coverage import CoverageAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/coverage",
    tags=["Coverage"],
)


@router.get(
    "",
    response_model=list[CoverageRecord],
    summary="Per-symbol coverage of the lookback window",
)
def get_coverage(
        include_completeness: bool = Query(
            default=True,
            description="Count missing weekdays; when false any stored price counts as complete",
        ),
        analyzer: CoverageAnalyzer = Depends(get_coverage_analyzer),
) -> list[CoverageRecord]:
    """
    One record per symbol with transactions inside the lookback window,
    sorted by ticker. Empty when no transactions exist.
    """
    return analyzer.compute(include_completeness=include_completeness)


@router.get(
    "/readiness",
    response_model=ReadinessStats,
    summary="Store-wide readiness statistics",
)
def get_readiness(analyzer: CoverageAnalyzer = Depends(get_coverage_analyzer)) -> ReadinessStats:
    return analyzer.report().stats


@router.post(
    "/reports",
    response_model=CoverageReport,
    summary="Compute and save coverage and readiness reports",
)
def save_reports(
        include_completeness: bool = Query(default=True),
        analyzer: CoverageAnalyzer = Depends(get_coverage_analyzer),
) -> CoverageReport:
    report = analyzer.report(include_completeness=include_completeness)
    analyzer.save_reports(report)
    return report


@router.get(
    "/splits",
    response_model=list[SplitHistoryEntry],
    summary="Every stored split, newest first",
)
def get_split_history(analyzer: CoverageAnalyzer = Depends(get_coverage_analyzer)) -> list[SplitHistoryEntry]:
    return analyzer.split_history()
