# backend/price_history/services/storage/snapshots.py
"""
Derived-output files: NAV series, snapshots and reports.

    nav/{symbol}.csv                   date,close,shares,position_value,currency,symbol
    nav_snapshots/{timestamp}.json     portfolio NAV at a point in time
    position_snapshots/{symbol}.json   latest position summary per symbol
    reports/{name}.json                coverage and readiness reports

Nothing here is authoritative state; every file can be rebuilt from the
price store, the corporate action store and the transactions.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable

from price_history.services.constants import (
    NAV_DIR,
    NAV_FILE_COLUMNS,
    NAV_SNAPSHOTS_DIR,
    POSITION_SNAPSHOTS_DIR,
    REPORTS_DIR,
)
from price_history.services.exceptions import ParseError
from price_history.services.storage.files import FileStorage, safe_name
from price_history.utils.date_utils import parse_date
from price_history.utils.numbers import format_decimal, to_decimal

logger = logging.getLogger(__name__)

SNAPSHOT_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"


@dataclass(frozen=True)
class NavRow:
    """One persisted row of a symbol's NAV series."""

    date: date
    close: Decimal
    shares: Decimal
    position_value: Decimal
    currency: str
    symbol: str


class SnapshotStore:
    """
    Reads and writes NAV series, snapshots and reports.

    Args:
        storage: File storage rooted at the configured storage location
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage

    # =========================================================================
    # NAV SERIES
    # =========================================================================

    @staticmethod
    def _nav_path(symbol: str) -> str:
        return f"{NAV_DIR}/{safe_name(symbol)}.csv"

    def write_nav(self, symbol: str, rows: Iterable[NavRow]) -> int:
        """
        Rewrite a symbol's NAV file, newest first.

        Returns:
            Number of rows written
        """
        ordered = sorted(rows, key=lambda r: r.date, reverse=True)

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(NAV_FILE_COLUMNS)
        for row in ordered:
            writer.writerow([
                row.date.isoformat(),
                format_decimal(row.close),
                format_decimal(row.shares),
                format_decimal(row.position_value),
                row.currency,
                row.symbol,
            ])

        self.storage.write_text(self._nav_path(symbol), buffer.getvalue())
        return len(ordered)

    def read_nav(self, symbol: str) -> list[NavRow]:
        """A symbol's NAV series, oldest first. Empty when no file exists."""
        content = self.storage.read_text(self._nav_path(symbol))
        if not content:
            return []

        rows: list[NavRow] = []
        for raw in csv.DictReader(io.StringIO(content)):
            close = to_decimal(raw.get("close"))
            try:
                row_date = parse_date(raw.get("date"), source=symbol)
            except ParseError:
                continue
            if close is None:
                continue
            shares = to_decimal(raw.get("shares")) or Decimal(0)
            value = to_decimal(raw.get("position_value"))
            rows.append(NavRow(
                date=row_date,
                close=close,
                shares=shares,
                position_value=close * shares if value is None else value,
                currency=(raw.get("currency") or "").strip(),
                symbol=(raw.get("symbol") or "").strip() or symbol,
            ))

        return sorted(rows, key=lambda r: r.date)

    # =========================================================================
    # JSON DOCUMENTS
    # =========================================================================

    def _write_json(self, relative: str, payload: Any) -> str:
        self.storage.write_text(relative, json.dumps(payload, indent=2, default=str))
        return relative

    def _read_json(self, relative: str) -> Any | None:
        content = self.storage.read_text(relative)
        if content is None:
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in '{relative}': {e}", source=relative) from e

    def save_nav_snapshot(self, payload: dict[str, Any], taken_at: datetime | None = None) -> str:
        """
        Store a NAV snapshot under a timestamped name.

        Returns:
            The snapshot name (file stem)
        """
        taken_at = taken_at or datetime.now(timezone.utc)
        name = taken_at.astimezone(timezone.utc).strftime(SNAPSHOT_TIMESTAMP_FORMAT)
        self._write_json(f"{NAV_SNAPSHOTS_DIR}/{name}.json", payload)
        logger.info(f"Saved NAV snapshot {name}")
        return name

    def list_nav_snapshots(self) -> list[str]:
        """Snapshot names, oldest first."""
        return [name[: -len(".json")] for name in self.storage.list_names(NAV_SNAPSHOTS_DIR, ".json")]

    def load_nav_snapshot(self, name: str) -> dict[str, Any] | None:
        return self._read_json(f"{NAV_SNAPSHOTS_DIR}/{name}.json")

    def save_position_snapshot(self, symbol: str, payload: dict[str, Any]) -> None:
        self._write_json(f"{POSITION_SNAPSHOTS_DIR}/{safe_name(symbol)}.json", payload)

    def load_position_snapshot(self, symbol: str) -> dict[str, Any] | None:
        return self._read_json(f"{POSITION_SNAPSHOTS_DIR}/{safe_name(symbol)}.json")

    def save_report(self, name: str, payload: Any) -> str:
        """Write reports/{name}.json and return its relative path."""
        return self._write_json(f"{REPORTS_DIR}/{name}.json", payload)

    def load_report(self, name: str) -> Any | None:
        return self._read_json(f"{REPORTS_DIR}/{name}.json")
