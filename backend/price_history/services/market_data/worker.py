# backend/price_history/services/market_data/worker.py
"""
One-shot background sync.

SyncWorker.start() runs PriceSyncService.sync_all() on a daemon thread and
returns immediately. Callers poll status() or block on wait(). There is no
scheduler and no cancellation; a run ends when the pass ends.

Progress and errors are appended to logs/sync_worker.log as timestamped
lines. Two sources feed the file:
- the worker's own progress lines
- every price_history log record emitted on the worker thread at WARNING or
  above, through WorkerLogHandler
"""

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Literal

from price_history.services.market_data.sync_service import (
    PriceSyncService,
    SyncProgress,
    SyncSummary,
)
from price_history.services.storage.files import FileStorage
from price_history.utils.context import clear_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)

DEFAULT_WORKER_LOG = "logs/sync_worker.log"
APP_LOGGER_NAME = "price_history"

WorkerState = Literal["idle", "running", "completed", "failed"]


def _log_line(level: str, message: str) -> str:
    stamp = datetime.now(timezone.utc).replace(microsecond=0).isoformat()
    return f"{stamp} [{level}] {message}\n"


@dataclass
class WorkerStatus:
    """Polled status of the background worker."""

    state: WorkerState = "idle"
    started_at: datetime | None = None
    finished_at: datetime | None = None
    total: int = 0
    completed: int = 0
    current_symbol: str | None = None
    next_symbol: str | None = None
    summary: SyncSummary | None = None
    error: str | None = None

    @property
    def is_running(self) -> bool:
        return self.state == "running"


class WorkerLogHandler(logging.Handler):
    """
    Appends log records from one thread to the worker log file.

    Records from the worker module itself are left out; the worker writes
    its own lines directly.
    """

    def __init__(
            self,
            storage: FileStorage,
            log_name: str,
            thread_id: int,
            level: int = logging.WARNING,
    ) -> None:
        super().__init__(level)
        self.storage = storage
        self.log_name = log_name
        self.thread_id = thread_id

    def filter(self, record: logging.LogRecord) -> bool:
        return record.thread == self.thread_id and record.name != __name__

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.storage.append_text(
                self.log_name, _log_line(record.levelname, record.getMessage())
            )
        except OSError:
            self.handleError(record)


class SyncWorker:
    """
    Runs a sync pass on a background thread.

    Args:
        service: The sync orchestrator to run
        storage: Storage used for the worker log
        log_name: Log file path relative to the storage root
    """

    def __init__(
            self,
            service: PriceSyncService,
            storage: FileStorage,
            log_name: str = DEFAULT_WORKER_LOG,
    ) -> None:
        self.service = service
        self.storage = storage
        self.log_name = log_name

        self._lock = threading.Lock()
        self._status = WorkerStatus()
        self._done = threading.Event()
        self._done.set()
        self._thread: threading.Thread | None = None

    # =========================================================================
    # CONTROL
    # =========================================================================

    def start(self, refresh_recent: bool = False) -> bool:
        """
        Start a sync pass in the background.

        Returns:
            True if a run was started, False if one is already running
        """
        with self._lock:
            if self._status.is_running:
                logger.warning("Sync worker already running, start request ignored")
                return False

            self._status = WorkerStatus(
                state="running",
                started_at=datetime.now(timezone.utc),
            )
            self._done.clear()
            self._thread = threading.Thread(
                target=self._run,
                args=(refresh_recent,),
                name="sync-worker",
                daemon=True,
            )

        self._thread.start()
        return True

    def status(self) -> WorkerStatus:
        """A copy of the current status."""
        with self._lock:
            return replace(self._status)

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the current run finishes.

        Returns:
            True if no run is active when this returns
        """
        return self._done.wait(timeout)

    def read_log(self, tail: int | None = None) -> list[str]:
        """Worker log lines, oldest first; the last `tail` lines when given."""
        content = self.storage.read_text(self.log_name)
        if not content:
            return []
        lines = content.splitlines()
        return lines[-tail:] if tail else lines

    # =========================================================================
    # RUN
    # =========================================================================

    def _append(self, level: str, message: str) -> None:
        self.storage.append_text(self.log_name, _log_line(level, message))

    def _on_progress(self, progress: SyncProgress) -> None:
        with self._lock:
            self._status.total = progress.total
            self._status.completed = progress.completed
            self._status.current_symbol = progress.current_symbol
            self._status.next_symbol = progress.next_symbol

        if progress.current_symbol:
            self._append(
                "INFO",
                f"[{progress.completed + 1}/{progress.total}] {progress.current_symbol}",
            )

    def _run(self, refresh_recent: bool) -> None:
        run_id = f"sync-worker-{uuid.uuid4().hex[:12]}"
        set_correlation_id(run_id)

        handler = WorkerLogHandler(self.storage, self.log_name, threading.get_ident())
        app_logger = logging.getLogger(APP_LOGGER_NAME)
        app_logger.addHandler(handler)

        try:
            self._append("INFO", f"Sync worker started ({run_id})")
            logger.info(f"Sync worker started ({run_id})")

            summary = self.service.sync_all(
                refresh_recent=refresh_recent,
                on_progress=self._on_progress,
            )

            self._append(
                "INFO",
                f"Sync worker finished: status={summary.status}, "
                f"records={summary.records_fetched}, failed={len(summary.failed)}",
            )

            with self._lock:
                self._status.state = "completed"
                self._status.summary = summary
                self._status.current_symbol = None
                self._status.next_symbol = None
                self._status.finished_at = datetime.now(timezone.utc)

        except Exception as e:
            # Thread boundary; pollers read the error from status()
            logger.exception(f"Sync worker failed: {e}")
            self._append("ERROR", f"Sync worker failed: {e}")
            with self._lock:
                self._status.state = "failed"
                self._status.error = str(e)
                self._status.finished_at = datetime.now(timezone.utc)

        finally:
            app_logger.removeHandler(handler)
            clear_correlation_id()
            self._done.set()
