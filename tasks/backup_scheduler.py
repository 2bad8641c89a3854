"""
In-process backup scheduler.

Runs one backup as soon as it starts and then one every interval, on a
daemon thread owned by whoever calls start() (the API lifespan). stop()
cancels the wait and joins the thread.
"""

import logging
import threading
from typing import Optional

from services.backup_service import BackupManager

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 24 * 60 * 60


class BackupScheduler:
    """
    Periodic snapshot runner.

    A failed run is logged and counted; it never stops the schedule.
    """

    def __init__(
        self,
        backup_manager: BackupManager,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        run_on_start: bool = True
    ):
        self.backup_manager = backup_manager
        self.interval_seconds = interval_seconds
        self.run_on_start = run_on_start

        self.runs = 0
        self.failures = 0
        self.last_backup_path: Optional[str] = None
        self.last_error: Optional[str] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the schedule. Calling start() on a running scheduler is a no-op."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name='backup-scheduler',
            daemon=True
        )
        self._thread.start()
        logger.info(f"Automatic backups scheduled every {self.interval_seconds / 3600:g} hours")

    def stop(self, timeout: Optional[float] = None):
        """Cancel the schedule and wait for an in-flight backup to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Backup scheduler stopped")

    def run_once(self) -> Optional[str]:
        """
        Take one backup now.

        Returns:
            Snapshot path, or None if the backup failed
        """
        try:
            path = self.backup_manager.create_backup()
        except Exception as e:
            self.failures += 1
            self.last_error = str(e)
            logger.error(f"Scheduled backup failed: {e}", exc_info=True)
            return None

        self.runs += 1
        self.last_backup_path = path
        self.last_error = None
        return path

    def _run(self):
        if self.run_on_start:
            self.run_once()

        while not self._stop_event.wait(self.interval_seconds):
            self.run_once()
