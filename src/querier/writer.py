"""
History Writer for the DIRIGERA querier.
Rewrites the data file whenever the reader reports new readings.
"""

import queue
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from src.common.logger import setup_logger
from .history import HistoryStore

logger = setup_logger(__name__)

# Queue item that wakes the thread for shutdown
_STOP = object()


class Writer:
    """
    Persists the history on every update pulse.
    Runs in a background thread fed by notify().
    """

    def __init__(
        self,
        history: HistoryStore,
        data_file: str,
        on_error: Optional[Callable[[Exception], None]] = None
    ):
        """
        Initialize the writer.

        Args:
            history: Store to persist
            data_file: Path of the JSON data file
            on_error: Called with the exception when a write fails
        """
        self._history = history
        self.data_file = Path(data_file)
        self._on_error = on_error

        self._updates: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._running = False

        self._last_write_time: Optional[datetime] = None
        self._total_writes = 0

    def notify(self) -> None:
        """Signal that new readings are available."""
        self._updates.put(True)

    def start(self) -> None:
        """Start the background write thread."""
        if self._running:
            logger.warning("Writer already running")
            return

        self._running = True
        self._thread = threading.Thread(
            target=self._write_loop,
            name="Writer",
            daemon=True
        )
        self._thread.start()

        logger.info("Writer started (data file: %s)", self.data_file)

    def stop(self) -> None:
        """Stop the background write thread."""
        if not self._running:
            return

        logger.info("Stopping writer...")
        self._running = False
        self._updates.put(_STOP)

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)

        logger.info("Writer stopped")

    def _write_loop(self) -> None:
        """Background thread write loop."""
        while self._running:
            item = self._updates.get()
            if item is _STOP or not self._running:
                break

            if not self.write_now():
                # A failed write is fatal; the supervisor shuts us down
                break

        logger.debug("Write loop ended")

    def write_now(self) -> bool:
        """
        Rewrite the data file from the current history.

        Returns:
            True if the file was written
        """
        try:
            self._history.save(str(self.data_file))
        except Exception as e:
            logger.error("Failed to write %s: %s", self.data_file, e)
            if self._on_error:
                self._on_error(e)
            return False

        self._last_write_time = datetime.now()
        self._total_writes += 1
        logger.debug("History written to %s", self.data_file)
        return True

    @property
    def is_running(self) -> bool:
        """Check if the writer is running."""
        return self._running

    def get_status(self) -> Dict[str, Any]:
        """
        Get writer status for reporting.

        Returns:
            Dictionary with write statistics
        """
        return {
            'running': self._running,
            'data_file': str(self.data_file),
            'last_write_time': self._last_write_time.isoformat() if self._last_write_time else None,
            'total_writes': self._total_writes,
        }

    def __repr__(self) -> str:
        """String representation."""
        return f"Writer(data_file={self.data_file})"
