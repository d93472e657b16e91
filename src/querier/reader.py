"""
Sensor Reader for the DIRIGERA querier.
Polls the hub for environment sensor values at 5-minute intervals.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from src.common.logger import setup_logger
from src.dirigera.client import DirigeraClient
from .history import HistoryStore, SensorReading

logger = setup_logger(__name__)


class Reader:
    """
    Polls the hub and appends readings to the shared history.
    Runs in a background thread; the first poll happens immediately.
    """

    # Default poll interval in seconds (5 minutes)
    DEFAULT_INTERVAL = 300

    def __init__(
        self,
        client: DirigeraClient,
        history: HistoryStore,
        interval: float = DEFAULT_INTERVAL,
        on_update: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the reader.

        Args:
            client: Authenticated hub client
            history: Store that receives the readings
            interval: Seconds between polls (default 300 = 5 min)
            on_update: Called after each successful poll
            on_error: Called with the exception when a poll fails
            clock: Returns the current time (defaults to local wall clock)
        """
        self._client = client
        self._history = history
        self.interval = interval
        self._on_update = on_update
        self._on_error = on_error
        self._clock = clock or (lambda: datetime.now(timezone.utc).astimezone())

        # Background thread state
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stop_event = threading.Event()

        # Poll statistics
        self._last_poll_time: Optional[datetime] = None
        self._last_poll_success = False
        self._total_polls = 0
        self._total_failures = 0

    def start(self) -> None:
        """Start the background poll thread."""
        if self._running:
            logger.warning("Reader already running")
            return

        self._running = True
        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._poll_loop,
            name="Reader",
            daemon=True
        )
        self._thread.start()

        logger.info("Reader started (interval: %ss)", self.interval)

    def stop(self) -> None:
        """
        Stop the background poll thread.

        A poll already talking to the hub is not interrupted; the thread
        exits once that request returns.
        """
        if not self._running:
            return

        logger.info("Stopping reader...")
        self._running = False
        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)

        logger.info("Reader stopped")

    def _poll_loop(self) -> None:
        """Background thread poll loop."""
        self.poll_now()

        while self._running:
            # Wait for interval or stop signal
            if self._stop_event.wait(timeout=self.interval):
                break

            if self._running:
                self.poll_now()

        logger.debug("Poll loop ended")

    def poll_now(self) -> bool:
        """
        Read every environment sensor once.

        Returns:
            True if the hub answered and readings were stored
        """
        self._total_polls += 1

        try:
            sensors = self._client.list_environment_sensors()
        except Exception as e:
            logger.error("Poll failed: %s", e)
            self._last_poll_time = self._clock()
            self._last_poll_success = False
            self._total_failures += 1
            if self._on_error:
                self._on_error(e)
            return False

        now = self._clock()
        for device in sensors:
            reading = SensorReading.from_device(device, now)
            self._history.append(device.id, reading)
            logger.debug("%s (%s): %s", device.name, device.id, reading)

        self._last_poll_time = now
        self._last_poll_success = True
        logger.info("Stored readings for %d sensors", len(sensors))

        if self._on_update:
            self._on_update()

        return True

    @property
    def is_running(self) -> bool:
        """Check if the reader is running."""
        return self._running

    @property
    def last_poll_time(self) -> Optional[datetime]:
        """Get time of last poll attempt."""
        return self._last_poll_time

    @property
    def last_poll_success(self) -> bool:
        """Check if the last poll succeeded."""
        return self._last_poll_success

    def get_status(self) -> Dict[str, Any]:
        """
        Get reader status for reporting.

        Returns:
            Dictionary with poll statistics
        """
        return {
            'running': self._running,
            'interval': self.interval,
            'last_poll_time': self._last_poll_time.isoformat() if self._last_poll_time else None,
            'last_poll_success': self._last_poll_success,
            'total_polls': self._total_polls,
            'total_failures': self._total_failures,
        }

    def __repr__(self) -> str:
        """String representation."""
        return f"Reader(interval={self.interval}s, running={self._running})"
