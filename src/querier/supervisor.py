"""
Querier - process supervisor for the DIRIGERA environment logger.
Wires together hub discovery and pairing, the reader, the writer and
the HTTP server, and turns the first background error into an exit.
"""

import queue
import signal
import sys
import threading
from typing import Any, Dict, Optional

import yaml

from src.common.config import Settings
from src.common.logger import set_level, setup_logger
from src.dirigera import DirigeraError, HubTimeoutError
from src.dirigera.client import DirigeraClient
from .history import HistoryError, HistoryStore
from .reader import Reader
from .server import HttpServer, create_app
from .writer import Writer

logger = setup_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class Querier:
    """
    Main orchestrator that:
    1. Loads the hub credentials
    2. Discovers the hub (bounded retries on timeout)
    3. Pairs with the hub if no token is cached
    4. Loads the reading history
    5. Runs the reader, writer and webserver until a signal or a fatal error
    """

    # Seconds between checks of the error queue while running
    WAIT_INTERVAL = 0.5

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the supervisor.

        Args:
            settings: Application settings (defaults if None)
        """
        self._settings = settings or Settings()

        self._stop_event = threading.Event()
        self._errors: "queue.Queue[Exception]" = queue.Queue()

        self._client: Optional[DirigeraClient] = None
        self._history: Optional[HistoryStore] = None
        self._reader: Optional[Reader] = None
        self._writer: Optional[Writer] = None
        self._server: Optional[HttpServer] = None

    @property
    def client(self) -> Optional[DirigeraClient]:
        return self._client

    @property
    def history(self) -> Optional[HistoryStore]:
        return self._history

    def report_error(self, error: Exception) -> None:
        """Hand a fatal error from any thread to the supervisor."""
        self._errors.put(error)

    def request_stop(self) -> None:
        """Ask the supervisor to shut down cleanly."""
        self._stop_event.set()

    def _discover(self) -> Optional[str]:
        """
        Discover the hub, retrying on timeouts.

        Returns:
            Hub URL, or None if shutdown was requested while retrying

        Raises:
            HubTimeoutError: If every attempt timed out
            DiscoveryError: On any non-timeout failure
        """
        retries = max(1, self._settings.discovery_retries)

        for attempt in range(1, retries + 1):
            try:
                return self._client.discover()
            except HubTimeoutError:
                logger.info(
                    "Discovery timed out, will retry in a moment (%d/%d)",
                    attempt,
                    retries
                )
                if attempt < retries and self._stop_event.wait(self._settings.discovery_retry_pause):
                    return None

        raise HubTimeoutError(f"no hub found after {retries} attempts")

    def start(self) -> bool:
        """
        Bring up every component.

        Returns:
            True if running, False if shutdown was requested during startup

        Raises:
            DirigeraError: On discovery or pairing failure
            HistoryError: If the data file is malformed
            OSError: If a file cannot be read or the port cannot be bound
            ValueError: If the config file is not valid JSON
        """
        self._client = DirigeraClient.from_file(
            self._settings.config_file,
            discovery_timeout=self._settings.discovery_timeout,
            interface=self._settings.interface
        )

        if self._discover() is None or self._stop_event.is_set():
            return False

        self._client.authenticate()
        if self._stop_event.is_set():
            return False

        logger.info("Get history if exists")
        self._history = HistoryStore.load(self._settings.data_file)

        self._writer = Writer(
            self._history,
            self._settings.data_file,
            on_error=self.report_error
        )
        self._reader = Reader(
            self._client,
            self._history,
            interval=self._settings.poll_interval,
            on_update=self._writer.notify,
            on_error=self.report_error
        )

        app = create_app(
            self._history,
            self._settings.static_dir,
            status_provider=self.get_status
        )
        self._server = HttpServer(app, host=self._settings.host, port=self._settings.port)

        logger.info("Starting data write")
        self._writer.start()

        logger.info("Starting data read")
        self._reader.start()

        logger.info("Starting webserver")
        self._server.start()

        return True

    def stop(self) -> None:
        """Stop every running component."""
        self._stop_event.set()

        # Reader first so no update pulse arrives after the writer is gone
        if self._reader:
            self._reader.stop()

        if self._writer:
            self._writer.stop()

        if self._server:
            self._server.stop()

        if self._client:
            self._client.close()

    def run(self) -> int:
        """
        Run until a signal or a fatal error (blocking).

        Returns:
            Process exit code: 0 after a signal, 1 after a fatal error
        """
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        try:
            started = self.start()
        except (DirigeraError, HistoryError, OSError, ValueError) as e:
            logger.error("Startup failed: %s", e)
            self.stop()
            return EXIT_FAILURE

        if not started:
            logger.info("Exiting...")
            self.stop()
            return EXIT_OK

        exit_code = self._wait()
        self.stop()
        return exit_code

    def _wait(self) -> int:
        """Block until shutdown is requested or an error is reported."""
        while not self._stop_event.is_set():
            try:
                error = self._errors.get(timeout=self.WAIT_INTERVAL)
            except queue.Empty:
                continue

            logger.error("Fatal error: %s", error)
            return EXIT_FAILURE

        logger.info("Exiting...")
        return EXIT_OK

    def _signal_handler(self, signum: int, frame) -> None:
        """Handle system signals for graceful shutdown."""
        sig_name = signal.Signals(signum).name
        logger.info("Received signal: %s", sig_name)
        self._stop_event.set()

    def get_status(self) -> Dict[str, Any]:
        """
        Get status of every component.

        Returns:
            Dictionary served by /status
        """
        return {
            'hub': {
                'url': self._client.hub_url if self._client else None,
                'state': self._client.state.value if self._client else None,
            },
            'reader': self._reader.get_status() if self._reader else None,
            'writer': self._writer.get_status() if self._writer else None,
        }


def main(argv=None) -> None:
    """Main entry point for the querier."""
    import argparse

    parser = argparse.ArgumentParser(description="DIRIGERA environment sensor logger")
    parser.add_argument('--debug', action='store_true', help="Enable debug logging")
    parser.add_argument('--settings', help="YAML settings file")
    parser.add_argument('--config', help="Hub config file (token storage)")
    parser.add_argument('--data', help="History data file")
    parser.add_argument('--port', type=int, help="Webserver port")
    parser.add_argument('--static-dir', help="Directory with the chart page")
    parser.add_argument('--interface', help="Network interface for hub discovery")

    args = parser.parse_args(argv)

    try:
        settings = Settings(args.settings)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Cannot load settings: %s", e)
        sys.exit(EXIT_FAILURE)

    if args.config:
        settings.set('files.config', args.config)
    if args.data:
        settings.set('files.data', args.data)
    if args.port:
        settings.set('server.port', args.port)
    if args.static_dir:
        settings.set('server.static_dir', args.static_dir)
    if args.interface:
        settings.set('hub.interface', args.interface)

    try:
        set_level('DEBUG' if args.debug else settings.log_level)
    except ValueError as e:
        logger.error("Invalid settings: %s", e)
        sys.exit(EXIT_FAILURE)

    logger.info("DIRIGERA querier starting...")
    sys.exit(Querier(settings).run())


if __name__ == "__main__":
    main()
