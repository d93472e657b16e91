"""
HTTP surface for the DIRIGERA querier.

Endpoints:
- GET /data    - full reading history as JSON
- GET /status  - reader and writer statistics
- GET /<path>  - static chart assets (index.html at /)
"""

import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, jsonify, send_from_directory
from werkzeug.serving import make_server

from src.common.logger import setup_logger
from .history import HistoryError, HistoryStore

logger = setup_logger(__name__)


def create_app(
    history: HistoryStore,
    static_dir: str,
    status_provider: Optional[Callable[[], Dict[str, Any]]] = None
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        history: Store served by /data
        static_dir: Directory with the chart page and its assets
        status_provider: Returns the dictionary served by /status

    Returns:
        Configured Flask application instance
    """
    static_path = Path(static_dir).resolve()
    app = Flask(__name__, static_folder=str(static_path), static_url_path='')

    @app.route('/data')
    def data():
        """Serve the reading history."""
        try:
            payload = history.to_json()
        except HistoryError as e:
            logger.error("Failed to serve history: %s", e)
            return jsonify({'error': str(e)}), 500

        return Response(payload, mimetype='application/json')

    @app.route('/status')
    def status():
        """Serve reader and writer statistics."""
        body = {
            'devices': len(history),
            'readings': history.reading_count(),
        }
        if status_provider:
            body.update(status_provider())
        return jsonify(body)

    @app.route('/')
    def index():
        """Serve the chart page."""
        return send_from_directory(str(static_path), 'index.html')

    return app


class HttpServer:
    """Runs the Flask app on a werkzeug server in a background thread."""

    def __init__(self, app: Flask, host: str = '0.0.0.0', port: int = 8080):
        self.app = app
        self.host = host
        self.port = port
        self._server = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """
        Bind the port and start serving.

        Raises:
            OSError: If the port cannot be bound
        """
        self._server = make_server(self.host, self.port, self.app, threaded=True)
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="HttpServer",
            daemon=True
        )
        self._thread.start()
        logger.info("Webserver listening on %s:%d", self.host, self.port)

    def stop(self) -> None:
        """Stop serving and release the port."""
        if self._server is None:
            return

        self._server.shutdown()
        self._server.server_close()
        self._server = None

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)

        logger.info("Webserver stopped")

    @property
    def is_running(self) -> bool:
        """Check if the server is serving."""
        return self._server is not None
