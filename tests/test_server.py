"""
Tests for the HTTP surface.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from src.querier.history import HistoryError, HistoryStore, SensorReading
from src.querier.server import HttpServer, create_app


INDEX_HTML = '<html><body>chart</body></html>'


@pytest.fixture
def static_dir(temp_dir):
    """Static directory with a chart page and a script."""
    (temp_dir / 'index.html').write_text(INDEX_HTML)
    (temp_dir / 'chart.js').write_text('console.log("chart");')
    return temp_dir


@pytest.fixture
def history():
    store = HistoryStore()
    store.append('sensor-1', SensorReading(
        name='Hall',
        timestamp=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        temperature=20.5,
        rh=40,
        pm25=2,
        voc_index=90,
    ))
    return store


@pytest.fixture
def app(history, static_dir):
    app = create_app(history, str(static_dir))
    app.config['TESTING'] = True
    return app


class TestDataEndpoint:
    """Tests for GET /data."""

    def test_returns_history(self, app):
        """Test /data serves the history as JSON."""
        response = app.test_client().get('/data')

        assert response.status_code == 200
        assert response.mimetype == 'application/json'
        data = json.loads(response.data)
        assert data['sensor-1'][0] == {
            'name': 'Hall',
            'timestamp': '2024-03-01T12:00:00+00:00',
            'temperature': 20.5,
            'rh': 40,
            'pm25': 2,
            'vocIndex': 90,
        }

    def test_empty_history(self, static_dir):
        """Test an empty history is an empty object."""
        app = create_app(HistoryStore(), str(static_dir))
        response = app.test_client().get('/data')
        assert response.status_code == 200
        assert json.loads(response.data) == {}

    def test_reflects_new_readings(self, app, history):
        """Test readings appended after startup are served."""
        history.append('sensor-2', SensorReading(
            name='Bedroom',
            timestamp=datetime(2024, 3, 1, 12, 5, tzinfo=timezone.utc),
        ))
        data = json.loads(app.test_client().get('/data').data)
        assert set(data) == {'sensor-1', 'sensor-2'}

    def test_serialization_failure(self, static_dir):
        """Test a history that cannot be serialized gives HTTP 500."""
        broken = MagicMock()
        broken.to_json.side_effect = HistoryError('cannot serialize history')
        app = create_app(broken, str(static_dir))

        response = app.test_client().get('/data')

        assert response.status_code == 500
        assert 'cannot serialize history' in response.get_json()['error']


class TestStatusEndpoint:
    """Tests for GET /status."""

    def test_counts(self, app):
        """Test device and reading counts."""
        body = app.test_client().get('/status').get_json()
        assert body['devices'] == 1
        assert body['readings'] == 1

    def test_status_provider(self, history, static_dir):
        """Test component status is merged in."""
        app = create_app(history, str(static_dir), status_provider=lambda: {'reader': {'running': True}})
        body = app.test_client().get('/status').get_json()
        assert body['reader'] == {'running': True}


class TestStaticFiles:
    """Tests for the chart page and assets."""

    def test_index(self, app):
        """Test / serves index.html."""
        response = app.test_client().get('/')
        assert response.status_code == 200
        assert response.data.decode() == INDEX_HTML

    def test_asset(self, app):
        """Test files in the static directory are served by name."""
        response = app.test_client().get('/chart.js')
        assert response.status_code == 200
        assert b'chart' in response.data

    def test_missing_file(self, app):
        """Test unknown paths give 404."""
        assert app.test_client().get('/nope.css').status_code == 404


class TestHttpServer:
    """Tests for the background werkzeug server."""

    def test_serves_and_stops(self, app):
        """Test the server answers real requests until stopped."""
        server = HttpServer(app, host='127.0.0.1', port=0)
        server.start()
        try:
            assert server.is_running is True
            port = server._server.server_port
            response = requests.get(f'http://127.0.0.1:{port}/data', timeout=5)
            assert response.status_code == 200
            assert 'sensor-1' in response.json()
        finally:
            server.stop()

        assert server.is_running is False

    def test_stop_without_start(self, app):
        """Test stopping a server that never started."""
        HttpServer(app).stop()
