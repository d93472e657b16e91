"""
Pytest fixtures shared by the querier tests.

Provides temporary files, sample hub payloads and a hub client that
already knows the hub's address.
"""

import json
import tempfile
from pathlib import Path
from unittest import mock

import pytest

from src.dirigera.client import DirigeraClient
from src.dirigera.hub_config import HubConfig


HUB_URL = 'https://127.0.0.1:9999'


def make_device(device_id, device_type='environmentSensor', name='Sensor', **attributes):
    """Build one entry of the hub's /v1/devices payload."""
    attrs = {
        'customName': name,
        'firmwareVersion': '1.0.11',
        'hardwareVersion': '1',
        'manufacturer': 'IKEA of Sweden',
        'model': 'VINDSTYRKA',
        'productCode': 'E2112',
        'serialNumber': 'ABC123',
        'currentTemperature': 21,
        'currentRH': 45,
        'currentPM25': 3,
        'vocIndex': 100,
    }
    attrs.update(attributes)
    return {
        'id': device_id,
        'type': 'sensor',
        'deviceType': device_type,
        'createdAt': '2024-01-10T08:00:00.000Z',
        'lastSeen': '2024-03-01T12:30:45.123456789Z',
        'attributes': attrs,
    }


# Two environment sensors and one lamp, in hub order
SAMPLE_DEVICES = [
    make_device('sensor-1', name='Living room', currentTemperature=22),
    make_device('lamp-1', device_type='light', name='Desk lamp'),
    make_device('sensor-2', name='Bedroom', currentPM25=8),
]


def mock_response(status_code=200, payload=None):
    """Create a mock requests.Response returning payload as JSON."""
    response = mock.MagicMock()
    response.status_code = status_code
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_path(temp_dir):
    """Path for a hub config file that does not exist yet."""
    return temp_dir / 'config.json'


@pytest.fixture
def data_path(temp_dir):
    """Path for a data file that does not exist yet."""
    return temp_dir / 'data.json'


@pytest.fixture
def paired_config_path(temp_dir):
    """Path of a hub config file that already holds a token."""
    path = temp_dir / 'paired.json'
    with open(path, 'w') as f:
        json.dump({'hubUrl': 'https://10.0.0.2:8443', 'authToken': 'cached-token'}, f)
    return path


@pytest.fixture
def client(config_path):
    """Hub client without a token that has found the hub."""
    hub_client = DirigeraClient(HubConfig(str(config_path)))
    hub_client.set_hub_url(HUB_URL)
    yield hub_client
    hub_client.close()


@pytest.fixture
def paired_client(paired_config_path):
    """Hub client with a cached token that has found the hub and authenticated."""
    hub_client = DirigeraClient(HubConfig(str(paired_config_path)))
    hub_client.set_hub_url(HUB_URL)
    hub_client.authenticate()
    yield hub_client
    hub_client.close()
