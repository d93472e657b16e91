"""
DIRIGERA Client - discovery, pairing and device listing.

The client walks a forward-only path:
    UNCONFIGURED -> DISCOVERED -> AUTHENTICATED

The hub address is looked up over mDNS on every run. The bearer token is
obtained once by pairing (PKCE + a press of the hub's action button) and
then cached in the config file indefinitely.

Example:
    from src.dirigera.client import DirigeraClient

    client = DirigeraClient.from_file('config.json')
    client.discover()
    client.authenticate()
    sensors = client.list_environment_sensors()
"""

import socket
import time
from typing import Any, Dict, List, Optional

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from src.common.logger import setup_logger
from . import AuthError, DirigeraError, HubRequestError
from .discovery import DEFAULT_TIMEOUT, HubDiscovery
from .hub_config import HubConfig
from .models import Device
from .pkce import create_code_challenge, create_code_verifier
from .state import HubState, HubStateMachine

logger = setup_logger(__name__)

# The hub uses a self-signed certificate
urllib3.disable_warnings(InsecureRequestWarning)


class DirigeraClient:
    """Client for a single DIRIGERA hub on the local network."""

    # Time given to the operator to press the action button on the hub.
    # The hub offers no way to detect the press, so this is a fixed wait.
    BUTTON_PRESS_DELAY = 20

    # Request timeout in seconds
    REQUEST_TIMEOUT = 10

    AUDIENCE = "homesmart.local"

    AUTHORIZE_PATH = "/v1/oauth/authorize"
    TOKEN_PATH = "/v1/oauth/token"
    DEVICES_PATH = "/v1/devices"

    def __init__(
        self,
        config: HubConfig,
        discovery_timeout: float = DEFAULT_TIMEOUT,
        interface: Optional[str] = None
    ):
        """
        Initialize the client.

        Args:
            config: Persisted hub credentials
            discovery_timeout: Seconds to wait for the hub's mDNS answer
            interface: Network interface for discovery (falls back to the
                one stored in the config file)
        """
        self._config = config
        self.discovery_timeout = discovery_timeout
        self.interface = interface or config.interface

        self._hub_url = ""
        self._state = HubStateMachine()

        self.session = requests.Session()
        self.session.verify = False
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'dirigera-querier/0.1',
        })

    @classmethod
    def from_file(cls, config_path: str, **kwargs) -> 'DirigeraClient':
        """
        Create a client from a config file path.

        A missing file yields a client without a token.

        Raises:
            OSError: If the file exists but cannot be read
            ValueError: If the file is not valid JSON
        """
        return cls(HubConfig(config_path), **kwargs)

    @property
    def config(self) -> HubConfig:
        """Get the persisted credentials."""
        return self._config

    @property
    def hub_url(self) -> str:
        """Get the hub base URL found by discovery."""
        return self._hub_url

    @property
    def auth_token(self) -> str:
        """Get the bearer token (empty until paired)."""
        return self._config.auth_token

    @property
    def state(self) -> HubState:
        """Get the connection state."""
        return self._state.state

    def set_hub_url(self, hub_url: str) -> None:
        """
        Use a known hub address.

        Args:
            hub_url: Base URL such as 'https://192.168.1.20:8443'
        """
        self._hub_url = hub_url.rstrip('/')
        self._state.transition_to(HubState.DISCOVERED)

    def discover(self) -> str:
        """
        Look up the hub on the local network.

        Returns:
            Hub base URL

        Raises:
            HubTimeoutError: If the hub did not answer in time
            DiscoveryError: On any other discovery failure
        """
        discovery = HubDiscovery(timeout=self.discovery_timeout, interface=self.interface)
        hub_url = discovery.discover()
        self.set_hub_url(hub_url)
        return hub_url

    def authenticate(self) -> None:
        """
        Pair with the hub unless a token is already cached.

        With a cached token this makes no network call and leaves the
        config file untouched.

        Raises:
            DirigeraError: If the hub has not been discovered
            AuthError: If the hub returned an error body
            HubRequestError: If a request to the hub failed
        """
        if not self._state.is_discovered:
            raise DirigeraError("hub URL not set")

        if self.auth_token:
            logger.info("Auth token already set, skipping auth")
            self._state.transition_to(HubState.AUTHENTICATED)
            return

        logger.info("Starting auth")

        code_verifier = create_code_verifier()
        code = self._request_auth_code(code_verifier)

        logger.info("Press the action button on the hub (waiting %ds)", self.BUTTON_PRESS_DELAY)
        time.sleep(self.BUTTON_PRESS_DELAY)

        token = self._request_token(code, code_verifier)

        self._config.hub_url = self._hub_url
        self._config.auth_token = token
        if self.interface:
            self._config.interface = self.interface
        self._config.save()

        self._state.transition_to(HubState.AUTHENTICATED)
        logger.info("Paired with hub, token saved to %s", self._config.config_path)

    def _request_auth_code(self, code_verifier: str) -> str:
        """Ask the hub for an authorization code."""
        params = {
            'audience': self.AUDIENCE,
            'response_type': 'code',
            'code_challenge': create_code_challenge(code_verifier),
            'code_challenge_method': 'S256',
        }

        logger.debug("Get auth code")
        response = self._send('GET', self.AUTHORIZE_PATH, params=params)
        data = self._check_auth_response(response)

        code = data.get('code')
        if not code:
            raise AuthError("hub returned no authorization code")
        return code

    def _request_token(self, code: str, code_verifier: str) -> str:
        """Exchange the authorization code for a bearer token."""
        form = {
            'code': code,
            'code_verifier': code_verifier,
            'name': socket.gethostname(),
            'grant_type': 'authorization_code',
        }

        logger.debug("Post auth code")
        response = self._send('POST', self.TOKEN_PATH, data=form)
        data = self._check_auth_response(response)

        token = data.get('access_token')
        if not token:
            raise AuthError("hub returned no access token")
        return token

    def _check_auth_response(self, response: requests.Response) -> Dict[str, Any]:
        """
        Decode a pairing response and surface hub errors.

        Raises:
            AuthError: If the body carries a non-empty 'error' field
            HubRequestError: If the body is not a JSON object or the
                status is an error without an error body
        """
        data = self._decode(response)
        if not isinstance(data, dict):
            raise HubRequestError("unexpected auth response", status_code=response.status_code)

        if data.get('error'):
            raise AuthError(f"{data.get('error', '')}{data.get('message', '')}")

        if response.status_code >= 400:
            raise HubRequestError(
                f"auth request failed: HTTP {response.status_code}",
                status_code=response.status_code
            )

        return data

    def list_environment_sensors(self) -> List[Device]:
        """
        Get all environment sensors known to the hub.

        Returns:
            Sensors in the order the hub lists them (possibly empty)

        Raises:
            DirigeraError: If the client has not authenticated
            HubRequestError: If the request fails or the body is invalid
        """
        if not self._state.is_authenticated:
            raise DirigeraError("not authenticated with hub")

        logger.debug("Get list of devices")
        response = self._send(
            'GET',
            self.DEVICES_PATH,
            headers={'Authorization': f'Bearer {self.auth_token}'}
        )

        if response.status_code >= 400:
            raise HubRequestError(
                f"device list failed: HTTP {response.status_code}",
                status_code=response.status_code
            )

        data = self._decode(response)
        if not isinstance(data, list):
            raise HubRequestError("device list is not a JSON array", status_code=response.status_code)

        try:
            devices = [Device.from_dict(entry) for entry in data]
        except ValueError as e:
            raise HubRequestError(f"invalid device in list: {e}", status_code=response.status_code)

        sensors = [device for device in devices if device.is_environment_sensor]
        logger.debug("Hub lists %d devices, %d environment sensors", len(devices), len(sensors))
        return sensors

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        """
        Send a request to the hub.

        Raises:
            DirigeraError: If the hub has not been discovered
            HubRequestError: On connection errors and timeouts
        """
        if not self._state.is_discovered:
            raise DirigeraError("hub URL not set")

        url = f"{self._hub_url}{path}"
        try:
            return self.session.request(method, url, timeout=self.REQUEST_TIMEOUT, **kwargs)
        except requests.Timeout:
            raise HubRequestError(f"timeout talking to hub: {method} {path}")
        except requests.RequestException as e:
            raise HubRequestError(f"hub request failed: {method} {path}: {e}")

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        """Parse a JSON response body."""
        try:
            return response.json()
        except ValueError:
            raise HubRequestError(
                "hub response is not valid JSON",
                status_code=response.status_code
            )

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def __repr__(self) -> str:
        """String representation."""
        return f"DirigeraClient(hub_url={self._hub_url or None}, state={self.state.name})"
