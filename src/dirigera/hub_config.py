"""
Persistent hub credentials.
Stores the hub URL, bearer token and optional network interface as JSON.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from src.common.logger import setup_logger

logger = setup_logger(__name__)


class HubConfig:
    """
    Hub credential record backed by a JSON file.

    File format:
        {"hubUrl": "https://192.168.1.20:8443",
         "authToken": "...",
         "interface": "eth0"}

    A missing file is not an error: the record starts empty and is
    created on the first successful authentication.
    """

    def __init__(self, config_path: str):
        """
        Initialize the credential record.

        Args:
            config_path: Path to the JSON config file
        """
        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """
        Load credentials from the JSON file.

        Raises:
            OSError: If the file exists but cannot be read
            ValueError: If the file is not a JSON object
        """
        if not self.config_path.exists():
            logger.debug("No config at %s", self.config_path)
            return

        logger.debug("Reading config from %s", self.config_path)
        with open(self.config_path, 'r') as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a JSON object: {self.config_path}")

        self._config = data

    def save(self) -> None:
        """Overwrite the JSON file with the current credentials."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.debug("Config saved to %s", self.config_path)

    def to_dict(self) -> Dict[str, Any]:
        """Get the serializable form of the record."""
        data = {
            'hubUrl': self.hub_url,
            'authToken': self.auth_token,
        }
        if self.interface:
            data['interface'] = self.interface
        return data

    @property
    def hub_url(self) -> str:
        """Get the hub base URL."""
        return self._config.get('hubUrl', '')

    @hub_url.setter
    def hub_url(self, value: str) -> None:
        self._config['hubUrl'] = value

    @property
    def auth_token(self) -> str:
        """Get the bearer token."""
        return self._config.get('authToken', '')

    @auth_token.setter
    def auth_token(self, value: str) -> None:
        self._config['authToken'] = value

    @property
    def interface(self) -> Optional[str]:
        """Get the network interface used for discovery."""
        return self._config.get('interface') or None

    @interface.setter
    def interface(self, value: Optional[str]) -> None:
        self._config['interface'] = value

    def __repr__(self) -> str:
        """String representation."""
        return f"HubConfig(path={self.config_path})"
