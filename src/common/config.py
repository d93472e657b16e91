"""
Application settings for the DIRIGERA querier.
Loads optional overrides from a YAML file on top of built-in defaults.
"""

import copy
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional


PROJECT_ROOT = Path(__file__).parent.parent.parent

DEFAULT_SETTINGS: Dict[str, Any] = {
    'files': {
        'config': 'config.json',
        'data': 'data.json',
    },
    'server': {
        'host': '0.0.0.0',
        'port': 8080,
        'static_dir': str(PROJECT_ROOT / 'static'),
    },
    'reader': {
        'interval_seconds': 300,
    },
    'discovery': {
        'timeout_seconds': 60,
        'retries': 5,
        'retry_pause_seconds': 1,
    },
    'hub': {
        'interface': None,
    },
    'logging': {
        'level': 'INFO',
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base in place."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


class Settings:
    """Manages application settings from defaults, YAML and environment."""

    def __init__(self, settings_path: Optional[str] = None):
        """
        Initialize settings.

        Args:
            settings_path: Path to a YAML settings file. If None, only
                defaults and environment overrides apply.
        """
        self.settings_path = Path(settings_path) if settings_path else None
        self._settings: Dict[str, Any] = copy.deepcopy(DEFAULT_SETTINGS)
        self.load()

    def load(self) -> None:
        """Load settings from the YAML file, if one was given."""
        if self.settings_path is not None:
            if not self.settings_path.exists():
                raise FileNotFoundError(f"Settings file not found: {self.settings_path}")

            with open(self.settings_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}

            if not isinstance(loaded, dict):
                raise ValueError(f"Settings file must contain a mapping: {self.settings_path}")

            _merge(self._settings, loaded)

        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        """Override settings from environment variables."""
        if 'DIRIGERA_CONFIG_FILE' in os.environ:
            self._settings['files']['config'] = os.environ['DIRIGERA_CONFIG_FILE']

        if 'DIRIGERA_DATA_FILE' in os.environ:
            self._settings['files']['data'] = os.environ['DIRIGERA_DATA_FILE']

        if 'DIRIGERA_PORT' in os.environ:
            self._settings['server']['port'] = int(os.environ['DIRIGERA_PORT'])

        if 'DIRIGERA_INTERFACE' in os.environ:
            self._settings['hub']['interface'] = os.environ['DIRIGERA_INTERFACE']

        if 'DIRIGERA_POLL_INTERVAL' in os.environ:
            self._settings['reader']['interval_seconds'] = int(os.environ['DIRIGERA_POLL_INTERVAL'])

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a setting using dot notation.

        Args:
            key: Setting key (e.g., 'server.port')
            default: Default value if key not found

        Returns:
            Setting value or default

        Example:
            >>> settings = Settings()
            >>> settings.get('server.port')
            8080
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a setting using dot notation.

        Args:
            key: Setting key (e.g., 'server.port')
            value: Value to set
        """
        keys = key.split('.')
        settings = self._settings

        for k in keys[:-1]:
            if k not in settings:
                settings[k] = {}
            settings = settings[k]

        settings[keys[-1]] = value

    @property
    def config_file(self) -> str:
        return self.get('files.config')

    @property
    def data_file(self) -> str:
        return self.get('files.data')

    @property
    def host(self) -> str:
        return self.get('server.host')

    @property
    def port(self) -> int:
        return int(self.get('server.port'))

    @property
    def static_dir(self) -> str:
        return self.get('server.static_dir')

    @property
    def poll_interval(self) -> float:
        return float(self.get('reader.interval_seconds'))

    @property
    def discovery_timeout(self) -> float:
        return float(self.get('discovery.timeout_seconds'))

    @property
    def discovery_retries(self) -> int:
        return int(self.get('discovery.retries'))

    @property
    def discovery_retry_pause(self) -> float:
        return float(self.get('discovery.retry_pause_seconds'))

    @property
    def interface(self) -> Optional[str]:
        return self.get('hub.interface') or None

    @property
    def log_level(self) -> str:
        return self.get('logging.level', 'INFO')

    def __repr__(self) -> str:
        """String representation."""
        return f"Settings(path={self.settings_path})"
