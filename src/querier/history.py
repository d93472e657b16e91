"""
Sensor reading history.

Keeps an append-only, per-device series of readings in memory and
persists it as a single JSON document:

    {"<device id>": [{"name": ..., "timestamp": ..., "temperature": ...,
                      "rh": ..., "pm25": ..., "vocIndex": ...}, ...]}
"""

import json
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.common.logger import setup_logger
from src.dirigera.models import Device, parse_timestamp

logger = setup_logger(__name__)


class HistoryError(Exception):
    """Raised when history cannot be loaded or serialized."""
    pass


@dataclass(frozen=True)
class SensorReading:
    """One environment sensor sample."""

    name: str
    timestamp: datetime
    temperature: Optional[float] = None
    rh: Optional[float] = None
    pm25: Optional[float] = None
    voc_index: Optional[float] = None

    @classmethod
    def from_device(cls, device: Device, timestamp: datetime) -> 'SensorReading':
        """Take a reading from a device's current attributes."""
        attributes = device.attributes
        return cls(
            name=attributes.custom_name,
            timestamp=timestamp,
            temperature=attributes.current_temperature,
            rh=attributes.current_rh,
            pm25=attributes.current_pm25,
            voc_index=attributes.voc_index,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SensorReading':
        """
        Build a reading from its JSON form.

        Raises:
            ValueError: If the entry is not an object or lacks a timestamp
        """
        if not isinstance(data, dict):
            raise ValueError(f"reading must be an object, got {type(data).__name__}")

        timestamp = parse_timestamp(data.get('timestamp'))
        if timestamp is None:
            raise ValueError("reading has no timestamp")

        return cls(
            name=data.get('name', ''),
            timestamp=timestamp,
            temperature=data.get('temperature'),
            rh=data.get('rh'),
            pm25=data.get('pm25'),
            voc_index=data.get('vocIndex'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Get the JSON form of the reading."""
        return {
            'name': self.name,
            'timestamp': self.timestamp.isoformat(),
            'temperature': self.temperature,
            'rh': self.rh,
            'pm25': self.pm25,
            'vocIndex': self.voc_index,
        }


class HistoryStore:
    """
    Thread-safe mapping of device id to chronological readings.

    The reader is the only writer. Persistence and the HTTP endpoint
    read through snapshot(), which copies the series under the lock.
    """

    def __init__(self, history: Optional[Dict[str, List[SensorReading]]] = None):
        self._lock = threading.RLock()
        self._history: Dict[str, List[SensorReading]] = {
            device_id: list(readings) for device_id, readings in (history or {}).items()
        }

    @classmethod
    def load(cls, path: str) -> 'HistoryStore':
        """
        Load history from a data file.

        A missing file gives an empty history.

        Args:
            path: Path to the JSON data file

        Returns:
            HistoryStore with the file's contents

        Raises:
            HistoryError: If the file is not valid history JSON
            OSError: If the file exists but cannot be read
        """
        data_path = Path(path)
        if not data_path.exists():
            logger.debug("No history at %s", data_path)
            return cls()

        logger.debug("Reading history from %s", data_path)
        with open(data_path, 'r') as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise HistoryError(f"malformed data file {data_path}: {e}")

        if not isinstance(raw, dict):
            raise HistoryError(f"data file {data_path} must contain a JSON object")

        history: Dict[str, List[SensorReading]] = {}
        for device_id, entries in raw.items():
            if not isinstance(entries, list):
                raise HistoryError(f"readings for {device_id} must be a list")
            try:
                history[device_id] = [SensorReading.from_dict(entry) for entry in entries]
            except ValueError as e:
                raise HistoryError(f"malformed reading for {device_id}: {e}")

            series = history[device_id]
            for previous, current in zip(series, series[1:]):
                if current.timestamp < previous.timestamp:
                    raise HistoryError(
                        f"readings for {device_id} are out of order at {current.timestamp.isoformat()}"
                    )

        store = cls(history)
        logger.info(
            "Loaded history for %d devices (%d readings)",
            len(history),
            store.reading_count()
        )
        return store

    def append(self, device_id: str, reading: SensorReading) -> bool:
        """
        Append a reading to a device's series.

        Readings older than the last stored one are dropped so each
        series stays in chronological order.

        Returns:
            True if the reading was stored
        """
        with self._lock:
            series = self._history.setdefault(device_id, [])
            if series and reading.timestamp < series[-1].timestamp:
                logger.warning(
                    "Dropping out-of-order reading for %s (%s < %s)",
                    device_id,
                    reading.timestamp.isoformat(),
                    series[-1].timestamp.isoformat()
                )
                return False

            series.append(reading)
            return True

    def snapshot(self) -> Dict[str, List[SensorReading]]:
        """Get a copy of the history that is safe to read without the lock."""
        with self._lock:
            return {device_id: list(series) for device_id, series in self._history.items()}

    def readings(self, device_id: str) -> List[SensorReading]:
        """Get a copy of one device's series."""
        with self._lock:
            return list(self._history.get(device_id, []))

    def device_ids(self) -> List[str]:
        """Get the ids of all devices with history."""
        with self._lock:
            return list(self._history)

    def reading_count(self) -> int:
        """Get the total number of stored readings."""
        with self._lock:
            return sum(len(series) for series in self._history.values())

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Get the JSON form of the whole history."""
        return {
            device_id: [reading.to_dict() for reading in series]
            for device_id, series in self.snapshot().items()
        }

    def to_json(self) -> str:
        """
        Serialize the history.

        Raises:
            HistoryError: If a reading holds a value JSON cannot encode
        """
        try:
            return json.dumps(self.to_dict())
        except (TypeError, ValueError) as e:
            raise HistoryError(f"cannot serialize history: {e}")

    def save(self, path: str) -> None:
        """
        Rewrite the data file with the current history.

        Raises:
            HistoryError: If serialization fails
            OSError: If the file cannot be written
        """
        payload = self.to_json()

        data_path = Path(path)
        data_path.parent.mkdir(parents=True, exist_ok=True)
        with open(data_path, 'w') as f:
            f.write(payload)

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def __repr__(self) -> str:
        """String representation."""
        return f"HistoryStore(devices={len(self)}, readings={self.reading_count()})"
