"""
Device models for data returned by the hub's /v1/devices endpoint.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


ENVIRONMENT_SENSOR = "environmentSensor"

# Fractional seconds, normalized to exactly six digits (hub sends nanoseconds)
_FRACTION_RE = re.compile(r'\.(\d+)')


def _microseconds(match: 're.Match[str]') -> str:
    return '.' + match.group(1)[:6].ljust(6, '0')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp.

    Accepts a trailing 'Z' and fractional seconds of any precision,
    which are truncated or padded to microseconds. Naive values are
    taken as UTC.

    Args:
        value: Timestamp string or None

    Returns:
        Timezone-aware datetime, or None for an empty value

    Raises:
        ValueError: If the value is not a string or not a valid timestamp
    """
    if value is None or value == '':
        return None

    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    text = _FRACTION_RE.sub(_microseconds, text, count=1)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class DeviceAttributes:
    """Attributes block of a hub device."""

    custom_name: str = ""
    firmware_version: str = ""
    hardware_version: str = ""
    manufacturer: str = ""
    model: str = ""
    product_code: str = ""
    serial_number: str = ""
    current_temperature: Optional[float] = None
    current_rh: Optional[float] = None
    current_pm25: Optional[float] = None
    voc_index: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeviceAttributes':
        """Build attributes from the hub's camelCase JSON."""
        return cls(
            custom_name=data.get('customName', ''),
            firmware_version=data.get('firmwareVersion', ''),
            hardware_version=data.get('hardwareVersion', ''),
            manufacturer=data.get('manufacturer', ''),
            model=data.get('model', ''),
            product_code=data.get('productCode', ''),
            serial_number=data.get('serialNumber', ''),
            current_temperature=data.get('currentTemperature'),
            current_rh=data.get('currentRH'),
            current_pm25=data.get('currentPM25'),
            voc_index=data.get('vocIndex'),
        )


@dataclass
class Device:
    """A device as reported by the hub."""

    id: str
    type: str = ""
    device_type: str = ""
    created_at: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    attributes: DeviceAttributes = field(default_factory=DeviceAttributes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Device':
        """
        Build a device from one entry of the hub's device list.

        Unknown keys are ignored; missing keys fall back to defaults.

        Raises:
            ValueError: If the entry has no id or a malformed timestamp
        """
        if not isinstance(data, dict) or not data.get('id'):
            raise ValueError(f"Device entry without id: {data!r}")

        return cls(
            id=data['id'],
            type=data.get('type', ''),
            device_type=data.get('deviceType', ''),
            created_at=parse_timestamp(data.get('createdAt')),
            last_seen=parse_timestamp(data.get('lastSeen')),
            attributes=DeviceAttributes.from_dict(data.get('attributes') or {}),
        )

    @property
    def name(self) -> str:
        """Display name set in the IKEA app."""
        return self.attributes.custom_name

    @property
    def is_environment_sensor(self) -> bool:
        """Check if this device reports air quality readings."""
        return self.device_type == ENVIRONMENT_SENSOR
