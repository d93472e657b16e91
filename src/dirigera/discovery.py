"""
mDNS / DNS-SD discovery of the DIRIGERA hub.

The hub advertises itself as an `_ihsp._tcp` service on the local
segment. Its TXT record carries the product name and, on some firmware,
an `ipv4address=` field when no A record accompanies the answer.
"""

import queue
import time
from typing import List, Optional, Union

import ifaddr
from zeroconf import (
    InterfaceChoice,
    IPVersion,
    ServiceBrowser,
    ServiceInfo,
    ServiceStateChange,
    Zeroconf,
)

from src.common.logger import setup_logger
from . import DiscoveryError, HubTimeoutError

logger = setup_logger(__name__)

SERVICE_TYPE = "_ihsp._tcp.local."
HUB_MARKER = "DIRIGERA"
IPV4_FIELD = "ipv4address="

# How long to wait for a hub to answer (seconds)
DEFAULT_TIMEOUT = 60

# How long to wait for a single service to resolve (milliseconds)
RESOLVE_TIMEOUT_MS = 3000


def interface_addresses(name: str) -> List[str]:
    """
    Get the IPv4 addresses bound to a network interface.

    Args:
        name: Interface name (e.g., 'eth0')

    Returns:
        List of IPv4 address strings

    Raises:
        DiscoveryError: If no such interface exists or it has no IPv4 address
    """
    for adapter in ifaddr.get_adapters():
        if name not in (adapter.name, adapter.nice_name):
            continue

        addresses = [ip.ip for ip in adapter.ips if isinstance(ip.ip, str)]
        if not addresses:
            raise DiscoveryError(f"interface {name} has no IPv4 address")
        return addresses

    raise DiscoveryError(f"unknown network interface: {name}")


def txt_fields(info: ServiceInfo) -> List[str]:
    """Get the TXT record of a service as 'key=value' strings."""
    fields = []
    for key, value in (info.properties or {}).items():
        key_text = key.decode('utf-8', 'replace') if isinstance(key, bytes) else str(key)
        if value is None:
            fields.append(key_text)
        else:
            value_text = value.decode('utf-8', 'replace') if isinstance(value, bytes) else str(value)
            fields.append(f"{key_text}={value_text}")
    return fields


def hub_url_from_service(info: ServiceInfo) -> Optional[str]:
    """
    Build the hub URL from a resolved service.

    Args:
        info: Resolved mDNS service

    Returns:
        'https://<ip>:<port>' for a DIRIGERA hub, None for any other service

    Raises:
        DiscoveryError: If the service is a hub but carries no IPv4 address
    """
    fields = txt_fields(info)
    if HUB_MARKER not in "|".join(fields):
        return None

    addresses = info.parsed_addresses(IPVersion.V4Only)
    ip = addresses[0] if addresses else ""

    if not ip:
        for entry in fields:
            if entry.startswith(IPV4_FIELD):
                ip = entry[len(IPV4_FIELD):]

    if not ip:
        raise DiscoveryError("mDNS reply is missing IP info")

    return f"https://{ip}:{info.port}"


class HubDiscovery:
    """
    Finds the hub by browsing for its mDNS service.

    Usage:
        discovery = HubDiscovery(timeout=60, interface="eth0")
        hub_url = discovery.discover()
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, interface: Optional[str] = None):
        """
        Args:
            timeout: Seconds to wait for a hub to answer
            interface: Restrict the query to this network interface
        """
        self.timeout = timeout
        self.interface = interface

    def _interfaces(self) -> Union[InterfaceChoice, List[str]]:
        if not self.interface:
            logger.debug("No interface name given")
            return InterfaceChoice.All
        return interface_addresses(self.interface)

    def discover(self) -> str:
        """
        Browse for the hub and return its base URL.

        Services that are not a DIRIGERA hub are skipped.

        Returns:
            Hub base URL

        Raises:
            HubTimeoutError: If no hub answered within the timeout
            DiscoveryError: On interface, socket or reply errors
        """
        found: "queue.Queue[ServiceInfo]" = queue.Queue()

        def on_service_state_change(
            zeroconf: Zeroconf,
            service_type: str,
            name: str,
            state_change: ServiceStateChange
        ) -> None:
            if state_change not in (ServiceStateChange.Added, ServiceStateChange.Updated):
                return

            info = zeroconf.get_service_info(service_type, name, timeout=RESOLVE_TIMEOUT_MS)
            if info is not None:
                found.put(info)

        try:
            zc = Zeroconf(interfaces=self._interfaces())
        except OSError as e:
            raise DiscoveryError(f"cannot open mDNS socket: {e}")

        browser = None
        try:
            browser = ServiceBrowser(zc, SERVICE_TYPE, handlers=[on_service_state_change])
            deadline = time.monotonic() + self.timeout

            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise HubTimeoutError()

                try:
                    info = found.get(timeout=remaining)
                except queue.Empty:
                    raise HubTimeoutError()

                logger.debug("mDNS reply: %s", info)
                hub_url = hub_url_from_service(info)
                if hub_url:
                    logger.info("Found hub at %s", hub_url)
                    return hub_url
        finally:
            if browser is not None:
                browser.cancel()
            zc.close()

    def __repr__(self) -> str:
        """String representation."""
        return f"HubDiscovery(timeout={self.timeout}, interface={self.interface})"
