"""WireGuard configuration parsing.

Extracts the peer endpoint of an interface from its wg-quick configuration
file. Only the ``Endpoint`` key is read; everything else is ignored.
"""

import logging
import re
from pathlib import Path

from wgddns.errors import ConfigUnavailableError, ResolutionError
from wgddns.models import MonitoredEndpoint
from wgddns.resolver import ResolverProtocol

DEFAULT_CONFIG_DIR = "/etc/wireguard"

_ENDPOINT_LINE = re.compile(r"^\s*Endpoint\s*=\s*(.+)$")
_IPV4_LITERAL = re.compile(r"^\d+\.\d+\.\d+\.\d+$")


def split_host_port(value: str) -> tuple[str, str]:
    """Split "host:port" or "[host]:port" into host and port.

    Raises:
        ValueError: If the value is not valid host:port syntax.
    """
    if value.startswith("["):
        end = value.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address: {value}")
        host = value[1:end]
        rest = value[end + 1:]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address: {value}")
        port = rest[1:]
        if ":" in port:
            raise ValueError(f"too many colons in address: {value}")
    else:
        if "[" in value or "]" in value:
            raise ValueError(f"unexpected bracket in address: {value}")
        colons = value.count(":")
        if colons == 0:
            raise ValueError(f"missing port in address: {value}")
        if colons > 1:
            raise ValueError(f"too many colons in address: {value}")
        host, port = value.split(":")

    if "[" in port or "]" in port:
        raise ValueError(f"unexpected bracket in address: {value}")
    return host, port


def is_ipv4_literal(host: str) -> bool:
    """Whether host is a dotted-quad IPv4 address."""
    return bool(_IPV4_LITERAL.match(host))


def find_endpoint(text: str) -> tuple[str, str] | None:
    """Find the monitorable endpoint in configuration text.

    The last ``Endpoint`` line with valid host:port syntax wins. Lines with
    malformed values are skipped.

    Returns:
        (raw endpoint, hostname), or None when there is no endpoint or the
        winning endpoint is a literal address.
    """
    found: tuple[str, str, bool] | None = None

    for line in text.splitlines():
        match = _ENDPOINT_LINE.match(line.strip())
        if not match:
            continue
        endpoint = match.group(1).strip()
        try:
            host, _ = split_host_port(endpoint)
        except ValueError:
            continue
        bracketed = endpoint.startswith("[")
        found = (endpoint, host, bracketed)

    if found is None:
        return None

    endpoint, host, bracketed = found
    # Literal addresses never drift
    if not host or bracketed or is_ipv4_literal(host):
        return None
    return endpoint, host


class WireGuardConfigParser:
    """Builds MonitoredEndpoints from wg-quick configuration files."""

    def __init__(
        self,
        resolver: ResolverProtocol,
        config_dir: str | Path = DEFAULT_CONFIG_DIR,
        logger: logging.Logger | None = None,
    ):
        """Initialize parser.

        Args:
            resolver: Used for the initial resolution of each hostname.
            config_dir: Directory holding <interface>.conf files.
            logger: Logger to use. Defaults to the module logger.
        """
        self._resolver = resolver
        self._config_dir = Path(config_dir)
        self._log = logger or logging.getLogger(__name__)

    def config_path(self, interface: str) -> Path:
        """Canonical configuration path for an interface."""
        return self._config_dir / f"{interface}.conf"

    async def parse(
        self, interface: str, path: str | Path | None = None
    ) -> MonitoredEndpoint | None:
        """Parse an interface's configuration.

        Args:
            interface: Interface name.
            path: Configuration file. Defaults to config_path(interface).

        Returns:
            MonitoredEndpoint, or None if the interface has no hostname
            endpoint.

        Raises:
            ConfigUnavailableError: If the file cannot be read.
        """
        config_path = Path(path) if path is not None else self.config_path(interface)
        try:
            text = config_path.read_text()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigUnavailableError(interface, str(config_path), str(e)) from e

        found = find_endpoint(text)
        if found is None:
            self._log.debug(f"No domain endpoint in {config_path} (interface: {interface})")
            return None

        endpoint, hostname = found
        entry = MonitoredEndpoint(
            interface=interface,
            endpoint=endpoint,
            hostname=hostname,
        )

        try:
            entry.last_ip = await self._resolver.resolve(hostname)
        except ResolutionError as e:
            self._log.debug(f"Initial resolution failed for {hostname}: {e}")

        self._log.debug(
            f"Found domain endpoint: {hostname} -> {entry.last_ip} "
            f"(interface: {interface})"
        )
        return entry
