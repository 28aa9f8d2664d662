"""Base exceptions for wg-ddns."""


class WgDdnsError(Exception):
    """Base exception for all wg-ddns errors."""

    pass


class ConfigError(WgDdnsError):
    """Invalid monitor configuration (fatal before the monitor starts)."""

    pass


class ConfigUnavailableError(WgDdnsError):
    """WireGuard configuration file missing or unreadable."""

    def __init__(self, interface: str, path: str, reason: str):
        self.interface = interface
        self.path = path
        super().__init__(f"failed to open config file {path}: {reason}")


class DiscoveryError(WgDdnsError):
    """Could not establish which interfaces to monitor."""

    pass


class ResolutionError(WgDdnsError):
    """Hostname could not be resolved to an IPv4 address."""

    pass


class ServiceManagerError(WgDdnsError):
    """Service manager (systemd) operation failed."""

    pass
