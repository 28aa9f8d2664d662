"""wg-ddns - Dynamic DNS support for WireGuard tunnels."""

__version__ = "0.1.0"
