"""Tests for EndpointRegistry."""

import pytest

from wgddns.models import MonitoredEndpoint
from wgddns.registry import EndpointRegistry


def make_endpoint(interface: str, hostname: str = "vpn.example.com", last_ip=None):
    return MonitoredEndpoint(
        interface=interface,
        endpoint=f"{hostname}:51820",
        hostname=hostname,
        last_ip=last_ip,
    )


class TestEndpointRegistry:
    """Test EndpointRegistry operations."""

    def test_empty_registry(self):
        registry = EndpointRegistry()
        assert registry.snapshot() == []
        assert len(registry) == 0

    def test_insertion_order_preserved(self):
        registry = EndpointRegistry(
            [make_endpoint("wg2"), make_endpoint("wg0"), make_endpoint("wg1")]
        )
        assert registry.interfaces() == ["wg2", "wg0", "wg1"]

    def test_duplicate_interface_rejected(self):
        registry = EndpointRegistry([make_endpoint("wg0")])

        with pytest.raises(ValueError, match="already registered"):
            registry.add(make_endpoint("wg0", "other.example.com"))

        assert registry.get("wg0").hostname == "vpn.example.com"

    def test_empty_hostname_rejected(self):
        with pytest.raises(ValueError):
            EndpointRegistry([make_endpoint("wg0", hostname="")])

    def test_contains(self):
        registry = EndpointRegistry([make_endpoint("wg0")])
        assert "wg0" in registry
        assert "wg1" not in registry

    def test_get_nonexistent_returns_none(self):
        assert EndpointRegistry().get("wg0") is None

    def test_snapshot_is_a_copy(self):
        registry = EndpointRegistry([make_endpoint("wg0", last_ip="1.2.3.4")])

        snapshot = registry.snapshot()
        snapshot[0].last_ip = "9.9.9.9"

        assert registry.get("wg0").last_ip == "1.2.3.4"

    def test_add_stores_a_copy(self):
        endpoint = make_endpoint("wg0")
        registry = EndpointRegistry([endpoint])

        endpoint.last_ip = "9.9.9.9"

        assert registry.get("wg0").last_ip is None

    def test_update_address_returns_previous(self):
        registry = EndpointRegistry([make_endpoint("wg0", last_ip="1.2.3.4")])

        previous = registry.update_address("wg0", "5.6.7.8")

        assert previous == "1.2.3.4"
        assert registry.get("wg0").last_ip == "5.6.7.8"

    def test_update_address_does_not_touch_snapshots(self):
        registry = EndpointRegistry([make_endpoint("wg0", last_ip="1.2.3.4")])
        snapshot = registry.snapshot()

        registry.update_address("wg0", "5.6.7.8")

        assert snapshot[0].last_ip == "1.2.3.4"

    def test_update_unknown_interface(self):
        with pytest.raises(KeyError):
            EndpointRegistry().update_address("wg0", "1.2.3.4")

    def test_replace_all(self):
        registry = EndpointRegistry([make_endpoint("wg0")])

        registry.replace_all([make_endpoint("wg1"), make_endpoint("wg2")])

        assert registry.interfaces() == ["wg1", "wg2"]

    def test_replace_all_failure_keeps_registry(self):
        registry = EndpointRegistry([make_endpoint("wg0")])

        with pytest.raises(ValueError):
            registry.replace_all([make_endpoint("wg1"), make_endpoint("wg1")])

        assert registry.interfaces() == ["wg0"]
