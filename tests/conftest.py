"""Pytest configuration and shared fixtures."""

import pytest

from fakes import FakeResolver, FakeServiceManager


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from wgddns.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def service_manager():
    return FakeServiceManager()
